"""Analyzer contract and the helper built-in analyzers share."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from ticketforge.analysis.schemas import AnalyzerData, AnalyzerResult
from ticketforge.constants import ERROR_TRUNCATION_CHARS
from ticketforge.ingestion.schemas import RawInput

logger = logging.getLogger(__name__)

# A pure heuristic: payload plus the confidence the analyzer assigns it
type Inspection = tuple[AnalyzerData, float]


@runtime_checkable
class Analyzer(Protocol):
    """Pluggable unit deriving one facet of design intelligence.

    Implementations must not raise past ``analyze``: internal errors
    come back as a ``failed`` AnalyzerResult.
    """

    @property
    def analyzer_id(self) -> str: ...

    async def analyze(
        self, raw: RawInput, timeout_ms: int
    ) -> AnalyzerResult: ...


async def guarded_analysis(
    analyzer_id: str,
    inspect: Callable[[RawInput], Inspection],
    raw: RawInput,
) -> AnalyzerResult:
    """Run a synchronous heuristic, converting any error to ``failed``.

    The heuristic runs in a worker thread so sibling analyzers proceed
    concurrently and the aggregator's per-analyzer timeout can fire
    while it is still working.
    """
    start = time.monotonic()
    try:
        data, confidence = await asyncio.to_thread(inspect, raw)
    except Exception as exc:
        duration_ms = round((time.monotonic() - start) * 1000, 2)
        logger.warning(
            "event=analyzer_error analyzer=%s error=%s",
            analyzer_id,
            str(exc)[:ERROR_TRUNCATION_CHARS],
        )
        return AnalyzerResult.failure(
            analyzer_id,
            f"{type(exc).__name__}: {exc}"[:ERROR_TRUNCATION_CHARS],
            duration_ms=duration_ms,
        )
    duration_ms = round((time.monotonic() - start) * 1000, 2)
    return AnalyzerResult.success(
        analyzer_id,
        data,
        max(0.0, min(1.0, confidence)),
        duration_ms=duration_ms,
    )
