"""ContextAggregator: fan RawInput out to analyzers, fan results into a Context.

Every analyzer runs in its own task inside one TaskGroup, bounded by a
semaphore and a per-analyzer timeout. Each task writes only its own
result slot and never raises, so one analyzer failing or hanging cannot
cancel its siblings. The Context is built only after every slot is
filled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from pydantic import ValidationError

from ticketforge.analysis.base import Analyzer
from ticketforge.analysis.schemas import AnalyzerResult, Context, Subject
from ticketforge.analysis.scoring import compute_metrics, weighted_confidence
from ticketforge.cache.result_cache import SafeResultCache
from ticketforge.constants import CONTEXT_KEY_PREFIX, ERROR_TRUNCATION_CHARS
from ticketforge.ingestion.fingerprint import compute_fingerprint
from ticketforge.ingestion.schemas import RawInput
from ticketforge.resilience.coalesce import RequestCoalescer

logger = logging.getLogger(__name__)


def context_cache_key(fingerprint: str) -> str:
    return f"{CONTEXT_KEY_PREFIX}:{fingerprint}"


def subject_from(raw: RawInput) -> Subject:
    return Subject(
        name=raw.subject_name,
        description=raw.description or raw.selection.description,
        page_name=raw.selection.page_name,
        file_key=raw.file_key,
        file_name=raw.file_name,
        has_screenshot=raw.screenshot is not None,
    )


class ContextAggregator:
    """Builds one confidence-scored Context per distinct RawInput."""

    def __init__(
        self,
        analyzers: Sequence[Analyzer],
        cache: SafeResultCache,
        *,
        timeout_seconds: float,
        max_concurrency: int,
        cache_ttl_seconds: int,
        weight_for: Callable[[str], float] = lambda _id: 1.0,
        coalescer: RequestCoalescer[Context] | None = None,
    ) -> None:
        ids = [a.analyzer_id for a in analyzers]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate analyzer ids: {ids}")
        self._analyzers = list(analyzers)
        self._cache = cache
        self._timeout = timeout_seconds
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._ttl = cache_ttl_seconds
        self._weight_for = weight_for
        self._coalescer = coalescer or RequestCoalescer[Context]()

    @property
    def analyzer_ids(self) -> list[str]:
        return [a.analyzer_id for a in self._analyzers]

    async def aggregate(self, raw: RawInput) -> Context:
        """Return the Context for ``raw``, from cache when possible."""
        fingerprint = compute_fingerprint(raw)
        cached = await self._load(fingerprint)
        if cached is not None:
            logger.debug("event=context_cache_hit fingerprint=%s", fingerprint[:12])
            return cached
        return await self._coalescer.run(
            fingerprint, lambda: self._compute(raw, fingerprint)
        )

    async def _load(self, fingerprint: str) -> Context | None:
        payload = await self._cache.get(context_cache_key(fingerprint))
        if payload is None:
            return None
        try:
            return Context.model_validate_json(payload)
        except ValidationError as exc:
            # Entry written by an incompatible version; recompute
            logger.warning(
                "event=context_cache_corrupt fingerprint=%s error=%s",
                fingerprint[:12],
                str(exc)[:ERROR_TRUNCATION_CHARS],
            )
            return None

    async def _compute(self, raw: RawInput, fingerprint: str) -> Context:
        start = time.monotonic()
        slots: dict[str, AnalyzerResult] = {}

        async with asyncio.TaskGroup() as tg:
            for analyzer in self._analyzers:
                tg.create_task(self._run_one(analyzer, raw, slots))

        # Sections keep registration order regardless of finish order
        sections = {
            a.analyzer_id: slots[a.analyzer_id] for a in self._analyzers
        }
        successful = {k: r for k, r in sections.items() if r.succeeded}
        context = Context(
            fingerprint=fingerprint,
            sections=sections,
            overall_confidence=weighted_confidence(
                successful, self._weight_for
            ),
            computed_metrics=compute_metrics(successful),
            subject=subject_from(raw),
        )

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        logger.info(
            "event=context_aggregated fingerprint=%s analyzers=%d "
            "succeeded=%d confidence=%.3f duration_ms=%.2f",
            fingerprint[:12],
            len(sections),
            len(successful),
            context.overall_confidence,
            duration_ms,
        )
        await self._cache.set(
            context_cache_key(fingerprint),
            context.model_dump_json(),
            self._ttl,
        )
        return context

    async def _run_one(
        self,
        analyzer: Analyzer,
        raw: RawInput,
        slots: dict[str, AnalyzerResult],
    ) -> None:
        """Fill ``slots[analyzer_id]``. Never raises."""
        analyzer_id = analyzer.analyzer_id
        timeout_ms = int(self._timeout * 1000)
        start = time.monotonic()
        async with self._semaphore:
            try:
                async with asyncio.timeout(self._timeout):
                    result = await analyzer.analyze(raw, timeout_ms)
            except TimeoutError:
                logger.warning(
                    "event=analyzer_timeout analyzer=%s timeout_ms=%d",
                    analyzer_id,
                    timeout_ms,
                )
                slots[analyzer_id] = AnalyzerResult.failure(
                    analyzer_id,
                    f"timed out after {timeout_ms}ms",
                    timed_out=True,
                    duration_ms=_elapsed_ms(start),
                )
                return
            except Exception as exc:
                logger.warning(
                    "event=analyzer_error analyzer=%s error=%s",
                    analyzer_id,
                    str(exc)[:ERROR_TRUNCATION_CHARS],
                )
                slots[analyzer_id] = AnalyzerResult.failure(
                    analyzer_id,
                    f"{type(exc).__name__}: {exc}"[:ERROR_TRUNCATION_CHARS],
                    duration_ms=_elapsed_ms(start),
                )
                return

        if not isinstance(result, AnalyzerResult) or result.analyzer_id != analyzer_id:
            logger.warning(
                "event=analyzer_malformed analyzer=%s got=%s",
                analyzer_id,
                type(result).__name__,
            )
            slots[analyzer_id] = AnalyzerResult.failure(
                analyzer_id,
                "malformed result",
                duration_ms=_elapsed_ms(start),
            )
            return
        slots[analyzer_id] = result


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)
