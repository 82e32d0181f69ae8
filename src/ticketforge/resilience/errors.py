"""Error taxonomy and classification.

Every exception below is recovered inside the pipeline except
GenerationExhaustedError, the one condition surfaced to callers.

classify_error() tags provider failures as transient, server, timeout,
client or unknown so failed attempts and log lines say which kind of
failure advanced the fallback chain.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from enum import Enum


class TicketForgeError(Exception):
    """Base class for pipeline errors."""


class AnalyzerFailure(TicketForgeError):
    """An analyzer could not produce its facet for this input."""

    def __init__(self, analyzer_id: str, message: str) -> None:
        super().__init__(f"{analyzer_id}: {message}")
        self.analyzer_id = analyzer_id


class TemplateResolutionFailure(TicketForgeError):
    """No template tier answered. Unreachable while the built-in tier exists."""


class RenderFailure(TicketForgeError):
    """A template could not be rendered."""


class TemplateSyntaxError(RenderFailure):
    """Malformed templating source."""

    def __init__(self, message: str, lineno: int | None = None) -> None:
        where = f" on line {lineno}" if lineno is not None else ""
        super().__init__(f"{message}{where}")
        self.lineno = lineno


class AIProviderFailure(TicketForgeError):
    """The AI collaborator timed out, errored or returned nothing."""


class ValidationFailure(TicketForgeError):
    """Rendered output is missing required fields or shows placeholders."""

    def __init__(
        self,
        message: str,
        missing_fields: Iterable[str] = (),
    ) -> None:
        self.missing_fields = tuple(sorted(missing_fields))
        detail = (
            f" (missing: {', '.join(self.missing_fields)})"
            if self.missing_fields
            else ""
        )
        super().__init__(f"{message}{detail}")


class GenerationExhaustedError(TicketForgeError):
    """Even the built-in template failed. Expected never to happen."""


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, network errors (retryable)
    SERVER = "server"  # 500, 502, 503 (retryable)
    TIMEOUT = "timeout"  # deadline exceeded (retryable with backoff)
    CLIENT = "client"  # 400, 401, 403 (do NOT retry)
    UNKNOWN = "unknown"  # unclassified (do NOT retry)


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to determine handling strategy.

    Checks structured attributes first (status_code), falls back
    to string matching for untyped exceptions.
    """
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        if status_code == 429:
            return ErrorClass.TRANSIENT
        if 400 <= status_code < 500:
            return ErrorClass.CLIENT
        if 500 <= status_code < 600:
            return ErrorClass.SERVER

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClass.TIMEOUT

    # Chained provider errors keep the real cause on __cause__
    cause = error.__cause__
    if isinstance(error, AIProviderFailure) and cause is not None:
        return classify_error(cause)

    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "429" in msg or "rate limit" in msg or "rate_limit" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("500", "502", "503", "504")):
        return ErrorClass.SERVER
    if "econnrefused" in msg or "connection" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("400", "401", "403", "404")):
        return ErrorClass.CLIENT

    return ErrorClass.UNKNOWN


_RETRYABLE = frozenset({
    ErrorClass.TRANSIENT,
    ErrorClass.SERVER,
    ErrorClass.TIMEOUT,
})


def is_retryable(error: BaseException) -> bool:
    """Return True if the error category supports retry."""
    return classify_error(error) in _RETRYABLE
