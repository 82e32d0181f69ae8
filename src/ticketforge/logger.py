"""Structured JSON logger for generation requests and errors."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ticketforge.constants import ERROR_TRUNCATION_CHARS

__all__ = ["RequestLogger"]


def _file_logger(name: str, path: Path, level: int) -> logging.Logger:
    """Dedicated logger writing bare JSON lines to ``path``.

    Handlers are attached once per logger name, so building a second
    RequestLogger in the same process reuses the first one's files.
    """
    file_logger = logging.getLogger(name)
    file_logger.setLevel(level)
    # JSON lines belong in their file, not on the console
    file_logger.propagate = False
    if not file_logger.handlers:
        handler = logging.FileHandler(path)
        handler.setFormatter(logging.Formatter("%(message)s"))
        file_logger.addHandler(handler)
    return file_logger


def _record(record_type: str, request_id: str, **fields: Any) -> str:
    return json.dumps({
        "type": record_type,
        "timestamp": datetime.now(UTC).isoformat(),
        "request_id": request_id,
        **fields,
    })


class RequestLogger:
    """One JSON line per generation request, correlated by request_id."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._requests = _file_logger(
            "ticketforge.requests",
            log_dir / "requests.log",
            getattr(logging, level.upper(), logging.INFO),
        )
        self._errors = _file_logger(
            "ticketforge.request_errors",
            log_dir / "errors.log",
            logging.WARNING,
        )

    def log_request(
        self,
        request_id: str,
        fingerprint: str,
        platform: str,
        document_type: str,
        strategy: str,
        step: str,
        confidence: float,
        duration_ms: float,
        cache_hit: bool,
    ) -> None:
        self._requests.info(
            _record(
                "request",
                request_id,
                fingerprint=fingerprint,
                platform=platform,
                document_type=document_type,
                strategy=strategy,
                step=step,
                confidence=round(confidence, 4),
                duration_ms=duration_ms,
                cache_hit=cache_hit,
            )
        )

    def log_stage(
        self,
        request_id: str,
        stage_name: str,
        status: str,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        self._requests.info(
            _record(
                "stage",
                request_id,
                stage=stage_name,
                status=status,
                duration_ms=duration_ms,
                error=error,
            )
        )

    def log_error(
        self,
        request_id: str,
        component: str,
        error: str,
    ) -> None:
        self._errors.error(
            _record(
                "error",
                request_id,
                component=component,
                error=error[:ERROR_TRUNCATION_CHARS],
            )
        )
