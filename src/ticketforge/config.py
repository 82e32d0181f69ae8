"""Environment-based configuration and application constants."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

from ticketforge.constants import Confidence, MIN_CONTENT_LENGTH

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # LLM Provider
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    gemini_api_key: str = ""

    # Model chain (first = primary, rest = fallbacks tried in order)
    litellm_model_chain: Annotated[list[str], NoDecode] = [
        "gemini/gemini-2.0-flash",
        "openai/gpt-4.1-mini",
    ]
    ai_enabled: bool = True
    llm_timeout_seconds: int = 60
    llm_max_retries: int = 3
    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_recovery_seconds: int = 60

    # Analysis
    analyzer_timeout_seconds: float = 3.0
    analyzer_max_concurrency: int = 8
    enabled_analyzers: Annotated[list[str], NoDecode] = []
    analyzer_weights: Annotated[dict[str, float], NoDecode] = {}

    # Generation
    ai_step_timeout_seconds: float = 30.0
    request_timeout_seconds: float = 90.0
    min_confidence: float = Confidence.DEFAULT_MINIMUM
    emergency_confidence_discount: float = 0.5
    min_content_length: int = MIN_CONTENT_LENGTH

    # Cache (empty redis_url = in-process memory cache)
    redis_url: str = ""
    cache_key_prefix: str = "ticketforge"
    context_cache_ttl_seconds: int = 300
    document_cache_ttl_seconds: int = 7200
    cache_io_timeout_seconds: float = 0.5

    # Templates (None = shipped library)
    templates_dir: Path | None = None

    # Directories
    log_dir: Path = Path("logs")

    # Logging
    log_level: str = "INFO"
    debug_mode: bool = False

    # API
    api_key: str = ""
    cors_origins: str = "http://localhost:3000"
    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("litellm_model_chain", "enabled_analyzers", mode="before")
    @classmethod
    def _parse_list(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            stripped = v.strip()
            if stripped.startswith("["):
                return json.loads(stripped)
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("litellm_model_chain")
    @classmethod
    def _validate_chain(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        dupes: list[str] = []
        for m in v:
            if m in seen:
                dupes.append(m)
            seen.add(m)
        if dupes:
            logger.warning(
                "Duplicate models in LITELLM_MODEL_CHAIN: %s",
                ", ".join(dupes),
            )
        return v

    @field_validator("analyzer_weights", mode="before")
    @classmethod
    def _parse_weights(cls, v: Any) -> Any:
        """Accept a JSON object or ``id=weight`` pairs separated by commas."""
        if isinstance(v, str):
            stripped = v.strip()
            if not stripped:
                return {}
            if stripped.startswith("{"):
                return json.loads(stripped)
            pairs: dict[str, float] = {}
            for item in stripped.split(","):
                name, _, weight = item.partition("=")
                if not name.strip() or not weight.strip():
                    raise ValueError(
                        f"analyzer weight must be id=weight, got {item!r}"
                    )
                pairs[name.strip()] = float(weight)
            return pairs
        return v

    @field_validator("analyzer_weights")
    @classmethod
    def _validate_weights(cls, v: dict[str, float]) -> dict[str, float]:
        negative = sorted(k for k, w in v.items() if w < 0)
        if negative:
            raise ValueError(
                "analyzer weights must be non-negative: "
                + ", ".join(negative)
            )
        return v

    @field_validator("min_confidence", "emergency_confidence_discount")
    @classmethod
    def _validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("value must be between 0 and 1")
        return v

    def weight_for(self, analyzer_id: str) -> float:
        """Trust weight of an analyzer; unlisted analyzers weigh 1.0."""
        return self.analyzer_weights.get(analyzer_id, 1.0)

    @property
    def has_llm_credentials(self) -> bool:
        return bool(
            self.anthropic_api_key
            or self.openai_api_key
            or self.gemini_api_key
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }


# Timeout budgets (seconds) for the surfaces that wrap the core
TIMEOUTS = {
    "cli_generate": 180,
    "api_generate": 120,
}
