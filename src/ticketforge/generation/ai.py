"""AI provider boundary: protocol plus the LiteLLM implementation.

The orchestrator only sees ``AIProvider``. Failover across models,
per-model circuit breaking and rate-limit retry are the provider's own
concern and never leak past ``generate``, which either returns text or
raises AIProviderFailure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import litellm
from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from litellm.exceptions import RateLimitError as LitellmRateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ticketforge.config import Settings
from ticketforge.constants import (
    ERROR_TRUNCATION_CHARS,
    LLM_MAX_OUTPUT_TOKENS,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)
from ticketforge.resilience.errors import AIProviderFailure, classify_error

logger = logging.getLogger(__name__)

# litellm stubs have partially unknown types; typed alias
if TYPE_CHECKING:
    _acompletion: Callable[..., Coroutine[Any, Any, Any]]
else:
    _acompletion = litellm.acompletion


class Completion(str):
    """Generated text that remembers which model produced it."""

    model: str

    def __new__(cls, text: str, model: str = "") -> Completion:
        obj = super().__new__(cls, text)
        obj.model = model
        return obj


@runtime_checkable
class AIProvider(Protocol):
    """What the orchestrator needs from an AI collaborator."""

    @property
    def available(self) -> bool:
        """False when the provider is known to be unusable right now."""
        ...

    async def generate(
        self,
        prompt: str,
        max_timeout_ms: int,
        system: str | None = None,
    ) -> str:
        """Return generated text or raise AIProviderFailure."""
        ...


class DisabledProvider:
    """Provider used when AI is switched off or has no credentials."""

    @property
    def available(self) -> bool:
        return False

    async def generate(
        self,
        prompt: str,
        max_timeout_ms: int,
        system: str | None = None,
    ) -> str:
        raise AIProviderFailure("AI provider is disabled")


def _is_non_rate_limit_error(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Return True if NOT a rate limit error (should count as CB failure).

    Rate limit errors are transient backpressure signals, not system
    failures, so they are excluded from circuit breaker failure tracking.
    """
    return not issubclass(thrown_type, LitellmRateLimitError)


@retry(
    stop=stop_after_attempt(RETRY_MAX_ATTEMPTS),
    wait=wait_exponential_jitter(
        initial=RETRY_INITIAL_WAIT, max=RETRY_MAX_WAIT
    ),
    retry=retry_if_exception_type(LitellmRateLimitError),
    reraise=True,
)
async def guarded_llm_call(
    breaker: CircuitBreaker,  # pyright: ignore[reportUnknownParameterType]
    model: str,
    messages: list[dict[str, str]],
    timeout: float,
) -> str:
    """Circuit-breaker-protected completion with rate-limit retry.

    Tenacity retries rate-limit errors (429) with jittered exponential
    backoff. Any other failure counts against the model's breaker, and
    an open breaker raises CircuitBreakerError without calling out.
    """
    if breaker.opened:  # pyright: ignore[reportUnknownMemberType]
        raise CircuitBreakerError(breaker)  # pyright: ignore[reportUnknownArgumentType]
    with breaker:  # pyright: ignore[reportUnknownMemberType]
        response: Any = await _acompletion(
            model=model,
            messages=messages,
            timeout=timeout,
            max_tokens=LLM_MAX_OUTPUT_TOKENS,
            cache_control_injection_points=[
                {"location": "message", "role": "system"},
            ],
        )
    return str(response.choices[0].message.content or "")


class LiteLLMProvider:
    """Tries each model of the chain until one returns non-empty text."""

    def __init__(
        self,
        model_chain: Sequence[str],
        *,
        request_timeout_seconds: float = 60.0,
        max_retries: int = RETRY_MAX_ATTEMPTS,
        failure_threshold: int = 5,
        recovery_seconds: int = 60,
    ) -> None:
        self._chain = list(model_chain)
        self._request_timeout = request_timeout_seconds
        self._max_retries = max(1, max_retries)
        self._failure_threshold = failure_threshold
        self._recovery_seconds = recovery_seconds
        # Per-model breakers so one provider's outage does not block
        # fallback to another
        self._breakers: dict[str, CircuitBreaker] = {}  # pyright: ignore[reportUnknownVariableType]

    @classmethod
    def from_settings(cls, settings: Settings) -> LiteLLMProvider:
        return cls(
            settings.litellm_model_chain,
            request_timeout_seconds=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
            failure_threshold=settings.circuit_breaker_failure_threshold,
            recovery_seconds=settings.circuit_breaker_recovery_seconds,
        )

    @property
    def model_chain(self) -> list[str]:
        return list(self._chain)

    @property
    def available(self) -> bool:
        """At least one model whose breaker is not open."""
        return any(
            not self._breaker(m).opened  # pyright: ignore[reportUnknownMemberType]
            for m in self._chain
        )

    def _breaker(self, model: str) -> CircuitBreaker:  # pyright: ignore[reportUnknownParameterType]
        if model not in self._breakers:
            self._breakers[model] = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
                failure_threshold=self._failure_threshold,
                recovery_timeout=self._recovery_seconds,
                expected_exception=_is_non_rate_limit_error,
                name=f"llm_{model}",
            )
        return self._breakers[model]

    async def generate(
        self,
        prompt: str,
        max_timeout_ms: int,
        system: str | None = None,
    ) -> str:
        if not self._chain:
            raise AIProviderFailure("no models configured")
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        budget = max(0.001, max_timeout_ms / 1000)
        last_error: BaseException | None = None
        try:
            async with asyncio.timeout(budget):
                for model in self._chain:
                    try:
                        text = await guarded_llm_call.retry_with(  # pyright: ignore[reportFunctionMemberAccess]
                            stop=stop_after_attempt(self._max_retries),
                        )(
                            self._breaker(model),
                            model,
                            messages,
                            min(self._request_timeout, budget),
                        )
                    except CircuitBreakerError as exc:
                        last_error = exc
                        logger.warning(
                            "event=llm_circuit_open model=%s", model
                        )
                        continue
                    except Exception as exc:
                        last_error = exc
                        logger.warning(
                            "event=llm_call_failed model=%s error_class=%s "
                            "error=%s",
                            model,
                            classify_error(exc).value,
                            str(exc)[:ERROR_TRUNCATION_CHARS],
                        )
                        continue
                    if text.strip():
                        return Completion(text, model)
                    logger.warning("event=llm_empty_response model=%s", model)
                    last_error = AIProviderFailure(f"{model} returned no text")
        except TimeoutError as exc:
            raise AIProviderFailure(
                f"AI generation exceeded {max_timeout_ms}ms"
            ) from exc

        raise AIProviderFailure(
            f"all {len(self._chain)} models failed"
        ) from last_error


def create_ai_provider(settings: Settings) -> AIProvider:
    """LiteLLM provider when AI is enabled and a key is configured."""
    if not settings.ai_enabled:
        logger.info("event=ai_disabled reason=config")
        return DisabledProvider()
    if not settings.has_llm_credentials:
        logger.info("event=ai_disabled reason=no_credentials")
        return DisabledProvider()
    return LiteLLMProvider.from_settings(settings)
