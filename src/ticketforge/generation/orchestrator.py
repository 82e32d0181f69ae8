"""GenerationOrchestrator: primary/emergency strategy loop.

Strategy selection is a pure function of provider availability and the
caller's requested strategy. The primary strategy walks its AI attempts
inside the outer request budget; whatever it cannot finish falls
through to the emergency attempts, which make no external calls and so
always run to completion.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ticketforge.analysis.schemas import Context
from ticketforge.cache.result_cache import SafeResultCache
from ticketforge.constants import (
    DOCUMENT_KEY_PREFIX,
    ERROR_TRUNCATION_CHARS,
    STRATEGY_ALIASES,
    GenerationStep,
    StrategyName,
)
from ticketforge.generation.ai import AIProvider
from ticketforge.generation.namespace import build_namespace
from ticketforge.generation.strategies import (
    EMERGENCY_ATTEMPTS,
    PRIMARY_ATTEMPTS,
    AttemptInputs,
    Recoverable,
    StepAttempt,
    Success,
)
from ticketforge.resilience.errors import ErrorClass, GenerationExhaustedError
from ticketforge.templates.renderer import TemplateRenderer
from ticketforge.templates.schemas import Template

logger = logging.getLogger(__name__)


class AttemptRecord(BaseModel):
    """One failed attempt, kept on the document for diagnostics."""

    model_config = ConfigDict(frozen=True)

    step: GenerationStep
    reason: str
    error_class: str | None = None


class RenderedDocument(BaseModel):
    """Terminal artifact of one generation request."""

    model_config = ConfigDict(frozen=True)

    content: str
    title: str = ""
    strategy_used: StrategyName
    step: GenerationStep
    confidence: float = Field(ge=0.0, le=1.0)
    low_confidence: bool = False
    # Sorted so cached and fresh documents serialize identically
    unresolved_fields: list[str] = Field(default_factory=list)
    defaulted_fields: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0
    cache_hit: bool = False
    platform: str = ""
    document_type: str = ""
    tech_stack: str = ""
    template_path: str = ""
    fingerprint: str = ""
    model: str | None = None
    attempts: list[AttemptRecord] = Field(default_factory=list)


def normalize_strategy_name(name: str | None) -> StrategyName | None:
    """Map canonical and legacy strategy names; None when not recognised."""
    if name is None or not str(name).strip():
        return None
    key = str(name).strip().lower().replace("_", "-").replace(" ", "-")
    strategy = STRATEGY_ALIASES.get(key)
    if strategy is None:
        logger.warning("event=unknown_strategy name=%s", key)
    return strategy


def select_strategy(
    ai_available: bool, requested: StrategyName | None = None
) -> StrategyName:
    """Pure strategy decision: primary only when AI can be used."""
    if requested is StrategyName.EMERGENCY or not ai_available:
        return StrategyName.EMERGENCY
    return StrategyName.PRIMARY


def document_cache_key(context: Context, template: Template) -> str:
    return ":".join((
        DOCUMENT_KEY_PREFIX,
        context.fingerprint,
        template.platform or "-",
        template.document_type or "-",
        template.tech_stack or "-",
    ))


class GenerationOrchestrator:
    """Turns a Context and a resolved Template into a RenderedDocument."""

    def __init__(
        self,
        renderer: TemplateRenderer,
        ai: AIProvider,
        cache: SafeResultCache,
        *,
        step_timeout_seconds: float = 30.0,
        request_timeout_seconds: float = 90.0,
        min_confidence: float = 0.6,
        emergency_discount: float = 0.5,
        min_content_length: int = 0,
        document_ttl_seconds: int = 7200,
        clock: Callable[[], float] = time.monotonic,
        primary_attempts: Sequence[StepAttempt] = PRIMARY_ATTEMPTS,
        emergency_attempts: Sequence[StepAttempt] = EMERGENCY_ATTEMPTS,
    ) -> None:
        self.renderer = renderer
        self.ai = ai
        self._cache = cache
        self._step_timeout = step_timeout_seconds
        self._request_timeout = request_timeout_seconds
        self._min_confidence = min_confidence
        self._discount = emergency_discount
        self._min_length = min_content_length
        self._ttl = document_ttl_seconds
        self._clock = clock
        self._primary = tuple(primary_attempts)
        self._emergency = tuple(emergency_attempts)

    async def generate(
        self,
        context: Context,
        template: Template,
        strategy: str | None = None,
    ) -> RenderedDocument:
        """Run the strategy chain. Raises only GenerationExhaustedError."""
        start = self._clock()
        strategy_used = select_strategy(
            self.ai.available, normalize_strategy_name(strategy)
        )
        cache_key = document_cache_key(context, template)

        if strategy_used is StrategyName.PRIMARY:
            cached = await self._load(cache_key)
            if cached is not None:
                logger.info(
                    "event=document_cache_hit fingerprint=%s template=%s",
                    context.fingerprint[:12],
                    template.resolution_path,
                )
                return cached.model_copy(
                    update={
                        "cache_hit": True,
                        "duration_ms": self._elapsed_ms(start),
                    }
                )

        inputs = AttemptInputs(
            context=context,
            template=template,
            namespace=build_namespace(context, template),
            renderer=self.renderer,
            ai=self.ai,
            min_content_length=self._min_length,
        )
        failures: list[Recoverable] = []

        if strategy_used is StrategyName.PRIMARY:
            success = await self._run_primary(inputs, start, failures)
            if success is not None:
                document = self._document(
                    success, StrategyName.PRIMARY, context, failures, start
                )
                await self._cache.set(
                    cache_key, document.model_dump_json(), self._ttl
                )
                return document
            logger.warning(
                "event=primary_exhausted fingerprint=%s attempts=%d",
                context.fingerprint[:12],
                len(failures),
            )

        for step, attempt in self._emergency:
            if step is GenerationStep.BUILTIN_RENDER and template.is_builtin:
                continue
            result = await attempt(inputs)
            if isinstance(result, Success):
                return self._document(
                    result, StrategyName.EMERGENCY, context, failures, start
                )
            self._record(result, failures)

        raise GenerationExhaustedError(
            "every generation attempt failed: "
            + "; ".join(f"{f.step.value}: {f.reason}" for f in failures)
        )

    async def _run_primary(
        self,
        inputs: AttemptInputs,
        start: float,
        failures: list[Recoverable],
    ) -> Success | None:
        deadline = start + self._request_timeout
        for step, attempt in self._primary:
            remaining = deadline - self._clock()
            if remaining <= 0:
                # Budget spent: remaining AI steps are skipped, not run
                self._record(
                    Recoverable(
                        step, "request budget exhausted", ErrorClass.TIMEOUT
                    ),
                    failures,
                )
                continue
            timeout_ms = int(min(self._step_timeout, remaining) * 1000)
            result = await attempt(inputs.with_timeout(max(1, timeout_ms)))
            if isinstance(result, Success):
                return result
            self._record(result, failures)
        return None

    def _record(self, failure: Recoverable, failures: list[Recoverable]) -> None:
        failures.append(failure)
        logger.warning(
            "event=generation_attempt_failed step=%s error_class=%s reason=%s",
            failure.step.value,
            failure.error_class.value if failure.error_class else "-",
            failure.reason,
        )

    def _document(
        self,
        success: Success,
        strategy: StrategyName,
        context: Context,
        failures: Sequence[Recoverable],
        start: float,
    ) -> RenderedDocument:
        confidence = context.overall_confidence
        if strategy is StrategyName.EMERGENCY:
            confidence *= self._discount
        low = context.overall_confidence < self._min_confidence
        document = RenderedDocument(
            content=success.content,
            title=success.title,
            strategy_used=strategy,
            step=success.step,
            confidence=round(confidence, 4),
            low_confidence=low,
            unresolved_fields=sorted(success.unresolved_fields),
            defaulted_fields=list(success.defaulted_fields),
            duration_ms=self._elapsed_ms(start),
            platform=success.template.platform,
            document_type=success.template.document_type,
            tech_stack=success.template.tech_stack,
            template_path=success.template.resolution_path,
            fingerprint=context.fingerprint,
            model=success.model,
            attempts=[
                AttemptRecord(
                    step=f.step,
                    reason=f.reason,
                    error_class=f.error_class.value if f.error_class else None,
                )
                for f in failures
            ],
        )
        logger.info(
            "event=document_generated strategy=%s step=%s confidence=%.3f "
            "low_confidence=%s template=%s duration_ms=%.2f",
            strategy.value,
            success.step.value,
            document.confidence,
            low,
            document.template_path,
            document.duration_ms,
        )
        return document

    async def _load(self, key: str) -> RenderedDocument | None:
        payload = await self._cache.get(key)
        if payload is None:
            return None
        try:
            return RenderedDocument.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning(
                "event=document_cache_corrupt key=%s error=%s",
                key,
                str(exc)[:ERROR_TRUNCATION_CHARS],
            )
            return None

    def _elapsed_ms(self, start: float) -> float:
        return round((self._clock() - start) * 1000, 2)
