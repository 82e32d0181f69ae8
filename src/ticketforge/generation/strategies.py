"""Generation attempts and their uniform result type.

Every attempt is an async function taking AttemptInputs and returning
``Success`` or ``Recoverable``. Attempts never raise for an expected
failure; the orchestrator walks an ordered tuple of them and stops at
the first Success.

Primary attempts call the AI provider:
    template_guided -> context_summary -> raw_description
Emergency attempts make no external calls:
    template_render -> builtin_render
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ticketforge.analysis.schemas import Context
from ticketforge.constants import ERROR_TRUNCATION_CHARS, GenerationStep
from ticketforge.generation.ai import AIProvider
from ticketforge.generation.prompts import (
    context_summary_prompt,
    raw_description_prompt,
    system_prompt,
    template_guided_prompt,
)
from ticketforge.generation.validation import strip_fences, validate_document
from ticketforge.resilience.errors import (
    AIProviderFailure,
    ErrorClass,
    RenderFailure,
    ValidationFailure,
    classify_error,
)
from ticketforge.templates.builtin import builtin_template
from ticketforge.templates.defaults import DefaultPolicy, complete_namespace
from ticketforge.templates.renderer import TemplateRenderer
from ticketforge.templates.schemas import ResolutionKey, Template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    step: GenerationStep
    content: str
    title: str
    template: Template
    unresolved_fields: frozenset[str] = frozenset()
    defaulted_fields: tuple[str, ...] = ()
    model: str | None = None


@dataclass(frozen=True)
class Recoverable:
    step: GenerationStep
    reason: str
    error_class: ErrorClass | None = None


type AttemptResult = Success | Recoverable


@dataclass(frozen=True)
class AttemptInputs:
    """Everything an attempt may read. Shared, never mutated."""

    context: Context
    template: Template
    namespace: dict[str, Any]
    renderer: TemplateRenderer
    ai: AIProvider
    timeout_ms: int = 30_000
    min_content_length: int = 0

    @property
    def policy(self) -> DefaultPolicy:
        return DefaultPolicy(self.template.defaults)

    def with_timeout(self, timeout_ms: int) -> AttemptInputs:
        return AttemptInputs(
            context=self.context,
            template=self.template,
            namespace=self.namespace,
            renderer=self.renderer,
            ai=self.ai,
            timeout_ms=timeout_ms,
            min_content_length=self.min_content_length,
        )


type Attempt = Callable[[AttemptInputs], Awaitable[AttemptResult]]


def render_title(
    inputs: AttemptInputs, template: Template, namespace: dict[str, Any]
) -> str:
    """Rendered title line; falls back to the component name."""
    fallback = inputs.context.subject.name or "Design implementation"
    if not template.title:
        return fallback
    policy = DefaultPolicy(template.defaults)
    try:
        return " ".join(
            inputs.renderer.render(template.title, namespace, policy)
            .content.split()
        ) or fallback
    except RenderFailure as exc:
        logger.warning(
            "event=title_render_failed template=%s error=%s",
            template.resolution_path,
            str(exc)[:ERROR_TRUNCATION_CHARS],
        )
        return fallback


# ── Primary (AI) attempts ────────────────────────────────


async def _ai_attempt(
    inputs: AttemptInputs, step: GenerationStep, prompt: str
) -> AttemptResult:
    if not inputs.ai.available:
        return Recoverable(step, "AI provider unavailable")
    try:
        async with asyncio.timeout(inputs.timeout_ms / 1000):
            text = await inputs.ai.generate(
                prompt,
                inputs.timeout_ms,
                system=system_prompt(inputs.template),
            )
    except TimeoutError:
        return Recoverable(
            step,
            f"timed out after {inputs.timeout_ms}ms",
            ErrorClass.TIMEOUT,
        )
    except AIProviderFailure as exc:
        return Recoverable(
            step,
            str(exc)[:ERROR_TRUNCATION_CHARS],
            classify_error(exc),
        )
    except Exception as exc:
        # Provider broke its contract; treat like a provider failure
        return Recoverable(
            step,
            f"{type(exc).__name__}: {exc}"[:ERROR_TRUNCATION_CHARS],
            classify_error(exc),
        )

    content = strip_fences(text or "")
    if not content:
        return Recoverable(step, "empty response")

    policy = inputs.policy
    filled = inputs.renderer.fill_markers(content, inputs.namespace, policy)
    try:
        validate_document(
            filled.content,
            inputs.template.required_fields,
            min_length=inputs.min_content_length,
            supplied=inputs.namespace,
        )
    except ValidationFailure as exc:
        return Recoverable(step, str(exc)[:ERROR_TRUNCATION_CHARS])

    return Success(
        step=step,
        content=filled.content,
        title=render_title(inputs, inputs.template, inputs.namespace),
        template=inputs.template,
        unresolved_fields=filled.unresolved_fields,
        model=getattr(text, "model", None) or None,
    )


async def template_guided(inputs: AttemptInputs) -> AttemptResult:
    """AI call shaped by the resolved template and the full context."""
    step = GenerationStep.TEMPLATE_GUIDED
    if not inputs.context.successful_sections:
        return Recoverable(step, "no successful analyzer sections")
    prompt = template_guided_prompt(inputs.template, inputs.namespace)
    return await _ai_attempt(inputs, step, prompt)


async def context_summary(inputs: AttemptInputs) -> AttemptResult:
    """AI call with the context summary only."""
    step = GenerationStep.CONTEXT_SUMMARY
    if not inputs.context.successful_sections:
        return Recoverable(step, "no successful analyzer sections")
    prompt = context_summary_prompt(inputs.template, inputs.context)
    return await _ai_attempt(inputs, step, prompt)


async def raw_description(inputs: AttemptInputs) -> AttemptResult:
    """AI call with just the designer's selection and description."""
    prompt = raw_description_prompt(inputs.template, inputs.context.subject)
    return await _ai_attempt(inputs, GenerationStep.RAW_DESCRIPTION, prompt)


# ── Emergency (deterministic) attempts ───────────────────


def _deterministic(
    inputs: AttemptInputs, template: Template, step: GenerationStep
) -> AttemptResult:
    renderer = inputs.renderer
    policy = DefaultPolicy(template.defaults)
    try:
        paths = renderer.referenced_paths(template.body)
        if template.title:
            paths += renderer.referenced_paths(template.title)
        namespace, defaulted = complete_namespace(
            inputs.namespace, paths, policy
        )
        result = renderer.render(template.body, namespace, policy)
    except RenderFailure as exc:
        logger.error(
            "event=template_render_failed template=%s error=%s",
            template.resolution_path,
            str(exc)[:ERROR_TRUNCATION_CHARS],
        )
        return Recoverable(step, str(exc)[:ERROR_TRUNCATION_CHARS])

    if result.unresolved_fields:
        return Recoverable(
            step,
            "unresolved fields after default completion: "
            + ", ".join(sorted(result.unresolved_fields)),
        )
    try:
        validate_document(
            result.content, template.required_fields, supplied=inputs.namespace
        )
    except ValidationFailure as exc:
        return Recoverable(step, str(exc)[:ERROR_TRUNCATION_CHARS])

    return Success(
        step=step,
        content=result.content.strip() + "\n",
        title=render_title(inputs, template, namespace),
        template=template,
        defaulted_fields=tuple(defaulted),
    )


async def template_render(inputs: AttemptInputs) -> AttemptResult:
    """Render the resolved template against the context, no AI."""
    return _deterministic(
        inputs, inputs.template, GenerationStep.TEMPLATE_RENDER
    )


async def builtin_render(inputs: AttemptInputs) -> AttemptResult:
    """Render the built-in minimal template, no AI."""
    template = inputs.template
    key = ResolutionKey(
        template.platform, template.document_type, template.tech_stack
    )
    return _deterministic(
        inputs, builtin_template(key), GenerationStep.BUILTIN_RENDER
    )


type StepAttempt = tuple[GenerationStep, Attempt]

PRIMARY_ATTEMPTS: tuple[StepAttempt, ...] = (
    (GenerationStep.TEMPLATE_GUIDED, template_guided),
    (GenerationStep.CONTEXT_SUMMARY, context_summary),
    (GenerationStep.RAW_DESCRIPTION, raw_description),
)

EMERGENCY_ATTEMPTS: tuple[StepAttempt, ...] = (
    (GenerationStep.TEMPLATE_RENDER, template_render),
    (GenerationStep.BUILTIN_RENDER, builtin_render),
)
