"""Tests for individual generation attempts."""

from __future__ import annotations

import pytest

from ticketforge.analysis.schemas import Context
from ticketforge.constants import GenerationStep
from ticketforge.generation.namespace import build_namespace
from ticketforge.generation.strategies import (
    AttemptInputs,
    Recoverable,
    Success,
    builtin_render,
    raw_description,
    template_guided,
    template_render,
)
from ticketforge.generation.validation import missing_fields
from ticketforge.resilience.errors import ErrorClass
from ticketforge.templates.renderer import TemplateRenderer
from ticketforge.templates.resolver import TemplateResolver
from ticketforge.templates.schemas import Template
from ticketforge.templates.store import TemplateStore

from tests.conftest import FakeAIProvider, document_text, make_context


def _inputs(
    context: Context, template: Template, ai: FakeAIProvider | None = None
) -> AttemptInputs:
    return AttemptInputs(
        context=context,
        template=template,
        namespace=build_namespace(context, template),
        renderer=TemplateRenderer(),
        ai=ai or FakeAIProvider(available=False),
        timeout_ms=1000,
    )


def _resolve(platform: str, document_type: str, tech_stack: str) -> Template:
    return TemplateResolver(TemplateStore()).resolve(
        platform, document_type, tech_stack
    )


class TestAIAttempts:
    @pytest.mark.asyncio
    async def test_unavailable_provider_is_recoverable(self) -> None:
        template = _resolve("jira", "component", "react")
        result = await template_guided(_inputs(await make_context(), template))
        assert isinstance(result, Recoverable)
        assert result.reason == "AI provider unavailable"

    @pytest.mark.asyncio
    async def test_empty_response_is_recoverable(self) -> None:
        template = _resolve("jira", "component", "react")
        ai = FakeAIProvider(["   "])
        result = await template_guided(_inputs(await make_context(), template, ai))
        assert isinstance(result, Recoverable)
        assert result.reason == "empty response"

    @pytest.mark.asyncio
    async def test_contract_breaking_provider_is_recoverable(self) -> None:
        template = _resolve("jira", "component", "react")
        ai = FakeAIProvider([ConnectionError("connection reset by peer")])
        result = await raw_description(_inputs(await make_context(), template, ai))
        assert isinstance(result, Recoverable)
        assert result.step is GenerationStep.RAW_DESCRIPTION
        assert result.reason.startswith("ConnectionError")
        assert result.error_class is ErrorClass.TRANSIENT

    @pytest.mark.asyncio
    async def test_success_carries_model_and_timeout(self) -> None:
        template = _resolve("jira", "component", "react")
        ai = FakeAIProvider([document_text(template.required_fields)])
        result = await template_guided(_inputs(await make_context(), template, ai))
        assert isinstance(result, Success)
        assert result.model == "fake/model-1"
        assert ai.timeouts == [1000]


class TestDeterministicAttempts:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("platform", "document_type", "tech_stack", "path"),
        [
            ("jira", "component", "react", "platforms/jira/component/react.yml"),
            ("jira", "component", "aem", "platforms/jira/component/aem.yml"),
            ("jira", "component", "vue", "platforms/jira/component/default.yml"),
            ("jira", "feature", "react", "platforms/jira/feature/default.yml"),
            ("github", "component", "react", "platforms/github/component/default.yml"),
            ("confluence", "wiki", "react", "platforms/confluence/wiki/default.yml"),
            ("linear", "component", "react", "custom/defaults/component.yml"),
            ("linear", "feature", "react", "custom/defaults/feature.yml"),
            ("linear", "wiki", "react", "custom/defaults/wiki.yml"),
            ("linear", "service", "go", "custom/defaults/service.yml"),
            ("linear", "code", "go", "custom/defaults/code.yml"),
        ],
    )
    async def test_every_shipped_template_renders(
        self, platform: str, document_type: str, tech_stack: str, path: str
    ) -> None:
        template = _resolve(platform, document_type, tech_stack)
        assert template.resolution_path == path

        result = await template_render(_inputs(await make_context(), template))
        assert isinstance(result, Success), result
        assert result.unresolved_fields == frozenset()
        assert missing_fields(result.content, template.required_fields) == []
        assert "{{" not in result.content
        assert "{%" not in result.content
        assert result.title
        assert "pxpx" not in result.content

    @pytest.mark.asyncio
    async def test_builtin_render(self) -> None:
        template = _resolve("linear", "component", "react")
        result = await builtin_render(_inputs(await make_context(), template))
        assert isinstance(result, Success)
        assert result.step is GenerationStep.BUILTIN_RENDER
        assert result.template.is_builtin
        assert result.title == "Implement Primary Button"
        assert result.content.startswith("## Summary\nImplement Primary Button")
