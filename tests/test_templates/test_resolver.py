"""Tests for TemplateResolver tier order, normalization and caching."""

from __future__ import annotations

import random
import string
import textwrap
from pathlib import Path

import pytest

from ticketforge.constants import BUILTIN_RESOLUTION_PATH, ResolutionTier
from ticketforge.templates.resolver import (
    TemplateResolver,
    normalize_segment,
    resolution_key,
)
from ticketforge.templates.store import TemplateStore


@pytest.fixture
def resolver() -> TemplateResolver:
    return TemplateResolver(TemplateStore())


class TestShippedLibrary:
    def test_tech_stack_tier(self, resolver: TemplateResolver) -> None:
        template = resolver.resolve("jira", "component", "react")
        assert template.tier is ResolutionTier.TECH_STACK
        assert template.resolution_path == "platforms/jira/component/react.yml"
        # Inherited from platforms/jira/base.yml
        assert {"Summary", "Description", "Acceptance Criteria"} <= (
            template.required_fields
        )
        assert "Testing" in template.required_fields
        assert template.defaults["labels"] == ["design-system", "frontend"]

    def test_platform_default_tier(self, resolver: TemplateResolver) -> None:
        template = resolver.resolve("jira", "component", "svelte")
        assert template.tier is ResolutionTier.PLATFORM_DEFAULT
        assert template.resolution_path == "platforms/jira/component/default.yml"

    def test_unknown_stack_on_unknown_platform_uses_custom_default(
        self, resolver: TemplateResolver
    ) -> None:
        template = resolver.resolve("linear", "component", "cobol")
        assert template.tier is ResolutionTier.CUSTOM_DEFAULT
        assert template.resolution_path == "custom/defaults/component.yml"
        assert template.platform == "linear"
        assert template.tech_stack == "cobol"

    def test_unknown_document_type_uses_builtin(
        self, resolver: TemplateResolver
    ) -> None:
        template = resolver.resolve("linear", "runbook", "cobol")
        assert template.tier is ResolutionTier.BUILTIN
        assert template.resolution_path == BUILTIN_RESOLUTION_PATH
        assert template.is_builtin

    @pytest.mark.parametrize(
        ("tech_stack", "path"),
        [
            ("React-TS", "platforms/jira/component/react.yml"),
            ("ReactJS", "platforms/jira/component/react.yml"),
            ("AEM 6.5", "platforms/jira/component/aem.yml"),
            ("adobe-experience-manager", "platforms/jira/component/aem.yml"),
        ],
    )
    def test_tech_stack_aliases(
        self, resolver: TemplateResolver, tech_stack: str, path: str
    ) -> None:
        assert resolver.resolve("JIRA", "Component", tech_stack).resolution_path == path

    def test_document_type_alias(self, resolver: TemplateResolver) -> None:
        template = resolver.resolve("jira", "user story", "react")
        assert template.resolution_path == "platforms/jira/feature/default.yml"

    def test_candidate_paths(self, resolver: TemplateResolver) -> None:
        assert resolver.candidate_paths("jira", "component", "react") == [
            "platforms/jira/component/react.yml",
            "platforms/jira/component/default.yml",
            "custom/defaults/component.yml",
        ]


class TestNormalization:
    def test_segment_is_path_safe(self) -> None:
        assert normalize_segment("../../etc") == "etc"
        assert normalize_segment("My Platform!!") == "my-platform"
        assert normalize_segment(None) == ""
        assert len(normalize_segment("x" * 500)) == 64

    def test_resolution_key_applies_aliases(self) -> None:
        key = resolution_key(" Jira ", "Story", "VueJS")
        assert key == ("jira", "feature", "vue")

    def test_empty_inputs_resolve(self, resolver: TemplateResolver) -> None:
        template = resolver.resolve("", "", "")
        assert template.is_builtin

    def test_random_inputs_never_raise(self, resolver: TemplateResolver) -> None:
        rng = random.Random(1234)
        alphabet = string.printable + "éü日本/\\.."
        for _ in range(300):
            parts = [
                "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 40)))
                for _ in range(3)
            ]
            template = resolver.resolve(*parts)
            assert template.body
            assert template.tier in ResolutionTier


class TestCaching:
    def test_equivalent_requests_share_one_entry(
        self, resolver: TemplateResolver
    ) -> None:
        first = resolver.resolve("jira", "component", "react")
        second = resolver.resolve("JIRA", "components", "ReactJS")
        assert second is first
        stats = resolver.cache_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_reload_sees_new_files(self, tmp_path: Path) -> None:
        resolver = TemplateResolver(TemplateStore(tmp_path))
        assert resolver.resolve("acme", "component", "react").is_builtin

        target = tmp_path / "platforms/acme/component/react.yml"
        target.parent.mkdir(parents=True)
        target.write_text(
            textwrap.dedent(
                """\
                required_fields: [Summary]
                body: "## Summary\\nAcme {{ component.name }}\\n"
                """
            ),
            encoding="utf-8",
        )
        assert resolver.resolve("acme", "component", "react").is_builtin
        resolver.reload()
        template = resolver.resolve("acme", "component", "react")
        assert template.tier is ResolutionTier.TECH_STACK
