"""Tests for generated-content validation."""

from __future__ import annotations

import pytest

from ticketforge.generation.validation import (
    find_placeholders,
    mask_supplied,
    missing_fields,
    present_fields,
    strip_fences,
    validate_document,
)
from ticketforge.resilience.errors import ValidationFailure

from tests.conftest import document_text


class TestStripFences:
    def test_removes_markdown_fence(self) -> None:
        assert strip_fences("```markdown\n## Summary\nx\n```") == "## Summary\nx"

    def test_plain_text_untouched(self) -> None:
        assert strip_fences("  ## Summary\nx  ") == "## Summary\nx"


class TestPresentFields:
    def test_heading_styles(self) -> None:
        content = "\n".join([
            "## Summary",
            "h2. Description",
            "**Acceptance Criteria**",
            "Testing: covered by unit tests",
        ])
        fields = ["Summary", "Description", "Acceptance Criteria", "Testing"]
        assert present_fields(content, fields) == set(fields)

    def test_prefix_of_longer_heading_does_not_count(self) -> None:
        content = "## Summary of changes\nbody"
        assert present_fields(content, ["Summary"]) == set()

    def test_case_insensitive(self) -> None:
        assert present_fields("## ACCEPTANCE CRITERIA", ["Acceptance Criteria"])

    def test_missing_fields_sorted(self) -> None:
        content = "## Testing\nok"
        assert missing_fields(content, ["Summary", "Testing", "Description"]) == [
            "Description",
            "Summary",
        ]


class TestPlaceholders:
    @pytest.mark.parametrize(
        ("content", "kind"),
        [
            ("Owner: {{ owner }}", "template marker"),
            ("{% if x %}left{% endif %}", "template tag"),
            ("Assignee: not found", "not found value"),
            ("Estimate [TBD]", "placeholder"),
        ],
    )
    def test_detected(self, content: str, kind: str) -> None:
        assert kind in find_placeholders(content)

    def test_code_braces_are_not_placeholders(self) -> None:
        assert find_placeholders("const style = { a: 1 }; <X style={{ a: 1 }} />") == []


class TestValidateDocument:
    def test_complete_document_passes(self) -> None:
        validate_document(
            document_text(["Summary", "Description"]),
            ["Summary", "Description"],
            min_length=50,
        )

    def test_too_short(self) -> None:
        with pytest.raises(ValidationFailure, match="shorter than"):
            validate_document("## Summary", ["Summary"], min_length=100)

    def test_placeholder_rejected(self) -> None:
        with pytest.raises(ValidationFailure, match="template marker"):
            validate_document("## Summary\n{{ component.name }}", ["Summary"])

    def test_missing_fields_reported(self) -> None:
        with pytest.raises(ValidationFailure) as exc_info:
            validate_document("## Summary\nok", ["Summary", "Testing", "Description"])
        assert exc_info.value.missing_fields == ("Description", "Testing")

    def test_supplied_values_are_not_scanned(self) -> None:
        namespace = {
            "component": {"description": "Search result: not found"},
            "labels": ["uses {{ slot }} markup"],
        }
        content = (
            "## Summary\nSearch result: NOT FOUND\n\n"
            "## Description\nuses {{ slot }} markup"
        )
        validate_document(content, ["Summary", "Description"], supplied=namespace)

    def test_template_text_is_still_scanned_with_supplied_values(self) -> None:
        namespace = {"component": {"description": "Search result: not found"}}
        content = "## Summary\nSearch result: not found\nOwner: not found"
        with pytest.raises(ValidationFailure, match="not found value"):
            validate_document(content, ["Summary"], supplied=namespace)


class TestMaskSupplied:
    def test_only_placeholder_like_values_are_masked(self) -> None:
        namespace = {"name": "Button", "note": "[TBD] by design"}
        masked = mask_supplied("Button: [tbd] by design", namespace)
        assert masked.startswith("Button:")
        assert "[tbd]" not in masked
