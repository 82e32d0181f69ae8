"""Checks applied to generated content before it is accepted.

A required field counts as present when some line of the document is a
heading for it: markdown ``## Field``, Jira ``h2. Field``, ``**Field**``
or ``Field:`` all qualify. Placeholders are leftover template syntax or
literal "not found" values. Text the designer supplied is masked before
the placeholder scan, so a description that quotes ``{{ x }}`` or reads
"result: not found" is content, not a leftover.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from ticketforge.resilience.errors import ValidationFailure
from ticketforge.templates.renderer import MARKER

_FENCE_RE = re.compile(
    r"^```(?:markdown|md|text)?\s*\n(.*?)```\s*$",
    re.DOTALL,
)
_HEADING_PREFIX = re.compile(r"^(?:#{1,6}|h[1-6]\.)\s*", re.IGNORECASE)
_LEADING_SYMBOLS = re.compile(r"^[^\w]+")
_PLACEHOLDERS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("template marker", MARKER),
    ("template tag", re.compile(r"\{%.*?%\}", re.DOTALL)),
    ("not found value", re.compile(r":\s*\**\s*not found\b", re.IGNORECASE)),
    ("placeholder", re.compile(r"\[(?:placeholder|tbd|todo)\]", re.IGNORECASE)),
)


def strip_fences(text: str) -> str:
    """Remove wrapping ```markdown fences from LLM output."""
    m = _FENCE_RE.match(text.strip())
    return m.group(1).strip() if m else text.strip()


def _heading_text(line: str) -> str:
    text = _HEADING_PREFIX.sub("", line.strip())
    text = _LEADING_SYMBOLS.sub("", text)
    return text.strip().casefold()


def present_fields(content: str, fields: Iterable[str]) -> set[str]:
    """Subset of ``fields`` that appear as a heading line in ``content``."""
    wanted = {f: f.strip().casefold() for f in fields}
    found: set[str] = set()
    for line in content.splitlines():
        heading = _heading_text(line)
        if not heading:
            continue
        for field, key in wanted.items():
            if field in found:
                continue
            rest = heading.removeprefix(key)
            if rest == heading:
                continue
            # "Summary", "Summary:", "**Summary**: text"
            labelled = rest.lstrip("*_ ").startswith(":")
            if not rest or labelled or not rest.strip("*_ :"):
                found.add(field)
    return found


def missing_fields(content: str, required: Iterable[str]) -> list[str]:
    required = list(required)
    return sorted(set(required) - present_fields(content, required))


def find_placeholders(content: str) -> list[str]:
    """Descriptions of every placeholder kind present in ``content``."""
    return [name for name, pattern in _PLACEHOLDERS if pattern.search(content)]


def _supplied_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _supplied_strings(item)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            yield from _supplied_strings(item)


def mask_supplied(content: str, namespace: Mapping[str, Any]) -> str:
    """Blank out namespace values that would read as placeholders."""
    suspects = {
        text.strip()
        for text in _supplied_strings(namespace)
        if find_placeholders(text)
    }
    # longest first so a value containing another is masked whole
    for text in sorted(suspects, key=len, reverse=True):
        content = re.sub(re.escape(text), " ", content, flags=re.IGNORECASE)
    return content


def validate_document(
    content: str,
    required_fields: Iterable[str],
    *,
    min_length: int = 0,
    supplied: Mapping[str, Any] | None = None,
) -> None:
    """Raise ValidationFailure unless ``content`` is a complete document.

    ``supplied`` is the render namespace; its values may legitimately
    contain placeholder-like text and are not scanned.
    """
    if len(content.strip()) < min_length:
        raise ValidationFailure(
            f"content shorter than {min_length} characters"
        )
    scanned = content if supplied is None else mask_supplied(content, supplied)
    placeholders = find_placeholders(scanned)
    if placeholders:
        raise ValidationFailure(
            "content contains " + ", ".join(placeholders)
        )
    missing = missing_fields(content, required_fields)
    if missing:
        raise ValidationFailure("required fields missing", missing)
