"""Intelligent defaults for template variables the context cannot supply.

A missing value is answered, in order, by the template's own
``defaults``, a value derived from the computed metrics, a static
domain default for the field name, and finally a sentence built from
the path itself. The answer is never empty and never "not found".
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

ACCEPTANCE_CRITERIA_DEFAULT = (
    "Component matches the design specification across supported breakpoints",
    "Meets WCAG 2.1 AA accessibility requirements",
    "Unit test coverage above 80%",
    "Works in all supported browsers",
    "Documented with usage examples",
)

STATIC_DEFAULTS: dict[str, Any] = {
    "name": "UI component",
    "component_name": "UI component",
    "title": "UI component implementation",
    "summary": "Implement the component as specified in the linked design",
    "description": (
        "Implement the component as specified in the linked design, "
        "following the existing design system conventions."
    ),
    "tech_stack": "the project's standard stack",
    "platform": "the team's tracker",
    "document_type": "component",
    "file_key": "linked from the design tool",
    "file_name": "linked from the design tool",
    "url": "linked from the design tool",
    "page": "the selected design page",
    "priority": "Medium",
    "complexity": "medium",
    "complexity_score": 25,
    "story_points": 5,
    "estimated_hours": 8,
    "confidence": "0%",
    "percent": "0%",
    "assignee": "Unassigned",
    "reporter": "Design handoff",
    "due_date": "To be scheduled",
    "version": "1.0",
    "component_kind": "component",
    "kind": "component",
    "business_domain": "general",
    "domain": "general",
    "score": 100,
    "colors": "Use design system color tokens",
    "typography": "Use design system type scale",
    "spacing": "Use design system spacing scale",
}

SEQUENCE_DEFAULTS: dict[str, tuple[Any, ...]] = {
    "acceptance_criteria": ACCEPTANCE_CRITERIA_DEFAULT,
    "criteria": ACCEPTANCE_CRITERIA_DEFAULT,
    "labels": ("design-system", "frontend"),
    "requirements": (
        "WCAG 2.1 AA color contrast",
        "Full keyboard navigation with visible focus indicators",
        "Screen reader labels for all interactive elements",
    ),
    "tasks": (
        "Build the component from the design specification",
        "Add unit and accessibility tests",
        "Document usage and variants",
    ),
}

# Leaf names answered from the ``metrics`` namespace entry
_METRIC_KEYS = frozenset({
    "priority",
    "complexity",
    "complexity_score",
    "story_points",
    "estimated_hours",
})


def leaf_name(path: str) -> str:
    """Last identifier of a dotted path, ignoring ``[]`` markers."""
    return path.replace("[]", "").rsplit(".", 1)[-1]


def is_missing(value: Any) -> bool:
    """Absent, None and blank strings count as missing."""
    return value is None or (isinstance(value, str) and not value.strip())


def _humanize(path: str) -> str:
    words = leaf_name(path).replace("_", " ").replace("-", " ").strip()
    if not words:
        return "Per design specification"
    return f"{words[0].upper()}{words[1:]} per design specification"


def _lookup(namespace: Mapping[str, Any], dotted: str) -> Any:
    current: Any = namespace
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


class DefaultPolicy:
    """Chooses the default for a missing path. Stateless and deterministic."""

    def __init__(self, template_defaults: Mapping[str, Any] | None = None) -> None:
        self._template = dict(template_defaults or {})

    def value_for(self, path: str, namespace: Mapping[str, Any]) -> Any:
        canonical = path.replace("[]", "")
        leaf = leaf_name(path)
        for key in (path, canonical, leaf):
            if key in self._template and not is_missing(self._template[key]):
                return self._template[key]
        if leaf in _METRIC_KEYS:
            metric = _lookup(namespace, f"metrics.{leaf}")
            if not is_missing(metric):
                return metric
        if leaf in ("confidence", "percent"):
            derived = _lookup(namespace, "confidence.percent")
            if not is_missing(derived):
                return derived
        if leaf in STATIC_DEFAULTS:
            return STATIC_DEFAULTS[leaf]
        if leaf in SEQUENCE_DEFAULTS:
            return list(SEQUENCE_DEFAULTS[leaf])
        return _humanize(path)

    def sequence_for(
        self, path: str, namespace: Mapping[str, Any]
    ) -> list[Any] | None:
        """Default items for a missing loop sequence, if the field has any."""
        leaf = leaf_name(path)
        for key in (path, leaf):
            value = self._template.get(key)
            if isinstance(value, (list, tuple)) and value:
                return list(value)
        if leaf in SEQUENCE_DEFAULTS:
            return list(SEQUENCE_DEFAULTS[leaf])
        return None


def complete_namespace(
    namespace: Mapping[str, Any],
    paths: Iterable[str],
    policy: DefaultPolicy,
) -> tuple[dict[str, Any], list[str]]:
    """Copy of ``namespace`` with every listed path filled by a default.

    Paths use ``seq[].field`` for fields of loop items. Returns the
    completed namespace and the sorted paths that received a default.
    """
    completed: dict[str, Any] = copy.deepcopy(dict(namespace))
    defaulted: set[str] = set()
    for path in sorted(set(paths)):
        _fill(completed, path.split("."), path, 0, policy, completed, defaulted)
    return completed, sorted(defaulted)


def _fill(
    container: Any,
    segments: list[str],
    path: str,
    index: int,
    policy: DefaultPolicy,
    root: Mapping[str, Any],
    defaulted: set[str],
) -> None:
    if not isinstance(container, dict):
        return
    segment = segments[index]
    is_sequence = segment.endswith("[]")
    name = segment[:-2] if is_sequence else segment
    last = index == len(segments) - 1
    prefix = ".".join(segments[: index + 1])

    if is_sequence:
        items = container.get(name)
        if not isinstance(items, list) or not items:
            fallback = policy.sequence_for(prefix[:-2], root)
            if fallback is None:
                return
            items = fallback
            container[name] = items
            defaulted.add(prefix[:-2])
        if last:
            for i, item in enumerate(items):
                if is_missing(item):
                    items[i] = policy.value_for(path, root)
                    defaulted.add(path)
            return
        for item in items:
            _fill(item, segments, path, index + 1, policy, root, defaulted)
        return

    value = container.get(name)
    if last:
        if is_missing(value):
            container[name] = policy.value_for(path, root)
            defaulted.add(path)
        return
    if value is None:
        value = {}
        container[name] = value
    _fill(value, segments, path, index + 1, policy, root, defaulted)
