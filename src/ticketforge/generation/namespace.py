"""Context to render namespace.

The namespace is the plain mapping templates read from. A value the
analysis could not supply is left out rather than set to None, so the
renderer sees it as missing and records it.
"""

from __future__ import annotations

from typing import Any

from ticketforge.analysis.schemas import (
    AccessibilityData,
    Context,
    DesignTokenData,
    InteractionData,
    SemanticData,
    StructureData,
)
from ticketforge.constants import WCAG_AA_NORMAL, AnalyzerId
from ticketforge.templates.schemas import Template

MAX_LISTED_TOKENS = 8


def _put(target: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, str) and not value.strip():
        return
    if isinstance(value, (list, dict)) and not value:
        return
    target[key] = value


def _format_size(value: float) -> str:
    return f"{value:g}px"


def _structure(data: StructureData) -> dict[str, Any]:
    out: dict[str, Any] = {
        "node_count": data.node_count,
        "max_depth": data.max_depth,
        "component_count": data.component_count,
        "text_node_count": data.text_node_count,
        "variant_count": data.variant_count,
    }
    _put(out, "variant_properties", list(data.variant_properties))
    _put(out, "node_types", dict(data.node_types))
    return out


def _interactions(data: InteractionData) -> dict[str, Any]:
    out: dict[str, Any] = {"count": len(data.interactions)}
    _put(out, "triggers", list(data.trigger_types))
    _put(out, "nodes", list(data.interactive_nodes))
    _put(
        out,
        "items",
        [
            {"node": i.node_name, "trigger": i.trigger, "action": i.action}
            for i in data.interactions
        ],
    )
    return out


def _design(data: DesignTokenData) -> dict[str, Any]:
    out: dict[str, Any] = {}
    colors = sorted(data.colors, key=lambda c: (-c.usage_count, c.hex))
    _put(out, "colors", [c.hex for c in colors[:MAX_LISTED_TOKENS]])
    typography: list[str] = []
    for token in data.typography[:MAX_LISTED_TOKENS]:
        parts = [token.family]
        if token.size is not None:
            parts.append(_format_size(token.size))
        if token.weight is not None:
            parts.append(str(token.weight))
        typography.append(" ".join(parts))
    _put(out, "typography", typography)
    _put(out, "spacing", [_format_size(s) for s in data.spacing])
    _put(out, "corner_radii", [_format_size(r) for r in data.corner_radii])
    _put(out, "styles", list(data.named_styles))
    return out


def _accessibility(data: AccessibilityData) -> dict[str, Any]:
    out: dict[str, Any] = {"score": data.score}
    _put(out, "requirements", list(data.requirements))
    _put(
        out,
        "issues",
        [
            {"node": i.node_name, "rule": i.rule, "detail": i.detail}
            for i in data.issues
        ],
    )
    return out


def derive_acceptance_criteria(context: Context) -> list[str]:
    """Acceptance criteria backed by what the analyzers actually found."""
    criteria: list[str] = []
    name = context.subject.name or "The component"

    structure = context.section_data(AnalyzerId.STRUCTURE)
    if isinstance(structure, StructureData) and structure.variant_count:
        props = ", ".join(structure.variant_properties)
        suffix = f" ({props})" if props else ""
        criteria.append(
            f"{name} renders all {structure.variant_count} variants{suffix}"
            " as designed"
        )

    interactions = context.section_data(AnalyzerId.INTERACTIONS)
    if isinstance(interactions, InteractionData):
        for trigger in interactions.trigger_types:
            readable = trigger.replace("_", " ").lower()
            criteria.append(
                f"Responds to {readable} interactions as prototyped"
            )

    tokens = context.section_data(AnalyzerId.DESIGN_TOKENS)
    if isinstance(tokens, DesignTokenData) and (tokens.colors or tokens.typography):
        criteria.append(
            "Uses design system tokens for every color and text style"
        )

    accessibility = context.section_data(AnalyzerId.ACCESSIBILITY)
    if isinstance(accessibility, AccessibilityData):
        criteria.append(
            f"Text contrast meets WCAG 2.1 AA ({WCAG_AA_NORMAL:g}:1 for "
            "normal text)"
        )
        if accessibility.issues:
            criteria.append(
                f"Resolves the {len(accessibility.issues)} accessibility "
                "issues flagged in the design"
            )

    semantic = context.section_data(AnalyzerId.SEMANTIC)
    if isinstance(semantic, SemanticData) and semantic.component_kind:
        criteria.append(
            f"Behaves as a standard {semantic.component_kind} for keyboard "
            "and screen reader users"
        )
    return criteria


def _labels(context: Context, template: Template) -> list[str]:
    labels: list[str] = []
    semantic = context.section_data(AnalyzerId.SEMANTIC)
    if isinstance(semantic, SemanticData):
        labels.extend(semantic.suggested_labels)
    if labels and template.tech_stack and template.tech_stack != "custom":
        labels.append(template.tech_stack)
    return list(dict.fromkeys(labels))


def build_namespace(context: Context, template: Template) -> dict[str, Any]:
    """Mapping the renderer evaluates templates against."""
    subject = context.subject
    component: dict[str, Any] = {}
    _put(component, "name", subject.name)
    _put(component, "description", subject.description)
    _put(component, "page", subject.page_name)
    _put(component, "file_key", subject.file_key)
    _put(component, "file_name", subject.file_name)

    semantic = context.section_data(AnalyzerId.SEMANTIC)
    if isinstance(semantic, SemanticData):
        _put(component, "kind", semantic.component_kind)
        _put(component, "domain", semantic.business_domain)

    metrics = context.computed_metrics
    namespace: dict[str, Any] = {
        "component": component,
        "request": {
            "platform": template.platform,
            "document_type": template.document_type,
            "tech_stack": template.tech_stack,
        },
        "metrics": {
            "complexity": metrics.complexity.value,
            "complexity_score": round(metrics.complexity_score, 1),
            "priority": metrics.priority.value,
            "story_points": metrics.estimated_effort.story_points,
            "estimated_hours": metrics.estimated_effort.hours,
        },
        "confidence": {
            "value": round(context.overall_confidence, 3),
            "percent": f"{round(context.overall_confidence * 100)}%",
        },
        "analysis": {
            "succeeded": sorted(context.successful_sections),
            "failed": context.failed_sections,
        },
    }

    structure = context.section_data(AnalyzerId.STRUCTURE)
    if isinstance(structure, StructureData):
        namespace["structure"] = _structure(structure)
    interactions = context.section_data(AnalyzerId.INTERACTIONS)
    if isinstance(interactions, InteractionData):
        namespace["interactions"] = _interactions(interactions)
    tokens = context.section_data(AnalyzerId.DESIGN_TOKENS)
    if isinstance(tokens, DesignTokenData):
        namespace["design"] = _design(tokens)
    accessibility = context.section_data(AnalyzerId.ACCESSIBILITY)
    if isinstance(accessibility, AccessibilityData):
        namespace["accessibility"] = _accessibility(accessibility)

    _put(namespace, "labels", _labels(context, template))
    _put(namespace, "acceptance_criteria", derive_acceptance_criteria(context))
    return namespace
