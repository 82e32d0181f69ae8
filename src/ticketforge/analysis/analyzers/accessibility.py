"""Accessibility facet: WCAG contrast, touch targets, text size."""

from __future__ import annotations

from ticketforge.analysis.analyzers.interactions import interactive_kind
from ticketforge.analysis.base import Inspection, guarded_analysis
from ticketforge.analysis.schemas import (
    AccessibilityData,
    AccessibilityIssue,
    AnalyzerResult,
)
from ticketforge.constants import (
    AnalyzerId,
    Confidence,
    LARGE_TEXT_PX,
    MIN_TEXT_PX,
    MIN_TOUCH_TARGET_PX,
    WCAG_AA_LARGE,
    WCAG_AA_NORMAL,
)
from ticketforge.ingestion.schemas import DesignNode, RawInput

BASELINE_REQUIREMENTS = (
    "WCAG 2.1 AA color contrast (4.5:1 for normal text, 3:1 for large text)",
    "Full keyboard navigation with visible focus indicators",
    "Screen reader labels for all interactive elements",
    f"Touch targets at least {MIN_TOUCH_TARGET_PX:.0f}x{MIN_TOUCH_TARGET_PX:.0f}px",
)

# Score penalty per issue rule
_PENALTY = {"contrast": 15, "touch-target": 10, "text-size": 5}


def _luminance(hex_color: str) -> float:
    """WCAG relative luminance of a ``#RRGGBB`` color."""
    channels = []
    for i in (1, 3, 5):
        c = int(hex_color[i : i + 2], 16) / 255
        channels.append(c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4)
    r, g, b = channels
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(foreground: str, background: str) -> float:
    lighter, darker = sorted(
        (_luminance(foreground), _luminance(background)), reverse=True
    )
    return (lighter + 0.05) / (darker + 0.05)


def _solid_color(node: DesignNode) -> str | None:
    for paint in node.fills:
        if paint.type == "SOLID" and paint.color and paint.opacity > 0:
            return paint.color
    return None


def _check(
    node: DesignNode,
    background: str,
    issues: list[AccessibilityIssue],
    counters: dict[str, int],
) -> None:
    label = node.name or node.id
    own = _solid_color(node)

    if node.type == "TEXT":
        size = node.font.size if node.font else None
        if own is not None:
            counters["contrast_checks"] += 1
            ratio = contrast_ratio(own, background)
            large = size is not None and size >= LARGE_TEXT_PX
            required = WCAG_AA_LARGE if large else WCAG_AA_NORMAL
            if ratio < required:
                issues.append(
                    AccessibilityIssue(
                        node_name=label,
                        rule="contrast",
                        detail=(
                            f"contrast {ratio:.2f}:1 is below "
                            f"{required}:1 ({own} on {background})"
                        ),
                    )
                )
        if size is not None and size < MIN_TEXT_PX:
            issues.append(
                AccessibilityIssue(
                    node_name=label,
                    rule="text-size",
                    detail=f"{size:g}px text is below {MIN_TEXT_PX:g}px",
                )
            )
    elif node.bounds is not None and (
        node.interactions or interactive_kind(node.name)
    ):
        if min(node.bounds.width, node.bounds.height) < MIN_TOUCH_TARGET_PX:
            issues.append(
                AccessibilityIssue(
                    node_name=label,
                    rule="touch-target",
                    detail=(
                        f"{node.bounds.width:g}x{node.bounds.height:g}px is "
                        f"below {MIN_TOUCH_TARGET_PX:g}px"
                    ),
                )
            )

    # Text draws in its own fill; containers become the new background
    child_background = background if node.type == "TEXT" else (own or background)
    for child in node.children:
        if child.visible:
            _check(child, child_background, issues, counters)


def inspect_accessibility(raw: RawInput) -> Inspection:
    issues: list[AccessibilityIssue] = []
    counters = {"contrast_checks": 0}
    for root in raw.nodes:
        if root.visible:
            _check(root, "#FFFFFF", issues, counters)

    score = 100
    for issue in issues:
        score -= _PENALTY.get(issue.rule, 5)
    data = AccessibilityData(
        score=max(0, score),
        issues=issues,
        contrast_checks=counters["contrast_checks"],
        requirements=list(BASELINE_REQUIREMENTS),
    )
    return data, Confidence.ACCESSIBILITY


class AccessibilityAnalyzer:
    analyzer_id = AnalyzerId.ACCESSIBILITY.value

    async def analyze(self, raw: RawInput, timeout_ms: int) -> AnalyzerResult:
        return await guarded_analysis(self.analyzer_id, inspect_accessibility, raw)
