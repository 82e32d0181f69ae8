"""Design-token facet: colors, typography, spacing, radii, named styles."""

from __future__ import annotations

from collections import Counter

from ticketforge.analysis.base import Inspection, guarded_analysis
from ticketforge.analysis.schemas import (
    AnalyzerResult,
    ColorToken,
    DesignTokenData,
    TypographyToken,
)
from ticketforge.constants import AnalyzerId, Confidence
from ticketforge.ingestion.schemas import RawInput


def inspect_tokens(raw: RawInput) -> Inspection:
    colors: Counter[str] = Counter()
    color_styles: dict[str, str] = {}
    fonts: Counter[tuple[str, float | None, int | None]] = Counter()
    spacing: set[float] = set()
    radii: set[float] = set()
    named: set[str] = set()

    for node, _ in raw.iter_nodes():
        for paint in node.fills:
            if paint.type == "SOLID" and paint.color:
                colors[paint.color] += 1
                fill_ref = node.style_refs.get("fill")
                style = raw.styles.get(fill_ref) if fill_ref else None
                if style is not None:
                    color_styles.setdefault(paint.color, style.name)
        if node.font is not None and node.font.family:
            fonts[(node.font.family, node.font.size, node.font.weight)] += 1
        if node.layout is not None and node.layout.mode != "NONE":
            spacing.update(p for p in node.layout.padding if p > 0)
            if node.layout.item_spacing > 0:
                spacing.add(node.layout.item_spacing)
        if node.corner_radius:
            radii.add(node.corner_radius)
        for ref in node.style_refs.values():
            style = raw.styles.get(ref)
            if style is not None:
                named.add(style.name)

    data = DesignTokenData(
        colors=[
            ColorToken(hex=hex_, usage_count=n, style_name=color_styles.get(hex_))
            for hex_, n in sorted(colors.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
        typography=[
            TypographyToken(family=f, size=s, weight=w, usage_count=n)
            for (f, s, w), n in sorted(
                fonts.items(),
                key=lambda kv: (-kv[1], kv[0][0], kv[0][1] or 0, kv[0][2] or 0),
            )
        ],
        spacing=sorted(spacing),
        corner_radii=sorted(radii),
        named_styles=sorted(named),
    )
    facets = sum(
        1 for facet in (data.colors, data.typography, data.spacing, named) if facet
    )
    confidence = min(
        Confidence.CEILING,
        Confidence.TOKENS_BASE + facets * Confidence.TOKENS_PER_FACET,
    )
    return data, confidence


class DesignTokenAnalyzer:
    analyzer_id = AnalyzerId.DESIGN_TOKENS.value

    async def analyze(self, raw: RawInput, timeout_ms: int) -> AnalyzerResult:
        return await guarded_analysis(self.analyzer_id, inspect_tokens, raw)
