"""Overall confidence and computed metrics for a Context."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from ticketforge.analysis.schemas import (
    AnalyzerResult,
    ComputedMetrics,
    EffortEstimate,
    InteractionData,
    StructureData,
)
from ticketforge.constants import (
    COMPLEXITY_BANDS,
    COMPLEXITY_FACTOR_CAP,
    COMPLEXITY_MAX,
    COMPLEXITY_WEIGHTS,
    HOURS_BY_BAND,
    PRIORITY_BY_BAND,
    STORY_POINTS_BY_BAND,
    AnalyzerId,
    ComplexityBand,
)


def weighted_confidence(
    sections: Mapping[str, AnalyzerResult],
    weight_for: Callable[[str], float],
) -> float:
    """Weighted mean confidence over successful analyzers only.

    Failed and timed-out sections carry no weight. Returns 0.0 when
    nothing succeeded or every successful analyzer weighs zero.
    """
    total_weight = 0.0
    total = 0.0
    for analyzer_id, result in sections.items():
        if not result.succeeded:
            continue
        weight = weight_for(analyzer_id)
        total_weight += weight
        total += weight * result.confidence
    if total_weight <= 0:
        return 0.0
    return max(0.0, min(1.0, total / total_weight))


def _clip(value: float) -> float:
    return max(0.0, min(COMPLEXITY_FACTOR_CAP, value))


def complexity_score(
    node_count: int,
    interaction_types: int,
    nesting_depth: int,
    variant_count: int,
) -> float:
    """Sum of four clipped factors, bounded to [0, 100].

    Each input is multiplied by its weight in COMPLEXITY_WEIGHTS and
    clipped to [0, 25]: 50 nodes, 5 trigger types, depth 9 or 10
    variants saturate their factor.
    """
    score = (
        _clip(node_count * COMPLEXITY_WEIGHTS["node_count"])
        + _clip(interaction_types * COMPLEXITY_WEIGHTS["interaction_types"])
        + _clip(nesting_depth * COMPLEXITY_WEIGHTS["nesting_depth"])
        + _clip(variant_count * COMPLEXITY_WEIGHTS["variant_count"])
    )
    return round(min(COMPLEXITY_MAX, score), 2)


def complexity_band(score: float) -> ComplexityBand:
    for upper, band in COMPLEXITY_BANDS:
        if score < upper:
            return band
    return ComplexityBand.VERY_HIGH


def compute_metrics(sections: Mapping[str, AnalyzerResult]) -> ComputedMetrics:
    """Complexity, priority and effort from the successful sections."""
    structure = sections.get(AnalyzerId.STRUCTURE)
    interactions = sections.get(AnalyzerId.INTERACTIONS)

    node_count = depth = variants = trigger_types = 0
    if structure is not None and isinstance(structure.data, StructureData):
        node_count = structure.data.node_count
        depth = structure.data.max_depth
        variants = structure.data.variant_count
    if interactions is not None and isinstance(
        interactions.data, InteractionData
    ):
        trigger_types = len(interactions.data.trigger_types)

    score = complexity_score(node_count, trigger_types, depth, variants)
    band = complexity_band(score)
    return ComputedMetrics(
        complexity_score=score,
        complexity=band,
        priority=PRIORITY_BY_BAND[band],
        estimated_effort=EffortEstimate(
            story_points=STORY_POINTS_BY_BAND[band],
            hours=HOURS_BY_BAND[band],
        ),
    )
