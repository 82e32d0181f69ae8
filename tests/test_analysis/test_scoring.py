"""Tests for weighted confidence and complexity metrics."""

from __future__ import annotations

import pytest

from ticketforge.analysis.schemas import (
    AnalyzerResult,
    GenericData,
    InteractionData,
    StructureData,
)
from ticketforge.analysis.scoring import (
    complexity_band,
    complexity_score,
    compute_metrics,
    weighted_confidence,
)
from ticketforge.constants import ComplexityBand, Priority


def _ok(analyzer_id: str, confidence: float) -> AnalyzerResult:
    return AnalyzerResult.success(analyzer_id, GenericData(), confidence)


def _even(_: str) -> float:
    return 1.0


class TestWeightedConfidence:
    def test_failed_sections_carry_no_weight(self) -> None:
        sections = {
            "a": _ok("a", 0.9),
            "b": AnalyzerResult.failure("b", "boom"),
            "c": _ok("c", 0.5),
        }
        assert weighted_confidence(sections, _even) == pytest.approx(0.7)

    def test_zero_total_weight(self) -> None:
        sections = {"a": _ok("a", 0.9)}
        assert weighted_confidence(sections, lambda _: 0.0) == 0.0

    def test_empty(self) -> None:
        assert weighted_confidence({}, _even) == 0.0


class TestComplexity:
    def test_factors_are_clipped(self) -> None:
        # 1000 nodes alone saturates its factor at 25
        assert complexity_score(1000, 0, 0, 0) == 25.0
        assert complexity_score(1000, 100, 100, 100) == 100.0

    def test_zero_inputs(self) -> None:
        assert complexity_score(0, 0, 0, 0) == 0.0

    @pytest.mark.parametrize(
        ("score", "band"),
        [
            (0.0, ComplexityBand.LOW),
            (24.99, ComplexityBand.LOW),
            (25.0, ComplexityBand.MEDIUM),
            (50.0, ComplexityBand.HIGH),
            (75.0, ComplexityBand.VERY_HIGH),
            (100.0, ComplexityBand.VERY_HIGH),
        ],
    )
    def test_band_boundaries(self, score: float, band: ComplexityBand) -> None:
        assert complexity_band(score) is band


class TestComputeMetrics:
    def test_metrics_from_structure_and_interactions(self) -> None:
        sections = {
            "structure": AnalyzerResult.success(
                "structure",
                StructureData(node_count=40, max_depth=6, variant_count=4),
                0.9,
            ),
            "interactions": AnalyzerResult.success(
                "interactions",
                InteractionData(trigger_types=["ON_CLICK", "ON_HOVER"]),
                0.85,
            ),
        }
        metrics = compute_metrics(sections)
        # 20 + 10 + 18 + 10
        assert metrics.complexity_score == 58.0
        assert metrics.complexity is ComplexityBand.HIGH
        assert metrics.priority is Priority.HIGH
        assert metrics.estimated_effort.story_points == 8
        assert metrics.estimated_effort.hours == 16

    def test_no_sections_is_low(self) -> None:
        metrics = compute_metrics({})
        assert metrics.complexity is ComplexityBand.LOW
        assert metrics.priority is Priority.LOW
        assert metrics.estimated_effort.story_points == 3
