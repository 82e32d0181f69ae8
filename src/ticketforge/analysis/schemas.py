"""Analyzer results and the unified Context passed downstream.

Analyzer payloads form a closed set of variants discriminated by
``kind``. Third-party analyzers that fit none of the built-in shapes
report through ``GenericData``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ticketforge.constants import (
    AnalyzerStatus,
    ComplexityBand,
    Priority,
)

_FROZEN = ConfigDict(frozen=True)


# ── Analyzer payload variants ────────────────────────────


class StructureData(BaseModel):
    model_config = _FROZEN

    kind: Literal["structure"] = "structure"
    node_count: int = 0
    max_depth: int = 0
    component_count: int = 0
    text_node_count: int = 0
    variant_count: int = 0
    variant_properties: list[str] = Field(default_factory=list)
    node_types: dict[str, int] = Field(default_factory=dict)
    root_names: list[str] = Field(default_factory=list)


class InteractionInfo(BaseModel):
    model_config = _FROZEN

    node_name: str
    trigger: str
    action: str


class InteractionData(BaseModel):
    model_config = _FROZEN

    kind: Literal["interactions"] = "interactions"
    interactions: list[InteractionInfo] = Field(default_factory=list)
    trigger_types: list[str] = Field(default_factory=list)
    interactive_nodes: list[str] = Field(default_factory=list)


class ColorToken(BaseModel):
    model_config = _FROZEN

    hex: str
    usage_count: int = 1
    style_name: str | None = None


class TypographyToken(BaseModel):
    model_config = _FROZEN

    family: str
    size: float | None = None
    weight: int | None = None
    usage_count: int = 1


class DesignTokenData(BaseModel):
    model_config = _FROZEN

    kind: Literal["design_tokens"] = "design_tokens"
    colors: list[ColorToken] = Field(default_factory=list)
    typography: list[TypographyToken] = Field(default_factory=list)
    spacing: list[float] = Field(default_factory=list)
    corner_radii: list[float] = Field(default_factory=list)
    named_styles: list[str] = Field(default_factory=list)


class AccessibilityIssue(BaseModel):
    model_config = _FROZEN

    node_name: str
    rule: str
    detail: str


class AccessibilityData(BaseModel):
    model_config = _FROZEN

    kind: Literal["accessibility"] = "accessibility"
    score: int = 100
    issues: list[AccessibilityIssue] = Field(default_factory=list)
    contrast_checks: int = 0
    requirements: list[str] = Field(default_factory=list)


class SemanticData(BaseModel):
    model_config = _FROZEN

    kind: Literal["semantic"] = "semantic"
    component_kind: str | None = None
    business_domain: str | None = None
    matched_keywords: list[str] = Field(default_factory=list)
    suggested_labels: list[str] = Field(default_factory=list)


class GenericData(BaseModel):
    """Payload of analyzers outside the built-in set."""

    model_config = _FROZEN

    kind: Literal["generic"] = "generic"
    values: dict[str, Any] = Field(default_factory=dict)


AnalyzerData = Annotated[
    StructureData
    | InteractionData
    | DesignTokenData
    | AccessibilityData
    | SemanticData
    | GenericData,
    Field(discriminator="kind"),
]


# ── AnalyzerResult ───────────────────────────────────────


class AnalyzerResult(BaseModel):
    """One analyzer's outcome for one request. Never mutated."""

    model_config = _FROZEN

    analyzer_id: str
    status: AnalyzerStatus
    confidence: float = Field(ge=0.0, le=1.0)
    data: AnalyzerData | None = None
    error: str | None = None
    duration_ms: float = 0.0

    @model_validator(mode="after")
    def _check_variant(self) -> Self:
        if self.status is AnalyzerStatus.SUCCESS:
            if self.data is None:
                raise ValueError("successful result must carry data")
        elif self.confidence != 0.0 or self.data is not None:
            raise ValueError(
                "failed or timed-out result must have zero confidence "
                "and no data"
            )
        return self

    @property
    def succeeded(self) -> bool:
        return self.status is AnalyzerStatus.SUCCESS

    @classmethod
    def success(
        cls,
        analyzer_id: str,
        data: AnalyzerData,
        confidence: float,
        duration_ms: float = 0.0,
    ) -> AnalyzerResult:
        return cls(
            analyzer_id=analyzer_id,
            status=AnalyzerStatus.SUCCESS,
            confidence=confidence,
            data=data,
            duration_ms=duration_ms,
        )

    @classmethod
    def failure(
        cls,
        analyzer_id: str,
        error: str,
        *,
        timed_out: bool = False,
        duration_ms: float = 0.0,
    ) -> AnalyzerResult:
        return cls(
            analyzer_id=analyzer_id,
            status=(
                AnalyzerStatus.TIMEOUT if timed_out else AnalyzerStatus.FAILED
            ),
            confidence=0.0,
            error=error,
            duration_ms=duration_ms,
        )


# ── Context ──────────────────────────────────────────────


class EffortEstimate(BaseModel):
    model_config = _FROZEN

    story_points: int
    hours: int


class ComputedMetrics(BaseModel):
    """Deterministic functions of the successful sections."""

    model_config = _FROZEN

    complexity_score: float = Field(ge=0.0, le=100.0)
    complexity: ComplexityBand
    priority: Priority
    estimated_effort: EffortEstimate


class Subject(BaseModel):
    """What the document is about, lifted from RawInput."""

    model_config = _FROZEN

    name: str | None = None
    description: str = ""
    page_name: str = ""
    file_key: str = ""
    file_name: str = ""
    has_screenshot: bool = False


class Context(BaseModel):
    """Unified analysis result for one RawInput fingerprint."""

    model_config = _FROZEN

    fingerprint: str
    sections: dict[str, AnalyzerResult]
    overall_confidence: float = Field(ge=0.0, le=1.0)
    computed_metrics: ComputedMetrics
    subject: Subject = Field(default_factory=Subject)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def successful_sections(self) -> dict[str, AnalyzerResult]:
        return {k: r for k, r in self.sections.items() if r.succeeded}

    @property
    def failed_sections(self) -> list[str]:
        return sorted(k for k, r in self.sections.items() if not r.succeeded)

    def section_data(self, analyzer_id: str) -> AnalyzerData | None:
        """Payload of a successful section, else None."""
        result = self.sections.get(analyzer_id)
        if result is None or not result.succeeded:
            return None
        return result.data

    def summary(self) -> dict[str, Any]:
        """Top-level summary used by the less-structured AI prompt."""
        return {
            "subject": self.subject.model_dump(exclude={"has_screenshot"}),
            "overall_confidence": round(self.overall_confidence, 3),
            "metrics": self.computed_metrics.model_dump(mode="json"),
            "analyzers": {
                analyzer_id: result.status.value
                for analyzer_id, result in sorted(self.sections.items())
            },
        }
