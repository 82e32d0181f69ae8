"""Shared constants: single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so cache payloads, API responses
and log lines work unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class AnalyzerStatus(StrEnum):
    """Outcome of one analyzer run."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


class StrategyName(StrEnum):
    """Canonical generation strategies."""

    PRIMARY = "primary"
    EMERGENCY = "emergency"


class GenerationStep(StrEnum):
    """Individual attempts inside the two strategies, in order."""

    TEMPLATE_GUIDED = "template_guided"
    CONTEXT_SUMMARY = "context_summary"
    RAW_DESCRIPTION = "raw_description"
    TEMPLATE_RENDER = "template_render"
    BUILTIN_RENDER = "builtin_render"


class ResolutionTier(StrEnum):
    """Template resolution tiers, most specific first."""

    TECH_STACK = "tech_stack"
    PLATFORM_DEFAULT = "platform_default"
    CUSTOM_DEFAULT = "custom_default"
    BUILTIN = "builtin"


class ComplexityBand(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class Priority(StrEnum):
    """Issue-tracker priority names."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    HIGHEST = "Highest"


class AnalyzerId(StrEnum):
    """Identifiers of the built-in analyzers."""

    STRUCTURE = "structure"
    INTERACTIONS = "interactions"
    DESIGN_TOKENS = "design_tokens"
    ACCESSIBILITY = "accessibility"
    SEMANTIC = "semantic"


# ── Confidence Thresholds ────────────────────────────────


class Confidence:
    """Named confidence values: single source of truth."""

    STRUCTURE_RICH = 0.90  # Deterministic tree walk, many nodes
    STRUCTURE_SPARSE = 0.75  # Fewer than MIN_RICH_NODES
    INTERACTIONS_FOUND = 0.85
    INTERACTIONS_NONE = 0.60  # Absence of prototype links is weak evidence
    TOKENS_PER_FACET = 0.20  # Added per token family found
    TOKENS_BASE = 0.30
    ACCESSIBILITY = 0.70  # Heuristic contrast and sizing checks
    SEMANTIC_MATCH = 0.75
    SEMANTIC_NO_MATCH = 0.40
    CEILING = 0.95
    FLOOR = 0.0
    DEFAULT_MINIMUM = 0.60  # Below this the document is flagged


MIN_RICH_NODES = 5

# ── Complexity Metrics ───────────────────────────────────

COMPLEXITY_FACTOR_CAP = 25.0
COMPLEXITY_MAX = 100.0

# Per-unit weight of each complexity input before clipping
COMPLEXITY_WEIGHTS: dict[str, float] = {
    "node_count": 0.5,
    "interaction_types": 5.0,
    "nesting_depth": 3.0,
    "variant_count": 2.5,
}

# Upper bounds (exclusive) of each band; anything above is VERY_HIGH
COMPLEXITY_BANDS: tuple[tuple[float, ComplexityBand], ...] = (
    (25.0, ComplexityBand.LOW),
    (50.0, ComplexityBand.MEDIUM),
    (75.0, ComplexityBand.HIGH),
)

PRIORITY_BY_BAND: dict[ComplexityBand, Priority] = {
    ComplexityBand.LOW: Priority.LOW,
    ComplexityBand.MEDIUM: Priority.MEDIUM,
    ComplexityBand.HIGH: Priority.HIGH,
    ComplexityBand.VERY_HIGH: Priority.HIGHEST,
}

STORY_POINTS_BY_BAND: dict[ComplexityBand, int] = {
    ComplexityBand.LOW: 3,
    ComplexityBand.MEDIUM: 5,
    ComplexityBand.HIGH: 8,
    ComplexityBand.VERY_HIGH: 13,
}

HOURS_BY_BAND: dict[ComplexityBand, int] = {
    ComplexityBand.LOW: 4,
    ComplexityBand.MEDIUM: 8,
    ComplexityBand.HIGH: 16,
    ComplexityBand.VERY_HIGH: 32,
}

# ── Accessibility ────────────────────────────────────────

WCAG_AA_NORMAL = 4.5
WCAG_AA_LARGE = 3.0
LARGE_TEXT_PX = 18.0
MIN_TEXT_PX = 12.0
MIN_TOUCH_TARGET_PX = 44.0

# ── Strategy and Resolution Aliases ──────────────────────

STRATEGY_ALIASES: dict[str, StrategyName] = {
    "primary": StrategyName.PRIMARY,
    "ai": StrategyName.PRIMARY,
    "ai-powered": StrategyName.PRIMARY,
    "enhanced": StrategyName.PRIMARY,
    "template": StrategyName.PRIMARY,
    "template-guided-ai": StrategyName.PRIMARY,
    "hybrid": StrategyName.PRIMARY,
    "emergency": StrategyName.EMERGENCY,
    "legacy": StrategyName.EMERGENCY,
    "fallback": StrategyName.EMERGENCY,
    "deterministic": StrategyName.EMERGENCY,
    "offline": StrategyName.EMERGENCY,
}

DOCUMENT_TYPE_ALIASES: dict[str, str] = {
    "comp": "component",
    "components": "component",
    "story": "feature",
    "user-story": "feature",
    "epic": "feature",
    "authoring": "wiki",
    "page": "wiki",
    "docs": "wiki",
    "api": "service",
    "backend": "service",
    "task": "code",
}

TECH_STACK_ALIASES: dict[str, str] = {
    "reactjs": "react",
    "react-js": "react",
    "react-typescript": "react",
    "react-ts": "react",
    "tsx": "react",
    "aem-6.5": "aem",
    "aem65": "aem",
    "adobe-experience-manager": "aem",
    "vuejs": "vue",
    "vue-js": "vue",
    "angularjs": "angular",
}

DEFAULT_PLATFORM = "jira"
DEFAULT_DOCUMENT_TYPE = "component"
DEFAULT_TECH_STACK = "custom"

TEMPLATE_SUFFIX = ".yml"
BUILTIN_RESOLUTION_PATH = "builtin"

# ── Cache ────────────────────────────────────────────────

CONTEXT_KEY_PREFIX = "context"
DOCUMENT_KEY_PREFIX = "document"

# ── LLM ──────────────────────────────────────────────────

RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 2
RETRY_MAX_WAIT = 30
LLM_MAX_OUTPUT_TOKENS = 4096

# ── Generation ───────────────────────────────────────────

ERROR_TRUNCATION_CHARS = 200
ID_HEX_LENGTH = 12
PROMPT_CONTEXT_CHARS = 6000
MIN_CONTENT_LENGTH = 80

# ── API ──────────────────────────────────────────────────

AUTH_EXEMPT_PATHS = frozenset({
    "/api/health",
    "/api/health/detailed",
    "/api/openapi.json",
})
AUTH_EXEMPT_PREFIXES = ("/api/docs", "/api/redoc")
