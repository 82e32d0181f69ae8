"""Document generation: AI provider boundary and the strategy orchestrator."""

from ticketforge.generation.ai import (
    AIProvider,
    DisabledProvider,
    LiteLLMProvider,
    create_ai_provider,
)
from ticketforge.generation.orchestrator import (
    GenerationOrchestrator,
    RenderedDocument,
    normalize_strategy_name,
    select_strategy,
)

__all__ = [
    "AIProvider",
    "DisabledProvider",
    "GenerationOrchestrator",
    "LiteLLMProvider",
    "RenderedDocument",
    "create_ai_provider",
    "normalize_strategy_name",
    "select_strategy",
]
