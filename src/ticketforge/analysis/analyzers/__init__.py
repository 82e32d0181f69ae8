"""Built-in analyzers registry."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ticketforge.analysis.analyzers.accessibility import AccessibilityAnalyzer
from ticketforge.analysis.analyzers.design_tokens import DesignTokenAnalyzer
from ticketforge.analysis.analyzers.interactions import InteractionAnalyzer
from ticketforge.analysis.analyzers.semantic import SemanticAnalyzer
from ticketforge.analysis.analyzers.structure import StructureAnalyzer
from ticketforge.analysis.base import Analyzer
from ticketforge.config import Settings

logger = logging.getLogger(__name__)

BUILTIN_ANALYZERS: dict[str, Callable[[], Analyzer]] = {
    "structure": StructureAnalyzer,
    "interactions": InteractionAnalyzer,
    "design_tokens": DesignTokenAnalyzer,
    "accessibility": AccessibilityAnalyzer,
    "semantic": SemanticAnalyzer,
}


def build_analyzers(settings: Settings) -> list[Analyzer]:
    """Instantiate the enabled built-in analyzers (all when none listed)."""
    names = settings.enabled_analyzers or list(BUILTIN_ANALYZERS)
    analyzers: list[Analyzer] = []
    for name in names:
        factory = BUILTIN_ANALYZERS.get(name)
        if factory is None:
            logger.warning("event=unknown_analyzer analyzer=%s", name)
            continue
        analyzers.append(factory())
    return analyzers


__all__ = [
    "AccessibilityAnalyzer",
    "BUILTIN_ANALYZERS",
    "DesignTokenAnalyzer",
    "InteractionAnalyzer",
    "SemanticAnalyzer",
    "StructureAnalyzer",
    "build_analyzers",
]
