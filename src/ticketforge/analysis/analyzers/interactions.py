"""Interaction facet: prototype reactions and interactive-looking nodes."""

from __future__ import annotations

from ticketforge.analysis.base import Inspection, guarded_analysis
from ticketforge.analysis.schemas import (
    AnalyzerResult,
    InteractionData,
    InteractionInfo,
)
from ticketforge.constants import AnalyzerId, Confidence
from ticketforge.ingestion.schemas import RawInput

# Name fragments that mark a node as interactive even without a reaction
INTERACTIVE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "button": ("button", "btn", "submit", "cta", "save", "cancel", "confirm"),
    "input": ("input", "field", "textbox", "search", "filter"),
    "link": ("link", "anchor"),
    "navigation": ("nav", "menu", "tab", "breadcrumb"),
    "toggle": ("toggle", "switch", "checkbox", "radio"),
    "dropdown": ("dropdown", "select", "picker", "combo"),
    "modal": ("modal", "dialog", "popup", "overlay"),
    "slider": ("slider", "range"),
}


def interactive_kind(name: str) -> str | None:
    """Interactive role implied by a node name, if any."""
    lowered = name.lower()
    for kind, keywords in INTERACTIVE_KEYWORDS.items():
        if any(k in lowered for k in keywords):
            return kind
    return None


def inspect_interactions(raw: RawInput) -> Inspection:
    found: list[InteractionInfo] = []
    triggers: set[str] = set()
    interactive: list[str] = []

    for node, _ in raw.iter_nodes():
        if not node.visible:
            continue
        for reaction in node.interactions:
            found.append(
                InteractionInfo(
                    node_name=node.name or node.id,
                    trigger=reaction.trigger.upper(),
                    action=reaction.action.upper(),
                )
            )
            triggers.add(reaction.trigger.upper())
        if node.interactions or interactive_kind(node.name):
            if node.name and node.name not in interactive:
                interactive.append(node.name)

    data = InteractionData(
        interactions=found,
        trigger_types=sorted(triggers),
        interactive_nodes=interactive,
    )
    confidence = (
        Confidence.INTERACTIONS_FOUND if found else Confidence.INTERACTIONS_NONE
    )
    return data, confidence


class InteractionAnalyzer:
    analyzer_id = AnalyzerId.INTERACTIONS.value

    async def analyze(self, raw: RawInput, timeout_ms: int) -> AnalyzerResult:
        return await guarded_analysis(self.analyzer_id, inspect_interactions, raw)
