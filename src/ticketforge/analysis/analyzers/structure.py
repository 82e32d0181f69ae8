"""Structural facet: node counts, nesting depth, variants."""

from __future__ import annotations

from collections import Counter

from ticketforge.analysis.base import Inspection, guarded_analysis
from ticketforge.analysis.schemas import AnalyzerResult, StructureData
from ticketforge.constants import AnalyzerId, Confidence, MIN_RICH_NODES
from ticketforge.ingestion.schemas import RawInput
from ticketforge.resilience.errors import AnalyzerFailure

_COMPONENT_TYPES = frozenset({"COMPONENT", "COMPONENT_SET", "INSTANCE"})


def inspect_structure(raw: RawInput) -> Inspection:
    if not raw.nodes:
        raise AnalyzerFailure(AnalyzerId.STRUCTURE, "empty node tree")

    types: Counter[str] = Counter()
    max_depth = 0
    text_nodes = 0
    variants = 0
    set_children = 0
    variant_props: set[str] = set()

    for node, depth in raw.iter_nodes():
        types[node.type] += 1
        max_depth = max(max_depth, depth)
        if node.type == "TEXT":
            text_nodes += 1
        if node.type == "COMPONENT_SET":
            set_children += len(node.children)
        if node.variant_properties:
            variants += 1
        variant_props.update(node.variant_properties)

    node_count = sum(types.values())
    data = StructureData(
        node_count=node_count,
        max_depth=max_depth,
        component_count=sum(types[t] for t in _COMPONENT_TYPES),
        text_node_count=text_nodes,
        # Sets whose children carry no variant properties still count
        variant_count=variants or set_children,
        variant_properties=sorted(variant_props),
        node_types=dict(sorted(types.items())),
        root_names=[n.name for n in raw.nodes if n.name],
    )
    confidence = (
        Confidence.STRUCTURE_RICH
        if node_count >= MIN_RICH_NODES
        else Confidence.STRUCTURE_SPARSE
    )
    return data, confidence


class StructureAnalyzer:
    analyzer_id = AnalyzerId.STRUCTURE.value

    async def analyze(self, raw: RawInput, timeout_ms: int) -> AnalyzerResult:
        return await guarded_analysis(self.analyzer_id, inspect_structure, raw)
