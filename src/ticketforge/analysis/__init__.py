"""Context aggregation: analyzers, scoring and the aggregator."""

from ticketforge.analysis.aggregator import ContextAggregator
from ticketforge.analysis.base import Analyzer, guarded_analysis
from ticketforge.analysis.schemas import (
    AnalyzerResult,
    ComputedMetrics,
    Context,
    GenericData,
    Subject,
)

__all__ = [
    "Analyzer",
    "AnalyzerResult",
    "ComputedMetrics",
    "Context",
    "ContextAggregator",
    "GenericData",
    "Subject",
    "guarded_analysis",
]
