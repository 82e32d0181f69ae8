"""Semantic facet: component kind and business domain from names."""

from __future__ import annotations

import re
from collections import Counter

from ticketforge.analysis.base import Inspection, guarded_analysis
from ticketforge.analysis.schemas import AnalyzerResult, SemanticData
from ticketforge.constants import AnalyzerId, Confidence
from ticketforge.ingestion.schemas import RawInput

COMPONENT_KINDS: dict[str, tuple[str, ...]] = {
    "button": ("button", "btn", "cta"),
    "input": ("input", "textfield", "text-field", "textbox", "search"),
    "form": ("form", "signup", "sign-up", "register", "checkout-form"),
    "card": ("card", "tile"),
    "modal": ("modal", "dialog", "popup", "drawer"),
    "navigation": ("nav", "navbar", "menu", "breadcrumb", "tabs", "sidebar"),
    "table": ("table", "grid", "datagrid"),
    "list": ("list", "feed"),
    "hero": ("hero", "banner", "masthead"),
    "header": ("header", "topbar"),
    "footer": ("footer",),
}

BUSINESS_DOMAINS: dict[str, tuple[str, ...]] = {
    "commerce": ("cart", "checkout", "product", "price", "order", "payment"),
    "authentication": ("login", "signin", "sign-in", "password", "auth", "signup"),
    "analytics": ("dashboard", "chart", "metric", "report", "kpi"),
    "content": ("article", "blog", "post", "story", "media"),
    "account": ("profile", "account", "settings", "preferences"),
    "communication": ("chat", "message", "inbox", "notification", "comment"),
}

_SPLIT = re.compile(r"[\s/_.]+")


def _tokens(raw: RawInput) -> list[str]:
    names = [raw.selection.page_name, raw.selection.component_name or ""]
    names.extend(node.name for node, _ in raw.iter_nodes())
    tokens: list[str] = []
    for name in names:
        tokens.extend(t for t in _SPLIT.split(name.lower()) if t)
    return tokens


def _best(
    tokens: list[str], table: dict[str, tuple[str, ...]]
) -> tuple[str | None, list[str]]:
    scores: Counter[str] = Counter()
    matched: set[str] = set()
    for token in tokens:
        for label, keywords in table.items():
            for keyword in keywords:
                if keyword in token:
                    scores[label] += 1
                    matched.add(keyword)
    if not scores:
        return None, []
    # Ties resolve to the label listed first in the table
    order = list(table)
    best = min(scores, key=lambda label: (-scores[label], order.index(label)))
    return best, sorted(matched)


def inspect_semantics(raw: RawInput) -> Inspection:
    tokens = _tokens(raw)
    kind, kind_hits = _best(tokens, COMPONENT_KINDS)
    domain, domain_hits = _best(tokens, BUSINESS_DOMAINS)

    labels = ["design-system"]
    if kind:
        labels.append(kind)
    if domain:
        labels.append(domain)

    data = SemanticData(
        component_kind=kind,
        business_domain=domain,
        matched_keywords=sorted(set(kind_hits) | set(domain_hits)),
        suggested_labels=labels,
    )
    confidence = (
        Confidence.SEMANTIC_MATCH if kind or domain else Confidence.SEMANTIC_NO_MATCH
    )
    return data, confidence


class SemanticAnalyzer:
    analyzer_id = AnalyzerId.SEMANTIC.value

    async def analyze(self, raw: RawInput, timeout_ms: int) -> AnalyzerResult:
        return await guarded_analysis(self.analyzer_id, inspect_semantics, raw)
