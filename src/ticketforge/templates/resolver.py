"""TemplateResolver: most specific template via a fixed fallback order.

Tiers, first existing wins:

1. ``platforms/<platform>/<document_type>/<tech_stack>.yml``
2. ``platforms/<platform>/<document_type>/default.yml``
3. ``custom/defaults/<document_type>.yml``
4. the built-in minimal template

Tier 4 cannot fail, so ``resolve`` never raises for any input.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from ticketforge.constants import (
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_PLATFORM,
    DEFAULT_TECH_STACK,
    DOCUMENT_TYPE_ALIASES,
    TECH_STACK_ALIASES,
    TEMPLATE_SUFFIX,
    ResolutionTier,
)
from ticketforge.templates.builtin import builtin_template
from ticketforge.templates.schemas import (
    ResolutionKey,
    Template,
    TemplateDefinition,
)
from ticketforge.templates.store import TemplateStore

logger = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r"[^a-z0-9_-]+")
_DASHES = re.compile(r"-{2,}")
_MAX_SEGMENT = 64

# A tier attempt maps a key to a candidate path, or None when the tier
# does not apply to this key
type TierAttempt = Callable[[ResolutionKey], str | None]


def normalize_segment(value: object, aliases: dict[str, str] | None = None) -> str:
    """Lower-case, dash-separated, path-safe form of a request value."""
    text = str(value or "").strip().lower().replace(" ", "-")
    if aliases and text in aliases:
        return aliases[text]
    text = _DASHES.sub("-", _INVALID_CHARS.sub("", text)).strip("-_")
    text = text[:_MAX_SEGMENT]
    if aliases and text in aliases:
        return aliases[text]
    return text


def resolution_key(
    platform: object, document_type: object, tech_stack: object
) -> ResolutionKey:
    return ResolutionKey(
        platform=normalize_segment(platform),
        document_type=normalize_segment(document_type, DOCUMENT_TYPE_ALIASES),
        tech_stack=normalize_segment(tech_stack, TECH_STACK_ALIASES),
    )


def _tech_stack_path(key: ResolutionKey) -> str | None:
    if not (key.platform and key.document_type and key.tech_stack):
        return None
    if key.tech_stack == "default":
        return None
    return (
        f"platforms/{key.platform}/{key.document_type}/"
        f"{key.tech_stack}{TEMPLATE_SUFFIX}"
    )


def _platform_default_path(key: ResolutionKey) -> str | None:
    if not (key.platform and key.document_type):
        return None
    return f"platforms/{key.platform}/{key.document_type}/default{TEMPLATE_SUFFIX}"


def _custom_default_path(key: ResolutionKey) -> str | None:
    if not key.document_type:
        return None
    return f"custom/defaults/{key.document_type}{TEMPLATE_SUFFIX}"


TIERS: tuple[tuple[ResolutionTier, TierAttempt], ...] = (
    (ResolutionTier.TECH_STACK, _tech_stack_path),
    (ResolutionTier.PLATFORM_DEFAULT, _platform_default_path),
    (ResolutionTier.CUSTOM_DEFAULT, _custom_default_path),
)


class TemplateResolver:
    """Resolves and caches Templates by normalized resolution key."""

    def __init__(self, store: TemplateStore) -> None:
        self.store = store
        self._resolved: dict[ResolutionKey, Template] = {}
        self._hits = 0
        self._misses = 0

    def resolve(
        self,
        platform: object = DEFAULT_PLATFORM,
        document_type: object = DEFAULT_DOCUMENT_TYPE,
        tech_stack: object = DEFAULT_TECH_STACK,
    ) -> Template:
        """Return the most specific template available. Never raises."""
        key = resolution_key(platform, document_type, tech_stack)
        cached = self._resolved.get(key)
        if cached is not None:
            self._hits += 1
            return cached
        self._misses += 1

        template = self._resolve_uncached(key)
        self._resolved[key] = template
        logger.info(
            "event=template_resolved platform=%s document_type=%s "
            "tech_stack=%s tier=%s path=%s",
            key.platform or "-",
            key.document_type or "-",
            key.tech_stack or "-",
            template.tier.value,
            template.resolution_path,
        )
        return template

    def _resolve_uncached(self, key: ResolutionKey) -> Template:
        for tier, attempt in TIERS:
            path = attempt(key)
            if path is None:
                continue
            try:
                definition = self.store.load(path)
            except ValueError:
                continue
            if definition is not None:
                return _from_definition(key, tier, path, definition)
        return builtin_template(key)

    def candidate_paths(
        self, platform: object, document_type: object, tech_stack: object
    ) -> list[str]:
        """Paths the resolver would try, in order, for a request."""
        key = resolution_key(platform, document_type, tech_stack)
        return [p for _, attempt in TIERS if (p := attempt(key)) is not None]

    def reload(self) -> None:
        """Invalidate resolved templates and the store's parsed cache."""
        self._resolved.clear()
        self.store.reload()

    def cache_stats(self) -> dict[str, int]:
        return {
            "resolved": len(self._resolved),
            "loaded_files": len(self.store.cached_paths),
            "hits": self._hits,
            "misses": self._misses,
        }


def _from_definition(
    key: ResolutionKey,
    tier: ResolutionTier,
    path: str,
    definition: TemplateDefinition,
) -> Template:
    return Template(
        platform=key.platform,
        document_type=key.document_type,
        tech_stack=key.tech_stack,
        resolution_path=path,
        tier=tier,
        body=definition.body,
        title=definition.title,
        required_fields=frozenset(definition.required_fields),
        defaults=dict(definition.defaults),
        name=definition.meta.name,
        version=definition.meta.version,
    )
