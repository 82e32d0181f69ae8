"""Load, merge and cache template YAML files."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import ValidationError

from ticketforge.constants import (
    ERROR_TRUNCATION_CHARS,
    TEMPLATE_SUFFIX,
    ResolutionTier,
)
from ticketforge.templates.schemas import TemplateDefinition, TemplateInfo

logger = logging.getLogger(__name__)

LIBRARY_DIR = Path(__file__).resolve().parent / "library"

_SEGMENT = re.compile(r"^[a-z0-9][a-z0-9_-]*$")
_MAX_EXTENDS_DEPTH = 5


def _validate_relative(path: str) -> PurePosixPath:
    """Reject anything but ``segment/segment/name.yml``."""
    pure = PurePosixPath(path)
    if pure.is_absolute() or pure.suffix != TEMPLATE_SUFFIX:
        raise ValueError(f"Invalid template path: {path!r}")
    parts = [*pure.parent.parts, pure.stem]
    if not parts or not all(_SEGMENT.match(p) for p in parts):
        raise ValueError(f"Invalid template path: {path!r}")
    return pure


def tier_for_path(path: str) -> ResolutionTier | None:
    """Which resolution tier a library-relative path serves, if any."""
    parts = PurePosixPath(path).parts
    if len(parts) == 4 and parts[0] == "platforms":
        if parts[3] == f"default{TEMPLATE_SUFFIX}":
            return ResolutionTier.PLATFORM_DEFAULT
        return ResolutionTier.TECH_STACK
    if len(parts) == 3 and parts[:2] == ("custom", "defaults"):
        return ResolutionTier.CUSTOM_DEFAULT
    return None


class TemplateStore:
    """Parsed-template cache keyed by library-relative path.

    Misses are cached too, so a tier that does not exist costs one
    filesystem check per path until ``reload()``. There is no TTL:
    templates change only when someone edits them and reloads.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = root or LIBRARY_DIR
        self._cache: dict[str, TemplateDefinition | None] = {}

    def load(self, path: str) -> TemplateDefinition | None:
        """Return the merged definition at ``path``, or None if absent/invalid.

        Raises ``ValueError`` for paths that are not plain library paths.
        """
        _validate_relative(path)
        if path in self._cache:
            return self._cache[path]
        definition = self._load_merged(path, depth=0)
        if definition is not None and not definition.body:
            logger.warning("event=template_invalid path=%s error=no body", path)
            definition = None
        self._cache[path] = definition
        if definition is not None:
            logger.debug("event=template_loaded path=%s", path)
        return definition

    def _load_merged(self, path: str, depth: int) -> TemplateDefinition | None:
        raw = self._read(path)
        if raw is None:
            return None
        try:
            definition = TemplateDefinition.model_validate(raw)
        except ValidationError as exc:
            logger.warning(
                "event=template_invalid path=%s error=%s",
                path,
                str(exc)[:ERROR_TRUNCATION_CHARS],
            )
            return None
        if definition.extends is None:
            return definition
        if depth >= _MAX_EXTENDS_DEPTH:
            logger.warning("event=template_extends_too_deep path=%s", path)
            return None

        parent_path = self._parent_path(path, definition.extends)
        if parent_path is None:
            return None
        parent = self._load_merged(parent_path, depth + 1)
        if parent is None:
            logger.warning(
                "event=template_parent_missing path=%s parent=%s",
                path,
                parent_path,
            )
            return None
        return _merge(parent, definition, explicit=raw.keys())

    def _parent_path(self, path: str, extends: str) -> str | None:
        name = extends if extends.endswith(TEMPLATE_SUFFIX) else extends + TEMPLATE_SUFFIX
        candidate = name if "/" in name else str(PurePosixPath(path).parent / name)
        try:
            _validate_relative(candidate)
        except ValueError:
            logger.warning(
                "event=template_invalid path=%s error=bad extends %r",
                path,
                extends,
            )
            return None
        return candidate

    def _read(self, path: str) -> dict[str, Any] | None:
        file_path = self.root / path
        if not file_path.is_file():
            return None
        try:
            raw = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            logger.warning(
                "event=template_unreadable path=%s error=%s",
                path,
                str(exc)[:ERROR_TRUNCATION_CHARS],
            )
            return None
        if not isinstance(raw, dict):
            logger.warning("event=template_invalid path=%s error=not a mapping", path)
            return None
        return raw

    def reload(self) -> None:
        """Drop every cached definition (including cached misses)."""
        count = len(self._cache)
        self._cache.clear()
        logger.info("event=templates_reloaded dropped=%d", count)

    @property
    def cached_paths(self) -> list[str]:
        return sorted(p for p, d in self._cache.items() if d is not None)

    def list_templates(self) -> list[TemplateInfo]:
        """All loadable templates that serve a resolution tier."""
        if not self.root.is_dir():
            return []
        result: list[TemplateInfo] = []
        for file_path in sorted(self.root.rglob(f"*{TEMPLATE_SUFFIX}")):
            rel = file_path.relative_to(self.root).as_posix()
            tier = tier_for_path(rel)
            if tier is None:
                continue
            try:
                definition = self.load(rel)
            except ValueError:
                continue
            if definition is None:
                continue
            result.append(
                TemplateInfo(
                    path=rel,
                    tier=tier,
                    name=definition.meta.name or PurePosixPath(rel).stem,
                    version=definition.meta.version,
                    description=definition.meta.description,
                )
            )
        return result


def _merge(
    parent: TemplateDefinition,
    child: TemplateDefinition,
    explicit: Any,
) -> TemplateDefinition:
    """Child wins for keys it sets; defaults merge and required fields union."""
    required = list(parent.required_fields)
    required.extend(f for f in child.required_fields if f not in required)
    return TemplateDefinition(
        meta=child.meta if "meta" in explicit else parent.meta,
        extends=None,
        required_fields=required,
        defaults={**parent.defaults, **child.defaults},
        title=child.title or parent.title,
        body=child.body or parent.body,
    )
