"""Pydantic models for the design-extraction payload (RawInput)."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FROZEN = ConfigDict(frozen=True, extra="ignore")


def _channel(value: Any) -> int:
    """Convert a 0..1 float (or 0..255 int) color channel to 0..255."""
    number = float(value)
    if number <= 1.0:
        number *= 255
    return max(0, min(255, round(number)))


def to_hex_color(value: Any) -> Any:
    """Normalize ``{r, g, b}`` dicts and short hex strings to ``#RRGGBB``."""
    if isinstance(value, dict) and {"r", "g", "b"} <= value.keys():
        r, g, b = (_channel(value[c]) for c in ("r", "g", "b"))
        return f"#{r:02X}{g:02X}{b:02X}"
    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) == 3:
            text = "".join(ch * 2 for ch in text)
        if len(text) == 8:
            text = text[:6]  # drop alpha
        return f"#{text.upper()}"
    return value


class Bounds(BaseModel):
    """Absolute bounding box in design-tool pixels."""

    model_config = _FROZEN

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class Paint(BaseModel):
    model_config = _FROZEN

    type: str = "SOLID"
    color: str | None = None
    opacity: float = 1.0

    @field_validator("color", mode="before")
    @classmethod
    def _normalize_color(cls, v: Any) -> Any:
        return to_hex_color(v) if v is not None else v


class FontSpec(BaseModel):
    model_config = _FROZEN

    family: str | None = None
    size: float | None = None
    weight: int | None = None
    line_height: float | None = None


class AutoLayout(BaseModel):
    model_config = _FROZEN

    mode: str = "NONE"  # HORIZONTAL | VERTICAL | NONE
    padding: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    item_spacing: float = 0.0


class Interaction(BaseModel):
    """A prototype reaction attached to a node."""

    model_config = _FROZEN

    trigger: str
    action: str = "NAVIGATE"
    destination_id: str | None = None


class DesignNode(BaseModel):
    """One node of the design document tree."""

    model_config = _FROZEN

    id: str
    name: str = ""
    type: str = "FRAME"
    visible: bool = True
    bounds: Bounds | None = None
    fills: tuple[Paint, ...] = ()
    style_refs: dict[str, str] = Field(default_factory=dict)
    text: str | None = None
    font: FontSpec | None = None
    layout: AutoLayout | None = None
    corner_radius: float | None = None
    interactions: tuple[Interaction, ...] = ()
    variant_properties: dict[str, str] = Field(default_factory=dict)
    children: tuple[DesignNode, ...] = ()

    def walk(self, depth: int = 1) -> Iterator[tuple[DesignNode, int]]:
        """Yield ``(node, depth)`` pairs depth-first, this node first."""
        yield self, depth
        for child in self.children:
            yield from child.walk(depth + 1)


class StyleDefinition(BaseModel):
    """A named shared style (color, text or effect)."""

    model_config = _FROZEN

    name: str
    style_type: str = "FILL"  # FILL | TEXT | EFFECT | GRID
    value: str | None = None
    description: str = ""


class Selection(BaseModel):
    model_config = _FROZEN

    page_name: str = ""
    selected_ids: tuple[str, ...] = ()
    component_name: str | None = None
    description: str = ""


class ScreenshotRef(BaseModel):
    """Where the plugin stored the capture; the core never fetches it."""

    model_config = _FROZEN

    url: str
    format: str = "png"
    width: int | None = None
    height: int | None = None


class RawInput(BaseModel):
    """Design-tool extraction payload. Immutable for one request."""

    model_config = _FROZEN

    file_key: str
    file_name: str = ""
    nodes: tuple[DesignNode, ...] = ()
    styles: dict[str, StyleDefinition] = Field(default_factory=dict)
    selection: Selection = Field(default_factory=Selection)
    screenshot: ScreenshotRef | None = None
    description: str = ""
    captured_at: datetime | None = None

    def iter_nodes(self) -> Iterator[tuple[DesignNode, int]]:
        """Every node of every root, depth-first, with its depth."""
        for root in self.nodes:
            yield from root.walk()

    @property
    def subject_name(self) -> str | None:
        """Best available name for the thing being ticketed."""
        if self.selection.component_name:
            return self.selection.component_name
        selected = set(self.selection.selected_ids)
        if selected:
            for node, _ in self.iter_nodes():
                if node.id in selected and node.name:
                    return node.name
        if self.nodes and self.nodes[0].name:
            return self.nodes[0].name
        return None
