"""Shared test fixtures: design payloads, fake analyzers, fake AI provider."""

import os

# Force demo API keys for all tests: no real LLM calls.
# Set unconditionally at import time so real keys in the shell never
# reach a Settings() created by a test.
os.environ["ANTHROPIC_API_KEY"] = "for-demo-purposes-only"
os.environ["OPENAI_API_KEY"] = "for-demo-purposes-only"
os.environ["REDIS_URL"] = ""
os.environ["API_KEY"] = ""

import asyncio
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import pytest

from ticketforge.analysis.aggregator import ContextAggregator
from ticketforge.analysis.analyzers import BUILTIN_ANALYZERS
from ticketforge.analysis.base import Analyzer
from ticketforge.analysis.schemas import (
    AnalyzerData,
    AnalyzerResult,
    Context,
    GenericData,
)
from ticketforge.api.app_state import AppState
from ticketforge.cache.result_cache import MemoryResultCache, SafeResultCache
from ticketforge.config import Settings
from ticketforge.generation.ai import Completion
from ticketforge.ingestion.schemas import RawInput
from ticketforge.logger import RequestLogger
from ticketforge.main import app
from ticketforge.resilience.errors import AIProviderFailure
from ticketforge.services.ticket_service import TicketService

# Scripted response that never completes
HANG = object()

FILLER = (
    "Build it exactly as shown in the linked design, reusing the shared "
    "design system tokens and documenting every state."
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAnalyzer:
    """Analyzer with scripted behaviour.

    Succeeds with ``confidence`` unless ``error`` is set (raised from
    ``analyze``), ``delay`` is longer than the aggregator timeout, or
    ``result`` overrides what is returned.
    """

    def __init__(
        self,
        analyzer_id: str,
        confidence: float = 0.8,
        *,
        data: AnalyzerData | None = None,
        error: BaseException | None = None,
        delay: float = 0.0,
        result: Any = None,
    ) -> None:
        self.analyzer_id = analyzer_id
        self.confidence = confidence
        self.data = data
        self.error = error
        self.delay = delay
        self.result = result
        self.calls = 0

    async def analyze(self, raw: RawInput, timeout_ms: int) -> AnalyzerResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result  # type: ignore[no-any-return]
        return AnalyzerResult.success(
            self.analyzer_id,
            self.data or GenericData(values={"source": self.analyzer_id}),
            self.confidence,
        )


class FakeAIProvider:
    """AIProvider returning scripted responses in order.

    A response may be text, an exception to raise, or ``HANG``. Once the
    script runs out every call raises AIProviderFailure.
    """

    def __init__(
        self,
        responses: Iterable[Any] = (),
        *,
        available: bool = True,
        model: str = "fake/model-1",
    ) -> None:
        self._responses = list(responses)
        self._available = available
        self._model = model
        self.prompts: list[str] = []
        self.systems: list[str | None] = []
        self.timeouts: list[int] = []

    @property
    def available(self) -> bool:
        return self._available

    async def generate(
        self,
        prompt: str,
        max_timeout_ms: int,
        system: str | None = None,
    ) -> str:
        self.prompts.append(prompt)
        self.systems.append(system)
        self.timeouts.append(max_timeout_ms)
        if not self._responses:
            raise AIProviderFailure("no scripted response left")
        item = self._responses.pop(0)
        if item is HANG:
            await asyncio.Event().wait()
        if isinstance(item, BaseException):
            raise item
        return Completion(str(item), self._model)

    @property
    def calls(self) -> int:
        return len(self.prompts)


def document_text(fields: Iterable[str], heading: str = "##") -> str:
    """A complete document with one section per field."""
    return "\n\n".join(
        f"{heading} {field}\n{FILLER}" for field in sorted(fields)
    )


def _variant(node_id: str, state: str, color: str) -> dict[str, Any]:
    return {
        "id": node_id,
        "name": f"State={state}",
        "type": "COMPONENT",
        "bounds": {"x": 0, "y": 0, "width": 160, "height": 48},
        "fills": [{"type": "SOLID", "color": color}],
        "style_refs": {"fill": "S:brand"},
        "layout": {
            "mode": "HORIZONTAL",
            "padding": [12, 24, 12, 24],
            "item_spacing": 8,
        },
        "corner_radius": 8,
        "variant_properties": {"State": state},
        "interactions": [{"trigger": "ON_CLICK", "action": "NAVIGATE"}],
        "children": [
            {
                "id": f"{node_id}:label",
                "name": "Label",
                "type": "TEXT",
                "text": "Pay now",
                "fills": [{"type": "SOLID", "color": {"r": 1, "g": 1, "b": 1}}],
                "font": {"family": "Inter", "size": 16, "weight": 600},
            }
        ],
    }


def design_payload(**overrides: Any) -> dict[str, Any]:
    """JSON-shaped export of a two-variant checkout button."""
    payload: dict[str, Any] = {
        "file_key": "FILE123",
        "file_name": "Checkout Kit",
        "nodes": [
            {
                "id": "1:1",
                "name": "Primary Button",
                "type": "COMPONENT_SET",
                "bounds": {"x": 0, "y": 0, "width": 360, "height": 120},
                "fills": [{"type": "SOLID", "color": "#FFFFFF"}],
                "children": [
                    _variant("1:2", "Default", "#1967D2"),
                    _variant("1:3", "Hover", "#1557B0"),
                ],
            }
        ],
        "styles": {
            "S:brand": {
                "name": "Brand/Primary",
                "style_type": "FILL",
                "value": "#1967D2",
            }
        },
        "selection": {
            "page_name": "Checkout",
            "selected_ids": ["1:1"],
            "component_name": "Primary Button",
        },
        "screenshot": {"url": "https://cdn.example.com/shot.png"},
        "description": "Main call to action on the checkout page",
        "captured_at": "2026-10-01T12:00:00Z",
    }
    payload.update(overrides)
    return payload


def make_raw_input(**overrides: Any) -> RawInput:
    return RawInput.model_validate(design_payload(**overrides))


def make_cache(clock: FakeClock | None = None) -> SafeResultCache:
    backend = MemoryResultCache(clock=clock) if clock else MemoryResultCache()
    return SafeResultCache(backend, io_timeout_seconds=0.5)


async def make_context(
    raw: RawInput | None = None,
    analyzers: Sequence[Analyzer] | None = None,
) -> Context:
    """Context for ``raw`` from the built-in analyzers at equal weight."""
    if analyzers is None:
        analyzers = [factory() for factory in BUILTIN_ANALYZERS.values()]
    aggregator = ContextAggregator(
        analyzers,
        make_cache(),
        timeout_seconds=1.0,
        max_concurrency=4,
        cache_ttl_seconds=300,
    )
    return await aggregator.aggregate(raw or make_raw_input())


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "redis_url": "",
        "api_key": "",
        "log_dir": tmp_path / "logs",
        "analyzer_timeout_seconds": 1.0,
        "ai_step_timeout_seconds": 2.0,
        "request_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


def setup_test_app(
    tmp_path: Path,
    *,
    ai: Any = None,
    settings: Settings | None = None,
) -> TicketService:
    """Common app-state setup for API test fixtures.

    Builds a TicketService over the memory cache and the given (fake)
    AI provider and stores it on app.state the way the lifespan does.
    Returns the service so tests can inspect its parts.
    """
    settings = settings or make_settings(tmp_path)
    request_logger = RequestLogger(
        log_dir=Path(tmp_path / "logs"), level="WARNING"
    )
    service = TicketService.from_settings(
        settings,
        ai=ai if ai is not None else FakeAIProvider(available=False),
        cache=make_cache(),
        request_logger=request_logger,
    )
    app.state.settings = settings
    app.state.typed = AppState(
        settings=settings,
        service=service,
        request_logger=request_logger,
    )
    return service


def fake_analyzers(confidences: Sequence[float]) -> list[FakeAnalyzer]:
    return [
        FakeAnalyzer(f"fake_{i}", c) for i, c in enumerate(confidences)
    ]


@pytest.fixture
def raw_input() -> RawInput:
    return make_raw_input()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache() -> SafeResultCache:
    return make_cache()
