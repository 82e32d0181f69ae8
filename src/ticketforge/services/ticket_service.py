"""End-to-end pipeline: aggregate, resolve, generate.

TicketService is the composition root shared by the API and the CLI.
Every long-lived component (result cache, template store, resolver,
coalescer, AI provider) is built once in ``from_settings`` and handed
to the parts that need it.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from pydantic import BaseModel, Field

from ticketforge.analysis.aggregator import ContextAggregator
from ticketforge.analysis.analyzers import build_analyzers
from ticketforge.analysis.schemas import Context
from ticketforge.cache.result_cache import SafeResultCache, create_result_cache
from ticketforge.config import Settings
from ticketforge.constants import (
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_PLATFORM,
    DEFAULT_TECH_STACK,
    ID_HEX_LENGTH,
)
from ticketforge.generation.ai import AIProvider, create_ai_provider
from ticketforge.generation.orchestrator import (
    GenerationOrchestrator,
    RenderedDocument,
)
from ticketforge.ingestion.schemas import RawInput
from ticketforge.logger import RequestLogger
from ticketforge.resilience.errors import GenerationExhaustedError
from ticketforge.templates.renderer import TemplateRenderer
from ticketforge.templates.resolver import TemplateResolver
from ticketforge.templates.store import TemplateStore

logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    """What the caller wants generated for a RawInput."""

    platform: str = DEFAULT_PLATFORM
    document_type: str = DEFAULT_DOCUMENT_TYPE
    tech_stack: str = DEFAULT_TECH_STACK
    strategy: str | None = None
    request_id: str = Field(
        default_factory=lambda: uuid.uuid4().hex[:ID_HEX_LENGTH]
    )


class TicketService:
    """Runs one generation request through the whole core."""

    def __init__(
        self,
        aggregator: ContextAggregator,
        resolver: TemplateResolver,
        orchestrator: GenerationOrchestrator,
        cache: SafeResultCache,
        request_logger: RequestLogger | None = None,
    ) -> None:
        self.aggregator = aggregator
        self.resolver = resolver
        self.orchestrator = orchestrator
        self.cache = cache
        self._request_logger = request_logger

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        ai: AIProvider | None = None,
        cache: SafeResultCache | None = None,
        request_logger: RequestLogger | None = None,
    ) -> TicketService:
        cache = cache or create_result_cache(settings)
        aggregator = ContextAggregator(
            build_analyzers(settings),
            cache,
            timeout_seconds=settings.analyzer_timeout_seconds,
            max_concurrency=settings.analyzer_max_concurrency,
            cache_ttl_seconds=settings.context_cache_ttl_seconds,
            weight_for=settings.weight_for,
        )
        resolver = TemplateResolver(TemplateStore(settings.templates_dir))
        orchestrator = GenerationOrchestrator(
            TemplateRenderer(),
            ai or create_ai_provider(settings),
            cache,
            step_timeout_seconds=settings.ai_step_timeout_seconds,
            request_timeout_seconds=settings.request_timeout_seconds,
            min_confidence=settings.min_confidence,
            emergency_discount=settings.emergency_confidence_discount,
            min_content_length=settings.min_content_length,
            document_ttl_seconds=settings.document_cache_ttl_seconds,
        )
        return cls(aggregator, resolver, orchestrator, cache, request_logger)

    async def build_context(self, raw: RawInput) -> Context:
        """Aggregation only."""
        return await self.aggregator.aggregate(raw)

    async def generate_document(
        self, raw: RawInput, request: GenerationRequest | None = None
    ) -> RenderedDocument:
        """Aggregate, resolve and generate. Raises only GenerationExhaustedError."""
        request = request or GenerationRequest()
        start = time.monotonic()

        context = await self.aggregator.aggregate(raw)
        self._stage(request.request_id, "aggregate", start, "ok")

        resolve_start = time.monotonic()
        template = self.resolver.resolve(
            request.platform, request.document_type, request.tech_stack
        )
        self._stage(request.request_id, "resolve", resolve_start, "ok")

        generate_start = time.monotonic()
        try:
            document = await self.orchestrator.generate(
                context, template, request.strategy
            )
        except GenerationExhaustedError as exc:
            self._stage(
                request.request_id, "generate", generate_start, "failed",
                error=str(exc),
            )
            if self._request_logger is not None:
                self._request_logger.log_error(
                    request.request_id, "generation", str(exc)
                )
            raise
        self._stage(request.request_id, "generate", generate_start, "ok")

        if self._request_logger is not None:
            self._request_logger.log_request(
                request_id=request.request_id,
                fingerprint=context.fingerprint,
                platform=document.platform,
                document_type=document.document_type,
                strategy=document.strategy_used.value,
                step=document.step.value,
                confidence=document.confidence,
                duration_ms=_elapsed_ms(start),
                cache_hit=document.cache_hit,
            )
        logger.info(
            "event=request_complete request_id=%s strategy=%s template=%s "
            "low_confidence=%s duration_ms=%.2f",
            request.request_id,
            document.strategy_used.value,
            document.template_path,
            document.low_confidence,
            _elapsed_ms(start),
        )
        return document

    async def health(self) -> dict[str, Any]:
        """Cache reachability, AI availability and template count."""
        cache_ok = await self.cache.ping()
        return {
            "cache": {
                "backend": type(self.cache.backend).__name__,
                "reachable": cache_ok,
                "stats": vars(self.cache.stats).copy(),
            },
            "ai_available": self.orchestrator.ai.available,
            "analyzers": self.aggregator.analyzer_ids,
            "templates": len(self.resolver.store.list_templates()),
            "resolver": self.resolver.cache_stats(),
        }

    async def close(self) -> None:
        await self.cache.close()

    def _stage(
        self,
        request_id: str,
        stage: str,
        start: float,
        status: str,
        error: str | None = None,
    ) -> None:
        if self._request_logger is not None:
            self._request_logger.log_stage(
                request_id, stage, status, _elapsed_ms(start), error
            )


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)
