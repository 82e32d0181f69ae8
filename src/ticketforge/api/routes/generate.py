"""Generation and context routes."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends

from ticketforge.api.dependencies import get_ticket_service
from ticketforge.api.schemas import APIResponse, ContextBody, GenerateBody
from ticketforge.config import TIMEOUTS
from ticketforge.constants import ERROR_TRUNCATION_CHARS
from ticketforge.resilience.errors import GenerationExhaustedError
from ticketforge.services.ticket_service import (
    GenerationRequest,
    TicketService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generate"])


@router.post("/generate")
async def generate(
    body: GenerateBody,
    service: TicketService = Depends(get_ticket_service),
) -> APIResponse:
    """Generate a document for one design selection."""
    request = GenerationRequest(
        platform=body.platform,
        document_type=body.document_type,
        tech_stack=body.tech_stack,
        strategy=body.strategy,
    )
    try:
        async with asyncio.timeout(TIMEOUTS["api_generate"]):
            document = await service.generate_document(body.design, request)
    except TimeoutError:
        logger.error(
            "event=generate_timeout request_id=%s", request.request_id
        )
        return APIResponse(
            success=False,
            error="Generation timed out",
            metadata={"request_id": request.request_id},
        )
    except GenerationExhaustedError as exc:
        return APIResponse(
            success=False,
            error=str(exc)[:ERROR_TRUNCATION_CHARS],
            metadata={"request_id": request.request_id},
        )

    return APIResponse(
        success=True,
        data=document.model_dump(mode="json"),
        metadata={
            "request_id": request.request_id,
            "strategy_used": document.strategy_used.value,
            "low_confidence": document.low_confidence,
            "cache_hit": document.cache_hit,
        },
    )


@router.post("/context")
async def build_context(
    body: ContextBody,
    service: TicketService = Depends(get_ticket_service),
) -> APIResponse:
    """Run analysis only and return the Context."""
    context = await service.build_context(body.design)
    return APIResponse(
        success=True,
        data=context.model_dump(mode="json"),
        metadata={
            "fingerprint": context.fingerprint,
            "failed_sections": context.failed_sections,
        },
    )
