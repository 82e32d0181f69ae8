"""Template library routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ticketforge.api.dependencies import get_ticket_service
from ticketforge.api.schemas import APIResponse
from ticketforge.constants import (
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_PLATFORM,
    DEFAULT_TECH_STACK,
)
from ticketforge.services.ticket_service import TicketService

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("")
async def list_templates(
    service: TicketService = Depends(get_ticket_service),
) -> APIResponse:
    """List every template in the library with its tier."""
    templates = service.resolver.store.list_templates()
    return APIResponse(
        success=True,
        data=[t.model_dump(mode="json") for t in templates],
        metadata={"count": len(templates)},
    )


@router.get("/resolve")
async def resolve_template(
    platform: str = Query(default=DEFAULT_PLATFORM, max_length=100),
    document_type: str = Query(default=DEFAULT_DOCUMENT_TYPE, max_length=100),
    tech_stack: str = Query(default=DEFAULT_TECH_STACK, max_length=100),
    service: TicketService = Depends(get_ticket_service),
) -> APIResponse:
    """Show which template a request would use, and what was tried."""
    resolver = service.resolver
    template = resolver.resolve(platform, document_type, tech_stack)
    return APIResponse(
        success=True,
        data={
            "resolution_path": template.resolution_path,
            "tier": template.tier.value,
            "name": template.name,
            "version": template.version,
            "required_fields": sorted(template.required_fields),
        },
        metadata={
            "candidates": resolver.candidate_paths(
                platform, document_type, tech_stack
            ),
        },
    )


@router.post("/reload")
async def reload_templates(
    service: TicketService = Depends(get_ticket_service),
) -> APIResponse:
    """Drop cached templates so edits on disk take effect."""
    service.resolver.reload()
    return APIResponse(
        success=True,
        data=service.resolver.cache_stats(),
    )
