"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from ticketforge import __version__
from ticketforge.api.dependencies import get_ticket_service
from ticketforge.services.ticket_service import TicketService

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Basic health check for load balancers."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/detailed")
async def health_detailed(
    service: TicketService = Depends(get_ticket_service),
) -> dict[str, object]:
    """Component-level status. A missing cache or AI only degrades."""
    report = await service.health()

    components = {
        "cache": {
            "status": (
                "connected" if report["cache"]["reachable"] else "disconnected"
            ),
            "backend": report["cache"]["backend"],
        },
        "ai_provider": {
            "status": "available" if report["ai_available"] else "unavailable"
        },
        "templates": {
            "status": "loaded" if report["templates"] else "builtin_only",
            "count": report["templates"],
        },
    }

    all_healthy = (
        report["cache"]["reachable"]
        and report["ai_available"]
        and bool(report["templates"])
    )

    return {
        "status": "healthy" if all_healthy else "degraded",
        "version": __version__,
        "components": components,
        "analyzers": report["analyzers"],
        "timestamp": datetime.now(UTC).isoformat(),
    }
