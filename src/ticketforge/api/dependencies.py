"""FastAPI dependency injection for the shared service."""

from __future__ import annotations

from fastapi import Request

from ticketforge.config import Settings
from ticketforge.services.ticket_service import TicketService


def get_ticket_service(request: Request) -> TicketService:
    """Get the process-wide TicketService from app.state."""
    return request.app.state.typed.service  # type: ignore[no-any-return]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]
