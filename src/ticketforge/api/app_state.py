"""Typed application state: replaces untyped getattr() access."""

from __future__ import annotations

from dataclasses import dataclass

from ticketforge.config import Settings
from ticketforge.logger import RequestLogger
from ticketforge.services.ticket_service import TicketService


@dataclass
class AppState:
    """Typed container for app.state attributes."""

    settings: Settings
    service: TicketService
    request_logger: RequestLogger
