"""FastAPI application with lifespan startup."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

# Phase 1: Singleton logging, MUST be before any ticketforge imports
# (they transitively import litellm which reads LITELLM_LOG at import time)
from ticketforge.logging_config import setup_logging

setup_logging()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from ticketforge import __version__  # noqa: E402
from ticketforge.api.app_state import AppState  # noqa: E402
from ticketforge.api.middleware.auth import ApiKeyMiddleware  # noqa: E402
from ticketforge.api.routes import generate, health, templates  # noqa: E402
from ticketforge.config import Settings  # noqa: E402
from ticketforge.logger import RequestLogger  # noqa: E402
from ticketforge.logging_config import (  # noqa: E402
    cleanup_third_party_handlers,
)
from ticketforge.services.ticket_service import TicketService  # noqa: E402

# Phase 2: Now that all imports (including litellm) are done,
# clear litellm's duplicate handlers.
cleanup_third_party_handlers()

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # 1. Use module-level settings (single source of truth)
    settings = _settings

    # 2. Initialize request logger
    request_logger = RequestLogger(
        log_dir=settings.log_dir, level=settings.log_level
    )

    # 3. Build the pipeline once; every request shares it
    service = TicketService.from_settings(
        settings, request_logger=request_logger
    )

    # 4. Store in app.state
    app.state.settings = settings
    app.state.typed = AppState(
        settings=settings,
        service=service,
        request_logger=request_logger,
    )

    # 5. Security: warn if auth is disabled
    if not settings.api_key:
        _logger.warning(
            "event=no_api_key action=all_endpoints_public"
        )

    _logger.info(
        "event=startup templates=%d ai_available=%s",
        len(service.resolver.store.list_templates()),
        service.orchestrator.ai.available,
    )

    yield

    # Cleanup
    await service.close()


app = FastAPI(
    title="TicketForge",
    description=(
        "Design intelligence pipeline --"
        " turns design selections into implementation tickets"
    ),
    version=__version__,
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Middleware stack (Starlette LIFO: last added = outermost = runs first)
#
# Inbound request order:
#   CORSMiddleware (outermost) -> ApiKeyMiddleware -> Router
#
# CORS must be outermost so OPTIONS preflight is answered before
# ApiKeyMiddleware rejects for missing X-API-Key.
_settings = Settings()
_cors_origins = [
    o.strip()
    for o in _settings.cors_origins.split(",")
    if o.strip()
]

app.add_middleware(ApiKeyMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-API-Key"],
    allow_credentials=False,
)

# Routes
app.include_router(health.router)
app.include_router(generate.router)
app.include_router(templates.router)
