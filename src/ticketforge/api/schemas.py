"""Request/response schemas for the HTTP API."""

from typing import Any

from pydantic import BaseModel, Field

from ticketforge.constants import (
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_PLATFORM,
    DEFAULT_TECH_STACK,
)
from ticketforge.ingestion.schemas import RawInput


class APIResponse(BaseModel):
    """Standard response envelope for all API endpoints."""

    success: bool
    data: Any | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class GenerateBody(BaseModel):
    """Request body for POST /api/generate."""

    design: RawInput
    platform: str = Field(default=DEFAULT_PLATFORM, max_length=100)
    document_type: str = Field(default=DEFAULT_DOCUMENT_TYPE, max_length=100)
    tech_stack: str = Field(default=DEFAULT_TECH_STACK, max_length=100)
    strategy: str | None = Field(default=None, max_length=50)


class ContextBody(BaseModel):
    """Request body for POST /api/context."""

    design: RawInput
