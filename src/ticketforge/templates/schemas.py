"""Template models: YAML file schema and the resolved Template."""

from __future__ import annotations

from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ticketforge.constants import ResolutionTier


class TemplateMeta(BaseModel):
    name: str = ""
    version: str = "1.0.0"
    description: str = ""


class TemplateDefinition(BaseModel):
    """Schema of one template YAML file after ``extends`` is applied."""

    model_config = ConfigDict(extra="ignore")

    meta: TemplateMeta = Field(default_factory=TemplateMeta)
    extends: str | None = None
    required_fields: list[str] = Field(default_factory=list)
    defaults: dict[str, Any] = Field(default_factory=dict)
    title: str = ""
    body: str = ""

    @field_validator("required_fields")
    @classmethod
    def _strip_fields(cls, v: list[str]) -> list[str]:
        return [f.strip() for f in v if f.strip()]

    @field_validator("body")
    @classmethod
    def _body_not_blank(cls, v: str) -> str:
        if v and not v.strip():
            raise ValueError("template body is blank")
        return v


class ResolutionKey(NamedTuple):
    """Normalized request triple used as the resolver cache key."""

    platform: str
    document_type: str
    tech_stack: str


class Template(BaseModel):
    """A resolved, immutable template."""

    model_config = ConfigDict(frozen=True)

    platform: str
    document_type: str
    tech_stack: str
    resolution_path: str
    tier: ResolutionTier
    body: str
    title: str = ""
    required_fields: frozenset[str] = frozenset()
    defaults: dict[str, Any] = Field(default_factory=dict)
    name: str = ""
    version: str = "1.0.0"

    @property
    def is_builtin(self) -> bool:
        return self.tier is ResolutionTier.BUILTIN


class TemplateInfo(BaseModel):
    """Listing entry for a shipped or custom template file."""

    path: str
    tier: ResolutionTier
    name: str
    version: str
    description: str = ""
