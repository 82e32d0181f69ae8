"""Template store, resolver and renderer."""

from ticketforge.templates.defaults import DefaultPolicy, complete_namespace
from ticketforge.templates.renderer import RenderResult, TemplateRenderer
from ticketforge.templates.resolver import TemplateResolver
from ticketforge.templates.schemas import Template, TemplateInfo
from ticketforge.templates.store import TemplateStore

__all__ = [
    "DefaultPolicy",
    "RenderResult",
    "Template",
    "TemplateInfo",
    "TemplateRenderer",
    "TemplateResolver",
    "TemplateStore",
    "complete_namespace",
]
