"""LLM prompts for the three primary generation sub-steps.

Each builder returns the user message; TICKET_WRITER_PROMPT is the
shared system prompt. Context data is serialized as JSON and capped at
PROMPT_CONTEXT_CHARS so one oversized design cannot blow the budget.
"""

from __future__ import annotations

import json
from typing import Any

from ticketforge.analysis.schemas import Context, Subject
from ticketforge.constants import PROMPT_CONTEXT_CHARS
from ticketforge.templates.schemas import Template

TICKET_WRITER_PROMPT = """\
You are TicketForge's ticket writer. You turn design analysis into an \
implementation ticket that engineers pick up without opening the design file.

## Job To Be Done
Write one complete {platform} {document_type} document for the {tech_stack} \
stack. Your output is pasted into the tracker as-is.

## What You ALWAYS Do
- Include every required section as its own heading line, spelled exactly as \
given.
- Use concrete values from the provided data (names, colors, sizes, triggers).
- Write acceptance criteria as testable statements.
- Keep the formatting conventions of the platform ({platform}).

## What You NEVER Do
- Leave placeholders such as {{{{ field }}}}, TODO, TBD or "not found".
- Invent components, interactions or tokens that are not in the data.
- Wrap the document in code fences or add commentary before or after it.
"""


def _clip(data: Any) -> str:
    text = json.dumps(data, indent=2, sort_keys=True, default=str)
    if len(text) <= PROMPT_CONTEXT_CHARS:
        return text
    return text[:PROMPT_CONTEXT_CHARS] + "\n... (truncated)"


def _required(template: Template) -> str:
    fields = sorted(template.required_fields)
    if not fields:
        return "- Summary\n- Description"
    return "\n".join(f"- {f}" for f in fields)


def system_prompt(template: Template) -> str:
    return TICKET_WRITER_PROMPT.format(
        platform=template.platform or "generic",
        document_type=template.document_type or "component",
        tech_stack=template.tech_stack or "any",
    )


def template_guided_prompt(
    template: Template, namespace: dict[str, Any]
) -> str:
    """Full context plus the template skeleton the answer must follow."""
    return (
        "Fill in this document template using the design analysis below. "
        "Keep its section order and headings; replace every template "
        "expression with real content.\n\n"
        f"## Template ({template.resolution_path})\n"
        f"{template.body}\n\n"
        f"## Required sections\n{_required(template)}\n\n"
        f"## Design analysis\n{_clip(namespace)}\n"
    )


def context_summary_prompt(template: Template, context: Context) -> str:
    """Top-level summary only, no template structure."""
    return (
        "Write the document from this summary of the design analysis.\n\n"
        f"## Required sections\n{_required(template)}\n\n"
        f"## Analysis summary\n{_clip(context.summary())}\n"
    )


def raw_description_prompt(template: Template, subject: Subject) -> str:
    """Nothing but what the designer typed and selected."""
    name = subject.name or "the selected design"
    description = subject.description.strip() or "(no description provided)"
    page = f" on page {subject.page_name}" if subject.page_name else ""
    return (
        f"Write the document for {name}{page}.\n\n"
        f"## Required sections\n{_required(template)}\n\n"
        f"## Designer's description\n{description}\n"
    )
