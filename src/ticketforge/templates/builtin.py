"""Built-in minimal template: the resolution tier that always exists."""

from __future__ import annotations

from ticketforge.constants import BUILTIN_RESOLUTION_PATH, ResolutionTier
from ticketforge.templates.schemas import ResolutionKey, Template

BUILTIN_REQUIRED_FIELDS = frozenset({
    "Summary",
    "Description",
    "Acceptance Criteria",
})

BUILTIN_TITLE = "Implement {{ component.name }}"

BUILTIN_BODY = """\
## Summary
Implement {{ component.name }} for {{ request.tech_stack }} \
({{ request.document_type }} on {{ request.platform }}).

## Description
{{ component.description }}

## Technical Details
- Complexity: {{ metrics.complexity }} (score {{ metrics.complexity_score }})
- Priority: {{ metrics.priority }}
- Estimate: {{ metrics.story_points }} story points, about \
{{ metrics.estimated_hours }} hours
{% if design.colors %}
- Colors: {{ design.colors | join(", ") }}
{% endif %}
{% if design.typography %}
- Typography: {{ design.typography | join(", ") }}
{% endif %}

## Acceptance Criteria
{% for criterion in acceptance_criteria %}
- [ ] {{ criterion }}
{% endfor %}

## Resources
- Design file: {{ component.file_key }}
{% if component.page %}
- Page: {{ component.page }}
{% endif %}
"""


def builtin_template(key: ResolutionKey) -> Template:
    """The built-in template, labelled with the request it answered."""
    return Template(
        platform=key.platform,
        document_type=key.document_type,
        tech_stack=key.tech_stack,
        resolution_path=BUILTIN_RESOLUTION_PATH,
        tier=ResolutionTier.BUILTIN,
        body=BUILTIN_BODY,
        title=BUILTIN_TITLE,
        required_fields=BUILTIN_REQUIRED_FIELDS,
        name="builtin-minimal",
    )
