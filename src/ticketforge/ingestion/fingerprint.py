"""Deterministic content fingerprint for RawInput."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from ticketforge.ingestion.schemas import RawInput


def semantic_payload(raw: RawInput) -> dict[str, Any]:
    """Fields that change what the analyzers see.

    The screenshot reference, file name and capture time are left out:
    two captures of the same selection must share a fingerprint.
    """
    return {
        "file_key": raw.file_key,
        "nodes": [node.model_dump(mode="json") for node in raw.nodes],
        "styles": {
            key: style.model_dump(mode="json")
            for key, style in raw.styles.items()
        },
        "selection": {
            "selected_ids": list(raw.selection.selected_ids),
            "component_name": raw.selection.component_name,
            "description": raw.selection.description,
        },
        "description": raw.description,
    }


def compute_fingerprint(raw: RawInput) -> str:
    """SHA-256 over the canonical JSON of the semantic payload."""
    canonical = json.dumps(
        semantic_payload(raw),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
