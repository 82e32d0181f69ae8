"""Design payload ingestion: RawInput models and fingerprinting."""

from ticketforge.ingestion.fingerprint import compute_fingerprint
from ticketforge.ingestion.schemas import (
    DesignNode,
    RawInput,
    Selection,
    StyleDefinition,
)

__all__ = [
    "DesignNode",
    "RawInput",
    "Selection",
    "StyleDefinition",
    "compute_fingerprint",
]
