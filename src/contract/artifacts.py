"""Metadata artifact contract definitions.

This module defines the stable boundary between declaration validation and
downstream code generation: artifact filenames, formats and schema version.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Schema version for declaration metadata artifacts.
ARTIFACT_SCHEMA_VERSION = 1

# Artifact filename constants (stable contract identifiers).
CALLS_JSONL = "calls.jsonl"
ERRORS_JSONL = "errors.jsonl"
DIAGNOSTICS_JSONL = "diagnostics.jsonl"


@dataclass(frozen=True)
class ArtifactSpec:
    """Specification for a metadata artifact."""

    filename: str
    format: str
    required_fields_note: str


_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_expr(raw_expr: str) -> str:
    """Normalize an expression or type string for metadata output.

    Rules:
    - Strip leading/trailing whitespace.
    - Collapse internal whitespace runs to a single space.
    """
    return _WHITESPACE_RUN.sub(" ", raw_expr.strip())


ARTIFACT_SPECS: dict[str, ArtifactSpec] = {
    "calls": ArtifactSpec(
        filename=CALLS_JSONL,
        format="jsonl",
        required_fields_note="CallMetadataRecord fields required by contract.",
    ),
    "errors": ArtifactSpec(
        filename=ERRORS_JSONL,
        format="jsonl",
        required_fields_note="ErrorMetadataRecord fields required by contract.",
    ),
    "diagnostics": ArtifactSpec(
        filename=DIAGNOSTICS_JSONL,
        format="jsonl",
        required_fields_note="DiagnosticRecord fields required by contract.",
    ),
}
