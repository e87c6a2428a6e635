"""Stable metadata contract surface for palletcheck.

This module exposes the artifact names, record models and validation entry
point that downstream code generation depends on.
"""

from contract.artifacts import (
    ARTIFACT_SCHEMA_VERSION,
    ARTIFACT_SPECS,
    CALLS_JSONL,
    DIAGNOSTICS_JSONL,
    ERRORS_JSONL,
    ArtifactSpec,
)


def __getattr__(name: str) -> object:
    if name in {"CallMetadataRecord", "DiagnosticRecord", "ErrorMetadataRecord"}:
        from contract.models import (
            CallMetadataRecord,
            DiagnosticRecord,
            ErrorMetadataRecord,
        )

        return {
            "CallMetadataRecord": CallMetadataRecord,
            "DiagnosticRecord": DiagnosticRecord,
            "ErrorMetadataRecord": ErrorMetadataRecord,
        }[name]

    if name in {"ValidationMessage", "ValidationResult", "validate_artifacts"}:
        from contract.validation import (
            ValidationMessage,
            ValidationResult,
            validate_artifacts,
        )

        return {
            "ValidationMessage": ValidationMessage,
            "ValidationResult": ValidationResult,
            "validate_artifacts": validate_artifacts,
        }[name]

    msg = f"module 'contract' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ARTIFACT_SCHEMA_VERSION",
    "ARTIFACT_SPECS",
    "CALLS_JSONL",
    "DIAGNOSTICS_JSONL",
    "ERRORS_JSONL",
    "ArtifactSpec",
    "CallMetadataRecord",
    "DiagnosticRecord",
    "ErrorMetadataRecord",
    "ValidationMessage",
    "ValidationResult",
    "validate_artifacts",
]
