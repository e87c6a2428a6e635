"""Metadata record models exposed to downstream code generation."""

from __future__ import annotations

from pydantic import BaseModel, Field

from contract.artifacts import ARTIFACT_SCHEMA_VERSION


class SourceSpan(BaseModel):
    """Source span of a declaration or diagnostic."""

    path: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int


class CallArgRecord(BaseModel):
    name: str
    type: str
    compact: bool


class CallMethodRecord(BaseModel):
    """One dispatchable; ``index`` is its stable dispatch index."""

    index: int
    name: str
    args: list[CallArgRecord] = Field(default_factory=list)
    weight: str
    docs: list[str] = Field(default_factory=list)


class CallMetadataRecord(BaseModel):
    """Schema for calls.jsonl records."""

    schema_version: int = Field(default=ARTIFACT_SCHEMA_VERSION)
    path: str
    scope: str
    src_span: SourceSpan
    has_instance: bool
    methods: list[CallMethodRecord] = Field(default_factory=list)


class ErrorVariantRecord(BaseModel):
    index: int
    name: str
    docs: list[str] = Field(default_factory=list)


class ErrorMetadataRecord(BaseModel):
    """Schema for errors.jsonl records."""

    schema_version: int = Field(default=ARTIFACT_SCHEMA_VERSION)
    path: str
    scope: str
    index: int
    src_span: SourceSpan
    has_instance: bool
    variants: list[ErrorVariantRecord] = Field(default_factory=list)


class DiagnosticRecord(BaseModel):
    """Schema for diagnostics.jsonl records."""

    schema_version: int = Field(default=ARTIFACT_SCHEMA_VERSION)
    path: str
    scope: str
    message: str
    src_span: SourceSpan


__all__ = [
    "CallArgRecord",
    "CallMetadataRecord",
    "CallMethodRecord",
    "DiagnosticRecord",
    "ErrorMetadataRecord",
    "ErrorVariantRecord",
    "SourceSpan",
]
