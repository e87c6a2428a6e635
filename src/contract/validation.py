"""Validation helpers for declaration metadata artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import orjson
from pydantic import ValidationError

from contract.artifacts import ARTIFACT_SCHEMA_VERSION, ARTIFACT_SPECS
from contract.models import CallMetadataRecord, DiagnosticRecord, ErrorMetadataRecord

if TYPE_CHECKING:
    from pathlib import Path


class _SchemaModel(Protocol):
    schema_version: int

    @classmethod
    def model_validate(cls, obj: Any) -> _SchemaModel: ...


@dataclass(frozen=True)
class ValidationMessage:
    artifact: str
    path: Path
    message: str
    line: int | None = None

    def location(self) -> str:
        if self.line is None:
            return str(self.path)
        return f"{self.path}:{self.line}"

    def to_dict(self) -> dict[str, object]:
        return {
            "artifact": self.artifact,
            "path": str(self.path),
            "line": self.line,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


_MODELS: dict[str, type[_SchemaModel]] = {
    "calls": CallMetadataRecord,
    "errors": ErrorMetadataRecord,
    "diagnostics": DiagnosticRecord,
}


def validate_artifacts(
    artifacts_dir: Path, *, strict_schema_version: bool = False
) -> ValidationResult:
    """Check every metadata artifact in ``artifacts_dir`` against its model."""
    result = ValidationResult()

    if not artifacts_dir.exists():
        result.errors.append(
            ValidationMessage(
                artifact="artifacts_dir",
                path=artifacts_dir,
                message="Artifacts directory does not exist.",
            )
        )
        return result

    if not artifacts_dir.is_dir():
        result.errors.append(
            ValidationMessage(
                artifact="artifacts_dir",
                path=artifacts_dir,
                message="Artifacts path is not a directory.",
            )
        )
        return result

    for artifact_name, spec in ARTIFACT_SPECS.items():
        path = artifacts_dir / spec.filename
        if not path.exists():
            result.errors.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    message="Required artifact file is missing.",
                )
            )
            continue

        if spec.format != "jsonl":
            result.errors.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    message=f"Unsupported artifact format: {spec.format}.",
                )
            )
            continue

        _validate_jsonl(
            artifact_name,
            path,
            _jsonl_model_for_artifact(artifact_name),
            result,
            strict_schema_version=strict_schema_version,
        )

    return result


def _jsonl_model_for_artifact(artifact_name: str) -> type[_SchemaModel]:
    try:
        return _MODELS[artifact_name]
    except KeyError:
        msg = f"Unknown jsonl artifact: {artifact_name}"
        raise ValueError(msg) from None


def _index_problem(record: _SchemaModel) -> str | None:
    """Return why the dispatch/variant indices of a record are not 0..n-1."""
    if isinstance(record, CallMetadataRecord):
        label, indices = "method", [m.index for m in record.methods]
    elif isinstance(record, ErrorMetadataRecord):
        label, indices = "variant", [v.index for v in record.variants]
    else:
        return None

    if indices != list(range(len(indices))):
        return f"Non-contiguous {label} indices: {indices}."
    return None


def _validate_jsonl(
    artifact_name: str,
    path: Path,
    model: type[_SchemaModel],
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> None:
    def report(message: str, line: int) -> None:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name, path=path, line=line, message=message
            )
        )

    try:
        raw_lines = path.read_bytes().splitlines()
    except OSError as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Failed to read file: {exc}.",
            )
        )
        return

    schema_reported = False
    for line_number, raw_line in enumerate(raw_lines, 1):
        line = raw_line.strip()
        if not line:
            continue
        try:
            data = orjson.loads(line)
        except orjson.JSONDecodeError as exc:
            report(f"Invalid JSON: {exc}.", line_number)
            continue

        try:
            record = model.model_validate(data)
        except ValidationError as exc:
            report(f"Schema validation failed: {exc}.", line_number)
            continue

        problem = _index_problem(record)
        if problem is not None:
            report(problem, line_number)

        if not schema_reported:
            schema_present = isinstance(data, dict) and "schema_version" in data
            schema_reported = _check_schema_version(
                artifact_name,
                path,
                line_number,
                schema_present,
                record.schema_version,
                result,
                strict_schema_version=strict_schema_version,
            )


def _check_schema_version(
    artifact_name: str,
    path: Path,
    line: int | None,
    schema_present: bool,
    schema_version: int,
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> bool:
    """Record a schema version problem; return True when one was recorded."""
    if schema_present and schema_version == ARTIFACT_SCHEMA_VERSION:
        return False

    if schema_present:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                line=line,
                message=(
                    "Schema version mismatch: "
                    f"expected {ARTIFACT_SCHEMA_VERSION}, got {schema_version}."
                ),
            )
        )
        return True

    message = ValidationMessage(
        artifact=artifact_name,
        path=path,
        line=line,
        message=f"Missing schema_version; defaulted to {ARTIFACT_SCHEMA_VERSION}.",
    )
    if strict_schema_version:
        result.errors.append(message)
    else:
        result.warnings.append(message)
    return True


__all__ = [
    "ValidationMessage",
    "ValidationResult",
    "validate_artifacts",
]
