from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from contract.artifacts import (
    ARTIFACT_SCHEMA_VERSION,
    ARTIFACT_SPECS,
    CALLS_JSONL,
    DIAGNOSTICS_JSONL,
    ERRORS_JSONL,
    normalize_expr,
)
from contract.validation import (
    ValidationMessage,
    ValidationResult,
    _jsonl_model_for_artifact,
    validate_artifacts,
)

_SPAN = {
    "path": "src/lib.rs",
    "start_line": 3,
    "start_col": 5,
    "end_line": 9,
    "end_col": 6,
}


def _call_record(**overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "schema_version": ARTIFACT_SCHEMA_VERSION,
        "path": "src/lib.rs",
        "scope": "crate::pallet",
        "src_span": _SPAN,
        "has_instance": False,
        "methods": [
            {
                "index": 0,
                "name": "transfer",
                "args": [{"name": "amount", "type": "Balance", "compact": True}],
                "weight": "10_000",
                "docs": [" Transfer."],
            },
        ],
    }
    record.update(overrides)
    return record


def _error_record(**overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "schema_version": ARTIFACT_SCHEMA_VERSION,
        "path": "src/lib.rs",
        "scope": "crate::pallet",
        "index": 4,
        "src_span": _SPAN,
        "has_instance": False,
        "variants": [{"index": 0, "name": "InsufficientBalance", "docs": []}],
    }
    record.update(overrides)
    return record


def _write_jsonl(path: Path, *records: dict[str, Any]) -> None:
    path.write_text(
        "".join(json.dumps(record) + "\n" for record in records), encoding="utf-8"
    )


def _write_valid_artifacts(d: Path) -> None:
    """Write minimal valid metadata artifacts to directory d."""
    d.mkdir(parents=True, exist_ok=True)
    _write_jsonl(d / CALLS_JSONL, _call_record())
    _write_jsonl(d / ERRORS_JSONL, _error_record())
    (d / DIAGNOSTICS_JSONL).write_text("", encoding="utf-8")


def _messages_contain(messages: list[ValidationMessage], needle: str) -> bool:
    """Return True when any validation message contains the given substring."""
    return any(needle in message.message for message in messages)


# Group 1: Data class tests


def test_validation_message_location_with_line() -> None:
    msg = ValidationMessage("calls", Path("x.jsonl"), "bad", line=7)
    assert msg.location() == "x.jsonl:7"


def test_validation_message_location_without_line() -> None:
    msg = ValidationMessage("calls", Path("x.jsonl"), "bad")
    assert msg.location() == "x.jsonl"


def test_validation_message_to_dict() -> None:
    msg = ValidationMessage("errors", Path("x.jsonl"), "bad", line=3)
    assert msg.to_dict() == {
        "artifact": "errors",
        "path": "x.jsonl",
        "line": 3,
        "message": "bad",
    }


def test_validation_result_ok() -> None:
    assert ValidationResult().ok is True
    assert ValidationResult(errors=[ValidationMessage("x", Path("a"), "boom")]).ok is False


def test_unknown_artifact_model_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown jsonl artifact"):
        _jsonl_model_for_artifact("symbols")


def test_normalize_expr_collapses_whitespace() -> None:
    assert normalize_expr("  T::DbWeight::get()\n        .reads(1)  ") == (
        "T::DbWeight::get() .reads(1)"
    )


# Group 2: Directory handling


def test_missing_directory() -> None:
    result = validate_artifacts(Path("/nonexistent"))
    assert result.ok is False
    assert _messages_contain(result.errors, "Artifacts directory does not exist")


def test_not_a_directory(tmp_path: Path) -> None:
    file_path = tmp_path / "not-a-dir"
    file_path.write_text("x", encoding="utf-8")

    result = validate_artifacts(file_path)

    assert result.ok is False
    assert _messages_contain(result.errors, "Artifacts path is not a directory")


def test_missing_artifact_files(tmp_path: Path) -> None:
    """Each required artifact is reported when the directory is empty."""
    artifacts_dir = tmp_path / "artifacts"
    artifacts_dir.mkdir()

    result = validate_artifacts(artifacts_dir)

    assert result.ok is False
    assert len(result.errors) == len(ARTIFACT_SPECS)
    assert all("Required artifact file is missing" in m.message for m in result.errors)


# Group 3: Happy path


def test_valid_artifacts_pass(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)

    result = validate_artifacts(artifacts_dir)

    assert result.ok is True
    assert result.errors == []
    assert result.warnings == []


def test_diagnostic_record_accepted(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    _write_jsonl(
        artifacts_dir / DIAGNOSTICS_JSONL,
        {
            "schema_version": ARTIFACT_SCHEMA_VERSION,
            "path": "src/lib.rs",
            "scope": "crate",
            "message": "Invalid pallet::error, expected item enum",
            "src_span": _SPAN,
        },
    )

    assert validate_artifacts(artifacts_dir).ok is True


# Group 4: JSONL validation


def test_jsonl_invalid_json(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    (artifacts_dir / CALLS_JSONL).write_text("{not-json}\n", encoding="utf-8")

    result = validate_artifacts(artifacts_dir)

    assert result.ok is False
    assert _messages_contain(result.errors, "Invalid JSON")
    assert result.errors[0].line == 1


def test_jsonl_pydantic_failure(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    _write_jsonl(
        artifacts_dir / ERRORS_JSONL, {"schema_version": ARTIFACT_SCHEMA_VERSION}
    )

    result = validate_artifacts(artifacts_dir)

    assert result.ok is False
    assert _messages_contain(result.errors, "Schema validation failed")


@pytest.mark.parametrize(
    ("filename", "record"),
    [
        (
            CALLS_JSONL,
            _call_record(
                methods=[
                    {"index": 1, "name": "a", "weight": "0"},
                    {"index": 0, "name": "b", "weight": "0"},
                ]
            ),
        ),
        (
            ERRORS_JSONL,
            _error_record(variants=[{"index": 0, "name": "A"}, {"index": 2, "name": "B"}]),
        ),
    ],
)
def test_jsonl_non_contiguous_indices(
    tmp_path: Path, filename: str, record: dict[str, Any]
) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    _write_jsonl(artifacts_dir / filename, record)

    result = validate_artifacts(artifacts_dir)

    assert result.ok is False
    assert _messages_contain(result.errors, "Non-contiguous")


def test_jsonl_missing_schema_version_lenient(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    record = _call_record()
    del record["schema_version"]
    _write_jsonl(artifacts_dir / CALLS_JSONL, record)

    result = validate_artifacts(artifacts_dir)

    assert result.ok is True
    assert _messages_contain(result.warnings, "Missing schema_version")


def test_jsonl_missing_schema_version_strict(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    record = _error_record()
    del record["schema_version"]
    _write_jsonl(artifacts_dir / ERRORS_JSONL, record)

    result = validate_artifacts(artifacts_dir, strict_schema_version=True)

    assert result.ok is False
    assert _messages_contain(result.errors, "Missing schema_version")


def test_jsonl_wrong_schema_version(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    _write_jsonl(artifacts_dir / CALLS_JSONL, _call_record(schema_version=999))

    result = validate_artifacts(artifacts_dir)

    assert result.ok is False
    assert _messages_contain(result.errors, "Schema version mismatch")


def test_jsonl_os_error(tmp_path: Path) -> None:
    """A read failure is surfaced as a validation error."""
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    target = artifacts_dir / CALLS_JSONL
    original_read_bytes = Path.read_bytes

    def _patched_read_bytes(self: Path) -> bytes:
        if self == target:
            raise OSError("boom")
        return original_read_bytes(self)

    with patch.object(Path, "read_bytes", _patched_read_bytes):
        result = validate_artifacts(artifacts_dir)

    assert result.ok is False
    assert _messages_contain(result.errors, "Failed to read file")


def test_jsonl_schema_dedup(tmp_path: Path) -> None:
    """Missing schema_version warning is emitted once per JSONL file."""
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    record = _error_record()
    del record["schema_version"]
    _write_jsonl(artifacts_dir / ERRORS_JSONL, record, record)

    result = validate_artifacts(artifacts_dir)

    warnings = [m for m in result.warnings if m.artifact == "errors"]
    assert len(warnings) == 1
    assert "Missing schema_version" in warnings[0].message


def test_jsonl_empty_lines_skipped(tmp_path: Path) -> None:
    artifacts_dir = tmp_path / "artifacts"
    _write_valid_artifacts(artifacts_dir)
    (artifacts_dir / CALLS_JSONL).write_text(
        "\n\n" + json.dumps(_call_record()) + "\n\n", encoding="utf-8"
    )

    result = validate_artifacts(artifacts_dir)

    assert result.ok is True
