from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from artifacts.builders import (
    build_call_record,
    build_diagnostic_record,
    build_error_record,
)
from artifacts.utils import _get_output_dir_name, _write_jsonl
from contract.artifacts import CALLS_JSONL, DIAGNOSTICS_JSONL, ERRORS_JSONL
from pallet.module import scan_file
from rules.config import load_config, resolve_output_dir
from scan.files import find_rust_files

if TYPE_CHECKING:
    from pathlib import Path

    from contract.models import (
        CallMetadataRecord,
        DiagnosticRecord,
        ErrorMetadataRecord,
    )
    from pallet.module import PalletScan
    from rules.config import PalletCheckConfig

logger = logging.getLogger(__name__)


def collect_scans(
    root: Path,
    config: PalletCheckConfig,
    *,
    out_dir_name: str | None = None,
) -> list[PalletScan]:
    """Scan every Rust file under ``root`` for pallet declarations.

    Files are visited in sorted relative-path order, so the result is
    deterministic.
    """
    checker = config.instance_checker()
    scans: list[PalletScan] = []

    for file_path in find_rust_files(
        root,
        output_dir=config.output_dir if out_dir_name is None else out_dir_name,
        include_patterns=config.include,
        exclude_patterns=config.exclude,
        nested_gitignore=config.nested_gitignore,
    ):
        relative_path = file_path.relative_to(root).as_posix()
        file_scans = scan_file(
            file_path,
            relative_path,
            checker=checker,
            namespace=config.marker_namespace,
        )
        logger.debug("%s: %d pallet scope(s)", relative_path, len(file_scans))
        scans.extend(file_scans)

    return scans


def generate_all_artifacts(
    *,
    root: Path,
    out_dir: Path | None = None,
    config: PalletCheckConfig | None = None,
) -> dict[str, object]:
    """Generate declaration metadata artifacts for a repository.

    Args:
        root: Root directory of the repository to analyze
        out_dir: Optional output directory for generated artifacts
        config: Optional configuration (loaded from ``root`` when omitted)

    Returns:
        Dictionary with counts and list of generated artifact paths.
    """
    if config is None:
        config = load_config(root)

    if out_dir is None:
        out_dir = resolve_output_dir(root, config.output_dir)

    out_dir.mkdir(parents=True, exist_ok=True)

    scans = collect_scans(
        root, config, out_dir_name=_get_output_dir_name(out_dir, root)
    )

    calls: list[CallMetadataRecord] = []
    errors: list[ErrorMetadataRecord] = []
    diagnostics: list[DiagnosticRecord] = []
    for scan in scans:
        if scan.call is not None:
            calls.append(build_call_record(scan, scan.call))
        if scan.error is not None:
            errors.append(build_error_record(scan, scan.error))
        diagnostics.extend(build_diagnostic_record(scan, d) for d in scan.diagnostics)

    diagnostics.sort(
        key=lambda d: (d.path, d.src_span.start_line, d.src_span.start_col)
    )

    _write_jsonl(out_dir / CALLS_JSONL, calls)
    _write_jsonl(out_dir / ERRORS_JSONL, errors)
    _write_jsonl(out_dir / DIAGNOSTICS_JSONL, diagnostics)

    logger.info(
        "wrote %d call, %d error and %d diagnostic record(s) to %s",
        len(calls),
        len(errors),
        len(diagnostics),
        out_dir,
    )

    return {
        "call_count": len(calls),
        "error_count": len(errors),
        "diagnostic_count": len(diagnostics),
        "artifacts": [
            str(out_dir / name) for name in (CALLS_JSONL, ERRORS_JSONL, DIAGNOSTICS_JSONL)
        ],
    }
