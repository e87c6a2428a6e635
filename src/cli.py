"""Command-line interface for palletcheck."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from artifacts.write import collect_scans, generate_all_artifacts
from contract.validation import validate_artifacts
from rules.config import ConfigError, load_config


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Repository root (default: .)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="palletcheck")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check", help="Validate pallet call and error declarations"
    )
    _add_common_paths(check_parser)

    generate_parser = subparsers.add_parser(
        "generate", help="Generate declaration metadata artifacts"
    )
    _add_common_paths(generate_parser)
    generate_parser.add_argument(
        "--out-dir",
        default=None,
        help="Output directory for generated artifacts (default: config output dir)",
    )

    validate_parser = subparsers.add_parser("validate", help="Validate artifacts")
    _add_common_paths(validate_parser)
    validate_parser.add_argument(
        "--artifacts-dir",
        default=None,
        help="Artifacts directory (default: config output dir)",
    )
    validate_parser.add_argument(
        "--strict-schema-version",
        action="store_true",
        help="Treat a missing schema_version as an error",
    )

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _handle_check(root: Path) -> int:
    config = load_config(root)
    scans = collect_scans(root, config)
    diagnostics = [d for scan in scans for d in scan.diagnostics]
    for diagnostic in diagnostics:
        sys.stderr.write(f"{diagnostic}\n")
    if diagnostics:
        return 1

    calls = sum(1 for scan in scans if scan.call is not None)
    errors = sum(1 for scan in scans if scan.error is not None)
    sys.stdout.write(f"ok: {calls} call and {errors} error declaration(s)\n")
    return 0


def _handle_generate(root: Path, out_dir: str | None) -> int:
    resolved_out_dir = None
    if out_dir is not None:
        resolved_out_dir = Path(out_dir).expanduser().resolve()
    summary = generate_all_artifacts(root=root, out_dir=resolved_out_dir)
    return 1 if summary["diagnostic_count"] else 0


def _handle_validate(
    root: Path, artifacts_dir: str | None, *, strict_schema_version: bool
) -> int:
    if artifacts_dir is None:
        resolved = (root / load_config(root).output_dir).resolve()
    else:
        resolved = Path(artifacts_dir).expanduser().resolve()

    result = validate_artifacts(resolved, strict_schema_version=strict_schema_version)
    for warning in result.warnings:
        sys.stderr.write(f"warning: {warning.location()}: {warning.message}\n")
    if result.errors:
        for error in result.errors:
            sys.stderr.write(f"{error.location()}: {error.message}\n")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    root = Path(args.root).expanduser().resolve()

    try:
        if args.command == "check":
            return _handle_check(root)

        if args.command == "generate":
            return _handle_generate(root, args.out_dir)

        if args.command == "validate":
            return _handle_validate(
                root,
                args.artifacts_dir,
                strict_schema_version=args.strict_schema_version,
            )
    except ConfigError as exc:
        sys.stderr.write(f"config error: {exc}\n")
        return 2

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
