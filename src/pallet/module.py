"""Scanning of Rust modules for pallet declarations.

Every module scope (the file root and each inline ``mod { .. }``) is searched
for items marked ``#[pallet::call]`` or ``#[pallet::error]``. The marker is
stripped, the item routed to its parser, and the instance usage collected
from all declarations of the scope is checked for consistency.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pallet.call import parse_call_def
from pallet.error import parse_error_def
from pallet.helper import FrameInstanceUsageChecker
from syntax.attrs import DEFAULT_NAMESPACE, take_item_attrs
from syntax.errors import DeclarationError
from syntax.lower import parse_source
from syntax.models import ItemMod

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from pallet.call import CallDef
    from pallet.error import ErrorDef
    from pallet.helper import InstanceUsage, InstanceUsageChecker
    from syntax.models import Attribute, Item, Span

logger = logging.getLogger(__name__)

ROOT_SCOPE = "crate"


@dataclass(frozen=True)
class PalletItemAttr:
    """Parse for an item marker ``#[pallet::<tag>]``."""

    tag: str
    span: Span

    @classmethod
    def parse(cls, attr: Attribute) -> PalletItemAttr:
        if len(attr.path) != 2:
            msg = f"expected `{attr.path[0]}::<tag>`, found `{attr.path_text}`"
            raise DeclarationError(msg, attr.span)
        return cls(tag=attr.path[1], span=attr.span)


@dataclass
class PalletScan:
    """Declarations found in one module scope."""

    path: str
    scope: str
    call: CallDef | None = None
    error: ErrorDef | None = None
    skipped: list[str] = field(default_factory=list)
    diagnostics: list[DeclarationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def is_empty(self) -> bool:
        return (
            self.call is None
            and self.error is None
            and not self.skipped
            and not self.diagnostics
        )

    @property
    def instances(self) -> list[InstanceUsage]:
        usages: list[InstanceUsage] = []
        if self.call is not None:
            usages.extend(self.call.instances)
        if self.error is not None:
            usages.extend(self.error.instances)
        return usages


def check_instance_consistency(instances: Sequence[InstanceUsage]) -> None:
    """Require every usage token of one module to agree on the instance."""
    if not instances:
        return

    expected = instances[0].has_instance
    for usage in instances[1:]:
        if usage.has_instance == expected:
            continue
        if expected:
            msg = (
                "Invalid generic declaration, other declarations are defined "
                "with instance but this one uses none"
            )
        else:
            msg = (
                "Invalid generic declaration, other declarations are defined "
                "without instance but this one uses some"
            )
        raise DeclarationError(msg, usage.span)


def _route_item(
    scan: PalletScan,
    index: int,
    item: Item,
    *,
    checker: InstanceUsageChecker,
    namespace: str,
) -> None:
    remaining, markers = take_item_attrs(item.attrs, PalletItemAttr, namespace=namespace)
    if not markers:
        return

    if len(markers) > 1:
        msg = "Invalid pallet item, expected a single pallet attribute"
        raise DeclarationError(msg, markers[1].span)

    marker = markers[0]
    item = item.model_copy(update={"attrs": remaining})

    if marker.tag == "call":
        if scan.call is not None:
            raise DeclarationError("Invalid duplicated attribute", marker.span)
        scan.call = parse_call_def(item, checker=checker, namespace=namespace)
    elif marker.tag == "error":
        if scan.error is not None:
            raise DeclarationError("Invalid duplicated attribute", marker.span)
        scan.error = parse_error_def(index, item, checker=checker)
    else:
        logger.debug("skipping `%s::%s` item at %s", namespace, marker.tag, item.span)
        scan.skipped.append(marker.tag)


def _scan_scope(
    items: Sequence[Item],
    *,
    path: str,
    scope: str,
    checker: InstanceUsageChecker,
    namespace: str,
    out_scans: list[PalletScan],
) -> None:
    scan = PalletScan(path=path, scope=scope)
    out_scans.append(scan)

    for index, item in enumerate(items):
        try:
            _route_item(scan, index, item, checker=checker, namespace=namespace)
        except DeclarationError as exc:
            scan.diagnostics.append(exc)

        if isinstance(item, ItemMod) and item.content is not None:
            _scan_scope(
                item.content,
                path=path,
                scope=f"{scope}::{item.ident.name}",
                checker=checker,
                namespace=namespace,
                out_scans=out_scans,
            )

    try:
        check_instance_consistency(scan.instances)
    except DeclarationError as exc:
        scan.diagnostics.append(exc)


def scan_source(
    source: str | bytes,
    path: str = "<input>",
    *,
    checker: InstanceUsageChecker | None = None,
    namespace: str = DEFAULT_NAMESPACE,
) -> list[PalletScan]:
    """Scan Rust source and return one ``PalletScan`` per non-empty scope.

    Scopes are listed in source order, a parent scope before its children.
    A failing declaration does not stop the scan of its siblings.
    """
    checker = checker or FrameInstanceUsageChecker()
    scans: list[PalletScan] = []
    _scan_scope(
        parse_source(source, path),
        path=path,
        scope=ROOT_SCOPE,
        checker=checker,
        namespace=namespace,
        out_scans=scans,
    )
    return [scan for scan in scans if not scan.is_empty]


def scan_file(
    file_path: Path,
    relative_path: str,
    *,
    checker: InstanceUsageChecker | None = None,
    namespace: str = DEFAULT_NAMESPACE,
) -> list[PalletScan]:
    """Scan a Rust file; unreadable files yield no scans."""
    try:
        source_bytes = file_path.read_bytes()
    except OSError as exc:
        logger.warning("failed to read %s: %s", file_path, exc)
        return []

    return scan_source(
        source_bytes, relative_path, checker=checker, namespace=namespace
    )


__all__ = [
    "PalletItemAttr",
    "PalletScan",
    "check_instance_consistency",
    "scan_file",
    "scan_source",
]
