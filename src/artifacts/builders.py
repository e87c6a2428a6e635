"""Builders turning validated declarations into metadata records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.artifacts import normalize_expr
from contract.models import (
    CallArgRecord,
    CallMetadataRecord,
    CallMethodRecord,
    DiagnosticRecord,
    ErrorMetadataRecord,
    ErrorVariantRecord,
    SourceSpan,
)

if TYPE_CHECKING:
    from pallet.call import CallDef
    from pallet.error import ErrorDef
    from pallet.module import PalletScan
    from syntax.errors import DeclarationError
    from syntax.models import Span


def _source_span(span: Span) -> SourceSpan:
    return SourceSpan(
        path=span.path,
        start_line=span.start_line,
        start_col=span.start_col,
        end_line=span.end_line,
        end_col=span.end_col,
    )


def build_call_record(scan: PalletScan, call: CallDef) -> CallMetadataRecord:
    """Flatten a ``CallDef``; method order becomes the dispatch index."""
    methods = [
        CallMethodRecord(
            index=index,
            name=method.name.name,
            args=[
                CallArgRecord(
                    name=arg.name.name,
                    type=normalize_expr(arg.ty.text),
                    compact=arg.is_compact,
                )
                for arg in method.args
            ],
            weight=normalize_expr(method.weight.text),
            docs=method.docs,
        )
        for index, method in enumerate(call.methods)
    ]
    return CallMetadataRecord(
        path=scan.path,
        scope=scan.scope,
        src_span=_source_span(call.item.span),
        has_instance=any(usage.has_instance for usage in call.instances),
        methods=methods,
    )


def build_error_record(scan: PalletScan, error: ErrorDef) -> ErrorMetadataRecord:
    variants = [
        ErrorVariantRecord(index=index, name=variant.ident.name, docs=variant.docs)
        for index, variant in enumerate(error.variants)
    ]
    return ErrorMetadataRecord(
        path=scan.path,
        scope=scan.scope,
        index=error.index,
        src_span=_source_span(error.marker_keyword.span),
        has_instance=any(usage.has_instance for usage in error.instances),
        variants=variants,
    )


def build_diagnostic_record(
    scan: PalletScan, diagnostic: DeclarationError
) -> DiagnosticRecord:
    return DiagnosticRecord(
        path=scan.path,
        scope=scan.scope,
        message=diagnostic.message,
        src_span=_source_span(diagnostic.span),
    )


__all__ = ["build_call_record", "build_diagnostic_record", "build_error_record"]
