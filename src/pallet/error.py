"""Parsing of the error declaration ``#[pallet::error]``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple, assert_never

from pydantic import BaseModel, ConfigDict

from pallet.helper import FrameInstanceUsageChecker, InstanceUsage, expect_keyword
from syntax.attrs import get_doc_literals
from syntax.errors import DeclarationError
from syntax.models import (
    Ident,
    ItemEnum,
    ItemImpl,
    ItemInvalid,
    ItemMod,
    ItemOther,
)

if TYPE_CHECKING:
    from pallet.helper import InstanceUsageChecker
    from syntax.models import Item, Variant

logger = logging.getLogger(__name__)

ERROR_KEYWORD = "Error"


class ErrorVariant(NamedTuple):
    ident: Ident
    docs: list[str]


class ErrorDef(BaseModel):
    """An error enum whose variants have neither fields nor discriminant."""

    model_config = ConfigDict(frozen=True)

    # Index of the error item within the pallet module.
    index: int
    variants: list[ErrorVariant]
    instances: list[InstanceUsage]
    marker_keyword: Ident


def _parse_error_variant(variant: Variant) -> ErrorVariant:
    if variant.fields.kind != "unit":
        msg = "Invalid pallet::error, unexpected fields, must be `Unit`"
        raise DeclarationError(msg, variant.fields.span or variant.span)

    if variant.discriminant is not None:
        msg = (
            "Invalid pallet::error, unexpected discriminant, "
            "discriminant not supported"
        )
        raise DeclarationError(msg, variant.discriminant.span)

    return ErrorVariant(variant.ident, get_doc_literals(variant.attrs))


def parse_error_def(
    index: int,
    item: Item,
    *,
    checker: InstanceUsageChecker | None = None,
) -> ErrorDef:
    """Validate a ``#[pallet::error]`` enum and build its ``ErrorDef``.

    ``index`` is the position of the item in its module, assigned by the
    caller.
    """
    match item:
        case ItemEnum():
            pass
        case ItemInvalid():
            raise DeclarationError(item.message, item.span)
        case ItemImpl() | ItemMod() | ItemOther():
            msg = "Invalid pallet::error, expected item enum"
            raise DeclarationError(msg, item.span)
        case _:
            assert_never(item)

    if item.vis != "pub":
        msg = f"Invalid pallet::error, `{ERROR_KEYWORD}` must be public"
        raise DeclarationError(msg, item.span)

    checker = checker or FrameInstanceUsageChecker()
    instances = [checker.check_type_def_generics(item.generics, item.span)]

    where_clause = item.generics.where_clause
    if where_clause is not None:
        msg = "Invalid pallet::error, unexpected where clause"
        raise DeclarationError(msg, where_clause.span)

    marker_keyword = expect_keyword(item.ident.name, item.ident.span, ERROR_KEYWORD)

    variants = [_parse_error_variant(variant) for variant in item.variants]

    logger.debug(
        "validated error declaration at %s with %d variants",
        item.span.path,
        len(variants),
    )
    return ErrorDef(
        index=index,
        variants=variants,
        instances=instances,
        marker_keyword=marker_keyword,
    )


__all__ = ["ErrorDef", "ErrorVariant", "parse_error_def"]
