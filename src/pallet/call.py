"""Parsing of the dispatchable declaration ``#[pallet::call]``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, assert_never

from pydantic import BaseModel, ConfigDict

from pallet.helper import (
    FrameInstanceUsageChecker,
    InstanceUsage,
    check_dispatchable_first_arg,
    expect_keyword,
)
from syntax.attrs import (
    DEFAULT_NAMESPACE,
    expect_marker_tag,
    get_doc_literals,
    take_item_attrs,
)
from syntax.errors import DeclarationError
from syntax.models import (
    Attribute,
    Expr,
    Ident,
    ImplItemMethod,
    ImplItemOther,
    ItemEnum,
    ItemImpl,
    ItemInvalid,
    ItemMod,
    ItemOther,
    PatIdent,
    PatOther,
    PatType,
    Receiver,
    Type,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from pallet.helper import InstanceUsageChecker
    from syntax.models import FnArg, ImplItem, Item

logger = logging.getLogger(__name__)

CALL_KEYWORD = "Call"
RETURN_TYPE_KEYWORD = "DispatchResultWithPostInfo"


class CallArg(NamedTuple):
    """One dispatchable argument: ``(is_compact, name, type)``."""

    is_compact: bool
    name: Ident
    ty: Type


class CallVariantDef(BaseModel):
    """Definition of a dispatchable, typically
    ``#[pallet::weight = ..] fn foo(origin: OriginFor<T>, param1: ..) -> ..``.
    """

    model_config = ConfigDict(frozen=True)

    name: Ident
    args: list[CallArg]
    weight: Expr
    docs: list[str]


class CallDef(BaseModel):
    """Definition of dispatchables, typically
    ``impl<T: Config> Call for Module<T> { .. }``.
    """

    model_config = ConfigDict(frozen=True)

    # Instance usage of the impl generics then of the self type, to be
    # checked for consistency by the caller.
    instances: list[InstanceUsage]
    item: ItemImpl
    methods: list[CallVariantDef]
    marker_keyword: Ident


@dataclass(frozen=True)
class FunctionAttr:
    """Parse for ``#[pallet::weight = expr]``."""

    weight: Expr

    @classmethod
    def parse(cls, attr: Attribute) -> FunctionAttr:
        expect_marker_tag(attr, "weight")
        if attr.style != "name_value" or attr.value is None:
            msg = f"expected `=` after `{attr.path_text}`"
            raise DeclarationError(msg, attr.span)
        return cls(weight=attr.value)


@dataclass(frozen=True)
class ArgAttrIsCompact:
    """Parse for ``#[pallet::compact]``."""

    @classmethod
    def parse(cls, attr: Attribute) -> ArgAttrIsCompact:
        expect_marker_tag(attr, "compact")
        if attr.style != "path":
            msg = f"unexpected token after `{attr.path_text}`"
            raise DeclarationError(msg, attr.span)
        return cls()


def _parse_call_arg(arg: FnArg, namespace: str) -> tuple[PatType, CallArg]:
    match arg:
        case Receiver():
            msg = "Invalid pallet::call, argument must be identifier"
            raise DeclarationError(msg, arg.span)
        case PatType():
            remaining, arg_attrs = take_item_attrs(
                arg.attrs, ArgAttrIsCompact, namespace=namespace
            )
            if len(arg_attrs) > 1:
                msg = "Invalid pallet::call, argument has too many attributes"
                raise DeclarationError(msg, arg.span)

            match arg.pat:
                case PatIdent():
                    ident = arg.pat.ident
                case PatOther():
                    msg = "Invalid pallet::call, argument must be identifier"
                    raise DeclarationError(msg, arg.pat.span)
                case _:
                    assert_never(arg.pat)

            stripped = arg.model_copy(update={"attrs": remaining})
            return stripped, CallArg(bool(arg_attrs), ident, arg.ty)
        case _:
            assert_never(arg)


def _parse_call_variant(
    method: ImplItemMethod,
    first_arg_check: Callable[[FnArg], None],
    namespace: str,
) -> tuple[ImplItemMethod, CallVariantDef]:
    sig = method.sig
    if not sig.inputs:
        msg = "Invalid pallet::call, must have at least an origin argument"
        raise DeclarationError(msg, sig.inputs_span)
    first_arg_check(sig.inputs[0])

    if sig.output is None:
        msg = f"Invalid pallet::call, requires return type {RETURN_TYPE_KEYWORD}"
        raise DeclarationError(msg, sig.span)
    expect_keyword(sig.output.text, sig.output.span, RETURN_TYPE_KEYWORD)

    attrs, weight_attrs = take_item_attrs(
        method.attrs, FunctionAttr, namespace=namespace
    )
    if len(weight_attrs) != 1:
        if not weight_attrs:
            msg = (
                "Invalid pallet::call, requires a weight attribute i.e. "
                f"`#[{namespace}::weight = ..]`"
            )
        else:
            msg = "Invalid pallet::call, too many weight attributes given"
        raise DeclarationError(msg, sig.span)

    inputs: list[FnArg] = [sig.inputs[0]]
    args: list[CallArg] = []
    for arg in sig.inputs[1:]:
        stripped, call_arg = _parse_call_arg(arg, namespace)
        inputs.append(stripped)
        args.append(call_arg)

    variant = CallVariantDef(
        name=sig.ident,
        args=args,
        weight=weight_attrs[0].weight,
        docs=get_doc_literals(attrs),
    )
    stripped_method = method.model_copy(
        update={"attrs": attrs, "sig": sig.model_copy(update={"inputs": inputs})}
    )
    return stripped_method, variant


def parse_call_def(
    item: Item,
    *,
    checker: InstanceUsageChecker | None = None,
    first_arg_check: Callable[[FnArg], None] = check_dispatchable_first_arg,
    namespace: str = DEFAULT_NAMESPACE,
) -> CallDef:
    """Validate a ``#[pallet::call]`` impl block and build its ``CallDef``.

    Raises ``DeclarationError`` on the first malformed part; nothing partial
    is returned. Marker attributes are stripped from the ``item`` kept in the
    result.
    """
    match item:
        case ItemImpl():
            pass
        case ItemInvalid():
            raise DeclarationError(item.message, item.span)
        case ItemEnum() | ItemMod() | ItemOther():
            msg = "Invalid pallet::call, expected implementation block"
            raise DeclarationError(msg, item.span)
        case _:
            assert_never(item)

    checker = checker or FrameInstanceUsageChecker()
    instances = [
        checker.check_impl_generics(item.generics, item.impl_span),
        checker.check_module_usage(item.self_ty),
    ]

    if item.trait_ is None:
        msg = (
            f"Invalid pallet::call, expected `{CALL_KEYWORD}` trait reference as in "
            f"`impl<..> {CALL_KEYWORD} for Module<..> {{ .. }}`"
        )
        raise DeclarationError(msg, item.span)
    marker_keyword = expect_keyword(item.trait_.text, item.trait_.span, CALL_KEYWORD)

    members: list[ImplItem] = []
    methods: list[CallVariantDef] = []
    for member in item.items:
        match member:
            case ImplItemMethod():
                stripped, variant = _parse_call_variant(
                    member, first_arg_check, namespace
                )
                members.append(stripped)
                methods.append(variant)
            case ImplItemOther():
                msg = "Invalid pallet::call, only methods accepted"
                raise DeclarationError(msg, member.span)
            case _:
                assert_never(member)

    logger.debug(
        "validated call declaration at %s with %d dispatchables",
        item.span.path,
        len(methods),
    )
    return CallDef(
        instances=instances,
        item=item.model_copy(update={"items": members}),
        methods=methods,
        marker_keyword=marker_keyword,
    )


__all__ = [
    "ArgAttrIsCompact",
    "CallArg",
    "CallDef",
    "CallVariantDef",
    "FunctionAttr",
    "parse_call_def",
]
