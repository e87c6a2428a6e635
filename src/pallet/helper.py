"""Shared checks for pallet declarations: instance usage and origin argument.

The declaration parsers only collect ``InstanceUsage`` tokens; reconciling
them across one pallet module is left to the module scanner.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict

from syntax.errors import DeclarationError
from syntax.models import Ident, Receiver, Span

if TYPE_CHECKING:
    from syntax.models import FnArg, GenericParam, Generics, Type

DEFAULT_CONFIG_TRAIT = "Config"
DEFAULT_MODULE_TYPE = "Module"
ORIGIN_TYPE = "OriginFor<T>"


class InstanceUsage(BaseModel):
    """Whether a declaration uses the instance generic ``I``."""

    model_config = ConfigDict(frozen=True)

    has_instance: bool
    span: Span


class InstanceUsageChecker(Protocol):
    def check_impl_generics(self, generics: Generics, span: Span) -> InstanceUsage: ...

    def check_module_usage(self, self_ty: Type) -> InstanceUsage: ...

    def check_type_def_generics(
        self, generics: Generics, span: Span
    ) -> InstanceUsage: ...


def _compact(text: str) -> str:
    return "".join(text.split())


def _is_type_param(
    param: GenericParam,
    name: str,
    bounds: tuple[list[str], ...],
    defaults: tuple[str | None, ...] = (None,),
) -> bool:
    return (
        param.kind == "type"
        and param.name == name
        and param.bounds in bounds
        and param.default in defaults
    )


class FrameInstanceUsageChecker:
    """Instance usage rules of FRAME pallets.

    * impl generics: ``T: Config`` or ``T: Config<I>, I: 'static``
    * self type: ``Module<T>`` or ``Module<T, I>``
    * type definitions: ``T`` or ``T: Config`` without instance, or a second
      ``I`` parameter optionally bounded by ``'static`` and defaulted to ``()``
    """

    def __init__(
        self,
        *,
        config_trait: str = DEFAULT_CONFIG_TRAIT,
        module_type: str = DEFAULT_MODULE_TYPE,
    ) -> None:
        self.config_trait = config_trait
        self.module_type = module_type

    def check_impl_generics(self, generics: Generics, span: Span) -> InstanceUsage:
        trait = self.config_trait
        params = generics.params
        usage_span = generics.span or span

        if len(params) == 1 and _is_type_param(params[0], "T", ([trait],)):
            return InstanceUsage(has_instance=False, span=usage_span)

        if (
            len(params) == 2
            and _is_type_param(params[0], "T", ([f"{trait}<I>"],))
            and _is_type_param(params[1], "I", (["'static"],))
        ):
            return InstanceUsage(has_instance=True, span=usage_span)

        msg = f"Invalid generics: expected `T: {trait}` or `T: {trait}<I>, I: 'static`"
        raise DeclarationError(msg, usage_span)

    def check_module_usage(self, self_ty: Type) -> InstanceUsage:
        module = self.module_type
        text = _compact(self_ty.text)

        if text == f"{module}<T>":
            return InstanceUsage(has_instance=False, span=self_ty.span)
        if text == f"{module}<T,I>":
            return InstanceUsage(has_instance=True, span=self_ty.span)

        msg = f"Invalid module type: expected `{module}<T>` or `{module}<T, I>`"
        raise DeclarationError(msg, self_ty.span)

    def check_type_def_generics(self, generics: Generics, span: Span) -> InstanceUsage:
        trait = self.config_trait
        params = generics.params
        usage_span = generics.span or span

        if len(params) == 1 and _is_type_param(params[0], "T", ([], [trait])):
            return InstanceUsage(has_instance=False, span=usage_span)

        if (
            len(params) == 2
            and _is_type_param(params[0], "T", ([], [f"{trait}<I>"]))
            and _is_type_param(params[1], "I", ([], ["'static"]), (None, "()"))
        ):
            return InstanceUsage(has_instance=True, span=usage_span)

        msg = (
            f"Invalid type def generics: expected `T` or `T: {trait}` or "
            f"`T, I = ()` or `T: {trait}<I>, I: 'static = ()`"
        )
        raise DeclarationError(msg, usage_span)


def check_dispatchable_first_arg(arg: FnArg) -> None:
    """Require the first dispatchable argument to be ``origin: OriginFor<T>``."""
    if isinstance(arg, Receiver):
        msg = f"Invalid arg: expected `origin: {ORIGIN_TYPE}`, found receiver"
        raise DeclarationError(msg, arg.span)

    if _compact(arg.ty.text) != ORIGIN_TYPE:
        msg = f"Invalid type: expected `{ORIGIN_TYPE}`"
        raise DeclarationError(msg, arg.ty.span)


def expect_keyword(text: str, span: Span, keyword: str) -> Ident:
    """Match ``text`` against a literal keyword and return it as a token."""
    if text != keyword:
        msg = f"expected `{keyword}`"
        raise DeclarationError(msg, span)
    return Ident(name=keyword, span=span)


__all__ = [
    "DEFAULT_CONFIG_TRAIT",
    "DEFAULT_MODULE_TYPE",
    "FrameInstanceUsageChecker",
    "InstanceUsage",
    "InstanceUsageChecker",
    "check_dispatchable_first_arg",
    "expect_keyword",
]
