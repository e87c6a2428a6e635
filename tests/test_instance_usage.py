from __future__ import annotations

import pytest

from pallet.helper import (
    FrameInstanceUsageChecker,
    check_dispatchable_first_arg,
    expect_keyword,
)
from syntax.errors import DeclarationError
from syntax.lower import parse_item
from syntax.models import ImplItemMethod, ItemEnum, ItemImpl, Span

_SPAN = Span(path="lib.rs", start_line=3, start_col=5, end_line=3, end_col=9)


def _impl(header: str) -> ItemImpl:
    item = parse_item(f"{header} {{}}")
    assert isinstance(item, ItemImpl)
    return item


def _first_arg(params: str):  # noqa: ANN202
    item = parse_item(f"impl X {{ fn f({params}) {{}} }}")
    assert isinstance(item, ItemImpl)
    method = item.items[0]
    assert isinstance(method, ImplItemMethod)
    return method.sig.inputs[0]


@pytest.mark.parametrize(
    ("header", "has_instance"),
    [
        ("impl<T: Config> Call for Module<T>", False),
        ("impl<T: Config<I>, I: 'static> Call for Module<T, I>", True),
    ],
)
def test_impl_generics_and_module_usage(header: str, has_instance: bool) -> None:
    checker = FrameInstanceUsageChecker()
    item = _impl(header)

    generics = checker.check_impl_generics(item.generics, item.impl_span)
    module = checker.check_module_usage(item.self_ty)

    assert generics.has_instance is has_instance
    assert module.has_instance is has_instance
    assert module.span == item.self_ty.span


@pytest.mark.parametrize(
    "header",
    [
        "impl Call for Module<T>",
        "impl<T> Call for Module<T>",
        "impl<T: Other> Call for Module<T>",
        "impl<T: Config<I>, I> Call for Module<T, I>",
    ],
)
def test_impl_generics_rejected(header: str) -> None:
    item = _impl(header)

    with pytest.raises(DeclarationError, match="Invalid generics") as excinfo:
        FrameInstanceUsageChecker().check_impl_generics(item.generics, item.impl_span)

    expected = item.generics.span or item.impl_span
    assert excinfo.value.span == expected


@pytest.mark.parametrize("self_ty", ["Module", "Module<U>", "Pallet<T>", "Module<T, I, J>"])
def test_module_usage_rejected(self_ty: str) -> None:
    item = _impl(f"impl<T: Config> Call for {self_ty}")

    with pytest.raises(DeclarationError, match="Invalid module type"):
        FrameInstanceUsageChecker().check_module_usage(item.self_ty)


def test_custom_trait_and_module_names() -> None:
    checker = FrameInstanceUsageChecker(config_trait="Trait", module_type="Pallet")
    item = _impl("impl<T: Trait> Call for Pallet<T>")

    assert not checker.check_impl_generics(item.generics, item.impl_span).has_instance
    assert not checker.check_module_usage(item.self_ty).has_instance

    enum = parse_item("pub enum Error<T: Trait> { A }")
    assert isinstance(enum, ItemEnum)
    assert not checker.check_type_def_generics(enum.generics, enum.span).has_instance


@pytest.mark.parametrize(
    "generics",
    ["", "<U>", "<T, U>", "<T: Config, I>", "<T, I = u32>", "<'a, T>"],
)
def test_type_def_generics_rejected(generics: str) -> None:
    enum = parse_item(f"pub enum Error{generics} {{ A }}")
    assert isinstance(enum, ItemEnum)

    with pytest.raises(DeclarationError, match="Invalid type def generics"):
        FrameInstanceUsageChecker().check_type_def_generics(enum.generics, enum.span)


def test_first_arg_accepts_origin() -> None:
    check_dispatchable_first_arg(_first_arg("origin: OriginFor<T>"))
    check_dispatchable_first_arg(_first_arg("o: OriginFor< T >"))


def test_first_arg_rejects_receiver() -> None:
    with pytest.raises(DeclarationError, match="found receiver"):
        check_dispatchable_first_arg(_first_arg("&self"))


def test_first_arg_rejects_other_type() -> None:
    arg = _first_arg("origin: T::Origin")

    with pytest.raises(DeclarationError, match="expected `OriginFor<T>`") as excinfo:
        check_dispatchable_first_arg(arg)

    assert excinfo.value.span == arg.ty.span  # type: ignore[union-attr]


def test_expect_keyword() -> None:
    ident = expect_keyword("Call", _SPAN, "Call")

    assert (ident.name, ident.span) == ("Call", _SPAN)

    with pytest.raises(DeclarationError, match="expected `Call`"):
        expect_keyword("Calls", _SPAN, "Call")
