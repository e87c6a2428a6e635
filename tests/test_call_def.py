from __future__ import annotations

import pytest

from pallet.call import CallArg, CallDef, parse_call_def
from pallet.helper import InstanceUsage
from syntax.errors import DeclarationError
from syntax.lower import parse_item
from syntax.models import Attribute, ImplItemMethod, ItemImpl, PatType

_TRANSFER = """
#[pallet::call]
impl<T: Config> Call for Module<T> {
    /// Transfer some balance.
    #[pallet::weight = 10_000]
    fn transfer(
        origin: OriginFor<T>,
        dest: T::AccountId,
        #[pallet::compact] amount: Balance,
    ) -> DispatchResultWithPostInfo {
        Ok(().into())
    }
}
"""


def _call_source(methods: str, header: str = "impl<T: Config> Call for Module<T>") -> str:
    return f"{header} {{\n{methods}\n}}\n"


def _method(
    name: str = "f",
    *,
    attrs: str = "#[pallet::weight = 0]",
    params: str = "origin: OriginFor<T>",
    ret: str = " -> DispatchResultWithPostInfo",
) -> str:
    return f"    {attrs}\n    fn {name}({params}){ret} {{ Ok(().into()) }}\n"


def _parse(source: str) -> CallDef:
    return parse_call_def(parse_item(source, "lib.rs"))


def _expect_error(source: str, needle: str) -> DeclarationError:
    with pytest.raises(DeclarationError) as excinfo:
        _parse(source)
    assert needle in excinfo.value.message
    return excinfo.value


def test_parse_call_def_collects_dispatchables() -> None:
    call = _parse(_TRANSFER)

    assert call.marker_keyword.name == "Call"
    assert [m.name.name for m in call.methods] == ["transfer"]

    method = call.methods[0]
    assert method.weight.text == "10_000"
    assert method.docs == [" Transfer some balance."]
    assert [(a.is_compact, a.name.name, a.ty.text) for a in method.args] == [
        (False, "dest", "T::AccountId"),
        (True, "amount", "Balance"),
    ]


def test_compact_argument_is_recorded_as_tuple() -> None:
    call = _parse(
        _call_source(
            _method(
                "transfer",
                params="origin: OriginFor<T>, #[pallet::compact] amount: Balance",
            )
        )
    )

    arg = call.methods[0].args[0]
    assert isinstance(arg, CallArg)
    is_compact, name, ty = arg
    assert (is_compact, name.name, ty.text) == (True, "amount", "Balance")


def test_origin_argument_is_not_part_of_args() -> None:
    call = _parse(_call_source(_method(params="origin: OriginFor<T>")))

    assert call.methods[0].args == []


def test_instance_usage_tokens_in_order() -> None:
    call = _parse(_TRANSFER)

    assert [usage.has_instance for usage in call.instances] == [False, False]
    assert call.instances[1].span == call.item.self_ty.span


def test_instantiable_call_reports_instance_usage() -> None:
    call = _parse(
        _call_source(
            _method(), header="impl<T: Config<I>, I: 'static> Call for Module<T, I>"
        )
    )

    assert [usage.has_instance for usage in call.instances] == [True, True]


def test_marker_attributes_are_stripped_from_item() -> None:
    call = _parse(
        _call_source(
            _method(
                attrs="#[transactional]\n    #[pallet::weight = 0]",
                params="origin: OriginFor<T>, #[pallet::compact] amount: Balance",
            )
        )
    )

    method = call.item.items[0]
    assert isinstance(method, ImplItemMethod)
    assert [attr.path_text for attr in method.attrs] == ["transactional"]
    amount = method.sig.inputs[1]
    assert isinstance(amount, PatType)
    assert amount.attrs == []


def test_weight_expression_is_kept_verbatim() -> None:
    expr = "T::WeightInfo::transfer() + T::DbWeight::get().reads(1)"
    call = _parse(_call_source(_method(attrs=f"#[pallet::weight = {expr}]")))

    weight = call.methods[0].weight
    assert weight.text == expr
    assert weight.kind == "binary_expression"


def test_methods_keep_declaration_order() -> None:
    forward = _parse(_call_source(_method("a") + _method("b") + _method("c")))
    backward = _parse(_call_source(_method("c") + _method("b") + _method("a")))

    assert [m.name.name for m in forward.methods] == ["a", "b", "c"]
    assert [m.name.name for m in backward.methods] == ["c", "b", "a"]


def test_empty_impl_block_has_no_methods() -> None:
    call = _parse(_call_source(""))

    assert call.methods == []


def test_rejects_non_impl_item() -> None:
    error = _expect_error("pub enum Call<T> { A }", "expected implementation block")

    assert error.span.start_line == 1


def test_rejects_missing_trait_reference() -> None:
    _expect_error(
        _call_source(_method(), header="impl<T: Config> Module<T>"),
        "expected `Call` trait reference",
    )


def test_rejects_other_trait_name() -> None:
    error = _expect_error(
        _call_source(_method(), header="impl<T: Config> Dispatch for Module<T>"),
        "expected `Call`",
    )

    assert error.span.start_col == len("impl<T: Config> ") + 1


def test_rejects_non_method_member() -> None:
    _expect_error(
        _call_source("    const LIMIT: u32 = 10;\n" + _method()),
        "only methods accepted",
    )


def test_rejects_method_without_arguments() -> None:
    _expect_error(
        _call_source(_method(params="")),
        "must have at least an origin argument",
    )


def test_first_argument_predicate_failure_propagates() -> None:
    _expect_error(
        _call_source(_method(params="who: T::AccountId")),
        "expected `OriginFor<T>`",
    )


def test_rejects_missing_return_type() -> None:
    _expect_error(
        _call_source(_method(ret="")),
        "requires return type DispatchResultWithPostInfo",
    )


def test_rejects_other_return_type() -> None:
    _expect_error(
        _call_source(_method(ret=" -> DispatchResult")),
        "expected `DispatchResultWithPostInfo`",
    )


def test_rejects_missing_weight() -> None:
    _expect_error(_call_source(_method(attrs="")), "requires a weight attribute")


def test_rejects_two_weight_attributes() -> None:
    _expect_error(
        _call_source(_method(attrs="#[pallet::weight = 1]\n    #[pallet::weight = 2]")),
        "too many weight attributes",
    )


def test_rejects_malformed_weight_attribute() -> None:
    error = _expect_error(
        _call_source(_method(attrs="#[pallet::weight(10)]")),
        "expected `=`",
    )

    assert error.span.start_line == 2


def test_rejects_unknown_marker_on_method() -> None:
    _expect_error(
        _call_source(_method(attrs="#[pallet::wieght = 10]")),
        "expected `pallet::weight`",
    )


def test_rejects_destructured_argument() -> None:
    _expect_error(
        _call_source(_method(params="origin: OriginFor<T>, (a, b): (u32, u32)")),
        "argument must be identifier",
    )


def test_rejects_argument_with_two_compact_attributes() -> None:
    source = _call_source(
        _method(
            params="origin: OriginFor<T>, "
            "#[pallet::compact] #[pallet::compact] amount: Balance"
        )
    )

    error = _expect_error(source, "argument has too many attributes")

    assert error.span.start_line == 3


def test_ref_binding_argument_is_accepted() -> None:
    call = _parse(
        _call_source(_method(params="origin: OriginFor<T>, ref mut amount: Balance"))
    )

    (arg,) = call.methods[0].args
    assert (arg.is_compact, arg.name.name, arg.ty.text) == (False, "amount", "Balance")


def test_failure_in_later_method_aborts_whole_declaration() -> None:
    _expect_error(
        _call_source(_method("ok") + _method("broken", attrs="")),
        "requires a weight attribute",
    )


def test_custom_namespace() -> None:
    item = parse_item(_call_source(_method(attrs="#[frame::weight = 5]")))

    call = parse_call_def(item, namespace="frame")

    assert call.methods[0].weight.text == "5"


class _RecordingChecker:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def check_impl_generics(self, generics, span):  # noqa: ANN001, ANN201
        self.calls.append("impl_generics")
        return InstanceUsage(has_instance=True, span=span)

    def check_module_usage(self, self_ty):  # noqa: ANN001, ANN201
        self.calls.append("module_usage")
        return InstanceUsage(has_instance=False, span=self_ty.span)

    def check_type_def_generics(self, generics, span):  # noqa: ANN001, ANN201
        raise AssertionError


def test_instance_tokens_come_from_checker_verbatim() -> None:
    checker = _RecordingChecker()
    item = parse_item(_call_source(_method(), header="impl<X> Call for Anything"))

    call = parse_call_def(item, checker=checker)

    assert checker.calls == ["impl_generics", "module_usage"]
    assert [usage.has_instance for usage in call.instances] == [True, False]


def test_default_checker_rejects_unknown_self_type() -> None:
    _expect_error(
        _call_source(_method(), header="impl<T: Config> Call for Pallet<T>"),
        "Invalid module type",
    )


def test_custom_first_arg_check() -> None:
    seen: list[str] = []

    def accept_anything(arg: object) -> None:
        seen.append(type(arg).__name__)

    item = parse_item(_call_source(_method(params="&self")))
    call = parse_call_def(item, first_arg_check=accept_anything)

    assert seen == ["Receiver"]
    assert call.methods[0].args == []


def test_weight_attribute_from_hand_built_attribute() -> None:
    item = parse_item(_call_source(_method()))
    assert isinstance(item, ItemImpl)
    method = item.items[0]
    assert isinstance(method, ImplItemMethod)

    bare = Attribute(path=["pallet", "weight"], style="path", span=method.span)
    item = item.model_copy(
        update={"items": [method.model_copy(update={"attrs": [bare]})]}
    )

    with pytest.raises(DeclarationError, match="expected `=`"):
        parse_call_def(item)
