"""Marker attribute extraction and doc literal collection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeVar

from syntax.errors import DeclarationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from syntax.models import Attribute

DEFAULT_NAMESPACE = "pallet"

_AttrT = TypeVar("_AttrT", bound="MarkerAttr")


class MarkerAttr(Protocol):
    """Grammar for the payload of one ``#[<namespace>::<tag> ..]`` attribute."""

    @classmethod
    def parse(cls: type[_AttrT], attr: Attribute) -> _AttrT: ...


def is_marker_attr(attr: Attribute, namespace: str = DEFAULT_NAMESPACE) -> bool:
    """Return True when the attribute path starts with the marker namespace."""
    return len(attr.path) > 1 and attr.path[0] == namespace


def expect_marker_tag(attr: Attribute, tag: str) -> None:
    """Require the marker path to be exactly ``<namespace>::<tag>``."""
    if len(attr.path) != 2 or attr.path[1] != tag:
        msg = f"expected `{attr.path[0]}::{tag}`, found `{attr.path_text}`"
        raise DeclarationError(msg, attr.span)


def take_item_attrs(
    attrs: Sequence[Attribute],
    grammar: type[_AttrT],
    *,
    namespace: str = DEFAULT_NAMESPACE,
) -> tuple[list[Attribute], list[_AttrT]]:
    """Split marker attributes out of ``attrs`` and parse them with ``grammar``.

    Returns the attributes left untouched and the parsed markers, both in
    source order. The first malformed marker raises ``DeclarationError``
    bound to that attribute.
    """
    remaining: list[Attribute] = []
    parsed: list[_AttrT] = []
    for attr in attrs:
        if is_marker_attr(attr, namespace):
            parsed.append(grammar.parse(attr))
        else:
            remaining.append(attr)
    return remaining, parsed


def get_doc_literals(attrs: Sequence[Attribute]) -> list[str]:
    """Return the doc comment literals of ``attrs`` in source order."""
    return [attr.doc for attr in attrs if attr.doc is not None]


__all__ = [
    "DEFAULT_NAMESPACE",
    "MarkerAttr",
    "expect_marker_tag",
    "get_doc_literals",
    "is_marker_attr",
    "take_item_attrs",
]
