"""Rust syntax model, tree-sitter lowering and attribute helpers."""

from syntax.attrs import (
    DEFAULT_NAMESPACE,
    MarkerAttr,
    get_doc_literals,
    take_item_attrs,
)
from syntax.errors import DeclarationError
from syntax.lower import parse_item, parse_source

__all__ = [
    "DEFAULT_NAMESPACE",
    "DeclarationError",
    "MarkerAttr",
    "get_doc_literals",
    "parse_item",
    "parse_source",
    "take_item_attrs",
]
