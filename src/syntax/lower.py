"""Tree-sitter based lowering of Rust source into the typed syntax model."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tree_sitter import Language, Node, Parser
from tree_sitter_rust import language as get_rust_language

from syntax.errors import DeclarationError
from syntax.models import (
    Attribute,
    Expr,
    Fields,
    GenericParam,
    Generics,
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
    Signature,
    Span,
    Type,
    Variant,
    WhereClause,
)

if TYPE_CHECKING:
    from syntax.models import FnArg, ImplItem, Item, Pat

_PARSER: Parser | None = None

_COMMENT_TYPES = frozenset({"line_comment", "block_comment"})
_SKIPPED_ITEM_TYPES = frozenset({"inner_attribute_item", "empty_statement"})


def _get_parser() -> Parser:
    """Initialize and return the Tree-sitter parser with the Rust language."""
    global _PARSER
    if _PARSER is None:
        lang = Language(get_rust_language())
        _PARSER = Parser(lang)

    return _PARSER


@dataclass(frozen=True)
class _Source:
    source_bytes: bytes
    path: str

    def text(self, node: Node) -> str:
        return self.source_bytes[node.start_byte : node.end_byte].decode(
            "utf8", errors="replace"
        )

    def span(self, node: Node) -> Span:
        return Span(
            path=self.path,
            start_line=node.start_point[0] + 1,
            start_col=node.start_point[1] + 1,
            end_line=node.end_point[0] + 1,
            end_col=node.end_point[1] + 1,
        )

    def ident(self, node: Node) -> Ident:
        return Ident(name=self.text(node), span=self.span(node))


def _compact(text: str) -> str:
    return "".join(text.split())


def _child_of_type(node: Node, node_type: str) -> Node | None:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _first_error(node: Node, src: _Source) -> Node | None:
    """Return the first ERROR or MISSING node below ``node``, if any.

    Extra attributes on a parameter are not an error: tree-sitter-rust only
    accepts one, the rest are recovered by ``_stray_attributes``.
    """
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if (
            node.type == "parameters"
            and child.type == "ERROR"
            and _stray_attributes(child, src) is not None
        ):
            continue
        if child.has_error or child.is_missing:
            found = _first_error(child, src)
            if found is not None:
                return found
    return None


def _reject_syntax_errors(node: Node, src: _Source) -> None:
    if not node.has_error:
        return
    error_node = _first_error(node, src)
    if error_node is None:
        return
    if error_node.is_missing:
        msg = f"unexpected syntax, missing `{error_node.type}`"
    else:
        msg = f"unexpected syntax `{_compact(src.text(error_node))}`"
    raise DeclarationError(msg, src.span(error_node))


# ---------------------------------------------------------------------------
# Attributes and doc comments
# ---------------------------------------------------------------------------


_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "\\": "\\",
    "'": "'",
    "\"": "\"",
}

_STRING_ESCAPE = re.compile(
    r"\\(?:u\{(?P<unicode>[0-9a-fA-F_]+)\}"
    r"|x(?P<byte>[0-7][0-9a-fA-F])"
    r"|(?P<newline>\n\s*)"
    r"|(?P<simple>.))",
    re.DOTALL,
)


def _unescape(match: re.Match[str]) -> str:
    if match["unicode"] is not None:
        return chr(int(match["unicode"].replace("_", ""), 16))
    if match["byte"] is not None:
        return chr(int(match["byte"], 16))
    if match["newline"] is not None:
        return ""
    return _SIMPLE_ESCAPES.get(match["simple"], match[0])


def _string_literal_value(text: str) -> str:
    """Return the value of a Rust string literal, escapes decoded."""
    if text.startswith("r"):
        return text.lstrip("r").strip("#")[1:-1]
    return _STRING_ESCAPE.sub(_unescape, text[1:-1])


def _doc_comment_attr(node: Node, src: _Source) -> Attribute | None:
    """Lower an outer doc comment to a ``doc`` attribute; None otherwise."""
    text = src.text(node).rstrip("\r\n")
    if node.type == "line_comment":
        if not text.startswith("///") or text.startswith("////"):
            return None
        doc = text[3:]
    else:
        if not text.startswith("/**") or text.startswith("/***") or text == "/**/":
            return None
        doc = text[3:-2]
    return Attribute(path=["doc"], style="name_value", span=src.span(node), doc=doc)


def _lower_attribute(node: Node, src: _Source) -> Attribute:
    _reject_syntax_errors(node, src)
    attr = _child_of_type(node, "attribute")
    if attr is None or not attr.named_children:
        msg = "unexpected syntax, expected attribute"
        raise DeclarationError(msg, src.span(node))

    path = _compact(src.text(attr.named_children[0])).split("::")
    span = src.span(node)

    value_node = attr.child_by_field_name("value")
    if value_node is not None:
        value = _lower_expr(value_node, src)
        doc = None
        if path == ["doc"] and value.kind in ("string_literal", "raw_string_literal"):
            doc = _string_literal_value(value.text)
        return Attribute(
            path=path, style="name_value", span=span, value=value, doc=doc
        )

    args_node = attr.child_by_field_name("arguments")
    if args_node is not None:
        return Attribute(
            path=path, style="list", span=span, tokens=src.text(args_node)
        )

    return Attribute(path=path, style="path", span=span)


def _stray_attributes(node: Node, src: _Source) -> list[Attribute] | None:
    """Lower an ERROR node made only of outer attributes; None otherwise.

    The node's bytes are parsed again in front of a dummy item, with every
    preceding byte blanked so that lines and columns stay unchanged.
    """
    if node.type != "ERROR" or not src.text(node).lstrip().startswith("#["):
        return None

    before = src.source_bytes[: node.start_byte]
    blanked = bytes(b if b == 0x0A else 0x20 for b in before)
    body = src.source_bytes[node.start_byte : node.end_byte]
    isolated = _Source(blanked + body + b"\nstruct _S;\n", src.path)
    root = _get_parser().parse(isolated.source_bytes).root_node
    if root.has_error:
        return None

    attrs: list[Attribute] = []
    for child in root.named_children:
        if child.type == "attribute_item":
            try:
                attrs.append(_lower_attribute(child, isolated))
            except DeclarationError:
                return None
        elif child.type in _COMMENT_TYPES:
            doc_attr = _doc_comment_attr(child, isolated)
            if doc_attr is not None:
                attrs.append(doc_attr)
        elif child.type != "struct_item":
            return None
    return attrs or None


class _PendingAttrs:
    """Attributes and doc comments waiting for the element they decorate."""

    def __init__(self, src: _Source, *, stray_attrs: bool = False) -> None:
        self._src = src
        self._stray_attrs = stray_attrs
        self.attrs: list[Attribute] = []
        self.error: DeclarationError | None = None

    def feed(self, node: Node) -> bool:
        """Consume ``node`` if it is an attribute or comment."""
        if self._stray_attrs and node.type == "ERROR":
            stray = _stray_attributes(node, self._src)
            if stray is not None:
                self.attrs.extend(stray)
                return True
        if node.type == "attribute_item":
            try:
                self.attrs.append(_lower_attribute(node, self._src))
            except DeclarationError as exc:
                if self.error is None:
                    self.error = exc
            return True
        if node.type in _COMMENT_TYPES:
            doc_attr = _doc_comment_attr(node, self._src)
            if doc_attr is not None:
                self.attrs.append(doc_attr)
            return True
        return False

    def take(self) -> tuple[list[Attribute], DeclarationError | None]:
        attrs, error = self.attrs, self.error
        self.attrs, self.error = [], None
        return attrs, error


# ---------------------------------------------------------------------------
# Expressions, types and generics
# ---------------------------------------------------------------------------


def _lower_expr(node: Node, src: _Source) -> Expr:
    if node.has_error or node.is_missing:
        raise DeclarationError("expected expression", src.span(node))
    return Expr(kind=node.type, text=src.text(node), span=src.span(node))


def _lower_type(node: Node, src: _Source) -> Type:
    return Type(text=src.text(node), span=src.span(node))


def _bounds(node: Node | None, src: _Source) -> list[str]:
    if node is None:
        return []
    return [
        _compact(src.text(child))
        for child in node.named_children
        if child.type not in _COMMENT_TYPES
    ]


def _lower_generic_param(node: Node, src: _Source) -> GenericParam:
    span = src.span(node)

    if node.type == "lifetime":
        return GenericParam(kind="lifetime", name=src.text(node), span=span)

    if node.type == "lifetime_parameter":
        name_node = node.child_by_field_name("name")
        return GenericParam(
            kind="lifetime",
            name=src.text(name_node or node),
            span=span,
            bounds=_bounds(node.child_by_field_name("bounds"), src),
        )

    if node.type == "constrained_type_parameter":
        left = node.child_by_field_name("left")
        kind = "lifetime" if left is not None and left.type == "lifetime" else "type"
        return GenericParam(
            kind=kind,
            name=src.text(left or node),
            span=span,
            bounds=_bounds(node.child_by_field_name("bounds"), src),
        )

    if node.type == "optional_type_parameter":
        name_node = node.child_by_field_name("name")
        default_node = node.child_by_field_name("default_type")
        inner = (
            _lower_generic_param(name_node, src)
            if name_node is not None
            else GenericParam(kind="type", name=src.text(node), span=span)
        )
        return inner.model_copy(
            update={
                "span": span,
                "default": _compact(src.text(default_node)) if default_node else None,
            }
        )

    if node.type == "type_parameter":
        name_node = node.child_by_field_name("name")
        default_node = node.child_by_field_name("default_type")
        return GenericParam(
            kind="type",
            name=src.text(name_node or node),
            span=span,
            bounds=_bounds(node.child_by_field_name("bounds"), src),
            default=_compact(src.text(default_node)) if default_node else None,
        )

    if node.type == "const_parameter":
        name_node = node.child_by_field_name("name")
        return GenericParam(kind="const", name=src.text(name_node or node), span=span)

    return GenericParam(kind="type", name=src.text(node), span=span)


def _lower_generics(
    params_node: Node | None, where_node: Node | None, src: _Source
) -> Generics:
    params: list[GenericParam] = []
    if params_node is not None:
        params = [
            _lower_generic_param(child, src)
            for child in params_node.named_children
            if child.type != "attribute_item" and child.type not in _COMMENT_TYPES
        ]

    where_clause = None
    if where_node is not None:
        where_clause = WhereClause(text=src.text(where_node), span=src.span(where_node))

    return Generics(
        params=params,
        where_clause=where_clause,
        span=src.span(params_node) if params_node is not None else None,
    )


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


def _lower_pattern(node: Node, src: _Source, *, mutable: bool = False) -> Pat:
    if node.type == "identifier":
        return PatIdent(ident=src.ident(node), mutable=mutable, span=src.span(node))

    if node.type == "mut_pattern":
        inner = next(
            (c for c in node.named_children if c.type != "mutable_specifier"), None
        )
        if inner is not None and inner.type == "identifier":
            return PatIdent(ident=src.ident(inner), mutable=True, span=src.span(node))

    # `ref x` and `ref mut x` still bind a plain identifier.
    if node.type == "ref_pattern":
        inner = next(
            (c for c in node.named_children if c.type != "mutable_specifier"), None
        )
        if inner is not None:
            ref_mutable = _child_of_type(node, "mutable_specifier") is not None
            pat = _lower_pattern(inner, src, mutable=mutable or ref_mutable)
            if isinstance(pat, PatIdent):
                return pat.model_copy(update={"by_ref": True, "span": src.span(node)})

    return PatOther(node_kind=node.type, text=src.text(node), span=src.span(node))


def _lower_parameter(node: Node, attrs: list[Attribute], src: _Source) -> FnArg:
    span = src.span(node)

    if node.type == "self_parameter":
        return Receiver(attrs=attrs, text=src.text(node), span=span)

    if node.type == "parameter":
        pattern = node.child_by_field_name("pattern")
        type_node = node.child_by_field_name("type")
        mutable = _child_of_type(node, "mutable_specifier") is not None
        pat: Pat = (
            _lower_pattern(pattern, src, mutable=mutable)
            if pattern is not None
            else PatOther(node_kind="missing", text="", span=span)
        )
        ty = (
            _lower_type(type_node, src)
            if type_node is not None
            else Type(text="", span=span)
        )
        return PatType(attrs=attrs, pat=pat, ty=ty, span=span)

    # Anonymous parameters (`_`, bare types, variadics) have no binding.
    return PatType(
        attrs=attrs,
        pat=PatOther(node_kind=node.type, text=src.text(node), span=span),
        ty=Type(text=src.text(node), span=span),
        span=span,
    )


def _lower_parameters(node: Node, src: _Source) -> list[FnArg]:
    inputs: list[FnArg] = []
    pending = _PendingAttrs(src, stray_attrs=True)
    for child in node.children:
        if pending.feed(child) or not child.is_named:
            continue
        attrs, _ = pending.take()
        inputs.append(_lower_parameter(child, attrs, src))
    return inputs


def _lower_function(node: Node, attrs: list[Attribute], src: _Source) -> ImplItemMethod:
    name_node = node.child_by_field_name("name")
    params_node = node.child_by_field_name("parameters")
    return_node = node.child_by_field_name("return_type")
    vis_node = _child_of_type(node, "visibility_modifier")

    if name_node is None or params_node is None:
        msg = "unexpected syntax, expected function signature"
        raise DeclarationError(msg, src.span(node))

    sig_end = return_node if return_node is not None else params_node
    sig = Signature(
        ident=src.ident(name_node),
        generics=_lower_generics(
            node.child_by_field_name("type_parameters"),
            _child_of_type(node, "where_clause"),
            src,
        ),
        inputs=_lower_parameters(params_node, src),
        inputs_span=src.span(params_node),
        output=_lower_type(return_node, src) if return_node is not None else None,
        span=src.span(node).join(src.span(sig_end)),
    )
    return ImplItemMethod(
        attrs=attrs,
        vis=src.text(vis_node) if vis_node is not None else None,
        sig=sig,
        span=src.span(node),
    )


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def _lower_impl_members(body: Node | None, src: _Source) -> list[ImplItem]:
    if body is None:
        return []

    members: list[ImplItem] = []
    pending = _PendingAttrs(src)
    for child in body.children:
        if pending.feed(child) or not child.is_named:
            continue
        attrs, _ = pending.take()
        if child.type == "function_item":
            members.append(_lower_function(child, attrs, src))
        else:
            members.append(
                ImplItemOther(node_kind=child.type, attrs=attrs, span=src.span(child))
            )
    return members


def _lower_impl(node: Node, attrs: list[Attribute], src: _Source) -> ItemImpl:
    type_node = node.child_by_field_name("type")
    trait_node = node.child_by_field_name("trait")
    impl_token = _child_of_type(node, "impl")

    if type_node is None:
        msg = "unexpected syntax, expected self type"
        raise DeclarationError(msg, src.span(node))

    return ItemImpl(
        attrs=attrs,
        impl_span=src.span(impl_token if impl_token is not None else node),
        generics=_lower_generics(
            node.child_by_field_name("type_parameters"),
            _child_of_type(node, "where_clause"),
            src,
        ),
        trait_=_lower_type(trait_node, src) if trait_node is not None else None,
        self_ty=_lower_type(type_node, src),
        items=_lower_impl_members(node.child_by_field_name("body"), src),
        span=src.span(node),
    )


def _lower_fields(node: Node | None, src: _Source) -> Fields:
    if node is None:
        return Fields()
    kind = "named" if node.type == "field_declaration_list" else "unnamed"
    return Fields(kind=kind, text=src.text(node), span=src.span(node))


def _lower_variants(body: Node | None, src: _Source) -> list[Variant]:
    if body is None:
        return []

    variants: list[Variant] = []
    pending = _PendingAttrs(src)
    for child in body.children:
        if pending.feed(child) or child.type != "enum_variant":
            continue
        attrs, _ = pending.take()
        name_node = child.child_by_field_name("name")
        value_node = child.child_by_field_name("value")
        if name_node is None:
            msg = "unexpected syntax, expected variant name"
            raise DeclarationError(msg, src.span(child))
        variants.append(
            Variant(
                attrs=attrs,
                ident=src.ident(name_node),
                fields=_lower_fields(child.child_by_field_name("body"), src),
                discriminant=(
                    _lower_expr(value_node, src) if value_node is not None else None
                ),
                span=src.span(child),
            )
        )
    return variants


def _lower_enum(node: Node, attrs: list[Attribute], src: _Source) -> ItemEnum:
    name_node = node.child_by_field_name("name")
    vis_node = _child_of_type(node, "visibility_modifier")

    if name_node is None:
        msg = "unexpected syntax, expected enum name"
        raise DeclarationError(msg, src.span(node))

    return ItemEnum(
        attrs=attrs,
        vis=src.text(vis_node) if vis_node is not None else None,
        ident=src.ident(name_node),
        generics=_lower_generics(
            node.child_by_field_name("type_parameters"),
            _child_of_type(node, "where_clause"),
            src,
        ),
        variants=_lower_variants(node.child_by_field_name("body"), src),
        span=src.span(node),
    )


def _lower_mod(node: Node, attrs: list[Attribute], src: _Source) -> ItemMod:
    name_node = node.child_by_field_name("name")
    body = node.child_by_field_name("body")
    if name_node is None:
        msg = "unexpected syntax, expected module name"
        raise DeclarationError(msg, src.span(node))

    return ItemMod(
        attrs=attrs,
        ident=src.ident(name_node),
        content=_lower_items(body, src) if body is not None else None,
        span=src.span(node),
    )


def _lower_item(node: Node, attrs: list[Attribute], src: _Source) -> Item:
    if node.type == "mod_item":
        return _lower_mod(node, attrs, src)

    if node.type == "ERROR":
        _reject_syntax_errors(node, src)

    if node.type == "impl_item":
        _reject_syntax_errors(node, src)
        return _lower_impl(node, attrs, src)

    if node.type == "enum_item":
        _reject_syntax_errors(node, src)
        return _lower_enum(node, attrs, src)

    return ItemOther(node_kind=node.type, attrs=attrs, span=src.span(node))


def _lower_items(container: Node, src: _Source) -> list[Item]:
    items: list[Item] = []
    pending = _PendingAttrs(src)
    for child in container.children:
        if (
            pending.feed(child)
            or not child.is_named
            or child.type in _SKIPPED_ITEM_TYPES
        ):
            continue
        attrs, attr_error = pending.take()
        try:
            if attr_error is not None:
                raise attr_error
            items.append(_lower_item(child, attrs, src))
        except DeclarationError as exc:
            items.append(ItemInvalid(attrs=attrs, message=exc.message, span=exc.span))
    return items


def parse_source(source: str | bytes, path: str = "<input>") -> list[Item]:
    """Parse Rust source into the top-level items of the file.

    Items that tree-sitter could not parse are returned as ``ItemInvalid``
    carrying the syntax diagnostic, so one broken item does not hide the rest
    of the file.
    """
    source_bytes = source.encode("utf8") if isinstance(source, str) else source
    tree = _get_parser().parse(source_bytes)
    return _lower_items(tree.root_node, _Source(source_bytes, path))


def parse_item(source: str | bytes, path: str = "<input>") -> Item:
    """Parse source holding exactly one item (attributes included)."""
    items = parse_source(source, path)
    if len(items) != 1:
        msg = f"expected exactly one item, found {len(items)}"
        raise ValueError(msg)
    return items[0]


__all__ = ["parse_item", "parse_source"]
