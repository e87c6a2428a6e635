"""Typed syntax model for Rust declaration fragments.

Each syntax category is a closed union of frozen pydantic models tagged by a
``kind`` literal, so consumers can match exhaustively on it.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class Span(_Node):
    """Source span of a syntax element (1-based lines and columns)."""

    path: str = "<input>"
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def join(self, other: Span) -> Span:
        """Return the span covering ``self`` through ``other``."""
        return Span(
            path=self.path,
            start_line=self.start_line,
            start_col=self.start_col,
            end_line=other.end_line,
            end_col=other.end_col,
        )


class Ident(_Node):
    """An identifier token together with its span."""

    name: str
    span: Span


class Expr(_Node):
    """An expression, kept opaque: only its node kind and text are recorded."""

    kind: str
    text: str
    span: Span


class Type(_Node):
    """A type expression kept as written."""

    text: str
    span: Span


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------

AttrStyle = Literal["path", "list", "name_value"]


class Attribute(_Node):
    """An outer attribute or a sugared doc comment.

    ``#[a::b]`` has style ``path``, ``#[a::b(..)]`` style ``list`` with the
    raw token tree in ``tokens``, and ``#[a::b = expr]`` style ``name_value``
    with the parsed ``value``. Doc comments are lowered to ``doc``
    attributes whose literal value is in ``doc``.
    """

    path: list[str]
    style: AttrStyle
    span: Span
    value: Expr | None = None
    tokens: str | None = None
    doc: str | None = None

    @property
    def path_text(self) -> str:
        return "::".join(self.path)


# ---------------------------------------------------------------------------
# Generics
# ---------------------------------------------------------------------------


class GenericParam(_Node):
    kind: Literal["type", "lifetime", "const"]
    name: str
    span: Span
    bounds: list[str] = Field(default_factory=list)
    default: str | None = None


class WhereClause(_Node):
    text: str
    span: Span


class Generics(_Node):
    params: list[GenericParam] = Field(default_factory=list)
    where_clause: WhereClause | None = None
    span: Span | None = None


# ---------------------------------------------------------------------------
# Patterns and function arguments
# ---------------------------------------------------------------------------


class PatIdent(_Node):
    kind: Literal["ident"] = "ident"
    ident: Ident
    by_ref: bool = False
    mutable: bool = False
    span: Span


class PatOther(_Node):
    kind: Literal["other"] = "other"
    node_kind: str
    text: str
    span: Span


Pat = Annotated[PatIdent | PatOther, Field(discriminator="kind")]


class Receiver(_Node):
    """A ``self`` parameter."""

    kind: Literal["receiver"] = "receiver"
    attrs: list[Attribute] = Field(default_factory=list)
    text: str
    span: Span


class PatType(_Node):
    """A typed parameter ``pat: ty``."""

    kind: Literal["typed"] = "typed"
    attrs: list[Attribute] = Field(default_factory=list)
    pat: Pat
    ty: Type
    span: Span


FnArg = Annotated[Receiver | PatType, Field(discriminator="kind")]


class Signature(_Node):
    ident: Ident
    generics: Generics = Field(default_factory=Generics)
    inputs: list[FnArg] = Field(default_factory=list)
    inputs_span: Span
    output: Type | None = None
    span: Span


# ---------------------------------------------------------------------------
# Impl members
# ---------------------------------------------------------------------------


class ImplItemMethod(_Node):
    kind: Literal["method"] = "method"
    attrs: list[Attribute] = Field(default_factory=list)
    vis: str | None = None
    sig: Signature
    span: Span


class ImplItemOther(_Node):
    """Any impl member that is not a method (const, type alias, macro...)."""

    kind: Literal["other"] = "other"
    node_kind: str
    attrs: list[Attribute] = Field(default_factory=list)
    span: Span


ImplItem = Annotated[ImplItemMethod | ImplItemOther, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Enum variants
# ---------------------------------------------------------------------------


class Fields(_Node):
    kind: Literal["unit", "named", "unnamed"] = "unit"
    text: str = ""
    span: Span | None = None


class Variant(_Node):
    attrs: list[Attribute] = Field(default_factory=list)
    ident: Ident
    fields: Fields = Field(default_factory=Fields)
    discriminant: Expr | None = None
    span: Span


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class ItemImpl(_Node):
    kind: Literal["impl"] = "impl"
    attrs: list[Attribute] = Field(default_factory=list)
    impl_span: Span
    generics: Generics = Field(default_factory=Generics)
    trait_: Type | None = None
    self_ty: Type
    items: list[ImplItem] = Field(default_factory=list)
    span: Span


class ItemEnum(_Node):
    kind: Literal["enum"] = "enum"
    attrs: list[Attribute] = Field(default_factory=list)
    vis: str | None = None
    ident: Ident
    generics: Generics = Field(default_factory=Generics)
    variants: list[Variant] = Field(default_factory=list)
    span: Span


class ItemMod(_Node):
    kind: Literal["mod"] = "mod"
    attrs: list[Attribute] = Field(default_factory=list)
    ident: Ident
    content: list[Item] | None = None
    span: Span


class ItemOther(_Node):
    kind: Literal["other"] = "other"
    node_kind: str
    attrs: list[Attribute] = Field(default_factory=list)
    span: Span


class ItemInvalid(_Node):
    """An item the parser could not recover; carries the syntax diagnostic."""

    kind: Literal["invalid"] = "invalid"
    attrs: list[Attribute] = Field(default_factory=list)
    message: str
    span: Span


Item = Annotated[
    ItemImpl | ItemEnum | ItemMod | ItemOther | ItemInvalid,
    Field(discriminator="kind"),
]

ItemMod.model_rebuild()


__all__ = [
    "Attribute",
    "Expr",
    "Fields",
    "FnArg",
    "GenericParam",
    "Generics",
    "Ident",
    "ImplItem",
    "ImplItemMethod",
    "ImplItemOther",
    "Item",
    "ItemEnum",
    "ItemImpl",
    "ItemInvalid",
    "ItemMod",
    "ItemOther",
    "Pat",
    "PatIdent",
    "PatOther",
    "PatType",
    "Receiver",
    "Signature",
    "Span",
    "Type",
    "Variant",
    "WhereClause",
]
