"""Diagnostic raised for malformed declarations."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from syntax.models import Span


class DeclarationError(Exception):
    """A malformed-declaration diagnostic bound to a source span."""

    def __init__(self, message: str, span: Span) -> None:
        super().__init__(message)
        self.message = message
        self.span = span

    def location(self) -> str:
        return f"{self.span.path}:{self.span.start_line}:{self.span.start_col}"

    def __str__(self) -> str:
        return f"{self.location()}: {self.message}"

    def to_dict(self) -> dict[str, object]:
        return {"message": self.message, "span": self.span.model_dump()}


__all__ = ["DeclarationError"]
