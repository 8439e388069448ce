"""Diagnostics recorded for content dropped while parsing."""

from __future__ import annotations

from enum import StrEnum, auto
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Iterable

    from schema.types import Schema


class Construct(StrEnum):
    """Kind of input construct a diagnostic refers to."""

    TABLE = auto()
    COLUMN = auto()
    ATTRIBUTE = auto()
    RELATIONSHIP = auto()
    ENUM = auto()
    INDEX = auto()
    STATEMENT = auto()
    CONSTRAINT = auto()
    CONTENT = auto()


class Diagnostic(NamedTuple):
    """Something in the input that was skipped or only partially understood."""

    construct: Construct
    offset: int  # Character offset into the parsed text
    message: str


class ParseResult(NamedTuple):
    """Schema produced by a parse along with everything it dropped."""

    schema: Schema
    diagnostics: tuple[Diagnostic, ...]


class SchemaParseError(ValueError):
    """Raised by strict parsing when the input could not be fully understood."""

    def __init__(self, diagnostics: Iterable[Diagnostic]) -> None:
        """Keep the diagnostics and summarise the first one in the message."""
        self.diagnostics = tuple(diagnostics)
        first = self.diagnostics[0] if self.diagnostics else None
        msg = (
            f"{len(self.diagnostics)} problem(s), first at offset {first.offset}: "
            f"{first.construct} {first.message}"
            if first
            else "Schema could not be parsed"
        )
        super().__init__(msg)


def ensure_clean(result: ParseResult, *, strict: bool) -> Schema:
    """Return the schema, raising in strict mode if anything was dropped."""
    if strict and result.diagnostics:
        raise SchemaParseError(result.diagnostics)
    return result.schema
