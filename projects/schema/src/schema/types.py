"""Dataclasses for the unified relational schema model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class RelationshipType(StrEnum):
    """Cardinality of a relationship between two columns."""

    ONE_TO_ONE = "1-1"
    ONE_TO_MANY = "1-n"
    MANY_TO_ONE = "n-1"
    MANY_TO_MANY = "n-n"


@dataclass(frozen=True)
class Column:
    """A single column of a table."""

    name: str
    type: str  # Free-form, e.g. "varchar(100)"
    primary_key: bool = False
    not_null: bool = False
    unique: bool = False
    auto_increment: bool = False
    default: str | None = None  # Raw, dialect-agnostic
    note: str | None = None


@dataclass(frozen=True)
class Index:
    """An index over one or more columns of a table."""

    columns: tuple[str, ...]
    unique: bool = False
    name: str | None = None


@dataclass(frozen=True)
class Table:
    """A table and its columns in declaration order."""

    id: str  # Cross-reference key used by relationships
    name: str
    schema: str | None = None
    columns: tuple[Column, ...] = ()
    indexes: tuple[Index, ...] = ()
    note: str | None = None
    color: str | None = None

    @property
    def qualified_name(self) -> str:
        """Name including the schema qualifier, if any."""
        return f"{self.schema}.{self.name}" if self.schema else self.name


@dataclass(frozen=True)
class Relationship:
    """A reference between two table columns.

    Endpoints are plain strings and are not checked against the tables of
    the schema, so a relationship may point at tables that do not exist.
    """

    from_table: str
    from_column: str
    to_table: str
    to_column: str
    type: RelationshipType = RelationshipType.ONE_TO_MANY
    label: str | None = None
    id: str = field(init=False)

    def __post_init__(self) -> None:
        """Derive the identifier from the four endpoint fields."""
        object.__setattr__(
            self,
            "id",
            f"{self.from_table}_{self.from_column}_{self.to_table}_{self.to_column}",
        )


@dataclass(frozen=True)
class Enum:
    """A named enumeration and its values in declaration order."""

    name: str
    values: tuple[str, ...] = ()


@dataclass(frozen=True)
class Schema:
    """Snapshot produced by a single parse of DSL or SQL text."""

    tables: tuple[Table, ...] = ()
    relationships: tuple[Relationship, ...] = ()
    enums: tuple[Enum, ...] = ()
