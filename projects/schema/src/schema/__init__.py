"""Unified relational schema model and its exporters."""

from schema.diagnostics import (
    Construct,
    Diagnostic,
    ParseResult,
    SchemaParseError,
    ensure_clean,
)
from schema.dsl_export import schema_to_dsl
from schema.sql_export import schema_to_sql
from schema.types import Column, Enum, Index, Relationship, RelationshipType, Schema, Table

__all__ = [
    "Column",
    "Construct",
    "Diagnostic",
    "Enum",
    "Index",
    "ParseResult",
    "Relationship",
    "RelationshipType",
    "Schema",
    "SchemaParseError",
    "Table",
    "ensure_clean",
    "schema_to_dsl",
    "schema_to_sql",
]
