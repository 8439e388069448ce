"""Parser for the declarative table-definition DSL."""

from dsl.parser import dsl_to_schema, parse_dsl

__all__ = ["dsl_to_schema", "parse_dsl"]
