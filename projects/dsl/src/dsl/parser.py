"""Recursive-descent parser turning DSL source text into a schema model."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from dsl.scanner import (
    is_comment,
    peek,
    peek_keyword,
    read_identifier,
    read_identifier_list,
    read_qualified_name,
    read_type,
    read_value,
    skip_blanks,
    skip_keyword,
    skip_line,
    skip_optional,
    skip_rest_of_line,
    skip_until_attribute_end,
    skip_whitespace,
)
from schema.diagnostics import Construct, Diagnostic, ParseResult, ensure_clean
from schema.types import Column, Enum, Index, Relationship, RelationshipType, Schema, Table

if TYPE_CHECKING:
    from dsl.scanner import Scanned

logger = getLogger(__name__)

type Diagnostics = list[Diagnostic]
type Endpoint = tuple[str, str]

TABLE_KEYWORDS = {"Table", "table"}
REF_KEYWORDS = {"Ref", "ref"}
ENUM_KEYWORDS = {"Enum", "enum"}
TOP_LEVEL_KEYWORDS = TABLE_KEYWORDS | REF_KEYWORDS | ENUM_KEYWORDS
NOTE_KEYWORDS = {"Note", "note"}

PRIMARY_KEY_ATTRIBUTES = {"pk", "primary", "primarykey"}
INCREMENT_ATTRIBUTES = {"increment", "auto_increment"}

# Longest operators first so "<>" is not read as "<"
OPERATORS: tuple[tuple[str, RelationshipType], ...] = (
    ("<>", RelationshipType.MANY_TO_MANY),
    ("<", RelationshipType.MANY_TO_ONE),
    (">", RelationshipType.ONE_TO_MANY),
    ("--", RelationshipType.ONE_TO_ONE),
)
DEFAULT_RELATIONSHIP_TYPE = RelationshipType.ONE_TO_MANY


def split_qualified(name: str) -> tuple[str | None, str]:
    """Split "schema.table" into its schema and table name."""
    schema, dot, table = name.partition(".")
    return (schema, table) if dot else (None, name)


def report(
    diagnostics: Diagnostics,
    construct: Construct,
    offset: int,
    message: str,
) -> None:
    """Record a diagnostic for dropped or ignored content."""
    logger.debug("%s at offset %d: %s", construct, offset, message)
    diagnostics.append(Diagnostic(construct, offset, message))


def is_note_line(text: str, pos: int) -> bool:
    """Check for a "Note:" line inside a table block."""
    keyword = peek_keyword(text, pos)
    if keyword not in NOTE_KEYWORDS:
        return False
    return peek(text, skip_whitespace(text, pos + len(keyword))) == ":"


def is_indexes_block(text: str, pos: int) -> bool:
    """Check for an "indexes {" block inside a table block."""
    keyword = peek_keyword(text, pos)
    if keyword.lower() != "indexes":
        return False
    return peek(text, skip_whitespace(text, pos + len(keyword))) == "{"


def parse_column(
    text: str,
    pos: int,
    diagnostics: Diagnostics,
) -> Scanned[Column | None]:
    """Parse a column line: name, type and an optional attribute list."""
    start = pos
    name, pos = read_identifier(text, pos)
    pos = skip_blanks(text, pos)
    column_type, pos = read_type(text, pos) if name else ("", pos)
    if not name or not column_type:
        report(diagnostics, Construct.COLUMN, start, "column needs a name and a type")
        return None, skip_rest_of_line(text, max(pos, start + 1))

    column = Column(name=name, type=column_type)
    pos = skip_blanks(text, pos)
    if peek(text, pos) == "[":
        column, pos = parse_column_attributes(text, pos + 1, column, diagnostics)

    # Trailing content such as inline comments is ignored
    return column, skip_rest_of_line(text, pos)


def parse_column_attributes(  # noqa: C901
    text: str,
    pos: int,
    column: Column,
    diagnostics: Diagnostics,
) -> Scanned[Column]:
    """Parse the bracketed attribute list of a column, up to and including ']'."""
    while pos < len(text) and peek(text, pos) != "]":
        pos = skip_whitespace(text, pos)
        if pos >= len(text) or peek(text, pos) == "]":
            break

        start = pos
        raw, pos = read_identifier(text, pos)
        attribute = raw.lower()
        if not attribute:
            pos = max(pos, start + 1)
            continue

        if attribute in PRIMARY_KEY_ATTRIBUTES:
            column = replace(column, primary_key=True)
        elif attribute in INCREMENT_ATTRIBUTES:
            column = replace(column, auto_increment=True)
        elif attribute == "unique":
            column = replace(column, unique=True)
        elif attribute == "not":
            following, pos = read_identifier(text, skip_whitespace(text, pos))
            if following.lower() == "null":
                column = replace(column, not_null=True)
            else:
                report(diagnostics, Construct.ATTRIBUTE, start, f"'not {following}'")
        elif attribute == "default":
            default, pos = read_value(text, skip_optional(text, pos, ":"))
            column = replace(column, default=default)
        elif attribute == "note":
            note, pos = read_value(text, skip_optional(text, pos, ":"))
            column = replace(column, note=note)
        elif attribute == "ref":
            report(diagnostics, Construct.ATTRIBUTE, start, "inline ref ignored")
            pos = skip_until_attribute_end(text, pos)
        else:
            report(diagnostics, Construct.ATTRIBUTE, start, f"unknown '{raw}'")
            pos = skip_until_attribute_end(text, pos)

        pos = skip_whitespace(text, pos)
        if peek(text, pos) == ",":
            pos += 1

    if peek(text, pos) == "]":
        return column, pos + 1
    report(diagnostics, Construct.ATTRIBUTE, pos, "attribute list is not closed")
    return column, pos


def parse_index(
    text: str,
    pos: int,
    diagnostics: Diagnostics,
) -> Scanned[Index | None]:
    """Parse one line of an indexes block: a column or a (column, ...) list."""
    start = pos
    if peek(text, pos) == "(":
        columns, pos = read_identifier_list(text, pos)
    else:
        name, pos = read_identifier(text, pos)
        columns = (name,) if name else ()

    if not columns:
        report(diagnostics, Construct.INDEX, start, "index without columns")
        return None, skip_rest_of_line(text, max(pos, start + 1))

    index = Index(columns=columns)
    pos = skip_blanks(text, pos)
    if peek(text, pos) == "[":
        pos += 1
        while pos < len(text) and peek(text, pos) not in {"]", "\n"}:
            setting_start = skip_whitespace(text, pos)
            if peek(text, setting_start) == "]":
                pos = setting_start
                break
            raw, pos = read_identifier(text, setting_start)
            setting = raw.lower()
            if setting in {"unique", "pk"}:
                index = replace(index, unique=True)
            elif setting == "name":
                name, pos = read_value(text, skip_optional(text, pos, ":"))
                index = replace(index, name=name)
            elif setting:
                pos = skip_until_attribute_end(text, pos)
            else:
                pos = max(pos, setting_start + 1)
            pos = skip_whitespace(text, pos)
            if peek(text, pos) == ",":
                pos += 1
        if peek(text, pos) == "]":
            pos += 1

    return index, skip_rest_of_line(text, pos)


def parse_indexes(
    text: str,
    pos: int,
    diagnostics: Diagnostics,
) -> Scanned[list[Index]]:
    """Parse an indexes block, starting at its keyword."""
    pos = skip_whitespace(text, skip_keyword(text, pos)) + 1  # past "{"
    indexes: list[Index] = []
    while pos < len(text):
        pos = skip_whitespace(text, pos)
        if pos >= len(text) or peek(text, pos) == "}":
            break
        if is_comment(text, pos):
            pos = skip_line(text, pos)
            continue
        index, pos = parse_index(text, pos, diagnostics)
        if index is not None:
            indexes.append(index)

    if peek(text, pos) == "}":
        pos += 1
    return indexes, pos


def parse_table(  # noqa: C901
    text: str,
    pos: int,
    diagnostics: Diagnostics,
) -> Scanned[Table | None]:
    """Parse a Table block, starting at its keyword."""
    start = pos
    pos = skip_whitespace(text, skip_keyword(text, pos))
    qualified_name, pos = read_qualified_name(text, pos)
    schema, name = split_qualified(qualified_name)
    pos = skip_whitespace(text, pos)

    if peek_keyword(text, pos) == "as":
        pos = skip_whitespace(text, pos + 2)
        _, pos = read_identifier(text, pos)
        pos = skip_whitespace(text, pos)

    if peek(text, pos) == "[":
        report(diagnostics, Construct.TABLE, pos, "table settings ignored")
        pos = skip_whitespace(text, skip_until_attribute_end(text, pos + 1))
        while peek(text, pos) == ",":
            pos = skip_until_attribute_end(text, pos + 1)
        pos = skip_whitespace(text, pos + 1 if peek(text, pos) == "]" else pos)

    columns: list[Column] = []
    indexes: list[Index] = []
    note: str | None = None

    if peek(text, pos) == "{":
        pos = skip_whitespace(text, pos + 1)
        while pos < len(text) and peek(text, pos) != "}":
            pos = skip_whitespace(text, pos)
            if pos >= len(text) or peek(text, pos) == "}":
                break

            if is_comment(text, pos):
                pos = skip_line(text, pos)
            elif is_note_line(text, pos):
                pos = skip_optional(text, skip_keyword(text, pos), ":")
                note, pos = read_value(text, pos)
            elif is_indexes_block(text, pos):
                block, pos = parse_indexes(text, pos, diagnostics)
                indexes.extend(block)
            else:
                column, pos = parse_column(text, pos, diagnostics)
                if column is not None:
                    columns.append(column)

            pos = skip_whitespace(text, pos)

        if peek(text, pos) == "}":
            pos += 1
        else:
            report(diagnostics, Construct.TABLE, start, "table block is not closed")
    else:
        report(diagnostics, Construct.TABLE, start, "table has no body")

    # Also catches "schema." with nothing after the dot
    if not name:
        report(diagnostics, Construct.TABLE, start, "table without a name dropped")
        return None, pos

    table = Table(
        id=qualified_name,
        name=name,
        schema=schema,
        columns=tuple(columns),
        indexes=tuple(indexes),
        note=note,
    )
    return table, pos


def parse_endpoint(text: str, pos: int) -> Scanned[Endpoint | None]:
    """Parse "table.column", splitting at the last dot."""
    identifier, pos = read_qualified_name(text, pos)
    table, dot, column = identifier.rpartition(".")
    if not dot:
        return None, pos
    return (table, column), pos


def parse_operator(text: str, pos: int) -> Scanned[RelationshipType]:
    """Parse a relationship operator, defaulting to one-to-many."""
    for operator, relationship_type in OPERATORS:
        if text.startswith(operator, pos):
            return relationship_type, pos + len(operator)
    if peek(text, pos) == "-":
        pos += 1
    return DEFAULT_RELATIONSHIP_TYPE, pos


def parse_relationship(
    text: str,
    pos: int,
    diagnostics: Diagnostics,
) -> Scanned[Relationship | None]:
    """Parse a "Ref: [name] table.column <op> table.column" line."""
    start = pos
    pos = skip_whitespace(text, skip_keyword(text, pos))

    # Optional relationship name
    if pos < len(text) and peek(text, pos) != ":":
        _, pos = read_identifier(text, pos)
        pos = skip_whitespace(text, pos)
    pos = skip_optional(text, pos, ":")

    source_start = pos
    source, pos = parse_endpoint(text, pos)
    pos = skip_whitespace(text, pos)
    relationship_type, pos = parse_operator(text, pos)
    target_start = skip_whitespace(text, pos)
    target, pos = parse_endpoint(text, target_start)

    # Resume at the bad endpoint so a following definition is not swallowed
    if source is None or target is None:
        report(
            diagnostics,
            Construct.RELATIONSHIP,
            start,
            "relationship endpoints must be table.column",
        )
        return None, source_start if source is None else target_start

    relationship = Relationship(
        from_table=source[0],
        from_column=source[1],
        to_table=target[0],
        to_column=target[1],
        type=relationship_type,
    )
    return relationship, pos


def parse_enum(
    text: str,
    pos: int,
    diagnostics: Diagnostics,
) -> Scanned[Enum]:
    """Parse an Enum block, one value per line."""
    start = pos
    pos = skip_whitespace(text, skip_keyword(text, pos))
    name, pos = read_qualified_name(text, pos)
    pos = skip_whitespace(text, pos)

    values: list[str] = []
    if peek(text, pos) == "{":
        pos = skip_whitespace(text, pos + 1)
        while pos < len(text) and peek(text, pos) != "}":
            pos = skip_whitespace(text, pos)
            if pos >= len(text) or peek(text, pos) == "}":
                break

            if is_comment(text, pos):
                pos = skip_line(text, pos)
                continue

            value_start = pos
            value, pos = read_identifier(text, pos)
            if value:
                values.append(value)
            else:
                report(diagnostics, Construct.ENUM, value_start, "enum value skipped")
            # Value settings such as [note: '...'] are ignored
            pos = skip_rest_of_line(text, max(pos, value_start + 1))

        if peek(text, pos) == "}":
            pos += 1
    else:
        report(diagnostics, Construct.ENUM, start, "enum has no body")

    return Enum(name=name, values=tuple(values)), pos


def parse_dsl(source: str) -> ParseResult:  # noqa: C901
    """Parse DSL source text into a schema, recording what was dropped.

    Parsing never fails on malformed input: anything that is not understood
    is skipped, noted in the diagnostics, and parsing carries on.

    Args:
        source: DSL text with Table, Ref and Enum definitions

    Returns:
        The parsed schema and the diagnostics for skipped content

    """
    diagnostics: Diagnostics = []
    tables: list[Table] = []
    relationships: list[Relationship] = []
    enums: list[Enum] = []
    table_ids: set[str] = set()

    pos = 0
    skipped_from: int | None = None
    while pos < len(source):
        pos = skip_whitespace(source, pos)
        if pos >= len(source):
            break

        keyword = peek_keyword(source, pos)
        if keyword not in TOP_LEVEL_KEYWORDS and not is_comment(source, pos):
            if skipped_from is None:
                skipped_from = pos
            pos += 1
            continue

        if skipped_from is not None:
            report(diagnostics, Construct.CONTENT, skipped_from, "unrecognised content")
            skipped_from = None

        start = pos
        if keyword in TABLE_KEYWORDS:
            table, pos = parse_table(source, pos, diagnostics)
            if table is None:
                continue
            if table.id in table_ids:
                report(
                    diagnostics,
                    Construct.TABLE,
                    start,
                    f"duplicate table id '{table.id}'",
                )
            table_ids.add(table.id)
            tables.append(table)
        elif keyword in REF_KEYWORDS:
            relationship, pos = parse_relationship(source, pos, diagnostics)
            if relationship is not None:
                relationships.append(relationship)
        elif keyword in ENUM_KEYWORDS:
            enum, pos = parse_enum(source, pos, diagnostics)
            enums.append(enum)
        else:
            pos = skip_line(source, pos)

    if skipped_from is not None:
        report(diagnostics, Construct.CONTENT, skipped_from, "unrecognised content")

    schema = Schema(
        tables=tuple(tables),
        relationships=tuple(relationships),
        enums=tuple(enums),
    )
    logger.debug(
        "Parsed %d tables, %d relationships and %d enums with %d diagnostics",
        len(schema.tables),
        len(schema.relationships),
        len(schema.enums),
        len(diagnostics),
    )
    return ParseResult(schema, tuple(diagnostics))


def dsl_to_schema(source: str, *, strict: bool = False) -> Schema:
    """Parse DSL source text into a schema.

    Args:
        source: DSL text with Table, Ref and Enum definitions
        strict: Raise SchemaParseError instead of skipping unparsed content

    Returns:
        The parsed schema, possibly partial for malformed input

    """
    return ensure_clean(parse_dsl(source), strict=strict)
