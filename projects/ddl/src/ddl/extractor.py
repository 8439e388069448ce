"""Pattern-based extraction of a schema model from SQL DDL scripts."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, NamedTuple

from schema.diagnostics import Construct, Diagnostic, ParseResult, ensure_clean
from schema.dsl_export import schema_to_dsl
from schema.types import Column, Enum, Index, Relationship, RelationshipType, Schema, Table

from ddl.rules import (
    ALTER_TABLE_FOREIGN_KEY,
    COLUMN_DEFINITION,
    CREATE_ENUM_TYPE,
    CREATE_INDEX,
    CREATE_TABLE,
    FOREIGN_KEY,
    INDEX_CONSTRAINT,
    INLINE_AUTO_INCREMENT,
    INLINE_COMMENT,
    INLINE_DEFAULT,
    INLINE_NOT_NULL,
    INLINE_PRIMARY_KEY,
    INLINE_REFERENCES,
    INLINE_UNIQUE,
    NAMED_CONSTRAINT,
    PRIMARY_KEY,
    SERIAL_TYPES,
    TABLE_CONSTRAINT,
    UNIQUE_CONSTRAINT,
    clean_identifier,
    split_names,
    string_literals,
    unquote,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ddl.rules import Rule

logger = getLogger(__name__)

type Diagnostics = list[Diagnostic]
type Span = tuple[int, int]

QUOTES = frozenset("'\"`")

LINE_COMMENT = re.compile(r"--[^\n]*")
BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
STATEMENT = re.compile(r"[^;]+")


class Clause(NamedTuple):
    """A top level part of a table body and its offset within the body."""

    offset: int
    text: str


@dataclass
class TableDraft:
    """A table being assembled from the clauses of a CREATE TABLE body."""

    id: str
    name: str
    schema: str | None
    columns: list[Column] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)

    def to_table(self) -> Table:
        """Freeze the draft into a model table."""
        return Table(
            id=self.id,
            name=self.name,
            schema=self.schema,
            columns=tuple(self.columns),
            indexes=tuple(self.indexes),
        )


def report(
    diagnostics: Diagnostics,
    construct: Construct,
    offset: int,
    message: str,
) -> None:
    """Record a diagnostic for a skipped statement or clause."""
    logger.debug("%s at offset %d: %s", construct, offset, message)
    diagnostics.append(Diagnostic(construct, offset, message))


def _blank(match: re.Match[str]) -> str:
    """Replace matched text with spaces, keeping newlines."""
    return re.sub(r"[^\n]", " ", match.group())


def strip_comments(sql: str) -> str:
    """Blank out comments and normalise line endings without moving offsets."""
    sql = sql.replace("\r\n", " \n")
    sql = LINE_COMMENT.sub(_blank, sql)
    return BLOCK_COMMENT.sub(_blank, sql)


def split_top_level(text: str) -> list[Clause]:
    """Split on commas that are outside parentheses and quotes.

    Keeps "decimal(10,2)" and "PRIMARY KEY (a, b)" in one clause.
    """
    clauses: list[Clause] = []
    depth = 0
    quote: str | None = None
    start = 0
    for position, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
        elif char in QUOTES:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        elif char == "," and depth == 0:
            clauses.append(Clause(start, text[start:position]))
            start = position + 1

    if text[start:].strip():
        clauses.append(Clause(start, text[start:]))
    return clauses


def split_qualified(name: str) -> tuple[str | None, str]:
    """Split "schema.table" into its schema and table name."""
    schema, dot, table = name.partition(".")
    return (schema, table) if dot else (None, name)


def foreign_key_relationships(  # noqa: PLR0913
    table: str,
    columns: str,
    target: str,
    target_columns: str,
    offset: int,
    diagnostics: Diagnostics,
) -> list[Relationship]:
    """Build one many-to-one relationship per referencing column pair."""
    sources = split_names(columns)
    targets = split_names(target_columns)
    if not sources or len(sources) != len(targets):
        report(
            diagnostics,
            Construct.CONSTRAINT,
            offset,
            "foreign key column lists do not pair up",
        )
        return []

    target_table = clean_identifier(target)
    return [
        Relationship(
            from_table=table,
            from_column=source,
            to_table=target_table,
            to_column=target_column,
            type=RelationshipType.MANY_TO_ONE,
        )
        for source, target_column in zip(sources, targets, strict=True)
    ]


def inline_default(tail: str) -> str | None:
    """Extract the DEFAULT value of a column definition."""
    if not (match := INLINE_DEFAULT.pattern.search(tail)):
        return None
    if match[1] is not None:
        return match[1].replace("''", "'")
    return unquote(match["token"])


def extract_column(
    clause: str,
    offset: int,
    table: str,
    diagnostics: Diagnostics,
) -> tuple[Column | None, list[Relationship]]:
    """Parse "<name> <type[(args)]> <tail>" into a column and its inline references."""
    match = COLUMN_DEFINITION.pattern.match(clause)
    if not match:
        report(diagnostics, Construct.COLUMN, offset, "unparsed column definition")
        return None, []

    name = clean_identifier(match["name"])
    column_type = match["type"].lower()
    tail = match["tail"]
    note = INLINE_COMMENT.pattern.search(tail)

    column = Column(
        name=name,
        type=column_type,
        primary_key=bool(INLINE_PRIMARY_KEY.pattern.search(tail)),
        not_null=bool(INLINE_NOT_NULL.pattern.search(tail)),
        unique=bool(INLINE_UNIQUE.pattern.search(tail)),
        auto_increment=(
            bool(INLINE_AUTO_INCREMENT.pattern.search(tail))
            or column_type.partition("(")[0] in SERIAL_TYPES
        ),
        default=inline_default(tail),
        note=note["note"] if note else None,
    )

    relationships: list[Relationship] = []
    if reference := INLINE_REFERENCES.pattern.search(tail):
        relationships = foreign_key_relationships(
            table,
            match["name"],
            reference["target"],
            reference["target_columns"],
            offset,
            diagnostics,
        )
    return column, relationships


def apply_table_constraint(
    draft: TableDraft,
    clause: str,
    offset: int,
    diagnostics: Diagnostics,
) -> None:
    """Apply a table level PRIMARY KEY, FOREIGN KEY, UNIQUE or INDEX clause."""
    if match := PRIMARY_KEY.pattern.search(clause):
        for name in split_names(match["columns"]):
            position = next(
                (i for i, column in enumerate(draft.columns) if column.name == name),
                None,
            )
            if position is None:
                report(
                    diagnostics,
                    Construct.CONSTRAINT,
                    offset,
                    f"primary key names unknown column '{name}'",
                )
                continue
            draft.columns[position] = replace(draft.columns[position], primary_key=True)
        return

    if match := FOREIGN_KEY.pattern.search(clause):
        draft.relationships.extend(
            foreign_key_relationships(
                draft.id,
                match["columns"],
                match["target"],
                match["target_columns"],
                offset,
                diagnostics,
            ),
        )
        return

    # Table level UNIQUE is kept as an index, column flags stay untouched
    if match := UNIQUE_CONSTRAINT.pattern.search(clause):
        constraint = NAMED_CONSTRAINT.pattern.match(clause)
        name = match["name"] or (constraint["name"] if constraint else None)
        draft.indexes.append(
            Index(
                columns=tuple(split_names(match["columns"])),
                unique=True,
                name=clean_identifier(name) if name else None,
            ),
        )
        return

    if match := INDEX_CONSTRAINT.pattern.search(clause):
        draft.indexes.append(
            Index(
                columns=tuple(split_names(match["columns"])),
                name=clean_identifier(match["name"]) if match["name"] else None,
            ),
        )
        return

    report(diagnostics, Construct.CONSTRAINT, offset, "unsupported table constraint")


def extract_table(match: re.Match[str], diagnostics: Diagnostics) -> TableDraft:
    """Build a table draft from a CREATE TABLE match."""
    table_id = clean_identifier(match["table"])
    schema, name = split_qualified(table_id)
    draft = TableDraft(id=table_id, name=name, schema=schema)

    body_offset = match.start("body")
    for clause_offset, text in split_top_level(match["body"]):
        clause = text.strip()
        if not clause:
            continue
        offset = body_offset + clause_offset + len(text) - len(text.lstrip())

        if TABLE_CONSTRAINT.pattern.match(clause):
            apply_table_constraint(draft, clause, offset, diagnostics)
            continue

        column, relationships = extract_column(clause, offset, draft.id, diagnostics)
        if column is not None:
            draft.columns.append(column)
        draft.relationships.extend(relationships)

    return draft


def find_statements(rule: Rule, text: str) -> list[re.Match[str]]:
    """Return every match of a statement rule in the script."""
    matches = list(rule.pattern.finditer(text))
    logger.debug("Rule '%s' matched %d statements", rule.name, len(matches))
    return matches


def report_unrecognised_statements(
    text: str,
    covered: Iterable[Span],
    diagnostics: Diagnostics,
) -> None:
    """Report statements that no rule matched."""
    spans = sorted(covered)
    for statement in STATEMENT.finditer(text):
        content = statement.group()
        if not content.strip():
            continue
        start = statement.start() + len(content) - len(content.lstrip())
        if any(span_start <= start < span_end for span_start, span_end in spans):
            continue
        summary = " ".join(content.split()[:3])
        report(
            diagnostics,
            Construct.STATEMENT,
            start,
            f"unrecognised statement '{summary}'",
        )


def parse_sql(sql: str) -> ParseResult:  # noqa: C901
    """Extract a schema from a SQL script, recording what was skipped.

    Statements are matched independently of each other, so an ALTER TABLE
    foreign key yields a relationship even when its tables were never created.

    Args:
        sql: Script with CREATE TABLE, ALTER TABLE, CREATE INDEX and
            CREATE TYPE ... AS ENUM statements

    Returns:
        The extracted schema and the diagnostics for skipped content

    """
    text = strip_comments(sql)
    diagnostics: Diagnostics = []
    covered: list[Span] = []
    tables: dict[str, Table] = {}
    relationships: list[Relationship] = []
    enums: list[Enum] = []

    for match in find_statements(CREATE_TABLE, text):
        covered.append(match.span())
        draft = extract_table(match, diagnostics)
        relationships.extend(draft.relationships)
        if not draft.columns:
            report(diagnostics, Construct.TABLE, match.start(), "table without columns")
            continue
        if draft.id in tables:
            report(
                diagnostics,
                Construct.TABLE,
                match.start(),
                f"duplicate table '{draft.id}' replaces the earlier definition",
            )
        tables[draft.id] = draft.to_table()

    for match in find_statements(CREATE_INDEX, text):
        covered.append(match.span())
        table_id = clean_identifier(match["table"])
        if table_id not in tables:
            report(
                diagnostics,
                Construct.INDEX,
                match.start(),
                f"index on unknown table '{table_id}'",
            )
            continue
        index = Index(
            columns=tuple(split_names(match["columns"])),
            unique=bool(match["unique"]),
            name=clean_identifier(match["name"]) if match["name"] else None,
        )
        table = tables[table_id]
        tables[table_id] = replace(table, indexes=(*table.indexes, index))

    for match in find_statements(ALTER_TABLE_FOREIGN_KEY, text):
        covered.append(match.span())
        relationships.extend(
            foreign_key_relationships(
                clean_identifier(match["table"]),
                match["columns"],
                match["target"],
                match["target_columns"],
                match.start(),
                diagnostics,
            ),
        )

    for match in find_statements(CREATE_ENUM_TYPE, text):
        covered.append(match.span())
        enums.append(
            Enum(
                name=clean_identifier(match["name"]),
                values=tuple(string_literals(match["values"])),
            ),
        )

    report_unrecognised_statements(text, covered, diagnostics)
    diagnostics.sort(key=lambda diagnostic: diagnostic.offset)

    schema = Schema(
        tables=tuple(tables.values()),
        relationships=tuple(relationships),
        enums=tuple(enums),
    )
    logger.debug(
        "Extracted %d tables, %d relationships and %d enums with %d diagnostics",
        len(schema.tables),
        len(schema.relationships),
        len(schema.enums),
        len(diagnostics),
    )
    return ParseResult(schema, tuple(diagnostics))


def sql_to_schema(sql: str, *, strict: bool = False) -> Schema:
    """Extract a schema from a SQL script.

    Args:
        sql: SQL DDL script
        strict: Raise SchemaParseError instead of skipping unparsed content

    Returns:
        The extracted schema, possibly partial for unsupported statements

    """
    return ensure_clean(parse_sql(sql), strict=strict)


def sql_to_dsl(sql: str, *, preserve_cardinality: bool = True) -> str:
    """Convert a SQL script into DSL source text."""
    return schema_to_dsl(
        sql_to_schema(sql),
        preserve_cardinality=preserve_cardinality,
    )
