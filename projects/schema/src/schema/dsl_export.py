"""Render a schema model back into DSL source text."""

from logging import getLogger
from re import compile as compile_pattern

from schema.types import Column, Enum, Index, Relationship, RelationshipType, Schema, Table

logger = getLogger(__name__)

QUOTES = ('"', "'", "`")

# Names the parser reads back unchanged without quoting
BARE_NAME = compile_pattern(r"[A-Za-z0-9_]+")
BARE_QUALIFIED_NAME = compile_pattern(r"[A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)*")
BARE_TYPE = compile_pattern(r"[A-Za-z0-9_.]+(?:\([^()\n\"'`]*\))?")

# Characters that end an unquoted attribute value
VALUE_TERMINATORS = frozenset(",]\n}")

OPERATORS: dict[RelationshipType, str] = {
    RelationshipType.ONE_TO_MANY: ">",
    RelationshipType.MANY_TO_ONE: "<",
    RelationshipType.MANY_TO_MANY: "<>",
    RelationshipType.ONE_TO_ONE: "--",
}


def quote(text: str) -> str:
    """Wrap text in the first quote character it does not contain."""
    for mark in QUOTES:
        if mark not in text:
            return f"{mark}{text}{mark}"
    logger.warning("Value contains every quote character, output is lossy: %r", text)
    return f'"{text}"'


def render_name(name: str) -> str:
    """Render a column, enum or enum value name."""
    return name if BARE_NAME.fullmatch(name) else quote(name)


def render_qualified_name(name: str) -> str:
    """Render a possibly schema-qualified table name."""
    if BARE_QUALIFIED_NAME.fullmatch(name):
        return name
    return ".".join(render_name(part) for part in name.split("."))


def render_type(type_name: str) -> str:
    """Render a column type, keeping argument lists such as varchar(50)."""
    return type_name if BARE_TYPE.fullmatch(type_name) else quote(type_name)


def render_value(value: str) -> str:
    """Render an unquoted attribute value unless it would not read back."""
    needs_quoting = (
        not value
        or value != value.strip()
        or value.startswith(QUOTES)
        or any(char in VALUE_TERMINATORS for char in value)
    )
    return quote(value) if needs_quoting else value


def column_attributes(column: Column) -> list[str]:
    """Collect the bracketed attributes of a column in their fixed order."""
    attributes: list[str] = []
    if column.primary_key:
        attributes.append("pk")
    if column.not_null:
        attributes.append("not null")
    if column.unique:
        attributes.append("unique")
    if column.auto_increment:
        attributes.append("increment")
    if column.default is not None:
        attributes.append(f"default: {render_value(column.default)}")
    if column.note is not None:
        attributes.append(f"note: {quote(column.note)}")
    return attributes


def generate_column_definition(column: Column) -> str:
    """Generate the DSL line for a column."""
    line = f"  {render_name(column.name)} {render_type(column.type)}"
    if attributes := column_attributes(column):
        line = f"{line} [{', '.join(attributes)}]"
    return line


def generate_index_definition(index: Index) -> str:
    """Generate the DSL line for an entry of an indexes block."""
    names = [render_name(name) for name in index.columns]
    target = names[0] if len(names) == 1 else f"({', '.join(names)})"

    settings: list[str] = []
    if index.unique:
        settings.append("unique")
    if index.name is not None:
        settings.append(f"name: {quote(index.name)}")

    line = f"    {target}"
    if settings:
        line = f"{line} [{', '.join(settings)}]"
    return line


def generate_table_definition(table: Table) -> str:
    """Generate the complete DSL block for a table."""
    lines = [f"Table {render_qualified_name(table.qualified_name)} {{"]
    lines.extend(generate_column_definition(column) for column in table.columns)

    if table.indexes:
        lines.append("")
        lines.append("  indexes {")
        lines.extend(generate_index_definition(index) for index in table.indexes)
        lines.append("  }")

    if table.note is not None:
        lines.append("")
        lines.append(f"  Note: {quote(table.note)}")

    lines.append("}")
    return "\n".join(lines)


def generate_enum_definition(enum: Enum) -> str:
    """Generate the DSL block for an enumeration."""
    lines = [f"Enum {render_qualified_name(enum.name)} {{"]
    lines.extend(f"  {render_name(value)}" for value in enum.values)
    lines.append("}")
    return "\n".join(lines)


def generate_relationship_definition(
    relationship: Relationship,
    *,
    preserve_cardinality: bool = True,
) -> str:
    """Generate the Ref line for a relationship."""
    operator = OPERATORS[relationship.type] if preserve_cardinality else ">"
    source = render_qualified_name(f"{relationship.from_table}.{relationship.from_column}")
    target = render_qualified_name(f"{relationship.to_table}.{relationship.to_column}")
    return f"Ref: {source} {operator} {target}"


def schema_to_dsl(schema: Schema, *, preserve_cardinality: bool = True) -> str:
    """Render a schema as DSL source text.

    Tables come first in schema order, then enums, then one ``Ref`` line per
    relationship.

    Args:
        schema: The schema to render
        preserve_cardinality: Emit the operator matching each relationship
            type. When False every relationship is written with ``>``, which
            reads back as one-to-many.

    Returns:
        DSL text that parses back into an equivalent schema

    """
    blocks = [generate_table_definition(table) for table in schema.tables]
    blocks.extend(generate_enum_definition(enum) for enum in schema.enums)

    if schema.relationships:
        blocks.append(
            "\n".join(
                generate_relationship_definition(
                    relationship,
                    preserve_cardinality=preserve_cardinality,
                )
                for relationship in schema.relationships
            ),
        )

    return "\n\n".join(blocks) + "\n" if blocks else ""
