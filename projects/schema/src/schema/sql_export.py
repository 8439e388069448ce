"""SQL DDL generation from the schema model using SQLAlchemy."""

from collections.abc import Callable, Iterable, Mapping
from logging import getLogger
from re import compile as compile_pattern
from typing import Any, Literal

from sqlalchemy import Column as SQLColumn
from sqlalchemy import ForeignKeyConstraint, MetaData, text
from sqlalchemy import Index as SQLIndex
from sqlalchemy import Table as SQLTable
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.schema import CreateIndex, CreateTable
from sqlalchemy.types import Integer

from schema.type_conversion import type_string_to_sql
from schema.types import Column, Enum, Relationship, RelationshipType, Schema, Table

logger = getLogger(__name__)

type SQLDialect = Literal["postgresql", "mysql", "sqlite"]
type Endpoints = tuple[str, str, str, str]

DIALECTS: Mapping[str, Callable[[], Dialect]] = {
    "postgresql": postgresql.dialect,
    "mysql": mysql.dialect,
    "sqlite": sqlite.dialect,
}

# Defaults that are SQL expressions rather than string literals
EXPRESSION_DEFAULT = compile_pattern(r"-?\d+(?:\.\d+)?|\w+\(.*\)|\(.*\)")
KEYWORD_DEFAULTS = {
    "null",
    "true",
    "false",
    "current_timestamp",
    "current_date",
    "current_time",
    "localtimestamp",
}


def server_default(value: str) -> Any:  # noqa: ANN401
    """Build a server default, quoting it unless it looks like an expression."""
    if EXPRESSION_DEFAULT.fullmatch(value) or value.lower() in KEYWORD_DEFAULTS:
        return text(value.replace(":", r"\:"))
    return value


def build_column(
    column: Column,
    enums: Mapping[str, Enum],
    *,
    autoincrement: bool,
) -> SQLColumn[Any]:
    """Build a SQLAlchemy column from a model column."""
    return SQLColumn(
        column.name,
        type_string_to_sql(column.type, enums),
        primary_key=column.primary_key,
        nullable=not (column.not_null or column.primary_key),
        unique=column.unique,
        autoincrement=autoincrement,
        server_default=(
            server_default(column.default) if column.default is not None else None
        ),
        comment=column.note,
    )


def autoincrement_column(table: Table, enums: Mapping[str, Enum]) -> str | None:
    """Pick the single integer primary key column that may auto increment."""
    return next(
        (
            column.name
            for column in table.columns
            if column.auto_increment
            and column.primary_key
            and isinstance(type_string_to_sql(column.type, enums), Integer)
        ),
        None,
    )


def build_table(
    table: Table,
    metadata: MetaData,
    enums: Mapping[str, Enum],
) -> tuple[SQLTable, list[SQLIndex]]:
    """Build a SQLAlchemy table and its indexes from a model table."""
    serial = autoincrement_column(table, enums)
    columns: dict[str, SQLColumn[Any]] = {}
    for column in table.columns:
        if column.name in columns:
            logger.warning(
                "Skipping duplicate column %s.%s",
                table.qualified_name,
                column.name,
            )
            continue
        columns[column.name] = build_column(
            column,
            enums,
            autoincrement=column.name == serial,
        )

    sql_table = SQLTable(
        table.name,
        metadata,
        *columns.values(),
        schema=table.schema,
        comment=table.note,
    )

    indexes: list[SQLIndex] = []
    for index in table.indexes:
        missing = [name for name in index.columns if name not in columns]
        if missing or not index.columns:
            logger.debug(
                "Skipping index on %s, unknown columns: %s",
                table.qualified_name,
                missing,
            )
            continue
        name = index.name or f"ix_{table.name}_{'_'.join(index.columns)}"
        indexes.append(
            SQLIndex(
                name,
                *(columns[column] for column in index.columns),
                unique=index.unique,
            ),
        )

    return sql_table, indexes


def foreign_key_endpoints(relationship: Relationship) -> Endpoints | None:
    """Return (table, column, referenced table, referenced column) for the key."""
    match relationship.type:
        case RelationshipType.MANY_TO_ONE | RelationshipType.ONE_TO_ONE:
            return (
                relationship.from_table,
                relationship.from_column,
                relationship.to_table,
                relationship.to_column,
            )
        case RelationshipType.ONE_TO_MANY:
            return (
                relationship.to_table,
                relationship.to_column,
                relationship.from_table,
                relationship.from_column,
            )
        case _:
            return None


def add_foreign_keys(
    tables: Mapping[str, SQLTable],
    relationships: Iterable[Relationship],
) -> None:
    """Attach a foreign key constraint for every resolvable relationship."""
    for relationship in relationships:
        endpoints = foreign_key_endpoints(relationship)
        if endpoints is None:
            logger.debug("No foreign key for %s relationship", relationship.id)
            continue

        table_id, column_name, target_id, target_name = endpoints
        owner = tables.get(table_id)
        target = tables.get(target_id)
        if owner is None or target is None:
            logger.debug("Skipping dangling relationship %s", relationship.id)
            continue

        column = owner.c.get(column_name)
        target_column = target.c.get(target_name)
        if column is None or target_column is None:
            logger.debug("Skipping dangling relationship %s", relationship.id)
            continue

        owner.append_constraint(ForeignKeyConstraint([column.name], [target_column]))


def create_enum_statement(enum: Enum, dialect: Dialect) -> str:
    """Render a PostgreSQL CREATE TYPE statement for an enumeration."""
    preparer = dialect.identifier_preparer
    schema_name, _, name = enum.name.rpartition(".")
    qualified = preparer.quote(name)
    if schema_name:
        qualified = f"{preparer.quote_schema(schema_name)}.{qualified}"
    values = ", ".join("'{}'".format(value.replace("'", "''")) for value in enum.values)
    return f"CREATE TYPE {qualified} AS ENUM ({values})"


def schema_to_sql(schema: Schema, dialect: SQLDialect = "postgresql") -> str:
    """Generate SQL DDL statements for a schema.

    Args:
        schema: The schema to render
        dialect: SQL dialect the statements are compiled for

    Returns:
        Semicolon terminated CREATE statements, tables in schema order

    Raises:
        ValueError: If the dialect is not supported

    """
    if dialect not in DIALECTS:
        msg = f"Unsupported SQL dialect: {dialect}"
        raise ValueError(msg)

    sql_dialect = DIALECTS[dialect]()
    metadata = MetaData()
    enums = {enum.name: enum for enum in schema.enums}

    tables: dict[str, SQLTable] = {}
    indexes: list[SQLIndex] = []
    for table in schema.tables:
        if table.id in tables or table.qualified_name in metadata.tables:
            logger.warning("Skipping duplicate table %s", table.id)
            continue
        tables[table.id], table_indexes = build_table(table, metadata, enums)
        indexes.extend(table_indexes)

    add_foreign_keys(tables, schema.relationships)

    statements: list[str] = []
    if dialect == "postgresql":
        statements.extend(
            create_enum_statement(enum, sql_dialect)
            for enum in schema.enums
            if enum.values
        )
    statements.extend(
        str(CreateTable(table).compile(dialect=sql_dialect)).strip()
        for table in tables.values()
    )
    statements.extend(
        str(CreateIndex(index).compile(dialect=sql_dialect)).strip()
        for index in indexes
    )

    return ";\n\n".join(statements) + ";\n" if statements else ""
