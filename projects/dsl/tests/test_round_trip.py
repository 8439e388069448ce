"""Tests that rendered DSL parses back into the same schema."""

import pytest

from dsl import dsl_to_schema, parse_dsl
from schema import (
    Column,
    Enum,
    Index,
    Relationship,
    RelationshipType,
    Schema,
    Table,
    schema_to_dsl,
)


@pytest.fixture(name="schema")
def shop_sample_schema() -> Schema:
    """Create a schema exercising every part of the DSL."""
    users = Table(
        id="auth.users",
        name="users",
        schema="auth",
        columns=(
            Column("id", "int", primary_key=True, auto_increment=True),
            Column("email", "varchar(255)", not_null=True, unique=True),
            Column("bio", "text", default="", note="About me"),
            Column("balance", "decimal(10,2)", default="0.00"),
            Column("first name", "varchar(50)"),
            Column("score", "double precision", default="now(), later"),
        ),
        indexes=(
            Index(("email",), unique=True, name="ix_email"),
            Index(("id", "email")),
        ),
        note="Registered users",
    )
    orders = Table(
        id="orders",
        name="orders",
        columns=(
            Column("id", "bigint", primary_key=True),
            Column("user_id", "int", not_null=True),
            Column("status", "app.order_status", default="'pending'"),
        ),
    )
    return Schema(
        tables=(users, orders),
        relationships=(
            Relationship("orders", "user_id", "auth.users", "id", RelationshipType.MANY_TO_ONE),
            Relationship("auth.users", "id", "orders", "user_id", RelationshipType.ONE_TO_MANY),
            Relationship("orders", "id", "invoices", "order_id", RelationshipType.ONE_TO_ONE),
            Relationship("orders", "id", "tags", "id", RelationshipType.MANY_TO_MANY),
        ),
        enums=(Enum("app.order_status", ("pending", "shipped", "on hold")),),
    )


def test_reparse_is_identical(schema: Schema) -> None:
    """Test that parsing rendered text reproduces the schema exactly."""
    source = schema_to_dsl(schema)
    result = parse_dsl(source)

    assert result.diagnostics == ()
    assert result.schema == schema


def test_reparse_is_stable(schema: Schema) -> None:
    """Test that a second render matches the first."""
    source = schema_to_dsl(schema)
    assert schema_to_dsl(dsl_to_schema(source)) == source


def test_legacy_rendering_loses_cardinality(schema: Schema) -> None:
    """Test that every relationship reads back as one-to-many in legacy mode."""
    source = schema_to_dsl(schema, preserve_cardinality=False)
    reparsed = dsl_to_schema(source)

    assert reparsed.tables == schema.tables
    assert {relationship.type for relationship in reparsed.relationships} == {
        RelationshipType.ONE_TO_MANY,
    }


def test_index_column_with_comma_round_trips() -> None:
    """Test that a composite index over a name containing a comma reads back."""
    schema = Schema(
        tables=(
            Table(
                id="t",
                name="t",
                columns=(Column("a,b", "int"), Column("c", "int")),
                indexes=(Index(("a,b", "c")),),
            ),
        ),
    )
    assert dsl_to_schema(schema_to_dsl(schema)) == schema
