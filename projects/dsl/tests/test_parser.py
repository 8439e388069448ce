"""Tests for parsing DSL source text into the schema model."""

import pytest

from dsl import dsl_to_schema, parse_dsl
from schema import (
    Column,
    Construct,
    Diagnostic,
    Enum,
    Index,
    RelationshipType,
    SchemaParseError,
    Table,
)


def constructs(source: str) -> list[Construct]:
    """Return the construct kinds of the diagnostics for a source text."""
    return [diagnostic.construct for diagnostic in parse_dsl(source).diagnostics]


def test_table_with_column_attributes() -> None:
    """Test a table with a primary key and a not null column."""
    schema = dsl_to_schema(
        "Table users {\n id int [pk, increment]\n name varchar(50) [not null]\n}",
    )

    assert schema.tables == (
        Table(
            id="users",
            name="users",
            columns=(
                Column("id", "int", primary_key=True, auto_increment=True),
                Column("name", "varchar(50)", not_null=True),
            ),
        ),
    )
    assert schema.relationships == ()
    assert schema.enums == ()


def test_clean_input_has_no_diagnostics() -> None:
    """Test that well formed input records nothing."""
    result = parse_dsl("Table users {\n id int [pk]\n}\nRef: posts.user_id > users.id\n")
    assert result.diagnostics == ()


def test_columns_without_attributes() -> None:
    """Test that consecutive plain columns are all kept."""
    schema = dsl_to_schema("Table t {\n  a int\n  b text\n  c decimal(10,2)\n}")
    assert [(column.name, column.type) for column in schema.tables[0].columns] == [
        ("a", "int"),
        ("b", "text"),
        ("c", "decimal(10,2)"),
    ]


def test_single_line_table() -> None:
    """Test a table whose body and closing brace share a line."""
    schema = dsl_to_schema("Table t { a int }")
    assert schema.tables[0].columns == (Column("a", "int"),)


def test_table_and_column_order() -> None:
    """Test that declaration order is preserved."""
    schema = dsl_to_schema(
        "Table b {\n z int\n y int\n}\nTable a {\n x int\n}\nTable c {\n w int\n}",
    )
    assert [table.id for table in schema.tables] == ["b", "a", "c"]
    assert [column.name for column in schema.tables[0].columns] == ["z", "y"]


def test_schema_qualified_table() -> None:
    """Test that a dotted table name is split into schema and name."""
    table = dsl_to_schema("Table auth.users {\n id int\n}").tables[0]
    assert (table.id, table.schema, table.name) == ("auth.users", "auth", "users")


def test_quoted_qualified_table() -> None:
    """Test that quoted name parts are joined."""
    table = dsl_to_schema('Table "public"."user accounts" {\n id int\n}').tables[0]
    assert (table.schema, table.name) == ("public", "user accounts")


def test_table_alias_is_skipped() -> None:
    """Test that an alias does not replace the table name."""
    table = dsl_to_schema("Table users as U {\n id int\n}").tables[0]
    assert table.name == "users"
    assert len(table.columns) == 1


def test_table_settings_are_skipped() -> None:
    """Test that a settings list after the name is ignored."""
    result = parse_dsl("Table t [headercolor: #3498DB] {\n id int\n}")
    table = result.schema.tables[0]
    assert table.color is None
    assert len(table.columns) == 1
    assert [diagnostic.construct for diagnostic in result.diagnostics] == [
        Construct.TABLE,
    ]


def test_table_note() -> None:
    """Test that a Note line sets the table note."""
    table = dsl_to_schema("Table t {\n id int\n Note: 'Stores things'\n}").tables[0]
    assert table.note == "Stores things"
    assert len(table.columns) == 1


def test_column_named_note() -> None:
    """Test that Note without a colon is an ordinary column."""
    table = dsl_to_schema("Table t {\n Note varchar\n}").tables[0]
    assert table.note is None
    assert table.columns == (Column("Note", "varchar"),)


def test_default_and_note_values() -> None:
    """Test quoted and unquoted attribute values."""
    columns = dsl_to_schema(
        "Table t {\n"
        " created timestamp [default: `now()`]\n"
        " status varchar [default: 'active', note: 'Current state']\n"
        " retries int [default: 3]\n"
        "}",
    ).tables[0].columns
    assert columns[0].default == "now()"
    assert (columns[1].default, columns[1].note) == ("active", "Current state")
    assert columns[2].default == "3"


@pytest.mark.parametrize("attribute", ["pk", "primary", "primarykey", "PK"])
def test_primary_key_spellings(attribute: str) -> None:
    """Test every accepted spelling of the primary key attribute."""
    column = dsl_to_schema(f"Table t {{\n id int [{attribute}]\n}}").tables[0].columns[0]
    assert column.primary_key


def test_not_followed_by_other_token() -> None:
    """Test that 'not' only means not null when followed by null."""
    result = parse_dsl("Table t {\n a int [not unique]\n}")
    column = result.schema.tables[0].columns[0]
    assert not column.not_null
    assert not column.unique
    assert [diagnostic.construct for diagnostic in result.diagnostics] == [
        Construct.ATTRIBUTE,
    ]


def test_inline_ref_is_ignored() -> None:
    """Test that an inline ref attribute produces no relationship."""
    result = parse_dsl("Table posts {\n user_id int [ref: > users.id, not null]\n}")
    assert result.schema.relationships == ()
    assert result.schema.tables[0].columns[0].not_null
    assert Construct.ATTRIBUTE in [diagnostic.construct for diagnostic in result.diagnostics]


def test_unknown_attribute_is_skipped() -> None:
    """Test that unknown attributes do not hide the ones after them."""
    result = parse_dsl("Table t {\n id int [foo: bar, pk]\n}")
    assert result.schema.tables[0].columns[0].primary_key
    assert len(result.diagnostics) == 1


def test_column_without_type_is_dropped() -> None:
    """Test that a column needs both a name and a type."""
    result = parse_dsl("Table t {\n id\n name text\n}")
    assert result.schema.tables[0].columns == (Column("name", "text"),)
    assert result.diagnostics == (
        Diagnostic(Construct.COLUMN, 11, "column needs a name and a type"),
    )


def test_indexes_block() -> None:
    """Test single and composite index lines."""
    table = dsl_to_schema(
        "Table t {\n"
        "  a int\n"
        "  b int\n"
        "  indexes {\n"
        "    a [unique]\n"
        "    (a, b) [name: 'ix_ab']\n"
        "    b\n"
        "  }\n"
        "}",
    ).tables[0]
    assert [column.name for column in table.columns] == ["a", "b"]
    assert table.indexes == (
        Index(("a",), unique=True),
        Index(("a", "b"), name="ix_ab"),
        Index(("b",)),
    )


def test_index_column_with_comma() -> None:
    """Test that a quoted index column containing a comma stays one column."""
    table = dsl_to_schema(
        'Table t {\n  "a,b" int\n  c int\n  indexes {\n    ("a,b", c)\n  }\n}',
    ).tables[0]
    assert table.indexes == (Index(("a,b", "c")),)


@pytest.mark.parametrize(
    ("operator", "expected"),
    [
        (">", RelationshipType.ONE_TO_MANY),
        ("<", RelationshipType.MANY_TO_ONE),
        ("<>", RelationshipType.MANY_TO_MANY),
        ("--", RelationshipType.ONE_TO_ONE),
        ("", RelationshipType.ONE_TO_MANY),
    ],
)
def test_relationship_operators(operator: str, expected: RelationshipType) -> None:
    """Test the operator to cardinality mapping and its default."""
    schema = dsl_to_schema(f"Ref: a.x {operator} b.y")
    assert [relationship.type for relationship in schema.relationships] == [expected]


def test_dangling_relationship() -> None:
    """Test that relationships may reference undeclared tables."""
    relationship = dsl_to_schema("Ref: a.x > b.y").relationships[0]
    assert (relationship.from_table, relationship.from_column) == ("a", "x")
    assert (relationship.to_table, relationship.to_column) == ("b", "y")
    assert relationship.id == "a_x_b_y"


def test_named_relationship() -> None:
    """Test that a relationship name before the colon is skipped."""
    schema = dsl_to_schema("Ref fk_orders_user: orders.user_id < users.id")
    assert schema.relationships[0].type is RelationshipType.MANY_TO_ONE
    assert schema.relationships[0].from_table == "orders"


def test_relationship_splits_at_last_dot() -> None:
    """Test endpoints of schema qualified tables."""
    relationship = dsl_to_schema("Ref: public.users.id > public.posts.user_id").relationships[0]
    assert (relationship.from_table, relationship.from_column) == ("public.users", "id")
    assert (relationship.to_table, relationship.to_column) == ("public.posts", "user_id")


def test_relationship_without_dot_is_dropped() -> None:
    """Test that an endpoint without a column drops the relationship."""
    result = parse_dsl("Ref: a > b.y\nTable t {\n id int\n}")
    assert result.schema.relationships == ()
    assert len(result.schema.tables) == 1
    assert Construct.RELATIONSHIP in [
        diagnostic.construct for diagnostic in result.diagnostics
    ]


def test_enum_values() -> None:
    """Test enum values, value settings and comments."""
    schema = dsl_to_schema(
        "Enum status {\n  active\n  inactive [note: 'gone']\n  // legacy\n  \"on hold\"\n}",
    )
    assert schema.enums == (Enum("status", ("active", "inactive", "on hold")),)


def test_comments_are_skipped() -> None:
    """Test top level and in-block comments."""
    result = parse_dsl("// header\nTable t {\n // id column\n id int\n}\n")
    assert result.schema.tables[0].columns == (Column("id", "int"),)
    assert result.diagnostics == ()


def test_duplicate_table_ids_are_kept() -> None:
    """Test that a repeated table id keeps both tables."""
    result = parse_dsl("Table t { a int }\nTable t { b int }")
    assert [table.id for table in result.schema.tables] == ["t", "t"]
    assert [diagnostic.construct for diagnostic in result.diagnostics] == [
        Construct.TABLE,
    ]


def test_nameless_table_is_dropped() -> None:
    """Test that a table without a name does not survive."""
    result = parse_dsl("Table {\n id int\n}\nTable t {\n a int\n}")
    assert [table.id for table in result.schema.tables] == ["t"]
    assert Construct.TABLE in [diagnostic.construct for diagnostic in result.diagnostics]


def test_table_with_empty_name_after_schema_is_dropped() -> None:
    """Test that "schema." without a table name drops the table."""
    result = parse_dsl("Table a. {\n id int\n}")
    assert result.schema.tables == ()
    assert result.diagnostics == (
        Diagnostic(Construct.TABLE, 0, "table without a name dropped"),
    )


def test_unrecognised_content_is_reported_once() -> None:
    """Test that a run of unknown text yields one diagnostic."""
    result = parse_dsl("Project demo\nTable t {\n a int\n}")
    assert len(result.schema.tables) == 1
    assert result.diagnostics == (
        Diagnostic(Construct.CONTENT, 0, "unrecognised content"),
    )


def test_strict_mode_raises() -> None:
    """Test that strict parsing rejects input with dropped content."""
    with pytest.raises(SchemaParseError) as error:
        dsl_to_schema("Table t {\n id\n}", strict=True)
    assert error.value.diagnostics[0].construct is Construct.COLUMN


@pytest.mark.parametrize(
    "source",
    [
        "",
        "Table",
        "Table t {",
        "Table t { a int [",
        "Table t [x {",
        "Ref:",
        "Ref: a.",
        "Ref a.x >",
        "Enum e {",
        "Enum e { 'open",
        '"unterminated',
        "}}}[[[",
        "Table t {\n indexes {\n (a, \n",
    ],
)
def test_malformed_input_terminates(source: str) -> None:
    """Test that malformed input yields a partial schema instead of failing."""
    result = parse_dsl(source)
    assert result.schema is not None
