"""Named statement rules for extracting schema elements from SQL DDL."""

import re
from typing import NamedTuple

# Reusable regex components for better readability
NAME = r"(?:`[^`]+`|\"[^\"]+\"|\[[^\]]+\]|\w+)"  # Optionally quoted identifier
QUALIFIED_NAME = rf"{NAME}(?:\s*\.\s*{NAME})*"  # schema.table
NAME_LIST = r"[^()]*"  # Contents of "(a, b, c)"
CONSTRAINT_NAME = r"(?:`[^`]+`|\"[^\"]+\"|\[[^\]]+\]|[\w-]+)"
# Optional "CONSTRAINT <name>" prefix of a table constraint clause
CONSTRAINT_PREFIX = rf"^(?:CONSTRAINT\s+{CONSTRAINT_NAME}\s+)?"
STRING_LITERAL = r"'((?:[^']|'')*)'"


class Rule(NamedTuple):
    """A statement shape the extractor understands."""

    name: str
    pattern: re.Pattern[str]


def rule(name: str, *parts: str, flags: re.RegexFlag = re.IGNORECASE) -> Rule:
    """Build a rule from regex parts joined by optional whitespace."""
    return Rule(name, re.compile(r"\s*".join(parts), flags))


# Statement level rules, matched against the whole script

CREATE_TABLE = rule(
    "create table",
    r"\bCREATE\s+(?:(?:GLOBAL\s+|LOCAL\s+)?TEMP(?:ORARY)?\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?",
    rf"(?P<table>{QUALIFIED_NAME})",
    r"\((?P<body>.*?)\)",
    r"(?P<options>[^;()]*);",
    flags=re.IGNORECASE | re.DOTALL,
)

ALTER_TABLE_FOREIGN_KEY = rule(
    "alter table foreign key",
    rf"\bALTER\s+TABLE\s+(?:ONLY\s+)?(?P<table>{QUALIFIED_NAME})\s+ADD\s+",
    rf"(?:CONSTRAINT\s+{CONSTRAINT_NAME}\s+)?FOREIGN\s+KEY",
    rf"\((?P<columns>{NAME_LIST})\)",
    rf"REFERENCES\s+(?P<target>{QUALIFIED_NAME})",
    rf"\((?P<target_columns>{NAME_LIST})\)",
    r"[^;]*;",
)

CREATE_INDEX = rule(
    "create index",
    r"\bCREATE\s+(?P<unique>UNIQUE\s+)?INDEX\s+(?:CONCURRENTLY\s+)?(?:IF\s+NOT\s+EXISTS\s+)?",
    rf"(?:(?P<name>{QUALIFIED_NAME})\s+)?ON\s+(?:ONLY\s+)?(?P<table>{QUALIFIED_NAME})",
    r"(?:USING\s+\w+)?",
    rf"\((?P<columns>{NAME_LIST})\)",
    r"[^;]*;",
)

CREATE_ENUM_TYPE = rule(
    "create enum type",
    rf"\bCREATE\s+TYPE\s+(?P<name>{QUALIFIED_NAME})\s+AS\s+ENUM",
    r"\((?P<values>(?:[^')]|'(?:[^']|'')*')*)\)",
    r";",
)

# Clause level rules, matched against one comma separated part of a table body

TABLE_CONSTRAINT = rule(
    "table constraint",
    r"^(?:CONSTRAINT|PRIMARY\s+KEY|FOREIGN\s+KEY|UNIQUE|INDEX|KEY)\b",
)

NAMED_CONSTRAINT = rule(
    "named constraint",
    rf"^CONSTRAINT\s+(?P<name>{CONSTRAINT_NAME})",
)

PRIMARY_KEY = rule(
    "primary key",
    rf"{CONSTRAINT_PREFIX}PRIMARY\s+KEY\b",
    rf"\((?P<columns>{NAME_LIST})\)",
)

FOREIGN_KEY = rule(
    "foreign key",
    rf"{CONSTRAINT_PREFIX}FOREIGN\s+KEY\b",
    rf"\((?P<columns>{NAME_LIST})\)",
    rf"REFERENCES\s+(?P<target>{QUALIFIED_NAME})",
    rf"\((?P<target_columns>{NAME_LIST})\)",
)

UNIQUE_CONSTRAINT = rule(
    "unique constraint",
    rf"{CONSTRAINT_PREFIX}UNIQUE\b(?:\s+(?:KEY|INDEX)\b)?(?:\s+(?P<name>{NAME}))?",
    rf"\((?P<columns>{NAME_LIST})\)",
)

INDEX_CONSTRAINT = rule(
    "index",
    rf"^(?:INDEX|KEY)\b(?:\s+(?P<name>{NAME}))?",
    rf"\((?P<columns>{NAME_LIST})\)",
)

COLUMN_DEFINITION = rule(
    "column definition",
    rf"^(?P<name>{NAME})\s+(?P<type>\w+(?:\([^)]*\))?)",
    r"(?P<tail>.*)$",
    flags=re.IGNORECASE | re.DOTALL,
)

# Column tail rules, matched against the remainder of a column definition

INLINE_PRIMARY_KEY = rule("inline primary key", r"PRIMARY\s+KEY")
INLINE_NOT_NULL = rule("inline not null", r"NOT\s+NULL")
INLINE_UNIQUE = rule("inline unique", r"UNIQUE\b")
INLINE_AUTO_INCREMENT = rule(
    "inline auto increment",
    r"AUTO_?INCREMENT|GENERATED\s+(?:ALWAYS|BY\s+DEFAULT)\s+AS\s+IDENTITY",
)
INLINE_DEFAULT = rule(
    "inline default",
    rf"\bDEFAULT\s+(?:{STRING_LITERAL}|(?P<token>[^,\s]+))",
)
INLINE_COMMENT = rule("inline comment", r"\bCOMMENT\s+['\"](?P<note>[^'\"]+)['\"]")
INLINE_REFERENCES = rule(
    "inline references",
    rf"\bREFERENCES\s+(?P<target>{QUALIFIED_NAME})",
    rf"\((?P<target_columns>{NAME_LIST})\)",
)

SERIAL_TYPES = {"serial", "smallserial", "bigserial", "serial2", "serial4", "serial8"}


def clean_identifier(name: str) -> str:
    """Strip identifier quoting: backticks, double quotes and square brackets."""
    return re.sub(r"\s*\.\s*", ".", re.sub(r"[`\"\[\]]+", "", name)).strip()


def split_names(names: str) -> list[str]:
    """Split a parenthesised column list into clean identifiers."""
    return [clean_identifier(name) for name in names.split(",") if name.strip()]


def string_literals(text: str) -> list[str]:
    """Return the contents of every single quoted literal, unescaping ''."""
    return [value.replace("''", "'") for value in re.findall(STRING_LITERAL, text)]


def unquote(token: str) -> str:
    """Strip one leading and one trailing quote character from a token."""
    return re.sub(r"^[`'\"]|[`'\"]$", "", token)
