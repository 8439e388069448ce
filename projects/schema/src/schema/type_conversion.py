"""Module for converting free-form column type strings into SQLAlchemy types."""

from collections.abc import Callable, Mapping
from re import IGNORECASE
from re import compile as compile_pattern
from typing import Any

from sqlalchemy.types import (
    CHAR,
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    Numeric,
    SmallInteger,
    String,
    Text,
    Time,
    TypeEngine,
    UserDefinedType,
    Uuid,
)
from sqlalchemy.types import Enum as SQLEnum

from schema.types import Enum

type Arguments = tuple[int, ...]
type TypeFactory = Callable[[Arguments], TypeEngine[Any]]

# name(args) where args are comma separated integers, e.g. "decimal(10, 2)"
TYPE_PATTERN = compile_pattern(
    r"\s*(?P<name>[a-z_][\w ]*?)\s*(?:\((?P<args>\s*\d+(?:\s*,\s*\d+)*\s*)\))?\s*",
    IGNORECASE,
)


class RawType(UserDefinedType[Any]):
    """Column type rendered exactly as it was written."""

    cache_ok = True

    def __init__(self, definition: str) -> None:
        """Keep the type text to render."""
        self.definition = definition

    def get_col_spec(self, **_: Any) -> str:  # noqa: ANN401
        """Render the stored type text."""
        return self.definition


def _first(arguments: Arguments) -> int | None:
    """Return the first type argument if present."""
    return arguments[0] if arguments else None


def _second(arguments: Arguments) -> int | None:
    """Return the second type argument if present."""
    return arguments[1] if len(arguments) > 1 else None


TYPE_FACTORIES: Mapping[str, TypeFactory] = {
    "int": lambda _: Integer(),
    "integer": lambda _: Integer(),
    "int4": lambda _: Integer(),
    "serial": lambda _: Integer(),
    "mediumint": lambda _: Integer(),
    "bigint": lambda _: BigInteger(),
    "int8": lambda _: BigInteger(),
    "bigserial": lambda _: BigInteger(),
    "smallint": lambda _: SmallInteger(),
    "int2": lambda _: SmallInteger(),
    "smallserial": lambda _: SmallInteger(),
    "tinyint": lambda _: SmallInteger(),
    "varchar": lambda args: String(_first(args)),
    "nvarchar": lambda args: String(_first(args)),
    "character varying": lambda args: String(_first(args)),
    "char": lambda args: CHAR(_first(args)),
    "character": lambda args: CHAR(_first(args)),
    "text": lambda _: Text(),
    "string": lambda args: String(_first(args)),
    "bool": lambda _: Boolean(),
    "boolean": lambda _: Boolean(),
    "date": lambda _: Date(),
    "datetime": lambda _: DateTime(),
    "timestamp": lambda _: DateTime(),
    "timestamptz": lambda _: DateTime(timezone=True),
    "time": lambda _: Time(),
    "decimal": lambda args: Numeric(_first(args), _second(args)),
    "numeric": lambda args: Numeric(_first(args), _second(args)),
    "float": lambda _: Float(),
    "real": lambda _: Float(),
    "double": lambda _: Float(),
    "double precision": lambda _: Float(),
    "blob": lambda _: LargeBinary(),
    "bytea": lambda _: LargeBinary(),
    "binary": lambda args: LargeBinary(_first(args)),
    "varbinary": lambda args: LargeBinary(_first(args)),
    "json": lambda _: JSON(),
    "jsonb": lambda _: JSON(),
    "uuid": lambda _: Uuid(),
}


def type_string_to_sql(
    type_string: str,
    enums: Mapping[str, Enum] | None = None,
) -> TypeEngine[Any]:
    """Convert a model column type into a SQLAlchemy TypeEngine.

    Examples:
        varchar(255) -> String(255)
        decimal(10,2) -> Numeric(10, 2)
        status (an enum of the schema) -> Enum("active", "inactive")
        geometry(Point) -> rendered verbatim

    """
    if enums and (enum := enums.get(type_string)) and enum.values:
        schema_name, _, name = enum.name.rpartition(".")
        return SQLEnum(*enum.values, name=name, schema=schema_name or None)

    if match := TYPE_PATTERN.fullmatch(type_string):
        name = " ".join(match["name"].lower().split())
        arguments = tuple(int(arg) for arg in (match["args"] or "").split(",") if arg)
        if factory := TYPE_FACTORIES.get(name):
            return factory(arguments)

    return RawType(type_string)
