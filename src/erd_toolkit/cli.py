"""Command line interface for ERD Toolkit."""

import re
import sys
from collections.abc import Iterable
from dataclasses import asdict
from json import dumps
from logging import DEBUG, WARNING, basicConfig
from pathlib import Path
from sys import stdout
from typing import Literal

from cyclopts import App
from ddl import parse_sql, sql_to_dsl
from dsl import parse_dsl
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from schema import (
    Diagnostic,
    ParseResult,
    SchemaParseError,
    ensure_clean,
    schema_to_dsl,
    schema_to_sql,
)
from sqlalchemy.exc import SQLAlchemyError

app = App(help="ERD Toolkit CLI tool")


type Dialect = Literal["auto", "dsl", "sql"]
type Format = Literal["json", "dsl", "sql"]
type SQLDialect = Literal["postgresql", "mysql", "sqlite"]


console = Console()
err_console = Console(stderr=True)

# Constants
SQL_EXTENSIONS = {".sql", ".ddl"}
DSL_EXTENSIONS = {".dbml", ".txt"}
CREATE_TABLE = re.compile(r"\bCREATE\s+TABLE\b", re.IGNORECASE)


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}")


def configure_logging(*, verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    basicConfig(
        level=DEBUG if verbose else WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def validate_source_location(source: Path) -> None:
    """Validate that a source file exists."""
    if not source.is_file():
        print_error(f"Source file does not exist: {source}")
        sys.exit(1)


def read_source(source: Path) -> str:
    """Read a source file as UTF-8 text."""
    try:
        return source.read_text(encoding="utf-8")
    except (PermissionError, OSError, UnicodeDecodeError) as e:
        print_error(f"Cannot read source file: {source} ({e})")
        sys.exit(1)


def detect_dialect(source: Path, text: str) -> Literal["dsl", "sql"]:
    """Pick the input language from the file extension, else from the content."""
    suffix = source.suffix.lower()
    if suffix in SQL_EXTENSIONS:
        return "sql"
    if suffix in DSL_EXTENSIONS:
        return "dsl"
    return "sql" if CREATE_TABLE.search(text) else "dsl"


def parse_source(source: Path, dialect: Dialect) -> ParseResult:
    """Read and parse a source file in the given or detected dialect."""
    validate_source_location(source)
    text = read_source(source)
    if dialect == "auto":
        dialect = detect_dialect(source, text)
    print_info(f"Source: {source} ({dialect})")
    return parse_sql(text) if dialect == "sql" else parse_dsl(text)


def collect_sources(sources: Iterable[Path]) -> list[Path]:
    """Expand directories into their SQL files, keeping the given order."""
    files: list[Path] = []
    for source in sources:
        if source.is_dir():
            files.extend(sorted(source.glob("*.sql")))
        elif source.is_file():
            files.append(source)
        else:
            print_error(f"Source does not exist: {source}")
            sys.exit(1)
    return files


def format_diagnostics_table(diagnostics: Iterable[Diagnostic]) -> None:
    """Format parse diagnostics as a rich table."""
    table = Table(title="Parse Diagnostics")
    table.add_column("Offset", style="bold blue", justify="right")
    table.add_column("Construct", style="bold cyan")
    table.add_column("Message")
    for diagnostic in diagnostics:
        table.add_row(str(diagnostic.offset), diagnostic.construct, diagnostic.message)
    console.print(table)


@app.command
def parse(  # noqa: PLR0913
    source: Path,
    *,
    dialect: Dialect = "auto",
    fmt: Format = "json",
    sql_dialect: SQLDialect = "postgresql",
    strict: bool = False,
    preserve_cardinality: bool = True,
    verbose: bool = False,
) -> None:
    """Parse a DSL or SQL file and print the schema."""
    configure_logging(verbose=verbose)
    result = parse_source(source, dialect)
    print_info(f"Output format: {fmt}")

    try:
        schema = ensure_clean(result, strict=strict)
        if fmt == "json":
            stdout.write(dumps(asdict(schema), indent=2))
        elif fmt == "dsl":
            stdout.write(
                schema_to_dsl(schema, preserve_cardinality=preserve_cardinality),
            )
        elif fmt == "sql":
            stdout.write(schema_to_sql(schema, sql_dialect))
    except SchemaParseError as e:
        print_error(str(e))
        sys.exit(1)
    except SQLAlchemyError as e:
        print_error(f"SQL generation failed: {e}")
        sys.exit(1)

    print_success(
        f"Parsed {len(schema.tables)} tables, "
        f"{len(schema.relationships)} relationships and {len(schema.enums)} enums",
    )


@app.command
def convert(
    sources: list[Path],
    *,
    preserve_cardinality: bool = True,
    verbose: bool = False,
) -> None:
    """Convert SQL files, or directories of them, into one DSL document."""
    configure_logging(verbose=verbose)
    files = collect_sources(sources)
    if not files:
        print_error("No SQL files found")
        sys.exit(1)

    for file in files:
        print_info(f"Source: {file}")
    sql = "\n".join(read_source(file) for file in files)

    stdout.write(sql_to_dsl(sql, preserve_cardinality=preserve_cardinality))
    print_success(f"Converted {len(files)} files")


@app.command
def check(source: Path, *, dialect: Dialect = "auto", verbose: bool = False) -> None:
    """Report everything the parser skipped in a DSL or SQL file."""
    configure_logging(verbose=verbose)
    result = parse_source(source, dialect)

    if not result.diagnostics:
        print_success("No diagnostics")
        return

    format_diagnostics_table(result.diagnostics)
    print_error(f"{len(result.diagnostics)} constructs were skipped")
    sys.exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
