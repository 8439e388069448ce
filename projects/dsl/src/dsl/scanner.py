"""Scanning primitives over DSL source text.

Every function takes the text and a position and returns the new position
(and the scanned value, if any). Nothing here keeps state between calls.
"""

import re

type Scanned[T] = tuple[T, int]

QUOTES = frozenset("\"'`")

KEYWORD = re.compile(r"[A-Za-z]*")
IDENTIFIER = re.compile(r"[A-Za-z0-9_.]*")
WHITESPACE = re.compile(r"\s*")
BLANKS = re.compile(r"[ \t]*")

# Characters that end an unquoted value
VALUE_END = re.compile(r"[^,\]\n}]*")
# Characters that end an unknown bracketed attribute
ATTRIBUTE_END = re.compile(r"[^,\]]*")
# Remainder of a line inside a block
LINE_END = re.compile(r"[^\n}]*")
# Rest of one entry of a parenthesised name list
LIST_ITEM_END = re.compile(r"[^,)\n]*")


def peek(text: str, pos: int, length: int = 1) -> str:
    """Return the next characters without consuming them."""
    return text[pos : pos + length]


def skip_whitespace(text: str, pos: int) -> int:
    """Skip any run of whitespace."""
    return WHITESPACE.match(text, pos).end()


def skip_blanks(text: str, pos: int) -> int:
    """Skip spaces and tabs, staying on the current line."""
    return BLANKS.match(text, pos).end()


def skip_line(text: str, pos: int) -> int:
    """Skip to just past the next newline, or to the end of the text."""
    newline = text.find("\n", pos)
    return len(text) if newline == -1 else newline + 1


def skip_rest_of_line(text: str, pos: int) -> int:
    """Skip the rest of a block line, consuming its newline but not a closing brace."""
    pos = LINE_END.match(text, pos).end()
    return pos + 1 if peek(text, pos) == "\n" else pos


def skip_until_attribute_end(text: str, pos: int) -> int:
    """Skip to the next comma or closing bracket of an attribute list."""
    return ATTRIBUTE_END.match(text, pos).end()


def is_comment(text: str, pos: int) -> bool:
    """Check whether a line comment starts here."""
    return text.startswith("//", pos)


def peek_keyword(text: str, pos: int) -> str:
    """Return the run of letters starting here without consuming it."""
    return KEYWORD.match(text, pos).group()


def skip_keyword(text: str, pos: int) -> int:
    """Consume a run of letters."""
    return KEYWORD.match(text, pos).end()


def read_quoted(text: str, pos: int) -> Scanned[str]:
    """Read raw content up to the matching quote, without escape processing."""
    quote = text[pos]
    closing = text.find(quote, pos + 1)
    if closing == -1:
        return text[pos + 1 :], len(text)
    return text[pos + 1 : closing], closing + 1


def read_identifier(text: str, pos: int) -> Scanned[str]:
    """Read a quoted identifier or a run of letters, digits, '_' and '.'."""
    if peek(text, pos) in QUOTES:
        return read_quoted(text, pos)
    match = IDENTIFIER.match(text, pos)
    return match.group(), match.end()


def read_qualified_name(text: str, pos: int) -> Scanned[str]:
    """Read a dotted name whose parts may be quoted, e.g. "public"."users"."""
    name, pos = read_identifier(text, pos)
    while peek(text, pos) == "." or (name.endswith(".") and peek(text, pos) in QUOTES):
        if peek(text, pos) == ".":
            name += "."
            pos += 1
        if not peek(text, pos) or peek(text, pos).isspace():
            break
        part, pos = read_identifier(text, pos)
        name += part
    return name, pos


def read_arguments(text: str, pos: int) -> Scanned[str]:
    """Read a parenthesised list through its matching ')', respecting quotes."""
    depth = 0
    start = pos
    while pos < len(text):
        char = text[pos]
        if char in QUOTES:
            _, pos = read_quoted(text, pos)
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1], pos + 1
        elif char == "\n":
            break
        pos += 1
    return text[start:pos], pos


def read_identifier_list(text: str, pos: int) -> Scanned[tuple[str, ...]]:
    """Read "(a, "b,c", d)" from its '(' into names, ending at ')' or the line end."""
    names: list[str] = []
    pos += 1
    while pos < len(text) and peek(text, pos) not in {")", "\n"}:
        name, pos = read_identifier(text, skip_blanks(text, pos))
        if name:
            names.append(name)
        pos = LIST_ITEM_END.match(text, pos).end()
        if peek(text, pos) == ",":
            pos += 1
    if peek(text, pos) == ")":
        pos += 1
    return tuple(names), pos


def read_type(text: str, pos: int) -> Scanned[str]:
    """Read a column type, including arguments such as varchar(50)."""
    if peek(text, pos) in QUOTES:
        return read_quoted(text, pos)
    name, pos = read_identifier(text, pos)
    if name and peek(text, pos) == "(":
        arguments, pos = read_arguments(text, pos)
        name += arguments
    return name, pos


def read_value(text: str, pos: int) -> Scanned[str]:
    """Read a quoted value raw, or an unquoted value trimmed of whitespace."""
    pos = skip_whitespace(text, pos)
    if peek(text, pos) in QUOTES:
        return read_quoted(text, pos)
    match = VALUE_END.match(text, pos)
    return match.group().strip(), match.end()


def skip_optional(text: str, pos: int, char: str) -> int:
    """Skip whitespace and a single optional character, then whitespace again."""
    pos = skip_whitespace(text, pos)
    if peek(text, pos) == char:
        pos = skip_whitespace(text, pos + 1)
    return pos
