"""SQL text helpers.

Functions:
- split_statements(text) -> list[str]: Split script text into complete statements
- first_table_name(schema) -> str | None: Name of the first CREATE TABLE (sqlglot)
- quote_identifier(name) -> str: Double-quote an identifier
- preview(text) -> str: Single-line, truncated form for logs
"""

from __future__ import annotations

import re
import sqlite3

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError


def split_statements(text: str) -> list[str]:
    """Split SQL script text into individual complete statements.

    Candidate boundaries are semicolons; a candidate is accepted only once
    sqlite3.complete_statement() agrees, so semicolons inside string
    literals, comments and trigger bodies do not split.

    Args:
        text: Script text with zero or more statements

    Returns:
        List of statements (each ending with ';'), comment-only and blank
        fragments removed. A trailing statement without ';' is kept.
    """
    statements: list[str] = []
    buffer = ""

    for piece in text.split(";"):
        buffer += piece + ";"
        if sqlite3.complete_statement(buffer):
            stmt = buffer.strip()
            if _has_content(stmt):
                statements.append(stmt)
            buffer = ""

    # Last piece got a synthetic ';' appended, drop it
    tail = buffer[:-1].strip()
    if _has_content(tail):
        statements.append(tail)

    return statements


def _has_content(stmt: str) -> bool:
    """Check that a fragment holds more than comments and semicolons."""
    without_block = re.sub(r"/\*.*?\*/", " ", stmt, flags=re.DOTALL)
    without_line = re.sub(r"--[^\n]*", " ", without_block)
    return bool(without_line.replace(";", "").strip())


def first_table_name(schema: str) -> str | None:
    """Extract the first table name declared by CREATE TABLE.

    The schema is parsed statement by statement with the SQLite dialect, so
    DDL inside comments or string literals is ignored. Quoted names are
    unquoted and a schema qualifier is dropped. Statements sqlglot cannot
    parse are skipped.

    Returns:
        Table name or None if no CREATE TABLE is found
    """
    for statement in split_statements(schema):
        try:
            parsed = sqlglot.parse_one(statement, read="sqlite")
        except SqlglotError:
            continue

        if not isinstance(parsed, exp.Create):
            continue
        if str(parsed.args.get("kind") or "").upper() != "TABLE":
            continue

        target = parsed.this
        if isinstance(target, exp.Schema):
            target = target.this
        if isinstance(target, exp.Table) and target.name:
            return target.name

    return None


def quote_identifier(name: str) -> str:
    """Quote an identifier with double quotes, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def preview(text: str, max_len: int = 80) -> str:
    """Collapse whitespace and truncate text for log output.

    Characters that cannot be encoded as UTF-8 are backslash-escaped.
    """
    single = " ".join(text.split())
    single = single.encode("utf-8", "backslashreplace").decode("utf-8")
    if len(single) <= max_len:
        return single
    return single[: max_len - 3] + "..."
