"""Result normalizer and comparator.

Decides whether the rows a query produced match a challenge's expected
rows.

Canonical encoding:
- A row becomes an ordered tuple of (column, value) pairs, in the row's
  own column order. Column names are part of the encoding, so an alias
  that differs from the expected column name does not match.
- Rows are compared by position. Order matters; there is no multiset
  comparison.
- Numbers compare by value (5 == 5.0); bool counts as its integer value.
  Strings, bytes and NULL compare as-is, and a string never equals a
  number ("5" != 5).

Every function here is pure: inputs are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Sequence

Row = Mapping[str, Any]
CanonicalValue = tuple[str, Any]
CanonicalRow = tuple[tuple[str, CanonicalValue], ...]

MismatchReason = Literal["row_count", "columns", "values"]


def normalize_value(value: Any) -> CanonicalValue:
    """Reduce a cell value to a type-tagged comparable form."""
    if value is None:
        return ("null", None)
    if isinstance(value, bool):
        return ("number", int(value))
    if isinstance(value, int):
        return ("number", value)
    if isinstance(value, float):
        if value.is_integer():
            return ("number", int(value))
        return ("number", value)
    if isinstance(value, str):
        return ("text", value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ("blob", bytes(value))
    return ("other", value)


def normalize_row(row: Row) -> CanonicalRow:
    """Reduce a row mapping to ordered (column, canonical value) pairs."""
    return tuple((str(column), normalize_value(value)) for column, value in row.items())


def normalize_rows(rows: Sequence[Row]) -> tuple[CanonicalRow, ...]:
    """Canonical encoding of a row sequence, order preserved."""
    return tuple(normalize_row(row) for row in rows)


def compare(actual_rows: Sequence[Row], expected_rows: Sequence[Row] | None) -> bool:
    """Decide whether actual rows match the expected rows.

    Args:
        actual_rows: Rows the learner's query produced
        expected_rows: Canonical answer, or None for "any non-empty result"

    Returns:
        True if correct. With expected_rows None, True iff actual_rows is
        non-empty.
    """
    if expected_rows is None:
        return len(actual_rows) > 0
    if len(actual_rows) != len(expected_rows):
        return False
    return normalize_rows(actual_rows) == normalize_rows(expected_rows)


@dataclass(frozen=True)
class RowMismatch:
    """First difference found between actual and expected rows."""

    reason: MismatchReason
    position: int | None = None
    expected: Any = None
    actual: Any = None

    def describe(self) -> str:
        """Learner-facing one-line explanation."""
        if self.reason == "row_count":
            return f"Expected {self.expected} row(s), got {self.actual}."
        if self.reason == "columns":
            return (
                f"Row {self.position + 1}: expected columns "
                f"{', '.join(self.expected)}, got {', '.join(self.actual)}."
            )
        return f"Row {self.position + 1} has different values than expected."


def diff_rows(actual_rows: Sequence[Row], expected_rows: Sequence[Row] | None) -> RowMismatch | None:
    """Locate the first mismatch, for feedback.

    Returns:
        RowMismatch, or None when compare() would return True
    """
    if compare(actual_rows, expected_rows):
        return None
    if expected_rows is None:
        return RowMismatch(reason="row_count", expected="at least 1", actual=0)
    if len(actual_rows) != len(expected_rows):
        return RowMismatch(
            reason="row_count", expected=len(expected_rows), actual=len(actual_rows)
        )

    for position, (actual, expected) in enumerate(zip(actual_rows, expected_rows)):
        actual_columns = [str(c) for c in actual.keys()]
        expected_columns = [str(c) for c in expected.keys()]
        if actual_columns != expected_columns:
            return RowMismatch(
                reason="columns",
                position=position,
                expected=expected_columns,
                actual=actual_columns,
            )
        if normalize_row(actual) != normalize_row(expected):
            return RowMismatch(
                reason="values",
                position=position,
                expected=dict(expected),
                actual=dict(actual),
            )

    return None
