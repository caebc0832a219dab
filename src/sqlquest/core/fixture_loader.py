"""Fixture loader.

Turns a challenge definition (schema text + seed rows) into an ordered
provisioning plan: schema statements first, then INSERT statements.

The plan is pure data. Nothing touches a database here; execution is the
sandbox provisioner's job.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping, Sequence

import structlog

from sqlquest.core.challenges import Challenge, SeedGroup
from sqlquest.core.errors import FixtureError, SchemaError
from sqlquest.utils.sql_text import first_table_name, quote_identifier, split_statements

logger = structlog.get_logger(__name__)

StatementKind = Literal["schema", "insert"]


@dataclass(frozen=True)
class PlannedStatement:
    """One statement of a provisioning plan."""

    kind: StatementKind
    sql: str
    table: str | None = None


@dataclass(frozen=True)
class ProvisioningPlan:
    """Ordered statements to build a sandbox."""

    statements: tuple[PlannedStatement, ...]

    @property
    def schema_statements(self) -> tuple[PlannedStatement, ...]:
        return tuple(s for s in self.statements if s.kind == "schema")

    @property
    def insert_statements(self) -> tuple[PlannedStatement, ...]:
        return tuple(s for s in self.statements if s.kind == "insert")

    def __iter__(self):
        return iter(self.statements)

    def __len__(self) -> int:
        return len(self.statements)


# =============================================================================
# VALUE SERIALIZATION
# =============================================================================


def serialize_value(value: Any) -> str:
    """Render a Python value as an SQL literal.

    Rules:
    - None -> NULL
    - bool -> TRUE / FALSE
    - int -> decimal literal
    - float -> repr literal (finite only)
    - str -> single-quoted, embedded quotes doubled
    - bytes -> X'..' blob literal

    Raises:
        FixtureError: For NaN/infinity, strings with NUL characters, or
            any other type. Values are never coerced.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise FixtureError(f"non-finite number has no SQL literal: {value!r}")
        return repr(value)
    if isinstance(value, str):
        if "\x00" in value:
            raise FixtureError("string value contains a NUL character")
        return "'" + value.replace("'", "''") + "'"
    if isinstance(value, (bytes, bytearray)):
        return "X'" + bytes(value).hex().upper() + "'"
    raise FixtureError(f"unsupported seed value type: {type(value).__name__}")


def build_insert_statements(
    table: str, rows: Sequence[Mapping[str, Any]]
) -> list[PlannedStatement]:
    """Build INSERT statements for rows of one table.

    Column order comes from each row's own key order. Consecutive rows with
    the same key order share one multi-row INSERT.

    Raises:
        FixtureError: If a row is empty or a value cannot be serialized
    """
    statements: list[PlannedStatement] = []
    batch_keys: tuple[str, ...] | None = None
    batch_values: list[str] = []

    def flush() -> None:
        if batch_keys is None or not batch_values:
            return
        columns = ", ".join(quote_identifier(k) for k in batch_keys)
        sql = (
            f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES "
            + ", ".join(batch_values)
            + ";"
        )
        statements.append(PlannedStatement(kind="insert", sql=sql, table=table))

    for i, row in enumerate(rows):
        keys = tuple(row.keys())
        if not keys:
            raise FixtureError(f"row {i} for table '{table}' has no columns", table=table)
        try:
            values = "(" + ", ".join(serialize_value(row[k]) for k in keys) + ")"
        except FixtureError as e:
            raise FixtureError(f"table '{table}', row {i}: {e}", table=table) from e

        if keys != batch_keys:
            flush()
            batch_keys = keys
            batch_values = []
        batch_values.append(values)

    flush()
    return statements


# =============================================================================
# PLAN BUILDING
# =============================================================================


def _split_seed(seed_data: Iterable[Any]) -> tuple[list[Mapping[str, Any]], list[SeedGroup]]:
    """Separate flat rows from seed groups, rejecting a mix of both."""
    rows: list[Mapping[str, Any]] = []
    groups: list[SeedGroup] = []
    for item in seed_data:
        if isinstance(item, SeedGroup):
            groups.append(item)
        elif isinstance(item, Mapping):
            rows.append(item)
        else:
            raise FixtureError(f"unsupported seed item: {type(item).__name__}")
    if rows and groups:
        raise FixtureError("seed data mixes plain rows and table groups")
    return rows, groups


def build_provisioning_plan(schema: str, seed_data: Iterable[Any] = ()) -> ProvisioningPlan:
    """Build the ordered provisioning plan for a challenge.

    Args:
        schema: One or more DDL statements
        seed_data: Flat row mappings (single implied table) or SeedGroups

    Returns:
        ProvisioningPlan with schema statements followed by inserts

    Raises:
        SchemaError: If the schema holds no statements
        FixtureError: If the target table cannot be inferred or a value
            cannot be serialized
    """
    schema_sql = split_statements(schema)
    if not schema_sql:
        raise SchemaError("schema contains no statements")

    statements = [PlannedStatement(kind="schema", sql=sql) for sql in schema_sql]

    rows, groups = _split_seed(seed_data)

    if rows:
        table = first_table_name(schema)
        if table is None:
            raise FixtureError("cannot infer table")
        statements.extend(build_insert_statements(table, rows))

    for group in groups:
        if not group.rows:
            logger.debug("fixture.empty_group_skipped", table=group.table_name)
            continue
        statements.extend(build_insert_statements(group.table_name, group.rows))

    return ProvisioningPlan(statements=tuple(statements))


def plan_for_challenge(challenge: Challenge) -> ProvisioningPlan:
    """Build the provisioning plan for a Challenge."""
    return build_provisioning_plan(challenge.schema, challenge.seed_data)
