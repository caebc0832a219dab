"""Sandbox provisioner.

Creates one fresh database per evaluation attempt, applies the provisioning
plan, and hands out a handle whose only capability is executing SQL text.

Usage:
    with provision(engine, plan) as sandbox:
        output = sandbox.execute("SELECT * FROM Students;")
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

import structlog

from sqlquest.core.errors import FixtureError, ProvisionError, SchemaError
from sqlquest.core.fixture_loader import ProvisioningPlan
from sqlquest.db.engine import DatabaseHandle, EngineError, QueryOutput, SqlEngine

logger = structlog.get_logger(__name__)


class SandboxHandle:
    """Execute-only view of a provisioned sandbox database."""

    def __init__(self, database: DatabaseHandle):
        self._database = database
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, sql: str) -> QueryOutput:
        """Run SQL text against the sandbox.

        Raises:
            EngineError: If the engine rejects the text or the sandbox is closed
        """
        if self._closed:
            raise EngineError("sandbox is closed")
        return self._database.execute(sql)

    def close(self) -> None:
        """Release the database. Only the first call has an effect."""
        if self._closed:
            return
        self._closed = True
        self._database.close()


def _apply_plan(sandbox: SandboxHandle, plan: ProvisioningPlan) -> None:
    """Run every planned statement, mapping failures to content errors."""
    for index, statement in enumerate(plan):
        try:
            sandbox.execute(statement.sql)
        except EngineError as e:
            if statement.kind == "schema":
                raise SchemaError(
                    f"schema statement {index + 1} failed: {e}",
                    statement=statement.sql,
                ) from e
            raise FixtureError(
                f"seed insert into '{statement.table}' failed: {e}",
                table=statement.table,
            ) from e


@contextmanager
def provision(engine: SqlEngine, plan: ProvisioningPlan) -> Generator[SandboxHandle, None, None]:
    """Provision a sandbox for one evaluation.

    The sandbox is closed exactly once on every exit path: normal exit,
    provisioning failure, or an exception raised by the caller's block.

    Raises:
        ProvisionError: If the engine cannot create a database
        SchemaError: If a schema statement fails
        FixtureError: If a seed insert fails
    """
    try:
        database = engine.create_database()
    except Exception as e:
        logger.error("sandbox.create_failed", error=str(e))
        raise ProvisionError(e) from e

    sandbox = SandboxHandle(database)
    try:
        _apply_plan(sandbox, plan)
        logger.debug("sandbox.provisioned", statements=len(plan))
        yield sandbox
    finally:
        sandbox.close()
        logger.debug("sandbox.closed")
