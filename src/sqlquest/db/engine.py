"""SQL engine capability.

The evaluation core depends only on this minimal surface:

    engine.create_database() -> DatabaseHandle
    handle.execute(sql) -> QueryOutput     (raises EngineError)
    handle.close()

SqliteEngine is the implementation shipped with the project. It is built
explicitly, initialized once at startup (fail fast) and passed into the
entry points that need it.
"""

from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from sqlquest.utils.sql_text import split_statements

logger = structlog.get_logger(__name__)

# TRUE/FALSE literals need SQLite 3.23
MIN_SQLITE_VERSION = (3, 23, 0)

# Progress handler granularity (VM instructions between deadline checks)
PROGRESS_STEPS = 1000


class EngineError(Exception):
    """The engine rejected a statement. Message is the engine's own text."""

    pass


class QueryTimeoutError(EngineError):
    """A statement ran past the configured deadline and was interrupted."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__("timeout")


class EngineUnavailableError(Exception):
    """The engine cannot be used in this process."""

    pass


@dataclass(frozen=True)
class QueryOutput:
    """Tabular output of an execute() call."""

    columns: tuple[str, ...] = ()
    rows: tuple[tuple[Any, ...], ...] = ()

    def as_dicts(self) -> list[dict[str, Any]]:
        """Rows as column -> value mappings, in column order."""
        return [dict(zip(self.columns, row)) for row in self.rows]


class DatabaseHandle(Protocol):
    """An open, isolated database."""

    def execute(self, sql: str) -> QueryOutput: ...

    def close(self) -> None: ...


class SqlEngine(Protocol):
    """Factory of fresh databases."""

    def create_database(self) -> DatabaseHandle: ...


# =============================================================================
# SQLITE IMPLEMENTATION
# =============================================================================


def _deny_attach(action: int, arg1: Any, arg2: Any, db_name: Any, source: Any) -> int:
    """Authorizer: a sandbox may never attach another database."""
    if action in (sqlite3.SQLITE_ATTACH, sqlite3.SQLITE_DETACH):
        return sqlite3.SQLITE_DENY
    return sqlite3.SQLITE_OK


class SqliteDatabase:
    """In-memory SQLite database used as one sandbox."""

    def __init__(self, conn: sqlite3.Connection, query_timeout: float | None = None):
        self._conn = conn
        self._query_timeout = query_timeout
        self._deadline: float | None = None
        self._timed_out = False
        self.closed = False

        conn.set_authorizer(_deny_attach)
        if query_timeout is not None:
            conn.set_progress_handler(self._check_deadline, PROGRESS_STEPS)

    def _check_deadline(self) -> int:
        if self._deadline is not None and time.monotonic() > self._deadline:
            self._timed_out = True
            return 1
        return 0

    def execute(self, sql: str) -> QueryOutput:
        """Execute one or more statements.

        Statements run in order. The output of the first statement that
        returns a result set (has a description) is reported; later
        statements still run. DDL/DML-only text yields an empty output.

        Raises:
            EngineError: With the engine's message on any failure
            QueryTimeoutError: If the deadline passes mid-statement
        """
        if self.closed:
            raise EngineError("database is closed")

        output: QueryOutput | None = None
        self._timed_out = False
        if self._query_timeout is not None:
            self._deadline = time.monotonic() + self._query_timeout

        try:
            for stmt in split_statements(sql):
                cursor = self._conn.execute(stmt)
                rows = cursor.fetchall()
                if output is None and cursor.description is not None:
                    output = QueryOutput(
                        columns=tuple(d[0] for d in cursor.description),
                        rows=tuple(tuple(r) for r in rows),
                    )
        except (sqlite3.Error, sqlite3.Warning) as e:
            if self._timed_out:
                raise QueryTimeoutError(self._query_timeout or 0.0) from e
            raise EngineError(str(e)) from e
        except (ValueError, UnicodeError) as e:
            # NUL characters and lone surrogates never reach the engine
            raise EngineError(str(e)) from e
        finally:
            self._deadline = None

        return output or QueryOutput()

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self._conn.close()


class SqliteEngine:
    """SQLite-backed engine producing throwaway in-memory databases.

    Example:
        engine = SqliteEngine(query_timeout=5.0)
        engine.initialize()
        db = engine.create_database()
    """

    def __init__(self, query_timeout: float | None = None):
        self.query_timeout = query_timeout
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Check the SQLite library once.

        Raises:
            EngineUnavailableError: If SQLite is too old or unusable
        """
        if self._initialized:
            return

        if sqlite3.sqlite_version_info < MIN_SQLITE_VERSION:
            raise EngineUnavailableError(
                f"SQLite {sqlite3.sqlite_version} is too old "
                f"(need {'.'.join(map(str, MIN_SQLITE_VERSION))})"
            )

        try:
            probe = sqlite3.connect(":memory:")
            try:
                probe.execute("SELECT 1").fetchone()
            finally:
                probe.close()
        except sqlite3.Error as e:
            raise EngineUnavailableError(f"SQLite probe failed: {e}") from e

        self._initialized = True
        logger.info(
            "engine.initialized",
            sqlite_version=sqlite3.sqlite_version,
            query_timeout=self.query_timeout,
        )

    def create_database(self) -> SqliteDatabase:
        """Open a brand-new, empty in-memory database.

        Raises:
            EngineUnavailableError: If initialize() was not called
            EngineError: If SQLite cannot open the database
        """
        if not self._initialized:
            raise EngineUnavailableError("engine not initialized")

        try:
            conn = sqlite3.connect(":memory:", isolation_level=None)
        except sqlite3.Error as e:
            raise EngineError(str(e)) from e

        logger.debug("engine.database_created")
        return SqliteDatabase(conn, query_timeout=self.query_timeout)
