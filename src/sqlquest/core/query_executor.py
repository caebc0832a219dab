"""Query executor.

Runs the learner's query text against a provisioned sandbox and captures
either the tabular result or the engine's error message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

import structlog

from sqlquest.core.sandbox import SandboxHandle
from sqlquest.db.engine import EngineError, QueryTimeoutError
from sqlquest.utils.sql_text import preview

logger = structlog.get_logger(__name__)

EMPTY_QUERY_REASON = "empty query"
TIMEOUT_MESSAGE = "timeout"


@dataclass(frozen=True)
class Invalid:
    """Submitted text failed the local pre-check."""

    reason: str
    kind: Literal["invalid"] = "invalid"


@dataclass(frozen=True)
class ExecutionError:
    """The engine rejected the query. Message is verbatim."""

    message: str
    kind: Literal["execution_error"] = "execution_error"


@dataclass(frozen=True)
class QueryRows:
    """Rows produced by the query (possibly none)."""

    columns: tuple[str, ...] = ()
    rows: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    kind: Literal["rows"] = "rows"


RawQueryOutcome = Union[Invalid, ExecutionError, QueryRows]


def check_query_text(query_text: str) -> Invalid | None:
    """Local pre-check: reject empty or whitespace-only text."""
    if not query_text or not query_text.strip():
        return Invalid(reason=EMPTY_QUERY_REASON)
    return None


def run(sandbox: SandboxHandle, query_text: str) -> RawQueryOutcome:
    """Run the submitted query against the sandbox.

    The text is passed through unchanged. Arbitrary DDL/DML is allowed;
    the sandbox contains it. Releasing the sandbox is left to the
    provisioner's scope.

    Args:
        sandbox: Provisioned sandbox
        query_text: Learner's SQL, verbatim

    Returns:
        Invalid for empty text (sandbox untouched), ExecutionError with the
        engine's message (or "timeout"), or QueryRows
    """
    invalid = check_query_text(query_text)
    if invalid is not None:
        return invalid

    try:
        output = sandbox.execute(query_text)
    except QueryTimeoutError as e:
        logger.info("query.timeout", timeout_seconds=e.timeout_seconds)
        return ExecutionError(message=TIMEOUT_MESSAGE)
    except EngineError as e:
        logger.debug("query.rejected", error=str(e), query=preview(query_text))
        return ExecutionError(message=str(e))

    rows = tuple(output.as_dicts())
    logger.debug("query.executed", columns=len(output.columns), rows=len(rows))
    return QueryRows(columns=output.columns, rows=rows)
