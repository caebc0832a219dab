"""Challenge evaluation pipeline.

Fixture loader -> sandbox provisioner -> query executor -> comparator,
run as one synchronous unit of work per attempt.

Result variants (tagged by `kind`):
- Invalid: the submitted text failed the local pre-check
- ExecutionError: the engine rejected the learner's SQL (shown verbatim)
- Evaluated: the query ran; carries rows, columns and the verdict
- Aborted: content or system fault; carries only a generic message
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Literal, Union

import structlog

from sqlquest.core.challenges import Challenge
from sqlquest.core.comparator import RowMismatch, compare, diff_rows
from sqlquest.core.errors import ContentError, ProvisionError
from sqlquest.core.fixture_loader import plan_for_challenge
from sqlquest.core.query_executor import (
    ExecutionError,
    Invalid,
    QueryRows,
    check_query_text,
    run,
)
from sqlquest.core.sandbox import provision
from sqlquest.db.engine import SqlEngine

logger = structlog.get_logger(__name__)

GENERIC_RETRY_MESSAGE = "Something went wrong while preparing this challenge. Please try again."

Fault = Literal["content", "system"]


@dataclass(frozen=True)
class EvaluationRequest:
    """One learner submission for one challenge."""

    challenge: Challenge
    submitted_query: str


@dataclass(frozen=True)
class Evaluated:
    """The query ran and its rows were compared.

    `graded` is False when the challenge has no expected result; then
    `is_correct` means "the query returned at least one row".
    """

    columns: tuple[str, ...]
    rows: tuple[dict[str, Any], ...]
    is_correct: bool
    graded: bool = True
    mismatch: RowMismatch | None = None
    kind: Literal["evaluated"] = "evaluated"


@dataclass(frozen=True)
class Aborted:
    """Evaluation could not run because of a content or system fault."""

    fault: Fault
    message: str = GENERIC_RETRY_MESSAGE
    kind: Literal["aborted"] = "aborted"


EvaluationResult = Union[Invalid, ExecutionError, Evaluated, Aborted]


def evaluate(engine: SqlEngine, request: EvaluationRequest) -> EvaluationResult:
    """Evaluate one submission in a fresh sandbox.

    Args:
        engine: Initialized SQL engine
        request: Challenge and submitted query text

    Returns:
        Tagged EvaluationResult. Never raises for learner or content
        problems; each failure path maps to a tagged result.
    """
    challenge = request.challenge
    start_time = time.time()

    invalid = check_query_text(request.submitted_query)
    if invalid is not None:
        logger.debug("evaluation.invalid", challenge_id=challenge.id, reason=invalid.reason)
        return invalid

    try:
        plan = plan_for_challenge(challenge)
        with provision(engine, plan) as sandbox:
            outcome = run(sandbox, request.submitted_query)
    except ContentError as e:
        logger.error(
            "challenge.content_error",
            challenge_id=challenge.id,
            error_type=type(e).__name__,
            error=str(e),
        )
        return Aborted(fault="content")
    except ProvisionError as e:
        logger.error(
            "sandbox.provision_failed",
            challenge_id=challenge.id,
            cause=str(e.cause),
        )
        return Aborted(fault="system")

    if not isinstance(outcome, QueryRows):
        return outcome

    is_correct = compare(outcome.rows, challenge.expected_result)
    mismatch = None if is_correct else diff_rows(outcome.rows, challenge.expected_result)

    elapsed_ms = int((time.time() - start_time) * 1000)
    logger.info(
        "evaluation.completed",
        challenge_id=challenge.id,
        rows=len(outcome.rows),
        is_correct=is_correct,
        elapsed_ms=elapsed_ms,
    )

    return Evaluated(
        columns=outcome.columns,
        rows=outcome.rows,
        is_correct=is_correct,
        graded=challenge.expected_result is not None,
        mismatch=mismatch,
    )
