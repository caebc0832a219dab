"""Challenge endpoints."""

from typing import Any, Mapping

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from sqlquest.core.challenges import Challenge, SeedGroup
from sqlquest.core.errors import ChallengeLockedError, ChallengeNotFoundError
from sqlquest.core.evaluator import Evaluated
from sqlquest.core.game import AttemptOutcome, GameService
from sqlquest.core.progression import PlayerState
from sqlquest.core.query_executor import ExecutionError, Invalid
from sqlquest.web.dependencies import get_game_service
from sqlquest.web.schemas import (
    AttemptRequest,
    AttemptResponse,
    ChallengeDetail,
    ChallengeListResponse,
    ChallengeSummary,
    CompletionResponse,
    PlayerResponse,
    SeedTable,
)

router = APIRouter(prefix="/api/challenges", tags=["challenges"])


def _jsonable(value: Any) -> Any:
    """Blob cells are sent as hex text."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


def _row_to_json(row: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k): _jsonable(v) for k, v in row.items()}


def player_response(state: PlayerState) -> PlayerResponse:
    return PlayerResponse(**state.to_dict())


def _summary(challenge: Challenge, state: PlayerState) -> ChallengeSummary:
    return ChallengeSummary(
        id=challenge.id,
        title=challenge.title,
        environment=challenge.environment,
        reward_xp=challenge.reward_xp,
        required_xp=challenge.required_xp,
        unlocked=challenge.id in state.unlocked_challenge_ids,
        completed=challenge.id in state.completed_challenge_ids,
    )


def _attempt_response(outcome: AttemptOutcome, state: PlayerState) -> AttemptResponse:
    """Map an AttemptOutcome to the response body.

    Aborted results only ever carry the generic retry message.
    """
    result = outcome.result
    player = player_response(state)

    if isinstance(result, Invalid):
        return AttemptResponse(kind=result.kind, message=result.reason, player=player)
    if isinstance(result, ExecutionError):
        return AttemptResponse(kind=result.kind, message=result.message, player=player)
    if not isinstance(result, Evaluated):
        return AttemptResponse(kind=result.kind, message=result.message, player=player)

    completion = None
    if outcome.completion is not None:
        completion = CompletionResponse(
            xp_awarded=outcome.completion.xp_awarded,
            already_completed=outcome.completion.already_completed,
            leveled_up=outcome.completion.leveled_up,
            newly_unlocked=sorted(outcome.completion.newly_unlocked),
            warnings=list(outcome.completion.warnings),
        )
    return AttemptResponse(
        kind=result.kind,
        columns=list(result.columns),
        rows=[_row_to_json(r) for r in result.rows],
        is_correct=result.is_correct,
        graded=result.graded,
        feedback=result.mismatch.describe() if result.mismatch else None,
        completion=completion,
        player=player,
    )


def _get_challenge_or_404(service: GameService, challenge_id: str) -> Challenge:
    try:
        return service.catalog.get(challenge_id)
    except ChallengeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=ChallengeListResponse)
async def list_challenges(service: GameService = Depends(get_game_service)) -> ChallengeListResponse:
    """List all challenges with the player's unlock/completion flags."""
    state = service.player_state()
    challenges = [_summary(c, state) for c in service.catalog]
    return ChallengeListResponse(challenges=challenges, count=len(challenges))


@router.get("/{challenge_id}", response_model=ChallengeDetail)
async def get_challenge(
    challenge_id: str, service: GameService = Depends(get_game_service)
) -> ChallengeDetail:
    """Get a challenge with schema, sample data and hints."""
    challenge = _get_challenge_or_404(service, challenge_id)
    state = service.player_state()

    if challenge.is_multi_table:
        sample = [
            SeedTable(table=g.table_name, rows=[_row_to_json(r) for r in g.rows])
            for g in challenge.seed_data
            if isinstance(g, SeedGroup)
        ]
    else:
        sample = [SeedTable(rows=[_row_to_json(r) for r in challenge.seed_data])]

    expected = None
    if challenge.expected_result is not None:
        expected = [_row_to_json(r) for r in challenge.expected_result]

    return ChallengeDetail(
        **_summary(challenge, state).model_dump(),
        description=challenge.description,
        schema_sql=challenge.schema,
        sample_data=sample,
        expected_result=expected,
        hints=list(challenge.hints),
    )


@router.post("/{challenge_id}/attempts", response_model=AttemptResponse)
async def submit_attempt(
    challenge_id: str,
    request: AttemptRequest,
    service: GameService = Depends(get_game_service),
) -> AttemptResponse:
    """Evaluate a query; a correct answer records the completion."""
    _get_challenge_or_404(service, challenge_id)

    try:
        outcome = await run_in_threadpool(service.submit, challenge_id, request.query)
    except ChallengeLockedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return _attempt_response(outcome, service.player_state())
