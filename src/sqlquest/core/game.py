"""Game service.

Request/response boundary used by the CLI and the web API: evaluates a
submission and, when it is correct, records the completion. Progression
changes are returned to the caller in the AttemptOutcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from sqlquest.config.app_config import AppConfig, load_app_config
from sqlquest.core.challenges import Catalog, Challenge, load_catalog
from sqlquest.core.errors import ChallengeLockedError
from sqlquest.core.evaluator import Evaluated, EvaluationRequest, EvaluationResult, evaluate
from sqlquest.core.progression import CompletionResult, PlayerState, ProgressionEngine
from sqlquest.db.engine import SqlEngine, SqliteEngine
from sqlquest.db.snapshot_store import JsonSnapshotStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AttemptOutcome:
    """Evaluation result plus the completion it triggered, if any."""

    challenge_id: str
    result: EvaluationResult
    completion: CompletionResult | None = None

    @property
    def solved(self) -> bool:
        return isinstance(self.result, Evaluated) and self.result.is_correct


@dataclass(frozen=True)
class ChallengeStatus:
    """A challenge with the player's unlock/completion flags."""

    challenge: Challenge
    unlocked: bool
    completed: bool


class GameService:
    """Evaluation + progression for one player."""

    def __init__(self, engine: SqlEngine, catalog: Catalog, progression: ProgressionEngine):
        self.engine = engine
        self.catalog = catalog
        self.progression = progression

    @classmethod
    def from_config(cls, config: AppConfig | None = None) -> GameService:
        """Build the service from application config.

        Initializes the SQL engine up front so an unusable engine fails at
        startup rather than on the first attempt.

        Raises:
            EngineUnavailableError: If SQLite cannot be used
            CatalogError: If the catalog file is malformed
        """
        config = config or load_app_config()

        engine = SqliteEngine(query_timeout=config.sandbox.query_timeout_seconds)
        engine.initialize()

        catalog = load_catalog(Path(config.paths.catalog_file))
        store = JsonSnapshotStore(config.paths.get_state_dir())
        progression = ProgressionEngine(
            gates=catalog.gates(),
            thresholds=config.progression.level_thresholds,
            store=store,
            repeat_completion_rewards=config.progression.repeat_completion_rewards,
        )
        return cls(engine=engine, catalog=catalog, progression=progression)

    def player_state(self) -> PlayerState:
        return self.progression.current_state()

    def challenge_statuses(self) -> list[ChallengeStatus]:
        """Every challenge in catalog order with unlock/completion flags."""
        state = self.progression.current_state()
        return [
            ChallengeStatus(
                challenge=c,
                unlocked=c.id in state.unlocked_challenge_ids,
                completed=c.id in state.completed_challenge_ids,
            )
            for c in self.catalog
        ]

    def submit(self, challenge_id: str, query_text: str, enforce_unlock: bool = True) -> AttemptOutcome:
        """Evaluate a submission and record the completion if correct.

        Args:
            challenge_id: Challenge being attempted
            query_text: Learner's SQL
            enforce_unlock: Refuse challenges the player has not unlocked

        Returns:
            AttemptOutcome with the result and optional CompletionResult

        Raises:
            ChallengeNotFoundError: If the challenge does not exist
            ChallengeLockedError: If the challenge is locked
        """
        challenge = self.catalog.get(challenge_id)

        if enforce_unlock and not self.progression.is_unlocked(challenge_id):
            raise ChallengeLockedError(challenge_id, challenge.required_xp)

        result = evaluate(self.engine, EvaluationRequest(challenge, query_text))

        completion = None
        if isinstance(result, Evaluated) and result.is_correct:
            completion = self.progression.record_completion(challenge.id, challenge.reward_xp)

        logger.info(
            "game.attempt",
            challenge_id=challenge_id,
            result=result.kind,
            xp_awarded=completion.xp_awarded if completion else 0,
        )
        return AttemptOutcome(challenge_id=challenge_id, result=result, completion=completion)
