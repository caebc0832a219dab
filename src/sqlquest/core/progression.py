"""Progression engine.

Tracks cumulative XP, the derived player level, and which challenges are
unlocked and completed.

- Level is a pure function of XP over one ascending threshold table:
  the highest satisfied threshold wins, level 1 below the lowest.
- A challenge is unlocked once XP reaches its gate (required_xp).
- State changes only through record_completion(), which is serialized by
  a lock and mirrored to the snapshot store after every change.
"""

from __future__ import annotations

import threading
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

import structlog

from sqlquest.core.errors import ProgressionError

logger = structlog.get_logger(__name__)

# Canonical table: XP needed for levels 2..7
DEFAULT_LEVEL_THRESHOLDS: tuple[int, ...] = (50, 125, 225, 350, 550, 850)


# =============================================================================
# DERIVED VALUES
# =============================================================================


def validate_thresholds(thresholds: Sequence[int]) -> tuple[int, ...]:
    """Check the level table is strictly ascending positive integers.

    Raises:
        ProgressionError: If the table is malformed
    """
    table = tuple(thresholds)
    for value in table:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ProgressionError(f"level threshold must be a positive integer: {value!r}")
    if any(b <= a for a, b in zip(table, table[1:])):
        raise ProgressionError("level thresholds must be strictly ascending")
    return table


def level_for_xp(xp: int, thresholds: Sequence[int] = DEFAULT_LEVEL_THRESHOLDS) -> int:
    """Player level for an XP total."""
    return 1 + bisect_right(thresholds, xp)


def xp_to_next_level(xp: int, thresholds: Sequence[int] = DEFAULT_LEVEL_THRESHOLDS) -> int:
    """XP still needed for the next level, 0 at max level."""
    index = bisect_right(thresholds, xp)
    if index >= len(thresholds):
        return 0
    return thresholds[index] - xp


def unlocked_for_xp(xp: int, gates: Mapping[str, int]) -> frozenset[str]:
    """Challenge IDs whose gate is satisfied at this XP."""
    return frozenset(cid for cid, required in gates.items() if xp >= required)


# =============================================================================
# STATE
# =============================================================================


@dataclass(frozen=True)
class PlayerSnapshot:
    """The persisted part of player state. Everything else is derived."""

    xp: int = 0
    completed_challenge_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class PlayerState:
    """Immutable view of player progress."""

    xp: int
    level: int
    xp_to_next_level: int
    completed_challenge_ids: frozenset[str]
    unlocked_challenge_ids: frozenset[str]

    def to_snapshot(self) -> PlayerSnapshot:
        return PlayerSnapshot(xp=self.xp, completed_challenge_ids=self.completed_challenge_ids)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "xp": self.xp,
            "level": self.level,
            "xp_to_next_level": self.xp_to_next_level,
            "completed_challenge_ids": sorted(self.completed_challenge_ids),
            "unlocked_challenge_ids": sorted(self.unlocked_challenge_ids),
        }


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of record_completion()."""

    state: PlayerState
    challenge_id: str
    xp_awarded: int
    already_completed: bool = False
    leveled_up: bool = False
    newly_unlocked: frozenset[str] = field(default_factory=frozenset)
    warnings: tuple[str, ...] = ()


class SnapshotStore(Protocol):
    """Durable mirror of player progress."""

    def load_snapshot(self) -> PlayerSnapshot | None: ...

    def save_snapshot(self, snapshot: PlayerSnapshot) -> bool: ...


# =============================================================================
# ENGINE
# =============================================================================


class ProgressionEngine:
    """Single-writer state machine over player XP and completions.

    Example:
        engine = ProgressionEngine(gates=catalog.gates(), store=store)
        result = engine.record_completion("basic-select", 50)
    """

    def __init__(
        self,
        gates: Mapping[str, int],
        thresholds: Sequence[int] = DEFAULT_LEVEL_THRESHOLDS,
        store: SnapshotStore | None = None,
        repeat_completion_rewards: bool = False,
    ):
        self._gates = dict(gates)
        self._thresholds = validate_thresholds(thresholds)
        self._store = store
        self._repeat_completion_rewards = repeat_completion_rewards
        self._lock = threading.Lock()

        snapshot = self._load_initial()
        self._xp = snapshot.xp
        self._completed = set(snapshot.completed_challenge_ids)

    @property
    def thresholds(self) -> tuple[int, ...]:
        return self._thresholds

    def _load_initial(self) -> PlayerSnapshot:
        """Read the stored snapshot, falling back to a fresh player."""
        if self._store is None:
            return PlayerSnapshot()

        try:
            snapshot = self._store.load_snapshot()
        except Exception as e:
            logger.warning("progression.snapshot_load_failed", error=str(e))
            return PlayerSnapshot()

        if snapshot is None:
            logger.debug("progression.snapshot_absent")
            return PlayerSnapshot()

        unknown = set(snapshot.completed_challenge_ids) - set(self._gates)
        if unknown:
            logger.warning("progression.snapshot_unknown_ids", ids=sorted(unknown))

        logger.info(
            "progression.snapshot_loaded",
            xp=snapshot.xp,
            completed=len(snapshot.completed_challenge_ids),
        )
        return snapshot

    def _build_state(self) -> PlayerState:
        return PlayerState(
            xp=self._xp,
            level=level_for_xp(self._xp, self._thresholds),
            xp_to_next_level=xp_to_next_level(self._xp, self._thresholds),
            completed_challenge_ids=frozenset(self._completed),
            unlocked_challenge_ids=unlocked_for_xp(self._xp, self._gates),
        )

    def current_state(self) -> PlayerState:
        """Immutable snapshot of the current player state."""
        with self._lock:
            return self._build_state()

    def is_unlocked(self, challenge_id: str) -> bool:
        """Check whether the player may attempt a challenge."""
        with self._lock:
            required = self._gates.get(challenge_id)
            return required is not None and self._xp >= required

    def _persist(self, state: PlayerState) -> list[str]:
        """Mirror state to the store. Failures become warnings."""
        if self._store is None:
            return []

        try:
            saved = self._store.save_snapshot(state.to_snapshot())
        except Exception as e:
            logger.warning("progression.snapshot_save_failed", error=str(e))
            return [f"progress could not be saved: {e}"]

        if not saved:
            logger.warning("progression.snapshot_save_failed")
            return ["progress could not be saved"]
        return []

    def record_completion(self, challenge_id: str, xp_award: int) -> CompletionResult:
        """Record a successful challenge completion.

        Adds the award to XP, marks the challenge completed, recomputes the
        derived level and unlocks, then saves a snapshot before returning.
        A challenge already completed awards nothing unless
        repeat_completion_rewards is enabled.

        Args:
            challenge_id: Completed challenge
            xp_award: XP to add, must be > 0

        Returns:
            CompletionResult with the new state and any persistence warnings

        Raises:
            ProgressionError: If xp_award is not a positive integer or the
                challenge is unknown
        """
        if isinstance(xp_award, bool) or not isinstance(xp_award, int) or xp_award <= 0:
            raise ProgressionError(f"xp_award must be a positive integer, got {xp_award!r}")
        if challenge_id not in self._gates:
            raise ProgressionError(f"unknown challenge '{challenge_id}'")

        with self._lock:
            before = self._build_state()
            already_completed = challenge_id in self._completed

            if already_completed and not self._repeat_completion_rewards:
                logger.info("progression.repeat_completion_ignored", challenge_id=challenge_id)
                return CompletionResult(
                    state=before,
                    challenge_id=challenge_id,
                    xp_awarded=0,
                    already_completed=True,
                )

            self._xp += xp_award
            self._completed.add(challenge_id)
            after = self._build_state()
            warnings = self._persist(after)

        result = CompletionResult(
            state=after,
            challenge_id=challenge_id,
            xp_awarded=xp_award,
            already_completed=already_completed,
            leveled_up=after.level > before.level,
            newly_unlocked=after.unlocked_challenge_ids - before.unlocked_challenge_ids,
            warnings=tuple(warnings),
        )

        logger.info(
            "progression.completion_recorded",
            challenge_id=challenge_id,
            xp_awarded=xp_award,
            xp=after.xp,
            level=after.level,
            newly_unlocked=sorted(result.newly_unlocked),
        )
        return result
