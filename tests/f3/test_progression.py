"""Tests for the progression engine."""

import dataclasses
import threading

import pytest

from sqlquest.core.errors import ProgressionError
from sqlquest.core.progression import (
    DEFAULT_LEVEL_THRESHOLDS,
    PlayerSnapshot,
    ProgressionEngine,
    level_for_xp,
    unlocked_for_xp,
    validate_thresholds,
    xp_to_next_level,
)


class TestLevelForXp:
    """Level is derived from XP over the threshold table."""

    @pytest.mark.parametrize(
        "xp,level",
        [
            (0, 1),
            (49, 1),
            (50, 2),
            (124, 2),
            (125, 3),
            (224, 3),
            (225, 4),
            (350, 5),
            (550, 6),
            (849, 6),
            (850, 7),
            (10_000, 7),
        ],
    )
    def test_canonical_table(self, xp, level):
        assert level_for_xp(xp) == level

    def test_monotonic(self):
        levels = [level_for_xp(xp) for xp in range(0, 1000)]
        assert levels == sorted(levels)

    def test_xp_to_next_level(self):
        assert xp_to_next_level(0) == 50
        assert xp_to_next_level(50) == 75
        assert xp_to_next_level(849) == 1
        assert xp_to_next_level(850) == 0

    def test_custom_table(self):
        assert level_for_xp(10, (10, 20)) == 2
        assert level_for_xp(25, (10, 20)) == 3


class TestValidateThresholds:
    """Malformed threshold tables are rejected."""

    def test_accepts_default(self):
        assert validate_thresholds(DEFAULT_LEVEL_THRESHOLDS) == DEFAULT_LEVEL_THRESHOLDS

    @pytest.mark.parametrize(
        "table",
        [
            [50, 50],
            [125, 50],
            [0, 50],
            [-10, 50],
            [50, "125"],
            [True, 50],
        ],
    )
    def test_rejects_bad_table(self, table):
        with pytest.raises(ProgressionError):
            validate_thresholds(table)


class TestUnlocks:
    """Unlocks follow the XP gates."""

    def test_unlocked_for_xp(self, gates):
        assert unlocked_for_xp(0, gates) == {"basic-select"}
        assert unlocked_for_xp(50, gates) == {"basic-select", "where-clause"}
        assert unlocked_for_xp(1000, gates) == set(gates)

    def test_new_player(self, gates):
        engine = ProgressionEngine(gates)
        state = engine.current_state()

        assert state.xp == 0
        assert state.level == 1
        assert state.completed_challenge_ids == frozenset()
        assert state.unlocked_challenge_ids == {"basic-select"}
        assert engine.is_unlocked("basic-select") is True
        assert engine.is_unlocked("where-clause") is False
        assert engine.is_unlocked("missing") is False


class TestRecordCompletion:
    """Tests for record_completion()."""

    def test_first_completion(self, gates, memory_store):
        engine = ProgressionEngine(gates, store=memory_store)
        result = engine.record_completion("basic-select", 50)

        assert result.xp_awarded == 50
        assert result.already_completed is False
        assert result.leveled_up is True
        assert result.newly_unlocked == {"where-clause"}
        assert result.warnings == ()

        state = result.state
        assert state.xp == 50
        assert state.level == 2
        assert state.completed_challenge_ids == {"basic-select"}
        assert "where-clause" in state.unlocked_challenge_ids
        assert engine.current_state() == state

    def test_snapshot_saved_before_return(self, gates, memory_store):
        engine = ProgressionEngine(gates, store=memory_store)
        engine.record_completion("basic-select", 50)

        assert memory_store.saved == [
            PlayerSnapshot(xp=50, completed_challenge_ids=frozenset({"basic-select"}))
        ]

    def test_no_level_up_within_level(self, gates):
        engine = ProgressionEngine(gates)
        result = engine.record_completion("basic-select", 10)
        assert result.leveled_up is False
        assert result.state.level == 1

    def test_repeat_completion_awards_nothing_by_default(self, gates, memory_store):
        engine = ProgressionEngine(gates, store=memory_store)
        engine.record_completion("basic-select", 50)
        again = engine.record_completion("basic-select", 50)

        assert again.already_completed is True
        assert again.xp_awarded == 0
        assert again.state.xp == 50
        assert len(memory_store.saved) == 1

    def test_repeat_completion_rewards_when_enabled(self, gates):
        engine = ProgressionEngine(gates, repeat_completion_rewards=True)
        engine.record_completion("basic-select", 50)
        again = engine.record_completion("basic-select", 50)

        assert again.already_completed is True
        assert again.xp_awarded == 50
        assert again.state.xp == 100
        assert again.state.completed_challenge_ids == {"basic-select"}

    @pytest.mark.parametrize("award", [0, -5, 2.5, True, "50"])
    def test_invalid_award(self, gates, award):
        engine = ProgressionEngine(gates)
        with pytest.raises(ProgressionError):
            engine.record_completion("basic-select", award)
        assert engine.current_state().xp == 0

    def test_unknown_challenge(self, gates):
        engine = ProgressionEngine(gates)
        with pytest.raises(ProgressionError, match="unknown challenge"):
            engine.record_completion("nope", 50)

    def test_state_is_immutable(self, gates):
        engine = ProgressionEngine(gates)
        state = engine.current_state()
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.xp = 999
        assert engine.current_state().xp == 0

    def test_to_dict_is_sorted(self, gates):
        engine = ProgressionEngine(gates)
        engine.record_completion("basic-select", 50)
        data = engine.current_state().to_dict()
        assert data["completed_challenge_ids"] == ["basic-select"]
        assert data["unlocked_challenge_ids"] == ["basic-select", "where-clause"]
        assert data["xp_to_next_level"] == 75


class TestPersistenceFailures:
    """Store failures surface as warnings; state still advances."""

    def test_save_returning_false(self, gates, store_factory):
        store = store_factory(save_result=False)
        engine = ProgressionEngine(gates, store=store)
        result = engine.record_completion("basic-select", 50)

        assert result.state.xp == 50
        assert result.warnings == ("progress could not be saved",)

    def test_save_raising(self, gates, broken_store):
        engine = ProgressionEngine(gates, store=broken_store)
        result = engine.record_completion("basic-select", 50)

        assert result.state.xp == 50
        assert len(result.warnings) == 1
        assert "disk unavailable" in result.warnings[0]

    def test_load_raising_starts_fresh(self, gates, broken_store):
        engine = ProgressionEngine(gates, store=broken_store)
        assert engine.current_state().xp == 0


class TestLoadFromStore:
    """Initial state comes from the stored snapshot."""

    def test_restores_snapshot(self, gates, store_factory):
        store = store_factory(
            PlayerSnapshot(xp=130, completed_challenge_ids=frozenset({"basic-select", "where-clause"}))
        )
        state = ProgressionEngine(gates, store=store).current_state()

        assert state.xp == 130
        assert state.level == 3
        assert state.completed_challenge_ids == {"basic-select", "where-clause"}
        assert state.unlocked_challenge_ids == {"basic-select", "where-clause", "order-by"}

    def test_restored_completion_counts_as_repeat(self, gates, store_factory):
        store = store_factory(
            PlayerSnapshot(xp=50, completed_challenge_ids=frozenset({"basic-select"}))
        )
        engine = ProgressionEngine(gates, store=store)
        assert engine.record_completion("basic-select", 50).xp_awarded == 0


class TestConcurrency:
    """Completions are serialized."""

    def test_parallel_completions_lose_nothing(self, memory_store):
        gates = {f"c{i}": 0 for i in range(50)}
        store = memory_store
        engine = ProgressionEngine(gates, thresholds=(100, 200), store=store)

        threads = [
            threading.Thread(target=engine.record_completion, args=(cid, 10))
            for cid in gates
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        state = engine.current_state()
        assert state.xp == 500
        assert state.completed_challenge_ids == set(gates)
        assert state.level == 3
        assert store.saved[-1].xp == 500
