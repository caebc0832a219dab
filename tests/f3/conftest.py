"""Fixtures for F3 tests - progression and persistence."""

import pytest

from sqlquest.core.progression import PlayerSnapshot


@pytest.fixture
def gates() -> dict[str, int]:
    """Gates matching the shipped catalog."""
    return {
        "basic-select": 0,
        "where-clause": 50,
        "order-by": 125,
        "count-function": 225,
        "join-operation": 350,
        "group-by": 550,
    }


class MemoryStore:
    """In-memory snapshot store that records saves."""

    def __init__(self, snapshot: PlayerSnapshot | None = None, save_result: bool = True):
        self.snapshot = snapshot
        self.save_result = save_result
        self.saved: list[PlayerSnapshot] = []

    def load_snapshot(self) -> PlayerSnapshot | None:
        return self.snapshot

    def save_snapshot(self, snapshot: PlayerSnapshot) -> bool:
        self.saved.append(snapshot)
        return self.save_result


class BrokenStore:
    """Store whose every operation raises."""

    def load_snapshot(self) -> PlayerSnapshot | None:
        raise OSError("disk unavailable")

    def save_snapshot(self, snapshot: PlayerSnapshot) -> bool:
        raise OSError("disk unavailable")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def store_factory():
    """Build MemoryStore doubles with a preset snapshot or save result."""

    def factory(snapshot: PlayerSnapshot | None = None, save_result: bool = True) -> MemoryStore:
        return MemoryStore(snapshot=snapshot, save_result=save_result)

    return factory


@pytest.fixture
def broken_store():
    return BrokenStore()
