"""Database collaborators.

Provides:
- SQL engine capability (SQLite in-memory sandboxes)
- JSON snapshot store for player progress
"""

from sqlquest.db.engine import EngineError, SqliteEngine
from sqlquest.db.snapshot_store import JsonSnapshotStore

__all__ = ["EngineError", "SqliteEngine", "JsonSnapshotStore"]
