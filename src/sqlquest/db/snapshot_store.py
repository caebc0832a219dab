"""JSON snapshot store for player progress.

Persists the player snapshot to {state_dir}/player_v1.json.

Load is best effort: a missing, unreadable or malformed file reads as
"no snapshot". Save reports success as a bool instead of raising.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from sqlquest.core.progression import PlayerSnapshot

logger = structlog.get_logger(__name__)

SNAPSHOT_SCHEMA = "player_state_v1"
SNAPSHOT_FILENAME = "player_v1.json"


def snapshot_to_dict(snapshot: PlayerSnapshot) -> dict[str, Any]:
    """Serialize a snapshot for JSON storage."""
    return {
        "$schema": SNAPSHOT_SCHEMA,
        "xp": snapshot.xp,
        "completed_challenge_ids": sorted(snapshot.completed_challenge_ids),
    }


def snapshot_from_dict(data: Any) -> PlayerSnapshot | None:
    """Parse a stored snapshot, or None if it is malformed."""
    if not isinstance(data, dict):
        return None
    if data.get("$schema") != SNAPSHOT_SCHEMA:
        logger.warning(
            "snapshot.invalid_schema",
            expected=SNAPSHOT_SCHEMA,
            got=data.get("$schema"),
        )
        return None

    xp = data.get("xp")
    if isinstance(xp, bool) or not isinstance(xp, int) or xp < 0:
        logger.warning("snapshot.invalid_xp", xp=xp)
        return None

    completed = data.get("completed_challenge_ids", [])
    if not isinstance(completed, list) or not all(isinstance(c, str) for c in completed):
        logger.warning("snapshot.invalid_completed_ids")
        return None

    return PlayerSnapshot(xp=xp, completed_challenge_ids=frozenset(completed))


class JsonSnapshotStore:
    """Snapshot store backed by a JSON file in the state directory."""

    def __init__(self, state_dir: Path | None = None):
        self.state_dir = state_dir or Path("data/state")

    @property
    def path(self) -> Path:
        return self.state_dir / SNAPSHOT_FILENAME

    def load_snapshot(self) -> PlayerSnapshot | None:
        """Load the stored snapshot.

        Returns:
            PlayerSnapshot, or None if missing or malformed
        """
        if not self.path.exists():
            logger.debug("snapshot.not_found", path=str(self.path))
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.error("snapshot.load_failed", path=str(self.path), error=str(e))
            return None

        return snapshot_from_dict(data)

    def save_snapshot(self, snapshot: PlayerSnapshot) -> bool:
        """Write the snapshot atomically (temp file + rename).

        Returns:
            True on success, False if the file could not be written
        """
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.state_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot_to_dict(snapshot), f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("snapshot.save_failed", path=str(self.path), error=str(e))
            return False

        logger.info("snapshot.saved", path=str(self.path), xp=snapshot.xp)
        return True
