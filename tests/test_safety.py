"""Safety tests to ensure test suite doesn't modify player data.

These tests verify that running the test suite does NOT touch:
- ./data/state (the player's progress snapshot)

All tests MUST use temporary directories via pytest fixtures.
"""

import hashlib
import os
from pathlib import Path

import pytest


def _hash_directory(path: Path) -> str | None:
    """Create a hash of directory structure and file contents.

    Returns None if directory doesn't exist.
    """
    if not path.exists():
        return None

    hasher = hashlib.sha256()

    for root, dirs, files in os.walk(path):
        # Sort for consistent ordering
        dirs.sort()
        files.sort()

        for filename in files:
            filepath = Path(root) / filename
            rel_path = filepath.relative_to(path)
            hasher.update(str(rel_path).encode())

            # Hash file size and mtime (not content for speed)
            stat = filepath.stat()
            hasher.update(str(stat.st_size).encode())
            hasher.update(str(int(stat.st_mtime)).encode())

    return hasher.hexdigest()


class TestStateDirectorySafety:
    """Tests ensuring ./data/state is never modified by test suite."""

    @pytest.fixture(scope="class")
    def state_dir_before(self):
        """Capture state of ./data/state before tests."""
        state_path = Path("data/state")
        return {
            "exists": state_path.exists(),
            "hash": _hash_directory(state_path),
        }

    def test_state_directory_not_created(self, state_dir_before):
        """Test suite should not create ./data/state if it didn't exist."""
        if not state_dir_before["exists"] and Path("data/state").exists():
            pytest.fail(
                "./data/state directory was created during test run. "
                "All tests MUST use temporary directories."
            )

    def test_state_directory_not_modified(self, state_dir_before):
        """Test suite should not modify ./data/state if it existed."""
        if state_dir_before["exists"]:
            if _hash_directory(Path("data/state")) != state_dir_before["hash"]:
                pytest.fail(
                    "./data/state directory was modified during test run. "
                    "Never record completions against the default store in tests."
                )


class TestTestIsolation:
    """Meta-tests ensuring test fixtures use temp directories."""

    def test_tests_building_stores_use_temp_dirs(self):
        """Test files that build a snapshot store or service use tmp_path."""
        violations = []

        for test_file in sorted(Path("tests").glob("f*/test_*.py")):
            content = test_file.read_text()
            builds_store = "JsonSnapshotStore(" in content or "from_config(" in content
            if builds_store and "tmp_path" not in content:
                violations.append(f"{test_file}: builds a store without tmp_path")

        if violations:
            pytest.fail(
                "Test files may not be properly isolated:\n"
                + "\n".join(f"  - {v}" for v in violations)
            )
