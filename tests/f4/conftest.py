"""Fixtures for F4 tests - game service, CLI and web API."""

import shutil
from pathlib import Path

import pytest

from sqlquest.config.app_config import clear_config_cache
from sqlquest.core.challenges import load_catalog
from sqlquest.core.game import GameService
from sqlquest.core.progression import ProgressionEngine
from sqlquest.db.engine import SqliteEngine
from sqlquest.db.snapshot_store import JsonSnapshotStore

SHIPPED_CATALOG = Path(__file__).parents[2] / "data" / "config" / "challenges_v1.yaml"


@pytest.fixture
def state_dir(tmp_path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def service(state_dir) -> GameService:
    """Game service over the shipped catalog with progress under tmp_path."""
    engine = SqliteEngine(query_timeout=5.0)
    engine.initialize()
    catalog = load_catalog(SHIPPED_CATALOG)
    progression = ProgressionEngine(
        gates=catalog.gates(),
        store=JsonSnapshotStore(state_dir),
    )
    return GameService(engine=engine, catalog=catalog, progression=progression)


@pytest.fixture
def project_dir(tmp_path, monkeypatch) -> Path:
    """Temporary working directory laid out like the project root.

    Holds a copy of the shipped catalog; config falls back to defaults and
    progress is written to tmp_path/data/state.
    """
    config_dir = tmp_path / "data" / "config"
    config_dir.mkdir(parents=True)
    shutil.copy(SHIPPED_CATALOG, config_dir / "challenges_v1.yaml")

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SQLQUEST_DATA_DIR", raising=False)
    clear_config_cache()
    yield tmp_path
    clear_config_cache()
