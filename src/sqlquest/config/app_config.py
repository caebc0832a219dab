"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml
with fallback to built-in defaults.

Usage:
    from sqlquest.config.app_config import load_app_config

    config = load_app_config()
    thresholds = config.progression.level_thresholds
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

# Overrides paths.state_dir when set
DATA_DIR_ENV = "SQLQUEST_DATA_DIR"


@dataclass
class PathsConfig:
    """Filesystem locations."""

    state_dir: str = "data/state"
    catalog_file: str = "data/config/challenges_v1.yaml"

    def get_state_dir(self) -> Path:
        """State directory, honoring SQLQUEST_DATA_DIR."""
        override = os.environ.get(DATA_DIR_ENV)
        if override:
            return Path(override) / "state"
        return Path(self.state_dir)


@dataclass
class SandboxConfig:
    """Sandbox engine settings."""

    query_timeout_seconds: float | None = 5.0


@dataclass
class ProgressionConfig:
    """XP and level settings."""

    level_thresholds: list[int] = field(
        default_factory=lambda: [50, 125, 225, 350, 550, 850]
    )
    repeat_completion_rewards: bool = False


@dataclass
class AppConfig:
    """Application-wide configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    sandbox: SandboxConfig = field(default_factory=SandboxConfig)
    progression: ProgressionConfig = field(default_factory=ProgressionConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "paths": {
            "state_dir": "data/state",
            "catalog_file": "data/config/challenges_v1.yaml",
        },
        "sandbox": {
            "query_timeout_seconds": 5.0,
        },
        "progression": {
            "level_thresholds": [50, 125, 225, 350, 550, 850],
            "repeat_completion_rewards": False,
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    paths_data = {**defaults["paths"], **(data.get("paths") or {})}
    paths = PathsConfig(
        state_dir=str(paths_data["state_dir"]),
        catalog_file=str(paths_data["catalog_file"]),
    )

    sandbox_data = {**defaults["sandbox"], **(data.get("sandbox") or {})}
    timeout = sandbox_data["query_timeout_seconds"]
    sandbox = SandboxConfig(
        query_timeout_seconds=float(timeout) if timeout is not None else None,
    )

    progression_data = {**defaults["progression"], **(data.get("progression") or {})}
    progression = ProgressionConfig(
        level_thresholds=list(progression_data["level_thresholds"]),
        repeat_completion_rewards=bool(progression_data["repeat_completion_rewards"]),
    )

    return AppConfig(paths=paths, sandbox=sandbox, progression=progression)


def load_app_config(force_reload: bool = False, path: Path | None = None) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        path: Config file to read instead of CONFIG_FILE (not cached).

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if path is None and _cached_config is not None and not force_reload:
        return _cached_config

    config_path = path or CONFIG_FILE
    data: dict[str, Any]

    if config_path.exists():
        logger.debug("loading_app_config", source=str(config_path))
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    config = _parse_config(data)
    if path is None:
        _cached_config = config
    return config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
