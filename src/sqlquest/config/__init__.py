"""Configuration package for SQL Quest."""

from sqlquest.config.app_config import (
    AppConfig,
    PathsConfig,
    ProgressionConfig,
    SandboxConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "PathsConfig",
    "ProgressionConfig",
    "SandboxConfig",
    "clear_config_cache",
    "load_app_config",
]
