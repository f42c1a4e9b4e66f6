"""taskdeps system constants and default values."""

from pathlib import Path
from typing import Final


# Directory structure
TASKDEPS_ROOT_DIR: Final[str] = ".taskdeps"
INDEX_DIR: Final[str] = "index"
CONFIG_FILE: Final[str] = "config.json"

# Database files
TASKS_DB: Final[str] = "tasks.db"

# Cache settings
DEFAULT_CACHE_TTL_SECONDS: Final[float] = 600.0
DEFAULT_CACHE_CHECK_PERIOD_SECONDS: Final[float] = 20.0

# Logging
DEFAULT_LOG_LEVEL: Final[str] = "warning"
DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
VALID_LOG_LEVELS: Final[tuple[str, ...]] = ("debug", "info", "warning", "error")


def get_taskdeps_root(base_path: Path | None = None) -> Path:
    """Get the .taskdeps root directory path."""
    if base_path is None:
        base_path = Path.cwd()
    return base_path / TASKDEPS_ROOT_DIR


def get_index_root(base_path: Path | None = None) -> Path:
    """Get the index directory path."""
    return get_taskdeps_root(base_path) / INDEX_DIR


def get_tasks_db_path(base_path: Path | None = None) -> Path:
    """Get the tasks database path."""
    return get_index_root(base_path) / TASKS_DB


def get_config_path(base_path: Path | None = None) -> Path:
    """Get the configuration file path."""
    return get_taskdeps_root(base_path) / CONFIG_FILE
