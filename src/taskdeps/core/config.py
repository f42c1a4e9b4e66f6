"""taskdeps configuration loading and validation."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

from taskdeps.core.constants import (
    DEFAULT_CACHE_CHECK_PERIOD_SECONDS,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    TASKS_DB,
    VALID_LOG_LEVELS,
    get_config_path,
)
from taskdeps.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class StoreConfig:
    """Task store configuration."""

    db_name: str = TASKS_DB
    use_file_storage: bool = False


@dataclass(frozen=True)
class CacheConfig:
    """Read cache configuration."""

    enabled: bool = True
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    check_period_seconds: float = DEFAULT_CACHE_CHECK_PERIOD_SECONDS

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError("cache ttl_seconds must be positive")
        if self.check_period_seconds < 0:
            raise ValueError("cache check_period_seconds must not be negative")


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL
    format: str = DEFAULT_LOG_FORMAT

    def __post_init__(self) -> None:
        if self.level.lower() not in VALID_LOG_LEVELS:
            raise ValueError(f"invalid log level: {self.level}")


@dataclass(frozen=True)
class TaskDepsConfig:
    """Complete taskdeps configuration."""

    version: str = "1.0"
    store: StoreConfig = field(default_factory=StoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from dictionary."""
        return cls(
            version=data.get("version", "1.0"),
            store=StoreConfig(**data.get("store", {})),
            cache=CacheConfig(**data.get("cache", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    @classmethod
    def load(cls, base_path: Path | None = None) -> Self:
        """Load configuration from file or use defaults."""
        config_path = get_config_path(base_path)

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls.from_dict(data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {e}",
                details={"path": str(config_path)},
            ) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid configuration values: {e}",
                details={"path": str(config_path)},
            ) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "version": self.version,
            "store": {
                "db_name": self.store.db_name,
                "use_file_storage": self.store.use_file_storage,
            },
            "cache": {
                "enabled": self.cache.enabled,
                "ttl_seconds": self.cache.ttl_seconds,
                "check_period_seconds": self.cache.check_period_seconds,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
            },
        }

    def save(self, base_path: Path | None = None) -> None:
        """Save configuration to file."""
        config_path = get_config_path(base_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
