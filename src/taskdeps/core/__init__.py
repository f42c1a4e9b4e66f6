"""taskdeps core: configuration, constants and exceptions."""

from taskdeps.core.config import (
    CacheConfig,
    LoggingConfig,
    StoreConfig,
    TaskDepsConfig,
)
from taskdeps.core.exceptions import (
    CircularDependencyError,
    ConfigurationError,
    DependencyError,
    DependencyNotFoundError,
    DependencyNotPresentError,
    DuplicateDependencyError,
    SelfDependencyError,
    StoreUnavailableError,
    TaskDepsError,
    TaskNotFoundError,
    TaskValidationError,
)

__all__ = [
    # Config
    "TaskDepsConfig",
    "StoreConfig",
    "CacheConfig",
    "LoggingConfig",
    # Exceptions
    "TaskDepsError",
    "ConfigurationError",
    "TaskValidationError",
    "TaskNotFoundError",
    "DependencyError",
    "DependencyNotFoundError",
    "DuplicateDependencyError",
    "DependencyNotPresentError",
    "CircularDependencyError",
    "SelfDependencyError",
    "StoreUnavailableError",
]
