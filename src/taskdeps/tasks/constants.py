"""
Task system constants and enumerations.

This module defines all constants, enums, and configuration values
for the taskdeps task system.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Task Enumerations
# =============================================================================

class TaskStatus(str, Enum):
    """Status of a task."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Priority levels for tasks."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Task Configuration Constants
# =============================================================================

# ID Generation
TASK_ID_PREFIX: Final[str] = "task"
TASK_ID_SEPARATOR: Final[str] = "_"

# Default Values
DEFAULT_PRIORITY: Final[TaskPriority] = TaskPriority.MEDIUM
DEFAULT_STATUS: Final[TaskStatus] = TaskStatus.TODO

# Limits
MAX_TASK_TITLE_LENGTH: Final[int] = 256
MAX_TASK_DESCRIPTION_LENGTH: Final[int] = 4096
DEFAULT_LIST_LIMIT: Final[int] = 100

# Database
TASKS_TABLE_NAME: Final[str] = "tasks"
TASK_DEPENDENCIES_TABLE_NAME: Final[str] = "task_dependencies"

# File System
TASKS_DIR_NAME: Final[str] = "tasks"
TASK_FILE_EXTENSION: Final[str] = ".yaml"

# Validation Patterns
TASK_ID_PATTERN: Final[str] = r"^task_[a-z0-9]{8,32}$"

# Cache key prefixes
CLOSURE_CACHE_PREFIX: Final[str] = "deps-"

# Fields a caller may set through create or update
MUTABLE_TASK_FIELDS: Final[tuple[str, ...]] = (
    "title",
    "description",
    "due_date",
    "priority",
    "status",
)
