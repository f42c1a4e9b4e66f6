"""
Task data models.

This module defines the core data structures for the taskdeps task system,
including Task and the leveled dependency view produced by the
transitive closure walker.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional
import re
import secrets

from taskdeps.tasks.constants import (
    TaskStatus,
    TaskPriority,
    TASK_ID_PREFIX,
    TASK_ID_SEPARATOR,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    MAX_TASK_TITLE_LENGTH,
    MAX_TASK_DESCRIPTION_LENGTH,
    TASK_ID_PATTERN,
)


# =============================================================================
# ID Generation
# =============================================================================

def generate_task_id() -> str:
    """Generate a unique task ID."""
    random_part = secrets.token_hex(8)
    return f"{TASK_ID_PREFIX}{TASK_ID_SEPARATOR}{random_part}"


def validate_task_id(task_id: str) -> bool:
    """Validate a task ID format."""
    return bool(re.match(TASK_ID_PATTERN, task_id))


def normalize_dependency_ids(dependency_ids: Iterable[str]) -> list[str]:
    """Collapse repeated IDs, keeping first occurrence order."""
    seen: set[str] = set()
    result = []
    for dep_id in dependency_ids:
        if dep_id not in seen:
            seen.add(dep_id)
            result.append(dep_id)
    return result


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"Invalid datetime value: {value!r}")


# =============================================================================
# Main Task Model
# =============================================================================

@dataclass
class Task:
    """
    A unit of work that may depend on other tasks.

    Dependencies are stored as a list of task IDs with set semantics:
    order is preserved for presentation but carries no meaning.
    """

    # Identity
    id: str = field(default_factory=generate_task_id)
    title: str = ""
    description: str = ""

    # Scheduling
    due_date: Optional[datetime] = None
    priority: TaskPriority = DEFAULT_PRIORITY
    status: TaskStatus = DEFAULT_STATUS

    # Dependencies
    dependencies: list[str] = field(default_factory=list)

    # Timestamps
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        """Normalize enum and datetime fields."""
        if isinstance(self.priority, str):
            self.priority = TaskPriority(self.priority)
        if isinstance(self.status, str):
            self.status = TaskStatus(self.status)
        self.due_date = parse_datetime(self.due_date)
        self.dependencies = list(self.dependencies)

    # -------------------------------------------------------------------------
    # Dependency Management
    # -------------------------------------------------------------------------

    def has_dependency(self, task_id: str) -> bool:
        """Check if this task depends directly on another."""
        return task_id in self.dependencies

    def add_dependency(self, task_id: str) -> bool:
        """Add a dependency. Returns False if it was already present."""
        if task_id in self.dependencies:
            return False
        self.dependencies.append(task_id)
        return True

    def remove_dependency(self, task_id: str) -> bool:
        """Remove a dependency. Returns False if it was not present."""
        original_count = len(self.dependencies)
        self.dependencies = [d for d in self.dependencies if d != task_id]
        return len(self.dependencies) < original_count

    def touch(self) -> None:
        """Refresh the update timestamp."""
        self.updated_at = datetime.utcnow()

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert task to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "priority": self.priority.value,
            "status": self.status.value,
            "dependencies": list(self.dependencies),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create task from dictionary."""
        data = dict(data)
        for dt_field in ["created_at", "updated_at"]:
            if data.get(dt_field) and isinstance(data[dt_field], str):
                data[dt_field] = datetime.fromisoformat(data[dt_field])
        return cls(**data)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> list[str]:
        """
        Validate task data.

        Returns a list of validation errors (empty if valid).
        """
        errors = []

        if not validate_task_id(self.id):
            errors.append(f"Invalid task ID format: {self.id}")

        if not self.title or not self.title.strip():
            errors.append("Title is required")
        elif len(self.title) > MAX_TASK_TITLE_LENGTH:
            errors.append(f"Task title exceeds maximum length of {MAX_TASK_TITLE_LENGTH}")

        if len(self.description) > MAX_TASK_DESCRIPTION_LENGTH:
            errors.append(
                f"Task description exceeds maximum length of {MAX_TASK_DESCRIPTION_LENGTH}"
            )

        if self.id in self.dependencies:
            errors.append("Task cannot depend on itself")

        if len(set(self.dependencies)) != len(self.dependencies):
            errors.append("Task dependencies contain duplicates")

        return errors

    def __hash__(self) -> int:
        """Hash based on task ID."""
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        """Equality based on task ID."""
        if not isinstance(other, Task):
            return False
        return self.id == other.id


# =============================================================================
# Dependency Closure Models
# =============================================================================

@dataclass(frozen=True)
class DependencyRecord:
    """A dependency discovered during a closure walk."""

    id: str
    title: str
    status: TaskStatus
    level: int

    def summary(self) -> dict[str, Any]:
        """Record without its level, as used in per-level groupings."""
        return {"id": self.id, "title": self.title, "status": self.status.value}

    def to_dict(self) -> dict[str, Any]:
        return {**self.summary(), "level": self.level}


@dataclass
class DependencyClosure:
    """Direct and indirect dependencies of a task, grouped by level."""

    task_id: str
    task_title: str
    all_dependencies: list[DependencyRecord] = field(default_factory=list)

    @property
    def dependencies_by_level(self) -> dict[int, list[dict[str, Any]]]:
        """Map of level to the dependencies first discovered at that level."""
        grouped: dict[int, list[dict[str, Any]]] = {}
        for record in self.all_dependencies:
            grouped.setdefault(record.level, []).append(record.summary())
        return grouped

    @property
    def direct_dependencies(self) -> list[dict[str, Any]]:
        return self.dependencies_by_level.get(1, [])

    @property
    def ids(self) -> list[str]:
        return [record.id for record in self.all_dependencies]

    def copy(self) -> "DependencyClosure":
        return DependencyClosure(
            task_id=self.task_id,
            task_title=self.task_title,
            all_dependencies=list(self.all_dependencies),
        )

    def level_of(self, task_id: str) -> Optional[int]:
        """Get the recorded level of a dependency, or None if absent."""
        for record in self.all_dependencies:
            if record.id == task_id:
                return record.level
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert closure to a JSON-serializable dictionary."""
        return {
            "task": {"id": self.task_id, "title": self.task_title},
            "direct_dependencies": self.direct_dependencies,
            "all_dependencies": [r.to_dict() for r in self.all_dependencies],
            "dependencies_by_level": {
                str(level): deps for level, deps in self.dependencies_by_level.items()
            },
        }
