"""taskdeps custom exception hierarchy."""

from typing import Any


class TaskDepsError(Exception):
    """Base exception for all taskdeps errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a caller-visible dictionary."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(TaskDepsError):
    """Raised when configuration is invalid or missing."""

    pass


class TaskValidationError(TaskDepsError):
    """Raised when task fields fail validation."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if errors:
            details["errors"] = errors
        super().__init__(message, details)
        self.errors = errors or []


class TaskNotFoundError(TaskDepsError):
    """Raised when a task ID does not resolve to a stored task."""

    def __init__(
        self,
        task_id: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["task_id"] = task_id
        super().__init__(message or f"Task not found: {task_id}", details)
        self.task_id = task_id


# =============================================================================
# Dependency Errors
# =============================================================================


class DependencyError(TaskDepsError):
    """Base exception for dependency graph violations."""

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        dependency_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if task_id:
            details["task_id"] = task_id
        if dependency_id:
            details["dependency_id"] = dependency_id
        super().__init__(message, details)
        self.task_id = task_id
        self.dependency_id = dependency_id


class DependencyNotFoundError(DependencyError):
    """Raised when a requested dependency ID does not exist."""

    def __init__(self, dependency_id: str, task_id: str | None = None) -> None:
        super().__init__(
            f"Dependency task with ID {dependency_id} not found",
            task_id=task_id,
            dependency_id=dependency_id,
        )


class DuplicateDependencyError(DependencyError):
    """Raised when adding an edge that already exists."""

    def __init__(self, task_id: str, dependency_id: str) -> None:
        super().__init__(
            f"Task {task_id} already depends on {dependency_id}",
            task_id=task_id,
            dependency_id=dependency_id,
        )


class DependencyNotPresentError(DependencyError):
    """Raised when removing an edge that does not exist."""

    def __init__(self, task_id: str, dependency_id: str) -> None:
        super().__init__(
            f"Task {task_id} does not depend on {dependency_id}",
            task_id=task_id,
            dependency_id=dependency_id,
        )


class CircularDependencyError(DependencyError):
    """Raised when an edge would close a cycle in the dependency graph."""

    def __init__(
        self,
        task_id: str,
        dependency_id: str,
        cycle_path: list[str] | None = None,
        message: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if cycle_path:
            details["cycle_path"] = " -> ".join(cycle_path)
        super().__init__(
            message or f"Circular dependency detected: {task_id} -> {dependency_id}",
            task_id=task_id,
            dependency_id=dependency_id,
            details=details,
        )
        self.cycle_path = cycle_path or []


class SelfDependencyError(CircularDependencyError):
    """Raised when a task would depend on itself."""

    def __init__(self, task_id: str) -> None:
        super().__init__(
            task_id,
            task_id,
            cycle_path=[task_id, task_id],
            message=f"Task {task_id} cannot depend on itself",
        )


# =============================================================================
# Storage Errors
# =============================================================================


class StoreUnavailableError(TaskDepsError):
    """Raised when the task store cannot complete an operation."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation
