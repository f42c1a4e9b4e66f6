"""
Dependency graph engine.

Exposes the edge-mutation operations on tasks and enforces the graph
invariants on every one of them:

- The dependency relation stays acyclic after every committed mutation
- Every dependency ID refers to a task that exists when it is added
- A task never depends on itself
- Deleting a task strips it from every dependent before the record goes

The engine keeps no graph state between calls. Each operation reads
through the store, validates, and writes back inside ``store.atomic()``;
events are emitted only after the transaction has committed.
"""

import logging
from typing import Any, Iterable, Optional

from taskdeps.core.exceptions import (
    CircularDependencyError,
    DependencyError,
    DependencyNotFoundError,
    DependencyNotPresentError,
    DuplicateDependencyError,
    SelfDependencyError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskdeps.tasks.cache import TaskCache
from taskdeps.tasks.closure import TransitiveClosureWalker
from taskdeps.tasks.constants import MUTABLE_TASK_FIELDS, TaskPriority, TaskStatus
from taskdeps.tasks.cycles import CycleDetector
from taskdeps.tasks.events import TaskEvent, TaskEventEmitter, TaskEventType
from taskdeps.tasks.models import (
    DependencyClosure,
    Task,
    parse_datetime,
    normalize_dependency_ids,
)
from taskdeps.tasks.store import TaskRepository


logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Task dependency graph over an abstract task store.

    Example:
        store = TaskStore(root)
        graph = DependencyGraph(store, cache=TaskCache())
        base = graph.create_task({"title": "Design schema"})
        api = graph.create_task_with_dependencies({"title": "Build API"}, [base.id])
        graph.add_dependency(base.id, api.id)  # raises CircularDependencyError
    """

    def __init__(
        self,
        store: TaskRepository,
        emitter: Optional[TaskEventEmitter] = None,
        cache: Optional[TaskCache] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: Task persistence store
            emitter: Event emitter for mutation events (created if omitted)
            cache: Optional read cache, invalidated through the emitter
        """
        self._store = store
        self._emitter = emitter or TaskEventEmitter()
        self._cache = cache
        self._detector = CycleDetector(store)
        self._walker = TransitiveClosureWalker(store)

        if cache is not None:
            cache.attach(self._emitter)

    @property
    def store(self) -> TaskRepository:
        return self._store

    @property
    def emitter(self) -> TaskEventEmitter:
        return self._emitter

    @property
    def detector(self) -> CycleDetector:
        return self._detector

    # -------------------------------------------------------------------------
    # Task Creation
    # -------------------------------------------------------------------------

    def create_task(self, fields: dict[str, Any]) -> Task:
        """Create a task without dependencies."""
        return self.create_task_with_dependencies(fields, [])

    def create_task_with_dependencies(
        self,
        fields: dict[str, Any],
        dependency_ids: Optional[Iterable[str]] = None,
    ) -> Task:
        """
        Create a task and attach its initial dependencies.

        The task is first persisted with an empty dependency set. Each
        requested dependency is then checked in order, against the graph
        as it stands before any of the new edges exist. The full set is
        committed in one save only after every check has passed.

        Args:
            fields: Task fields (title, description, due_date, priority, status)
            dependency_ids: IDs of tasks the new task depends on

        Returns:
            The created task

        Raises:
            TaskValidationError: If the fields are invalid
            DependencyNotFoundError: If a dependency does not exist
            CircularDependencyError: If a dependency would close a cycle
        """
        task = self._build_task(fields)
        requested = normalize_dependency_ids(dependency_ids or [])

        with self._store.atomic():
            self._store.create(task)
            try:
                for dep_id in requested:
                    self._check_candidate(task.id, dep_id)
            except DependencyError as e:
                # no empty record is left behind on a rejected create
                self._store.delete(task.id)
                logger.warning(f"Rejected create of task '{task.title}': {e}")
                raise

            if requested:
                task.dependencies = requested
                self._store.save(task)

        logger.info(f"Created task {task.id} with {len(requested)} dependencies")
        self._emit(TaskEventType.CREATED, task.id, dependencies=list(task.dependencies))
        return task

    # -------------------------------------------------------------------------
    # Edge Mutations
    # -------------------------------------------------------------------------

    def add_dependency(self, subject_id: str, dependency_id: str) -> Task:
        """
        Make subject depend on dependency.

        Raises:
            TaskNotFoundError: If either task does not exist
            DuplicateDependencyError: If the edge already exists
            CircularDependencyError: If the edge would close a cycle
        """
        with self._store.atomic():
            task = self._require_task(subject_id)
            if not self._store.exists(dependency_id):
                raise TaskNotFoundError(dependency_id)

            if task.has_dependency(dependency_id):
                raise DuplicateDependencyError(subject_id, dependency_id)

            self._ensure_acyclic(subject_id, dependency_id)

            task.add_dependency(dependency_id)
            self._store.save(task)

        logger.info(f"Added dependency {subject_id} -> {dependency_id}")
        self._emit(TaskEventType.DEPENDENCY_ADDED, subject_id, dependency_id=dependency_id)
        return task

    def remove_dependency(self, subject_id: str, dependency_id: str) -> Task:
        """
        Remove the edge subject -> dependency.

        Raises:
            TaskNotFoundError: If the subject does not exist
            DependencyNotPresentError: If the edge does not exist
        """
        with self._store.atomic():
            task = self._require_task(subject_id)
            if not task.remove_dependency(dependency_id):
                raise DependencyNotPresentError(subject_id, dependency_id)
            self._store.save(task)

        logger.info(f"Removed dependency {subject_id} -> {dependency_id}")
        self._emit(TaskEventType.DEPENDENCY_REMOVED, subject_id, dependency_id=dependency_id)
        return task

    def update_dependencies(self, subject_id: str, dependency_ids: Iterable[str]) -> Task:
        """
        Replace a task's dependency set wholesale.

        Every candidate is checked against the currently persisted graph,
        so the not-yet-committed new set never influences the checks of
        its sibling entries. The first failure in input order is raised.

        Raises:
            TaskNotFoundError: If the subject does not exist
            DependencyNotFoundError: If a candidate does not exist
            CircularDependencyError: If a candidate would close a cycle
        """
        with self._store.atomic():
            task = self._require_task(subject_id)
            previous = list(task.dependencies)
            task.dependencies = self._validate_dependency_set(subject_id, dependency_ids)
            self._store.save(task)

        logger.info(f"Replaced dependencies of {subject_id}: {previous} -> {task.dependencies}")
        self._emit(
            TaskEventType.DEPENDENCIES_REPLACED,
            subject_id,
            previous=previous,
            dependencies=list(task.dependencies),
        )
        return task

    def update_task(
        self,
        task_id: str,
        fields: dict[str, Any],
        dependency_ids: Optional[Iterable[str]] = None,
    ) -> Task:
        """
        Update task fields and, optionally, replace its dependency set.

        Only fields present in ``fields`` with a non-None value are changed.
        A ``dependency_ids`` of None leaves dependencies untouched; an empty
        iterable clears them. Nothing is saved unless every check passes.

        Raises:
            TaskNotFoundError: If the task does not exist
            TaskValidationError: If a field value is invalid
            DependencyNotFoundError: If a candidate does not exist
            CircularDependencyError: If a candidate would close a cycle
        """
        with self._store.atomic():
            task = self._require_task(task_id)
            changed = self._apply_fields(task, fields)

            previous = None
            if dependency_ids is not None:
                previous = list(task.dependencies)
                task.dependencies = self._validate_dependency_set(task_id, dependency_ids)

            self._store.save(task)

        logger.info(f"Updated task {task_id} ({', '.join(changed) or 'no fields'})")
        self._emit(TaskEventType.UPDATED, task_id, fields=changed)
        if previous is not None:
            self._emit(
                TaskEventType.DEPENDENCIES_REPLACED,
                task_id,
                previous=previous,
                dependencies=list(task.dependencies),
            )
        return task

    # -------------------------------------------------------------------------
    # Task Deletion
    # -------------------------------------------------------------------------

    def delete_task(self, task_id: str) -> list[str]:
        """
        Delete a task, first stripping it from every dependent.

        The cascade and the record removal share one store transaction,
        so no reader sees a dependency set naming a deleted task.

        Returns:
            IDs of the dependents whose dependency sets were changed

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        with self._store.atomic():
            if not self._store.exists(task_id):
                raise TaskNotFoundError(task_id)

            dependents = self._store.find_tasks_referencing_dependency(task_id)
            for dependent in dependents:
                dependent.remove_dependency(task_id)
                self._store.save(dependent)

            self._store.delete(task_id)

        cleaned = [d.id for d in dependents]
        logger.info(f"Deleted task {task_id}, cleaned {len(cleaned)} dependents")
        for dependent_id in cleaned:
            self._emit(TaskEventType.CASCADE_UPDATED, dependent_id, removed_dependency=task_id)
        self._emit(TaskEventType.DELETED, task_id, dependents=cleaned)
        return cleaned

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        """
        Get a task by ID.

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        if self._cache is None:
            return self._require_task(task_id)

        cached = self._cache.get(task_id)
        if cached is not None:
            return Task.from_dict(cached)

        # a mutation committed after this point voids the cache write
        generation = self._cache.generation
        task = self._require_task(task_id)
        self._cache.set_if_current(task_id, task.to_dict(), generation)
        return task

    def get_all_dependencies(self, task_id: str) -> DependencyClosure:
        """
        Get the leveled transitive closure of a task's dependencies.

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        if self._cache is None:
            return self._walker.get_all_dependencies(task_id)

        key = TaskCache.closure_key(task_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached.copy()

        generation = self._cache.generation
        closure = self._walker.get_all_dependencies(task_id)
        self._cache.set_if_current(key, closure.copy(), generation)
        return closure

    def would_create_cycle(self, subject_id: str, dependency_id: str) -> bool:
        return self._detector.would_create_cycle(subject_id, dependency_id)

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _require_task(self, task_id: str) -> Task:
        task = self._store.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _check_candidate(self, subject_id: str, dependency_id: str) -> None:
        """Existence then acyclicity check for one prospective edge."""
        if not self._store.exists(dependency_id):
            raise DependencyNotFoundError(dependency_id, task_id=subject_id)
        self._ensure_acyclic(subject_id, dependency_id)

    def _ensure_acyclic(self, subject_id: str, dependency_id: str) -> None:
        if subject_id == dependency_id:
            logger.warning(f"Rejected self-dependency on {subject_id}")
            raise SelfDependencyError(subject_id)

        path = self._detector.find_cycle_path(subject_id, dependency_id)
        if path is not None:
            logger.warning(f"Rejected circular dependency: {' -> '.join(path)}")
            raise CircularDependencyError(subject_id, dependency_id, cycle_path=path)

    def _validate_dependency_set(
        self,
        subject_id: str,
        dependency_ids: Iterable[str],
    ) -> list[str]:
        requested = normalize_dependency_ids(dependency_ids)
        for dep_id in requested:
            self._check_candidate(subject_id, dep_id)
        return requested

    def _build_task(self, fields: dict[str, Any]) -> Task:
        unknown = sorted(set(fields) - set(MUTABLE_TASK_FIELDS))
        if unknown:
            raise TaskValidationError(
                f"Unknown task fields: {', '.join(unknown)}",
                errors=[f"Unknown field: {name}" for name in unknown],
            )

        values = {k: v for k, v in fields.items() if v is not None}
        try:
            task = Task(**values)
        except ValueError as e:
            raise TaskValidationError(f"Invalid task: {e}", errors=[str(e)]) from e

        errors = task.validate()
        if errors:
            raise TaskValidationError(f"Invalid task: {'; '.join(errors)}", errors=errors)
        return task

    def _apply_fields(self, task: Task, fields: dict[str, Any]) -> list[str]:
        """Apply field updates in place. Returns the names of changed fields."""
        unknown = sorted(set(fields) - set(MUTABLE_TASK_FIELDS))
        if unknown:
            raise TaskValidationError(
                f"Unknown task fields: {', '.join(unknown)}",
                errors=[f"Unknown field: {name}" for name in unknown],
            )

        changed = []
        try:
            for name, value in fields.items():
                if value is None:
                    continue
                if name == "priority":
                    value = TaskPriority(value)
                elif name == "status":
                    value = TaskStatus(value)
                elif name == "due_date":
                    value = parse_datetime(value)
                setattr(task, name, value)
                changed.append(name)
        except ValueError as e:
            raise TaskValidationError(f"Invalid task: {e}", errors=[str(e)]) from e

        errors = task.validate()
        if errors:
            raise TaskValidationError(f"Invalid task: {'; '.join(errors)}", errors=errors)
        return changed

    def _emit(self, event_type: TaskEventType, task_id: str, **data: Any) -> None:
        self._emitter.emit_event(TaskEvent(event_type=event_type, task_id=task_id, data=data))
