"""
Transitive closure walker.

Computes every direct and indirect dependency of a task, annotated with
the level at which it was discovered (direct dependencies are level 1).

Discovery order is that of a recursive depth-first expansion: each
dependency is recorded and then fully expanded before its next sibling
is looked at. A task reachable along several paths is recorded once, at
the level of its first discovery, which is not necessarily the shortest
path. The walk keeps an explicit frame stack instead of recursing.
"""

import logging
from dataclasses import dataclass

from taskdeps.core.exceptions import TaskNotFoundError
from taskdeps.tasks.models import DependencyClosure, DependencyRecord
from taskdeps.tasks.store import TaskRepository


logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """Dependencies of one expanded task and the cursor into them."""

    dependency_ids: list[str]
    level: int
    index: int = 0


class TransitiveClosureWalker:
    """Walks the dependency graph outward from a task."""

    def __init__(self, store: TaskRepository) -> None:
        self._store = store

    def get_all_dependencies(self, task_id: str) -> DependencyClosure:
        """
        Get all direct and indirect dependencies of a task.

        Args:
            task_id: Task to expand

        Returns:
            Leveled closure of the task's dependencies

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        task = self._store.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        discovered: dict[str, DependencyRecord] = {}
        stack = [_Frame(dependency_ids=list(task.dependencies), level=1)]

        while stack:
            frame = stack[-1]
            if frame.index >= len(frame.dependency_ids):
                stack.pop()
                continue

            dep_id = frame.dependency_ids[frame.index]
            frame.index += 1

            if dep_id in discovered or dep_id == task_id:
                continue

            dep = self._store.get(dep_id)
            if dep is None:
                logger.debug(f"Skipping missing dependency {dep_id}")
                continue

            discovered[dep_id] = DependencyRecord(
                id=dep.id,
                title=dep.title,
                status=dep.status,
                level=frame.level,
            )
            if dep.dependencies:
                stack.append(_Frame(dependency_ids=list(dep.dependencies), level=frame.level + 1))

        # dicts keep insertion order, so the stable sort preserves
        # discovery order within a level
        records = sorted(discovered.values(), key=lambda r: r.level)

        logger.debug(f"Closure of {task_id}: {len(records)} dependencies")
        return DependencyClosure(
            task_id=task.id,
            task_title=task.title,
            all_dependencies=records,
        )
