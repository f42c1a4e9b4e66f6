"""
Cycle detection for prospective dependency edges.

Before an edge ``subject -> candidate`` is committed, the detector asks
whether ``subject`` is already reachable from ``candidate`` by following
existing dependency edges. If it is, the new edge would close a cycle.

Algorithm Complexity:
- O(V + E) over the subgraph reachable from the candidate
- Each task is loaded from the store at most once per check

The traversal uses an explicit stack and a visited set keyed by task ID,
so deep chains never hit the interpreter's recursion limit and shared
sub-dependencies (diamonds) are explored once.
"""

import logging
from typing import Optional

from taskdeps.tasks.store import TaskRepository


logger = logging.getLogger(__name__)


class CycleDetector:
    """Detects whether adding a dependency edge would create a cycle."""

    def __init__(self, store: TaskRepository) -> None:
        self._store = store

    def would_create_cycle(self, subject_id: str, candidate_id: str) -> bool:
        """
        Check whether making subject depend on candidate creates a cycle.

        Args:
            subject_id: Task that would gain the dependency
            candidate_id: Task it would depend on

        Returns:
            True if subject is candidate or is reachable from it
        """
        return self.find_cycle_path(subject_id, candidate_id) is not None

    def find_cycle_path(self, subject_id: str, candidate_id: str) -> Optional[list[str]]:
        """
        Find the cycle a prospective edge would close.

        Args:
            subject_id: Task that would gain the dependency
            candidate_id: Task it would depend on

        Returns:
            Path ``[subject, candidate, ..., subject]`` if the edge closes a
            cycle, otherwise None
        """
        if subject_id == candidate_id:
            return [subject_id, subject_id]

        # parent pointers double as the visited set
        parents: dict[str, Optional[str]] = {candidate_id: None}
        stack = [candidate_id]

        while stack:
            current_id = stack.pop()

            task = self._store.get(current_id)
            if task is None:
                # a missing task cannot extend reachability
                continue

            # reversed so the first listed dependency is explored first
            for dep_id in reversed(task.dependencies):
                if dep_id in parents:
                    continue
                parents[dep_id] = current_id
                if dep_id == subject_id:
                    path = self._build_path(parents, subject_id)
                    logger.debug(f"Cycle found for {subject_id} -> {candidate_id}: {path}")
                    return [subject_id] + path
                stack.append(dep_id)

        logger.debug(
            f"No cycle for {subject_id} -> {candidate_id} ({len(parents)} tasks visited)"
        )
        return None

    @staticmethod
    def _build_path(parents: dict[str, Optional[str]], end_id: str) -> list[str]:
        path = []
        node: Optional[str] = end_id
        while node is not None:
            path.append(node)
            node = parents[node]
        path.reverse()
        return path
