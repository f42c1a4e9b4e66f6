"""
Task store for persistence.

This module provides persistence for tasks using SQLite for indexing
and querying, with optional YAML file storage for human-readable
task definitions. Dependency edges live in their own table so that
reverse lookups (which tasks depend on X) are a single indexed query.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Generator, Iterator, Optional, Protocol, runtime_checkable

import yaml

from taskdeps.core.constants import TASKS_DB, INDEX_DIR
from taskdeps.core.exceptions import StoreUnavailableError, TaskValidationError
from taskdeps.tasks.constants import (
    TASKS_TABLE_NAME,
    TASK_DEPENDENCIES_TABLE_NAME,
    TASKS_DIR_NAME,
    TASK_FILE_EXTENSION,
    DEFAULT_LIST_LIMIT,
)
from taskdeps.tasks.models import Task


logger = logging.getLogger(__name__)


# =============================================================================
# Store Interface
# =============================================================================

@runtime_checkable
class TaskRepository(Protocol):
    """Protocol for the task store consumed by the dependency graph engine."""

    def get(self, task_id: str) -> Optional[Task]:
        """Get a task by ID, or None if it does not exist."""
        ...

    def exists(self, task_id: str) -> bool:
        """Check whether a task exists."""
        ...

    def find_tasks_referencing_dependency(self, task_id: str) -> list[Task]:
        """Get every task whose dependency set contains task_id."""
        ...

    def create(self, task: Task) -> str:
        """Persist a new task and return its ID."""
        ...

    def save(self, task: Task) -> bool:
        """Persist the full task record including its dependency set."""
        ...

    def delete(self, task_id: str) -> bool:
        """Remove a task record."""
        ...

    def atomic(self) -> Any:
        """Context manager grouping several operations into one transaction."""
        ...


# =============================================================================
# Database Schema
# =============================================================================

TASKS_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TASKS_TABLE_NAME} (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    due_date TEXT,
    priority TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_status ON {TASKS_TABLE_NAME}(status);
CREATE INDEX IF NOT EXISTS idx_tasks_priority ON {TASKS_TABLE_NAME}(priority);
CREATE INDEX IF NOT EXISTS idx_tasks_created ON {TASKS_TABLE_NAME}(created_at DESC);

CREATE TABLE IF NOT EXISTS {TASK_DEPENDENCIES_TABLE_NAME} (
    task_id TEXT NOT NULL,
    depends_on_task_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    PRIMARY KEY (task_id, depends_on_task_id),
    FOREIGN KEY (task_id) REFERENCES {TASKS_TABLE_NAME}(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_deps_depends ON {TASK_DEPENDENCIES_TABLE_NAME}(depends_on_task_id);
"""


# =============================================================================
# Task Store Implementation
# =============================================================================

class TaskStore:
    """
    Persistent storage for tasks.

    Provides CRUD operations with SQLite backend and optional
    YAML file storage for human-readable task definitions.

    Every public call runs in its own transaction unless it is made
    inside ``atomic()``, in which case the whole block commits or
    rolls back together.
    """

    def __init__(
        self,
        base_path: Path,
        use_file_storage: bool = True,
        db_name: str = TASKS_DB,
    ) -> None:
        """
        Initialize task store.

        Args:
            base_path: Base path for .taskdeps directory
            use_file_storage: Whether to also store tasks as YAML files
            db_name: Database file name inside the index directory
        """
        self._base_path = Path(base_path)
        self._use_file_storage = use_file_storage
        self._db_path = self._base_path / INDEX_DIR / db_name
        self._tasks_dir = self._base_path / TASKS_DIR_NAME
        self._conn: Optional[sqlite3.Connection] = None
        self._initialized = False

        self._lock = threading.RLock()
        self._atomic_depth = 0
        self._pending_file_ops: list[Callable[[], None]] = []

    @property
    def db_path(self) -> Path:
        return self._db_path

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """Initialize the task store."""
        if self._initialized:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        if self._use_file_storage:
            self._tasks_dir.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(TASKS_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                f"Cannot open task database: {e}",
                operation="initialize",
                details={"path": str(self._db_path)},
            ) from e

        self._initialized = True
        logger.debug(f"Task store initialized at {self._db_path}")

    def close(self) -> None:
        """Close the task store."""
        if self._conn:
            self._conn.close()
            self._conn = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        """Ensure store is initialized."""
        if not self._initialized:
            self.initialize()

    @contextmanager
    def _transaction(self, operation: str) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database transactions."""
        self._ensure_initialized()

        with self._lock:
            cursor = self._conn.cursor()
            try:
                yield cursor
                if self._atomic_depth == 0:
                    self._conn.commit()
                    self._flush_file_ops()
            except sqlite3.Error as e:
                if self._atomic_depth == 0:
                    self._rollback()
                raise StoreUnavailableError(
                    f"Task store {operation} failed: {e}",
                    operation=operation,
                ) from e
            except Exception:
                if self._atomic_depth == 0:
                    self._rollback()
                raise
            finally:
                cursor.close()

    @contextmanager
    def atomic(self) -> Iterator["TaskStore"]:
        """
        Group several store operations into a single transaction.

        The outermost block takes SQLite's write lock up front with
        BEGIN IMMEDIATE, so read-modify-write sequences inside it cannot
        interleave with writers in other connections. Nested blocks join
        the outer transaction.
        """
        self._ensure_initialized()

        with self._lock:
            outermost = self._atomic_depth == 0
            if outermost and not self._conn.in_transaction:
                try:
                    self._conn.execute("BEGIN IMMEDIATE")
                except sqlite3.Error as e:
                    raise StoreUnavailableError(
                        f"Cannot begin transaction: {e}",
                        operation="begin",
                    ) from e

            self._atomic_depth += 1
            try:
                yield self
            except Exception:
                self._atomic_depth -= 1
                if outermost:
                    self._rollback()
                raise

            self._atomic_depth -= 1
            if outermost:
                try:
                    self._conn.commit()
                except sqlite3.Error as e:
                    self._rollback()
                    raise StoreUnavailableError(
                        f"Cannot commit transaction: {e}",
                        operation="commit",
                    ) from e
                self._flush_file_ops()

    def _rollback(self) -> None:
        self._pending_file_ops.clear()
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")

    # -------------------------------------------------------------------------
    # CRUD Operations
    # -------------------------------------------------------------------------

    def create(self, task: Task) -> str:
        """
        Create a new task.

        Args:
            task: Task to create

        Returns:
            Task ID

        Raises:
            TaskValidationError: If task is invalid or its ID already exists
        """
        errors = task.validate()
        if errors:
            raise TaskValidationError(f"Invalid task: {'; '.join(errors)}", errors=errors)

        with self._transaction("create") as cursor:
            cursor.execute(
                f"SELECT id FROM {TASKS_TABLE_NAME} WHERE id = ?",
                (task.id,)
            )
            if cursor.fetchone():
                raise TaskValidationError(f"Task with ID {task.id} already exists")

            cursor.execute(
                f"""
                INSERT INTO {TASKS_TABLE_NAME} (
                    id, title, description, due_date, priority, status,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.title,
                    task.description,
                    task.due_date.isoformat() if task.due_date else None,
                    task.priority.value,
                    task.status.value,
                    task.created_at.isoformat(),
                    task.updated_at.isoformat(),
                )
            )
            self._insert_dependencies(cursor, task)

            if self._use_file_storage:
                self._pending_file_ops.append(lambda: self._write_task_file(task))

        return task.id

    def get(self, task_id: str) -> Optional[Task]:
        """
        Get a task by ID.

        Args:
            task_id: Task ID

        Returns:
            Task or None if not found
        """
        with self._transaction("get") as cursor:
            cursor.execute(
                f"SELECT * FROM {TASKS_TABLE_NAME} WHERE id = ?",
                (task_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None

            return self._row_to_task(row, self._fetch_dependency_ids(cursor, task_id))

    def exists(self, task_id: str) -> bool:
        """Check whether a task exists."""
        with self._transaction("exists") as cursor:
            cursor.execute(
                f"SELECT 1 FROM {TASKS_TABLE_NAME} WHERE id = ?",
                (task_id,)
            )
            return cursor.fetchone() is not None

    def save(self, task: Task) -> bool:
        """
        Persist an existing task, replacing its dependency set.

        Args:
            task: Task with updated data

        Returns:
            True if saved, False if not found
        """
        errors = task.validate()
        if errors:
            raise TaskValidationError(f"Invalid task: {'; '.join(errors)}", errors=errors)

        task.touch()

        with self._transaction("save") as cursor:
            cursor.execute(
                f"""
                UPDATE {TASKS_TABLE_NAME} SET
                    title = ?, description = ?, due_date = ?,
                    priority = ?, status = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    task.title,
                    task.description,
                    task.due_date.isoformat() if task.due_date else None,
                    task.priority.value,
                    task.status.value,
                    task.updated_at.isoformat(),
                    task.id,
                )
            )

            if cursor.rowcount == 0:
                return False

            cursor.execute(
                f"DELETE FROM {TASK_DEPENDENCIES_TABLE_NAME} WHERE task_id = ?",
                (task.id,)
            )
            self._insert_dependencies(cursor, task)

            if self._use_file_storage:
                self._pending_file_ops.append(lambda: self._write_task_file(task))

        return True

    def delete(self, task_id: str) -> bool:
        """
        Delete a task.

        Only the task's own outgoing edges go with it; edges pointing at it
        from other tasks are the caller's responsibility.

        Args:
            task_id: Task ID

        Returns:
            True if deleted, False if not found
        """
        with self._transaction("delete") as cursor:
            cursor.execute(
                f"DELETE FROM {TASKS_TABLE_NAME} WHERE id = ?",
                (task_id,)
            )
            if cursor.rowcount == 0:
                return False

            if self._use_file_storage:
                self._pending_file_ops.append(lambda: self._delete_task_file(task_id))

        return True

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def find_tasks_referencing_dependency(self, task_id: str) -> list[Task]:
        """Get all tasks that list task_id as a dependency."""
        with self._transaction("find_dependents") as cursor:
            cursor.execute(
                f"""
                SELECT t.* FROM {TASKS_TABLE_NAME} t
                JOIN {TASK_DEPENDENCIES_TABLE_NAME} d ON d.task_id = t.id
                WHERE d.depends_on_task_id = ?
                ORDER BY t.created_at ASC
                """,
                (task_id,)
            )
            rows = cursor.fetchall()

            return [
                self._row_to_task(row, self._fetch_dependency_ids(cursor, row["id"]))
                for row in rows
            ]

    def list_tasks(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> list[Task]:
        """
        List tasks, newest first.

        Args:
            limit: Maximum number of results
            offset: Offset for pagination

        Returns:
            List of tasks
        """
        with self._transaction("list") as cursor:
            cursor.execute(
                f"""
                SELECT * FROM {TASKS_TABLE_NAME}
                ORDER BY created_at DESC
                LIMIT ? OFFSET ?
                """,
                (limit, offset)
            )
            rows = cursor.fetchall()

            return [
                self._row_to_task(row, self._fetch_dependency_ids(cursor, row["id"]))
                for row in rows
            ]

    def count_tasks(self) -> int:
        """Count stored tasks."""
        with self._transaction("count") as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {TASKS_TABLE_NAME}")
            return cursor.fetchone()[0]

    # -------------------------------------------------------------------------
    # File Operations
    # -------------------------------------------------------------------------

    def _flush_file_ops(self) -> None:
        ops, self._pending_file_ops = self._pending_file_ops, []
        for op in ops:
            op()

    def _task_file_path(self, task_id: str) -> Path:
        return self._tasks_dir / f"{task_id}{TASK_FILE_EXTENSION}"

    def _write_task_file(self, task: Task) -> None:
        """Write task to YAML file."""
        with open(self._task_file_path(task.id), "w", encoding="utf-8") as f:
            yaml.safe_dump(task.to_dict(), f, default_flow_style=False, sort_keys=False)

    def _delete_task_file(self, task_id: str) -> None:
        """Delete task file."""
        file_path = self._task_file_path(task_id)
        if file_path.exists():
            file_path.unlink()

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _insert_dependencies(self, cursor: sqlite3.Cursor, task: Task) -> None:
        cursor.executemany(
            f"""
            INSERT INTO {TASK_DEPENDENCIES_TABLE_NAME} (
                task_id, depends_on_task_id, position
            ) VALUES (?, ?, ?)
            """,
            [(task.id, dep_id, position) for position, dep_id in enumerate(task.dependencies)]
        )

    def _fetch_dependency_ids(self, cursor: sqlite3.Cursor, task_id: str) -> list[str]:
        cursor.execute(
            f"""
            SELECT depends_on_task_id FROM {TASK_DEPENDENCIES_TABLE_NAME}
            WHERE task_id = ?
            ORDER BY position ASC
            """,
            (task_id,)
        )
        return [r["depends_on_task_id"] for r in cursor.fetchall()]

    def _row_to_task(self, row: sqlite3.Row, dependency_ids: list[str]) -> Task:
        """Convert database row to Task object."""
        def parse_dt(value: Optional[str]) -> Optional[datetime]:
            if value:
                return datetime.fromisoformat(value)
            return None

        return Task(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            due_date=parse_dt(row["due_date"]),
            priority=row["priority"],
            status=row["status"],
            dependencies=dependency_ids,
            created_at=parse_dt(row["created_at"]) or datetime.utcnow(),
            updated_at=parse_dt(row["updated_at"]) or datetime.utcnow(),
        )

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Get task store statistics."""
        with self._transaction("stats") as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {TASKS_TABLE_NAME}")
            total = cursor.fetchone()[0]

            cursor.execute(
                f"""
                SELECT status, COUNT(*) as count
                FROM {TASKS_TABLE_NAME}
                GROUP BY status
                """
            )
            by_status = {row["status"]: row["count"] for row in cursor.fetchall()}

            cursor.execute(
                f"""
                SELECT priority, COUNT(*) as count
                FROM {TASKS_TABLE_NAME}
                GROUP BY priority
                """
            )
            by_priority = {row["priority"]: row["count"] for row in cursor.fetchall()}

            cursor.execute(f"SELECT COUNT(*) FROM {TASK_DEPENDENCIES_TABLE_NAME}")
            edges = cursor.fetchone()[0]

            return {
                "total": total,
                "by_status": by_status,
                "by_priority": by_priority,
                "dependency_edges": edges,
            }
