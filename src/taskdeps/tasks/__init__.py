"""
taskdeps Task System Module.

This module provides the task dependency graph: task persistence,
cycle detection, transitive dependency views, and mutation events.

Public API:
-----------

Constants and Enums:
    TaskStatus - Task status (todo, in-progress, completed)
    TaskPriority - Task priority (low, medium, high)

Models:
    Task - Main task model
    DependencyRecord - A dependency found by a closure walk, with its level
    DependencyClosure - Leveled view of a task's dependencies

Graph:
    DependencyGraph - Edge mutations with invariant enforcement
    CycleDetector - Checks whether a prospective edge closes a cycle
    TransitiveClosureWalker - Computes leveled transitive dependencies

Events and Caching:
    TaskEvent - Task mutation event
    TaskEventType - Types of task events
    TaskEventEmitter - Event subscription and delivery
    TaskCache - TTL read cache invalidated by events

Storage:
    TaskRepository - Store protocol consumed by the graph engine
    TaskStore - SQLite task persistence layer

Utilities:
    generate_task_id - Generate unique task ID
    validate_task_id - Validate task ID format

Example Usage:
--------------

    from taskdeps.tasks import DependencyGraph, TaskCache, TaskStore

    store = TaskStore(base_path)
    store.initialize()
    graph = DependencyGraph(store, cache=TaskCache())

    schema = graph.create_task({"title": "Design schema"})
    api = graph.create_task_with_dependencies({"title": "Build API"}, [schema.id])

    closure = graph.get_all_dependencies(api.id)
    print(closure.direct_dependencies)
"""

# Constants and Enums
from taskdeps.tasks.constants import (
    TaskStatus,
    TaskPriority,
    TASK_ID_PREFIX,
    TASK_ID_PATTERN,
    MAX_TASK_TITLE_LENGTH,
    MAX_TASK_DESCRIPTION_LENGTH,
    MUTABLE_TASK_FIELDS,
)

# Models
from taskdeps.tasks.models import (
    Task,
    DependencyRecord,
    DependencyClosure,
    generate_task_id,
    validate_task_id,
    normalize_dependency_ids,
)

# Store
from taskdeps.tasks.store import (
    TaskRepository,
    TaskStore,
)

# Events and cache
from taskdeps.tasks.events import (
    TaskEvent,
    TaskEventType,
    TaskEventEmitter,
)
from taskdeps.tasks.cache import TaskCache

# Graph
from taskdeps.tasks.cycles import CycleDetector
from taskdeps.tasks.closure import TransitiveClosureWalker
from taskdeps.tasks.graph import DependencyGraph

__all__ = [
    # Constants and Enums
    "TaskStatus",
    "TaskPriority",
    "TASK_ID_PREFIX",
    "TASK_ID_PATTERN",
    "MAX_TASK_TITLE_LENGTH",
    "MAX_TASK_DESCRIPTION_LENGTH",
    "MUTABLE_TASK_FIELDS",
    # Models
    "Task",
    "DependencyRecord",
    "DependencyClosure",
    "generate_task_id",
    "validate_task_id",
    "normalize_dependency_ids",
    # Store
    "TaskRepository",
    "TaskStore",
    # Events and cache
    "TaskEvent",
    "TaskEventType",
    "TaskEventEmitter",
    "TaskCache",
    # Graph
    "CycleDetector",
    "TransitiveClosureWalker",
    "DependencyGraph",
]
