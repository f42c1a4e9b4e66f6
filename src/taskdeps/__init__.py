"""taskdeps - Task dependency graph engine.

Keeps a set of tasks and the directed "depends on" relation between them,
rejects any edge that would close a cycle, cascades deletions, and computes
leveled transitive dependency views.
"""

__version__ = "0.1.0"

from taskdeps.core import (
    TaskDepsConfig,
    TaskDepsError,
)

__all__ = [
    "__version__",
    # Config
    "TaskDepsConfig",
    # Base exception
    "TaskDepsError",
]
