"""Pytest configuration and fixtures for taskdeps tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from taskdeps.tasks import DependencyGraph, Task, TaskEventEmitter, TaskStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def task_store(temp_dir: Path) -> Generator[TaskStore, None, None]:
    """Create initialized task store without YAML files."""
    store = TaskStore(temp_dir, use_file_storage=False)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def emitter() -> TaskEventEmitter:
    return TaskEventEmitter()


@pytest.fixture
def graph(task_store: TaskStore, emitter: TaskEventEmitter) -> DependencyGraph:
    """Create dependency graph engine over the task store."""
    return DependencyGraph(task_store, emitter=emitter)


@pytest.fixture
def make_task(task_store: TaskStore) -> Callable[..., Task]:
    """Factory persisting a task with the given title and dependencies."""

    def _make(title: str, dependencies: list[str] | None = None) -> Task:
        task = Task(title=title, dependencies=dependencies or [])
        task_store.create(task)
        return task

    return _make
