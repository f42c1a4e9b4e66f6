"""
Unit tests for task models.

Tests cover:
- ID generation and validation
- Task field normalization
- Dependency list helpers
- Serialization
- Validation
- Dependency closure views
"""

from datetime import datetime

import pytest

from taskdeps.tasks import (
    DependencyClosure,
    DependencyRecord,
    Task,
    TaskPriority,
    TaskStatus,
    generate_task_id,
    normalize_dependency_ids,
    validate_task_id,
)
from taskdeps.tasks.models import parse_datetime


class TestTaskIds:
    """Tests for task ID helpers."""

    def test_generated_id_is_valid(self):
        task_id = generate_task_id()
        assert task_id.startswith("task_")
        assert validate_task_id(task_id)

    def test_generated_ids_are_unique(self):
        ids = {generate_task_id() for _ in range(100)}
        assert len(ids) == 100

    @pytest.mark.parametrize("bad_id", ["", "task_", "task_XYZ12345", "mem_0123456789abcdef", "task-0123abcd"])
    def test_invalid_ids(self, bad_id):
        assert not validate_task_id(bad_id)

    def test_normalize_dependency_ids_keeps_first_occurrence(self):
        assert normalize_dependency_ids(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


class TestParseDatetime:
    """Tests for datetime parsing."""

    def test_none_and_empty(self):
        assert parse_datetime(None) is None
        assert parse_datetime("") is None

    def test_iso_string(self):
        assert parse_datetime("2024-05-01T10:30:00") == datetime(2024, 5, 1, 10, 30)

    def test_datetime_passthrough(self):
        now = datetime.utcnow()
        assert parse_datetime(now) is now

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            parse_datetime("next tuesday")
        with pytest.raises(ValueError):
            parse_datetime(42)


class TestTask:
    """Tests for the Task model."""

    def test_defaults(self):
        task = Task(title="Write docs")
        assert task.status == TaskStatus.TODO
        assert task.priority == TaskPriority.MEDIUM
        assert task.dependencies == []
        assert task.due_date is None
        assert task.validate() == []

    def test_string_fields_are_coerced(self):
        task = Task(title="t", priority="high", status="in-progress", due_date="2024-01-02")
        assert task.priority == TaskPriority.HIGH
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.due_date == datetime(2024, 1, 2)

    def test_invalid_enum_raises(self):
        with pytest.raises(ValueError):
            Task(title="t", priority="urgent")

    def test_add_and_remove_dependency(self):
        task = Task(title="t")
        assert task.add_dependency("task_aaaaaaaa")
        assert not task.add_dependency("task_aaaaaaaa")
        assert task.has_dependency("task_aaaaaaaa")

        assert task.remove_dependency("task_aaaaaaaa")
        assert not task.remove_dependency("task_aaaaaaaa")
        assert task.dependencies == []

    def test_dependencies_list_is_copied(self):
        deps = ["task_aaaaaaaa"]
        task = Task(title="t", dependencies=deps)
        task.add_dependency("task_bbbbbbbb")
        assert deps == ["task_aaaaaaaa"]

    def test_to_dict_from_dict(self):
        task = Task(
            title="Ship",
            description="Release 1.0",
            due_date=datetime(2024, 6, 1, 12, 0),
            priority=TaskPriority.HIGH,
            dependencies=["task_aaaaaaaa"],
        )
        data = task.to_dict()
        assert data["priority"] == "high"
        assert data["status"] == "todo"
        assert data["due_date"] == "2024-06-01T12:00:00"

        restored = Task.from_dict(data)
        assert restored.id == task.id
        assert restored.due_date == task.due_date
        assert restored.created_at == task.created_at
        assert restored.dependencies == ["task_aaaaaaaa"]

    def test_validate_requires_title(self):
        assert "Title is required" in Task(title="   ").validate()

    def test_validate_title_length(self):
        errors = Task(title="x" * 300).validate()
        assert any("title exceeds" in e for e in errors)

    def test_validate_self_dependency(self):
        task = Task(title="t")
        task.dependencies = [task.id]
        assert "Task cannot depend on itself" in task.validate()

    def test_validate_duplicates(self):
        task = Task(title="t", dependencies=["task_aaaaaaaa", "task_aaaaaaaa"])
        assert "Task dependencies contain duplicates" in task.validate()

    def test_validate_bad_id(self):
        errors = Task(id="nope", title="t").validate()
        assert errors == ["Invalid task ID format: nope"]

    def test_equality_by_id(self):
        task = Task(title="a")
        clone = Task(id=task.id, title="b")
        assert task == clone
        assert len({task, clone}) == 1


class TestDependencyClosure:
    """Tests for the leveled closure view."""

    @pytest.fixture
    def closure(self):
        return DependencyClosure(
            task_id="task_root0000",
            task_title="Root",
            all_dependencies=[
                DependencyRecord("task_aaaaaaaa", "A", TaskStatus.TODO, 1),
                DependencyRecord("task_bbbbbbbb", "B", TaskStatus.COMPLETED, 1),
                DependencyRecord("task_cccccccc", "C", TaskStatus.IN_PROGRESS, 2),
            ],
        )

    def test_grouping(self, closure):
        by_level = closure.dependencies_by_level
        assert list(by_level) == [1, 2]
        assert [d["id"] for d in by_level[1]] == ["task_aaaaaaaa", "task_bbbbbbbb"]
        assert by_level[2] == [{"id": "task_cccccccc", "title": "C", "status": "in-progress"}]

    def test_direct_dependencies(self, closure):
        assert [d["id"] for d in closure.direct_dependencies] == ["task_aaaaaaaa", "task_bbbbbbbb"]

    def test_empty_closure(self):
        closure = DependencyClosure(task_id="task_root0000", task_title="Root")
        assert closure.direct_dependencies == []
        assert closure.dependencies_by_level == {}
        assert closure.to_dict()["all_dependencies"] == []

    def test_level_of(self, closure):
        assert closure.level_of("task_cccccccc") == 2
        assert closure.level_of("task_missing0") is None

    def test_copy_is_independent(self, closure):
        clone = closure.copy()
        clone.all_dependencies.pop()
        assert len(closure.all_dependencies) == 3

    def test_to_dict(self, closure):
        data = closure.to_dict()
        assert data["task"] == {"id": "task_root0000", "title": "Root"}
        assert data["all_dependencies"][2]["level"] == 2
        assert set(data["dependencies_by_level"]) == {"1", "2"}
