"""Unit tests for the transitive closure walker."""

import pytest

from taskdeps.core.exceptions import TaskNotFoundError
from taskdeps.tasks import TaskStatus, TransitiveClosureWalker


@pytest.fixture
def walker(task_store):
    return TransitiveClosureWalker(task_store)


class TestTransitiveClosureWalker:
    """Tests for leveled dependency discovery."""

    def test_no_dependencies(self, walker, make_task):
        a = make_task("A")
        closure = walker.get_all_dependencies(a.id)

        assert closure.task_id == a.id
        assert closure.task_title == "A"
        assert closure.all_dependencies == []
        assert closure.direct_dependencies == []
        assert closure.dependencies_by_level == {}

    def test_missing_task(self, walker):
        with pytest.raises(TaskNotFoundError):
            walker.get_all_dependencies("task_0000000000000000")

    def test_chain_levels(self, walker, make_task):
        d = make_task("D")
        c = make_task("C", [d.id])
        b = make_task("B", [c.id])
        a = make_task("A", [b.id])

        closure = walker.get_all_dependencies(a.id)

        assert closure.ids == [b.id, c.id, d.id]
        assert [r.level for r in closure.all_dependencies] == [1, 2, 3]
        assert closure.direct_dependencies == [{"id": b.id, "title": "B", "status": "todo"}]

    def test_diamond_recorded_once(self, walker, make_task):
        d = make_task("D")
        b = make_task("B", [d.id])
        c = make_task("C", [d.id])
        a = make_task("A", [b.id, c.id])

        closure = walker.get_all_dependencies(a.id)

        assert closure.ids == [b.id, c.id, d.id]
        assert closure.level_of(d.id) == 2
        assert [dep["id"] for dep in closure.dependencies_by_level[1]] == [b.id, c.id]

    def test_first_discovery_level_wins(self, walker, make_task):
        d = make_task("D")
        c = make_task("C", [d.id])
        b = make_task("B", [c.id])
        # d is also a direct dependency, but is reached first through b
        a = make_task("A", [b.id, d.id])

        closure = walker.get_all_dependencies(a.id)

        assert closure.level_of(d.id) == 3
        assert [dep["id"] for dep in closure.direct_dependencies] == [b.id]

    def test_levels_sorted_with_discovery_order_kept(self, walker, make_task):
        x = make_task("X")
        b = make_task("B", [x.id])
        c = make_task("C")
        a = make_task("A", [b.id, c.id])

        closure = walker.get_all_dependencies(a.id)

        # discovery order is b, x, c; sorted by level gives b, c, x
        assert closure.ids == [b.id, c.id, x.id]

    def test_status_is_reported(self, walker, task_store, make_task):
        b = make_task("B")
        b.status = TaskStatus.COMPLETED
        task_store.save(b)
        a = make_task("A", [b.id])

        record = walker.get_all_dependencies(a.id).all_dependencies[0]
        assert record.status == TaskStatus.COMPLETED
        assert record.to_dict() == {"id": b.id, "title": "B", "status": "completed", "level": 1}

    def test_missing_dependency_skipped(self, walker, make_task):
        b = make_task("B")
        a = make_task("A", ["task_0000000000000000", b.id])

        closure = walker.get_all_dependencies(a.id)
        assert closure.ids == [b.id]

    def test_root_never_appears_in_its_closure(self, walker, task_store, make_task):
        a = make_task("A")
        b = make_task("B", [a.id])
        # write a cycle directly, bypassing the engine
        a.dependencies = [b.id]
        task_store.save(a)

        closure = walker.get_all_dependencies(a.id)
        assert closure.ids == [b.id]

    def test_deep_chain(self, walker, task_store, make_task):
        with task_store.atomic():
            previous = make_task("T0")
            for i in range(1, 1500):
                previous = make_task(f"T{i}", [previous.id])

        closure = walker.get_all_dependencies(previous.id)
        assert len(closure.all_dependencies) == 1499
        assert closure.all_dependencies[-1].level == 1499
