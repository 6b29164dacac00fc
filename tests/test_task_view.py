"""Tests for the task filter & sort engine."""

from datetime import datetime, timedelta, timezone

import pytest

from personaflow.schemas.task import TaskInDB
from personaflow.schemas.workstream import WorkstreamInDB
from personaflow.services.task_view import (
    SortDirection,
    SortField,
    TaskFilters,
    TaskSort,
    derive_view,
    group_by_status,
)

BASE = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_workstream(id, persona_id, name):
    return WorkstreamInDB(id=id, persona_id=persona_id, name=name, status="active", created_at=BASE, updated_at=BASE)


def make_task(id, workstream_id, title, status="todo", priority="medium", age=0, persona_id=None):
    return TaskInDB(
        id=id,
        workstream_id=workstream_id,
        persona_id=persona_id,
        title=title,
        status=status,
        priority=priority,
        created_at=BASE + timedelta(hours=age),
        updated_at=BASE + timedelta(hours=10 - age),
    )


@pytest.fixture
def workstreams():
    return [
        make_workstream("w-a1", "persona-a", "alpha launch"),
        make_workstream("w-b1", "persona-b", "Beta fitness"),
    ]


@pytest.fixture
def tasks():
    return [
        make_task("t1", "w-a1", "write Plan", status="todo", priority="high", age=1),
        make_task("t2", "w-a1", "Book venue", status='"Done"', priority="low", age=2),
        make_task("t3", "w-b1", "run 5k", status="ToDo", priority="critical", age=3),
        make_task("t4", "w-b1", "Stretch", status="inprogress", priority="medium", age=4),
        make_task("t5", "w-a1", "Announce", status="TODO", priority="Medium", age=5),
    ]


def ids(view):
    return [task.id for task in view]


class TestFilters:
    def test_defaults_select_everything(self, tasks, workstreams):
        view = derive_view(tasks, TaskFilters(), TaskSort(), workstreams)
        assert set(ids(view)) == {t.id for t in tasks}

    def test_persona_and_status_are_conjunctive(self, tasks, workstreams):
        filters = TaskFilters(persona_id="persona-a", statuses={"todo"})
        view = derive_view(tasks, filters, TaskSort(), workstreams)
        assert set(ids(view)) == {"t1", "t5"}

    def test_workstream_filter(self, tasks, workstreams):
        filters = TaskFilters(workstream_id="w-b1")
        assert set(ids(derive_view(tasks, filters, TaskSort(), workstreams))) == {"t3", "t4"}

    def test_status_set_is_normalized(self, tasks, workstreams):
        filters = TaskFilters(statuses=['"DONE"', "In Progress"])
        assert set(ids(derive_view(tasks, filters, TaskSort(), workstreams))) == {"t2", "t4"}

    def test_empty_status_set_shows_nothing(self, tasks, workstreams):
        assert derive_view(tasks, TaskFilters(statuses=[]), TaskSort(), workstreams) == []

    def test_all_and_none_disable_filters(self, tasks, workstreams):
        filters = TaskFilters(workstream_id=None, persona_id="all")
        assert len(derive_view(tasks, filters, TaskSort(), workstreams)) == len(tasks)

    def test_persona_filter_without_a_persona_source_is_empty(self, tasks):
        filters = TaskFilters(persona_id="persona-a")
        assert derive_view(tasks, filters, TaskSort(), workstreams=[]) == []

    def test_persona_filter_uses_persona_carried_by_tasks(self):
        tasks = [
            make_task("t1", "w-a1", "Draft", persona_id="persona-a"),
            make_task("t2", "w-b1", "Run", persona_id="persona-b"),
        ]
        view = derive_view(tasks, TaskFilters(persona_id="persona-b"), TaskSort())
        assert ids(view) == ["t2"]


class TestSort:
    def test_title_ascending_is_case_insensitive(self, tasks, workstreams):
        view = derive_view(tasks, TaskFilters(), TaskSort(field=SortField.TITLE, direction=SortDirection.ASC), workstreams)
        assert [t.title.lower() for t in view] == sorted(t.title.lower() for t in tasks)

    def test_title_descending(self, tasks, workstreams):
        view = derive_view(tasks, TaskFilters(), TaskSort(field=SortField.TITLE, direction=SortDirection.DESC), workstreams)
        assert [t.title.lower() for t in view] == sorted((t.title.lower() for t in tasks), reverse=True)

    def test_toggle_twice_restores_order(self, tasks, workstreams):
        sort = TaskSort().toggle(SortField.TITLE)
        assert sort.direction is SortDirection.ASC
        original = ids(derive_view(tasks, TaskFilters(), sort, workstreams))

        flipped = sort.toggle(SortField.TITLE)
        assert flipped.direction is SortDirection.DESC
        assert ids(derive_view(tasks, TaskFilters(), flipped, workstreams)) == list(reversed(original))

        restored = flipped.toggle(SortField.TITLE)
        assert ids(derive_view(tasks, TaskFilters(), restored, workstreams)) == original

    def test_new_field_starts_ascending(self):
        sort = TaskSort(field=SortField.TITLE, direction=SortDirection.DESC).toggle(SortField.PRIORITY)
        assert sort == TaskSort(field=SortField.PRIORITY, direction=SortDirection.ASC)

    def test_priority_follows_rank(self, tasks, workstreams):
        view = derive_view(tasks, TaskFilters(), TaskSort(field=SortField.PRIORITY, direction=SortDirection.DESC), workstreams)
        assert view[0].id == "t3"
        assert view[-1].id == "t2"

    def test_status_follows_workflow_order(self, tasks, workstreams):
        view = derive_view(tasks, TaskFilters(), TaskSort(field=SortField.STATUS, direction=SortDirection.ASC), workstreams)
        assert [t.status for t in view] == ["todo", "todo", "todo", "inprogress", "done"]

    def test_workstream_name_uses_join(self, tasks, workstreams):
        ascending = TaskSort(field=SortField.WORKSTREAM_NAME, direction=SortDirection.ASC)
        view = derive_view(tasks, TaskFilters(), ascending, workstreams)
        assert [t.workstream_id for t in view] == ["w-a1"] * 3 + ["w-b1"] * 2

        descending = ascending.toggle(SortField.WORKSTREAM_NAME)
        view = derive_view(tasks, TaskFilters(), descending, workstreams)
        assert [t.workstream_id for t in view] == ["w-b1"] * 2 + ["w-a1"] * 3

    def test_dates_compare_by_instant(self, tasks, workstreams):
        newest_first = derive_view(tasks, TaskFilters(), TaskSort(), workstreams)
        assert ids(newest_first) == ["t5", "t4", "t3", "t2", "t1"]
        by_update = derive_view(tasks, TaskFilters(), TaskSort(field=SortField.UPDATED_AT, direction=SortDirection.ASC), workstreams)
        assert ids(by_update) == ["t5", "t4", "t3", "t2", "t1"]

    def test_source_is_not_mutated(self, tasks, workstreams):
        before = list(tasks)
        derive_view(tasks, TaskFilters(), TaskSort(field=SortField.TITLE, direction=SortDirection.ASC), workstreams)
        assert tasks == before


class TestGroupByStatus:
    def test_columns_in_workflow_order(self, tasks):
        columns = group_by_status(tasks, statuses=["done", "todo"])
        assert list(columns) == ["todo", "done"]
        assert {t.id for t in columns["todo"]} == {"t1", "t3", "t5"}
        assert [t.id for t in columns["done"]] == ["t2"]
