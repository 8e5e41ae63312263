from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from sprint_import.db.postgres_store import TASK_COLUMNS, PostgresTaskStore
from sprint_import.db.store import InMemoryTaskStore, TaskStoreError
from sprint_import.models.reference import Member, Project, Sprint
from sprint_import.models.resolved_task import ImportMode, ResolvedTask, TaskStatus
from sprint_import.models.task_draft import TaskCategory, TaskType


def _task(row: int, assignees: tuple[str, ...] = ()) -> ResolvedTask:
    return ResolvedTask(
        project_id="p1", sprint_id="s1", demand_id=f"D-{row}", priority=2, title=f"T{row}",
        task_type=TaskType.FULLSTACK, category=TaskCategory.REFINEMENT, assignee_ids=assignees,
        estimated_hours=1.5, has_incident=True, is_delivered=True, status=TaskStatus.DONE,
        completed_at=datetime(2024, 1, 1, tzinfo=UTC), source_row=row,
    )


# --- in-memory store -------------------------------------------------------

def test_in_memory_lookups_case_insensitive():
    s = InMemoryTaskStore(projects=[Project("p1", "Portal")], sprints=[Sprint("s1", "Sprint 1")])
    assert s.find_project("  PORTAL ").id == "p1"
    assert s.find_sprint("sprint 1").id == "s1"
    assert s.find_project("App") is None


def test_in_memory_append_and_overwrite():
    s = InMemoryTaskStore(tasks=[_task(1)])
    assert s.apply_batch([_task(2)], ImportMode.APPEND) == 1
    assert [t.demand_id for t in s.tasks] == ["D-1", "D-2"]
    s.apply_batch([_task(3)], ImportMode.OVERWRITE)
    assert [t.demand_id for t in s.tasks] == ["D-3"]


def test_in_memory_list_members_is_a_copy():
    s = InMemoryTaskStore(members=[Member("m1", "Ana")])
    s.list_members().clear()
    assert len(s.members) == 1


# --- postgres store --------------------------------------------------------

def test_find_project():
    cur = MagicMock()
    cur.fetchone.return_value = (10, "Portal")
    project = PostgresTaskStore(cur).find_project(" portal ")
    assert project == Project(id="10", name="Portal")
    sql, params = cur.execute.call_args[0]
    assert "lower(name) = lower(%s)" in sql
    assert params == ("portal",)


def test_find_sprint_missing():
    cur = MagicMock()
    cur.fetchone.return_value = None
    assert PostgresTaskStore(cur).find_sprint("Sprint 9") is None


def test_find_sprint():
    cur = MagicMock()
    cur.fetchone.return_value = (5, "Sprint 1", 10)
    assert PostgresTaskStore(cur).find_sprint("Sprint 1") == Sprint(id="5", name="Sprint 1", project_id="10")


def test_list_members():
    cur = MagicMock()
    cur.fetchall.return_value = [(1, "Ana Silva", None), (2, "Natan Lima", "Nat")]
    members = PostgresTaskStore(cur).list_members()
    assert members == [Member("1", "Ana Silva"), Member("2", "Natan Lima", "Nat")]


def _statements(cur: MagicMock) -> list[str]:
    return [c[0][0] for c in cur.execute.call_args_list]


def test_apply_batch_append_inserts_tasks_and_assignees():
    cur = MagicMock()
    with patch("sprint_import.db.batch_insert.execute_values") as ev:
        ev.side_effect = [[(101,), (102,)], None]
        applied = PostgresTaskStore(cur).apply_batch([_task(1, ("m1", "m2")), _task(2)], ImportMode.APPEND)

    assert applied == 2
    assert _statements(cur) == ["BEGIN", "COMMIT"]
    task_call, assignee_call = ev.call_args_list
    assert task_call[0][1].startswith("INSERT INTO tasks (" + ",".join(f'"{c}"' for c in TASK_COLUMNS))
    assert task_call[0][1].endswith("RETURNING id")
    first_row = task_call[0][2][0]
    assert first_row[5:7] == ("fullstack", "refinement")
    assert first_row[10] == "done"
    assert assignee_call[0][2] == [(101, "m1"), (101, "m2")]


def test_apply_batch_overwrite_clears_first():
    cur = MagicMock()
    with patch("sprint_import.db.batch_insert.execute_values") as ev:
        ev.return_value = [(1,)]
        PostgresTaskStore(cur).apply_batch([_task(1)], ImportMode.OVERWRITE)
    assert _statements(cur) == ["BEGIN", "DELETE FROM task_assignees", "DELETE FROM tasks", "COMMIT"]


def test_apply_batch_rolls_back_on_insert_failure():
    cur = MagicMock()
    with patch("sprint_import.db.batch_insert.execute_values") as ev:
        ev.side_effect = RuntimeError("violates foreign key constraint")
        with pytest.raises(TaskStoreError, match="insert failed"):
            PostgresTaskStore(cur).apply_batch([_task(1)], ImportMode.OVERWRITE)
    statements = _statements(cur)
    assert statements[-1] == "ROLLBACK"
    assert "COMMIT" not in statements


def test_apply_batch_rolls_back_on_missing_returning_ids():
    cur = MagicMock()
    with patch("sprint_import.db.batch_insert.execute_values") as ev:
        ev.return_value = [(1,)]
        with pytest.raises(TaskStoreError, match="expected 2 task ids"):
            PostgresTaskStore(cur).apply_batch([_task(1), _task(2)], ImportMode.APPEND)
    assert _statements(cur)[-1] == "ROLLBACK"
