from __future__ import annotations

from datetime import UTC, datetime

import pytest

from sprint_import.db.store import InMemoryTaskStore, TaskStoreError
from sprint_import.models.reference import Project
from sprint_import.models.resolved_task import ImportMode, ResolvedTask, TaskStatus
from sprint_import.models.task_draft import TaskCategory, TaskDraft, TaskType
from sprint_import.services.commit import CommitError, build_task_batch, commit

NOW = datetime(2024, 5, 2, 12, 0, tzinfo=UTC)


def _draft(row: int, **kw) -> TaskDraft:
    values = dict(
        project="Portal",
        demand_id=f"D-{row}",
        priority=None,
        title=f"Task {row}",
        task_type=TaskType.BACKEND,
        category=TaskCategory.BUG,
        responsibles=("illian",),
        estimate_hours=2.5,
        has_incident=False,
        is_delivered=False,
        sprint="Sprint 1",
        row_index=row,
    )
    values.update(kw)
    return TaskDraft(**values)


class FailingStore(InMemoryTaskStore):
    def apply_batch(self, tasks, mode):
        raise TaskStoreError("connection lost")


def test_build_batch_resolves_references(store, import_config, roster):
    tasks, skipped = build_task_batch(
        [_draft(1), _draft(2, project="Desconhecido", sprint="Sprint 9")],
        set(),
        store=store,
        roster=roster,
        config=import_config,
        now=NOW,
    )
    assert skipped == []
    first, second = tasks
    assert first.project_id == "p-portal"
    assert first.sprint_id == "s-1"
    assert first.assignee_ids == ("m1",)
    assert second.project_id == "proj-default"
    assert second.sprint_id == "sprint-default"
    assert first.source_row == 1


def test_missing_priority_defaults_to_three(store, import_config, roster):
    tasks, _ = build_task_batch([_draft(1), _draft(2, priority=0)], set(), store=store,
                                roster=roster, config=import_config, now=NOW)
    assert tasks[0].priority == 3
    assert tasks[1].priority == 0


def test_delivered_state_mapping(store, import_config, roster):
    tasks, _ = build_task_batch([_draft(1, is_delivered=True), _draft(2)], set(), store=store,
                                roster=roster, config=import_config, now=NOW)
    assert tasks[0].status is TaskStatus.DONE
    assert tasks[0].completed_at == NOW
    assert tasks[1].status is TaskStatus.TODO
    assert tasks[1].completed_at is None


def test_unresolved_responsibles_are_dropped(store, import_config, roster):
    tasks, _ = build_task_batch([_draft(1, responsibles=("zeca", "ana", "natan", "nat"))], set(),
                                store=store, roster=roster, config=import_config, now=NOW)
    assert tasks[0].assignee_ids == ("m2",)


def test_ignored_and_incomplete_rows(store, import_config, roster):
    tasks, skipped = build_task_batch(
        [_draft(1), _draft(2, title=""), _draft(3, demand_id="")],
        {3},
        store=store,
        roster=roster,
        config=import_config,
        now=NOW,
    )
    assert [t.source_row for t in tasks] == [1]
    assert skipped == [2]


def test_project_lookup_is_cached(import_config, roster):
    calls = []

    class CountingStore(InMemoryTaskStore):
        def find_project(self, name):
            calls.append(name)
            return super().find_project(name)

    s = CountingStore(projects=[Project("p-portal", "Portal")], members=roster)
    build_task_batch([_draft(1), _draft(2, project=" portal ")], set(), store=s, roster=roster,
                     config=import_config, now=NOW)
    assert calls == ["Portal"]


def test_commit_append(store, import_config):
    existing = ResolvedTask(
        project_id="p-portal", sprint_id="s-1", demand_id="OLD", priority=1, title="Old",
        task_type=TaskType.FRONTEND, category=TaskCategory.FEATURE, assignee_ids=(),
        estimated_hours=1, has_incident=False, is_delivered=False, status=TaskStatus.TODO,
        completed_at=None, source_row=1,
    )
    store.tasks = [existing]
    result = commit([_draft(1), _draft(2)], set(), "append", store, import_config, now=NOW)
    assert result.mode is ImportMode.APPEND
    assert result.applied_rows == 2
    assert len(store.tasks) == 3
    assert store.tasks[0] is existing


def test_commit_overwrite(store, import_config):
    store.tasks = [object()]  # type: ignore[list-item]
    result = commit([_draft(1)], set(), ImportMode.OVERWRITE, store, import_config, now=NOW)
    assert result.applied_rows == 1
    assert [t.demand_id for t in store.tasks] == ["D-1"]


def test_commit_reports_skipped_rows(store, import_config):
    result = commit([_draft(1), _draft(2, project="")], set(), "append", store, import_config)
    assert result.skipped_rows == (2,)
    assert result.tasks[0].completed_at is None


def test_commit_nothing_importable_leaves_store_untouched(store, import_config):
    store.tasks = ["keep"]  # type: ignore[list-item]
    with pytest.raises(CommitError, match="nothing to import"):
        commit([_draft(1)], {1}, "overwrite", store, import_config)
    assert store.tasks == ["keep"]


def test_commit_unknown_mode(store, import_config):
    with pytest.raises(CommitError, match="unknown import mode"):
        commit([_draft(1)], set(), "merge", store, import_config)


def test_commit_store_failure_is_atomic(roster, import_config):
    failing = FailingStore(members=roster)
    failing.tasks = ["keep"]  # type: ignore[list-item]
    with pytest.raises(CommitError, match="connection lost"):
        commit([_draft(1), _draft(2)], set(), "append", failing, import_config)
    assert failing.tasks == ["keep"]


def test_commit_lookup_failure_is_wrapped(roster, import_config):
    class BrokenLookup(InMemoryTaskStore):
        def find_project(self, name):
            raise RuntimeError("lookup down")

    s = BrokenLookup(members=roster)
    with pytest.raises(CommitError, match="failed to resolve references"):
        commit([_draft(1)], set(), "append", s, import_config)
    assert s.tasks == []
