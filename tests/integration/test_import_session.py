from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from sprint_import.models.reference import Member
from sprint_import.models.resolved_task import ImportMode, TaskStatus
from sprint_import.services.commit import CommitError
from sprint_import.services.orchestrator import ImportSession, SessionError

NOW = datetime(2024, 6, 1, 9, 30, tzinfo=UTC)


def test_session_requires_a_parse(import_config):
    session = ImportSession(import_config)
    assert not session.active
    with pytest.raises(SessionError):
        session.overlay
    with pytest.raises(SessionError):
        session.refresh_roster([])


def test_review_and_commit(import_config, store, sample_sheets):
    session = ImportSession(import_config)
    result = session.start(sample_sheets, store.list_members())
    assert session.generation == 1
    assert result.summary.tasks_with_errors == 1

    # row 2 has no title: fix it, then ignore row 3
    session.overlay.edit_cell(2, "titulo", "Tela de perfil")
    session.overlay.toggle_ignore(3)
    assert session.is_importable()
    assert session.result.drafts[1].title == ""

    effective = session.effective_summary()
    assert effective.total_tasks == 3
    # findings of ignored rows remain queryable
    assert session.result.findings_for_row(3)

    committed = session.commit(store, "append", now=NOW)
    assert committed.mode is ImportMode.APPEND
    assert [t.source_row for t in committed.tasks] == [1, 2, 4]
    assert committed.tasks[0].status is TaskStatus.DONE
    assert committed.tasks[0].completed_at == NOW
    assert committed.tasks[1].title == "Tela de perfil"
    assert committed.tasks[2].priority == 3
    assert committed.tasks[2].project_id == "p-portal"
    assert committed.tasks[2].sprint_id == "sprint-default"
    assert committed.tasks[2].assignee_ids == ("m5",)
    assert len(store.tasks) == 3
    # a successful commit ends the session
    assert not session.active


def test_failed_commit_keeps_session(import_config, store, sample_sheets):
    session = ImportSession(import_config)
    session.start(sample_sheets, store.list_members())
    for row in (1, 2, 3, 4):
        session.overlay.toggle_ignore(row)
    assert not session.is_importable()
    with pytest.raises(CommitError):
        session.commit(store, ImportMode.OVERWRITE)
    assert session.active
    assert store.tasks == []


def test_refresh_roster_keeps_overlay(import_config, sample_sheets, roster):
    session = ImportSession(import_config)
    before = session.start(sample_sheets, roster)
    session.overlay.toggle_ignore(1)
    assert before.summary.unmatched_members_count == 1

    after = session.refresh_roster([*roster, Member("m9", "Zeca Alves")])
    assert after.summary.unmatched_members_count == 0
    assert session.result is after
    assert session.overlay.ignored == frozenset({1})
    assert session.generation == 1


def test_new_parse_discards_previous_generation(import_config, sample_sheets, roster):
    session = ImportSession(import_config)
    session.start(sample_sheets, roster)
    session.overlay.edit_cell(1, "titulo", "X")
    session.start(sample_sheets, roster)
    assert session.generation == 2
    assert session.overlay.overrides == {}


def test_cancel(import_config, sample_sheets, roster):
    session = ImportSession(import_config)
    session.start(sample_sheets, roster)
    session.cancel()
    assert not session.active


def test_start_file_decode_failure(import_config, tmp_path: Path, roster):
    session = ImportSession(import_config)
    result = session.start_file(tmp_path / "missing.xlsx", roster)
    assert result.drafts == []
    assert session.active
    assert not session.is_importable()
    # nothing to re-aggregate after a systemic failure
    assert session.refresh_roster(roster) is result
