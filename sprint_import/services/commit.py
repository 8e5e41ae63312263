from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from datetime import UTC, datetime

from ..config.loader import ImportConfig
from ..db.store import TaskStore
from ..models.reference import Member
from ..models.resolved_task import CommitResult, ImportMode, ResolvedTask, TaskStatus
from ..models.task_draft import MergedTask
from .member_resolver import find_member

"""Commit/import step: merged drafts -> resolved task entities -> task store.

Reference resolution policy:
- project: case-insensitive exact name via the store, else the configured
  default project id (missing projects are never created here)
- sprint: same, falling back to the configured default sprint id
- responsibles: resolved against the live roster; names that do not resolve
  are dropped (they were already reported as warnings at parse time)
- priority: parsed value, or the configured default (3) when there was none

The batch is fully built before the store sees it, and the store applies it
atomically, so a failure anywhere leaves the store untouched.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "CommitError",
    "build_task_batch",
    "commit",
]


class CommitError(Exception):
    """Raised when a batch cannot be committed. Nothing was applied."""


def _resolve_assignees(names: Iterable[str], roster: Sequence[Member], row: int) -> tuple[str, ...]:
    ids: list[str] = []
    for name in names:
        result = find_member(name, roster)
        if result.is_match and result.member is not None:
            if result.member.id not in ids:
                ids.append(result.member.id)
        else:
            logger.debug("row=%d responsible=%r not resolved at commit (dropped)", row, name)
    return tuple(ids)


def build_task_batch(
    merged: Iterable[MergedTask],
    ignored: Collection[int],
    *,
    store: TaskStore,
    roster: Sequence[Member],
    config: ImportConfig,
    now: datetime,
) -> tuple[list[ResolvedTask], list[int]]:
    """Map non-ignored merged tasks to ResolvedTask entities.

    Returns:
        (tasks, skipped_rows) where skipped_rows lists non-ignored rows that are
        missing project, demand or title and therefore cannot be imported.
    """
    project_ids: dict[str, str] = {}
    sprint_ids: dict[str, str] = {}
    tasks: list[ResolvedTask] = []
    skipped: list[int] = []

    for task in merged:
        if task.row_index in ignored:
            continue
        if not task.has_required_fields:
            skipped.append(task.row_index)
            continue

        project_key = task.project.strip().lower()
        if project_key not in project_ids:
            project = store.find_project(task.project)
            if project is None:
                logger.info("project %r not found, using default project", task.project)
            project_ids[project_key] = project.id if project else config.default_project_id

        sprint_key = task.sprint.strip().lower()
        if sprint_key not in sprint_ids:
            sprint = store.find_sprint(task.sprint) if sprint_key else None
            if sprint is None:
                logger.info("sprint %r not found, using default sprint", task.sprint)
            sprint_ids[sprint_key] = sprint.id if sprint else config.default_sprint_id

        tasks.append(ResolvedTask(
            project_id=project_ids[project_key],
            sprint_id=sprint_ids[sprint_key],
            demand_id=task.demand_id.strip(),
            priority=task.priority if task.priority is not None else config.default_priority,
            title=task.title.strip(),
            task_type=task.task_type,
            category=task.category,
            assignee_ids=_resolve_assignees(task.responsibles, roster, task.row_index),
            estimated_hours=task.estimate_hours,
            has_incident=task.has_incident,
            is_delivered=task.is_delivered,
            status=TaskStatus.DONE if task.is_delivered else TaskStatus.TODO,
            completed_at=now if task.is_delivered else None,
            source_row=task.row_index,
        ))

    return tasks, skipped


def commit(
    merged: Iterable[MergedTask],
    ignored: Collection[int],
    mode: ImportMode | str,
    store: TaskStore,
    config: ImportConfig,
    *,
    now: datetime | None = None,
) -> CommitResult:
    """Resolve and persist the accepted rows as one atomic batch.

    Raises:
        CommitError: If nothing is importable, the mode is unknown, or resolving
            or persisting fails. The store is left unchanged in every case.
    """
    try:
        mode = ImportMode(mode)
    except ValueError as e:
        raise CommitError(f"unknown import mode: {mode!r}") from e
    now = now or datetime.now(UTC)

    try:
        roster = store.list_members()
        tasks, skipped = build_task_batch(
            merged, ignored, store=store, roster=roster, config=config, now=now
        )
    except Exception as e:
        raise CommitError(f"failed to resolve references: {e}") from e

    if skipped:
        logger.warning("rows skipped (missing project/demand/title): %s", skipped)
    if not tasks:
        raise CommitError("nothing to import")

    try:
        applied = store.apply_batch(tasks, mode)
    except Exception as e:
        logger.error("commit failed mode=%s tasks=%d: %s", mode.value, len(tasks), e)
        raise CommitError(str(e)) from e

    logger.info("committed mode=%s tasks=%d", mode.value, applied)
    return CommitResult(mode=mode, tasks=tasks, applied_rows=applied, skipped_rows=tuple(skipped))
