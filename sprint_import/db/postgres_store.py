from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.reference import Member, Project, Sprint
from ..models.resolved_task import ImportMode, ResolvedTask
from .batch_insert import BatchInsertError, batch_insert
from .store import TaskStoreError

"""PostgreSQL task store (psycopg2).

Expects a cursor from a connection in autocommit mode: lookups run as single
statements and apply_batch draws its own explicit BEGIN/COMMIT boundary, with
ROLLBACK on any failure so a batch is applied completely or not at all.

Schema used:
    projects(id, name)
    sprints(id, name, project_id, created_at)
    members(id, name, nickname)
    tasks(id, project_id, sprint_id, demand_id, priority, title, area, category,
          estimated_hours, has_incident, is_delivered, status, completed_at)
    task_assignees(task_id, member_id)
"""

logger = logging.getLogger(__name__)

__all__ = [
    "PostgresTaskStore",
    "TASK_COLUMNS",
]

TASK_COLUMNS = (
    "project_id",
    "sprint_id",
    "demand_id",
    "priority",
    "title",
    "area",
    "category",
    "estimated_hours",
    "has_incident",
    "is_delivered",
    "status",
    "completed_at",
)


def _task_row(task: ResolvedTask) -> tuple[Any, ...]:
    return (
        task.project_id,
        task.sprint_id,
        task.demand_id,
        task.priority,
        task.title,
        task.task_type.value,
        task.category.value,
        task.estimated_hours,
        task.has_incident,
        task.is_delivered,
        task.status.value,
        task.completed_at,
    )


class PostgresTaskStore:
    def __init__(self, cursor: Any, *, page_size: int = 1000) -> None:
        self.cursor = cursor
        self.page_size = page_size

    def find_project(self, name: str) -> Project | None:
        self.cursor.execute(
            "SELECT id, name FROM projects WHERE lower(name) = lower(%s) ORDER BY name LIMIT 1",
            (name.strip(),),
        )
        row = self.cursor.fetchone()
        return Project(id=str(row[0]), name=row[1]) if row else None

    def find_sprint(self, name: str) -> Sprint | None:
        self.cursor.execute(
            "SELECT id, name, project_id FROM sprints WHERE lower(name) = lower(%s) "
            "ORDER BY created_at DESC LIMIT 1",
            (name.strip(),),
        )
        row = self.cursor.fetchone()
        if not row:
            return None
        return Sprint(id=str(row[0]), name=row[1], project_id=str(row[2]) if row[2] is not None else None)

    def list_members(self) -> list[Member]:
        self.cursor.execute("SELECT id, name, nickname FROM members ORDER BY name")
        return [Member(id=str(r[0]), name=r[1], nickname=r[2]) for r in self.cursor.fetchall()]

    def apply_batch(self, tasks: Sequence[ResolvedTask], mode: ImportMode) -> int:
        """Insert the batch inside one transaction (overwrite clears tasks first)."""
        try:
            self.cursor.execute("BEGIN")
        except Exception as e:
            raise TaskStoreError(f"failed to begin transaction: {e}") from e

        try:
            if mode is ImportMode.OVERWRITE:
                self.cursor.execute("DELETE FROM task_assignees")
                self.cursor.execute("DELETE FROM tasks")
            result = batch_insert(
                self.cursor,
                "tasks",
                TASK_COLUMNS,
                [_task_row(t) for t in tasks],
                returning="id",
                page_size=self.page_size,
            )
            task_ids = [r[0] for r in result.returned_values or []]
            if len(task_ids) != len(tasks):
                raise TaskStoreError(
                    f"expected {len(tasks)} task ids from RETURNING, got {len(task_ids)}"
                )
            assignee_rows = [
                (task_id, member_id)
                for task_id, task in zip(task_ids, tasks, strict=True)
                for member_id in task.assignee_ids
            ]
            batch_insert(
                self.cursor,
                "task_assignees",
                ("task_id", "member_id"),
                assignee_rows,
                page_size=self.page_size,
            )
            self.cursor.execute("COMMIT")
        except Exception as e:
            try:
                self.cursor.execute("ROLLBACK")
            except Exception as rollback_e:
                logger.error("rollback failed: %s", rollback_e)
            if isinstance(e, TaskStoreError):
                raise
            if isinstance(e, BatchInsertError):
                raise TaskStoreError(f"insert failed: {e}") from e
            raise TaskStoreError(str(e)) from e

        logger.debug("applied batch mode=%s tasks=%d assignees=%d", mode.value, len(tasks), len(assignee_rows))
        return result.inserted_rows
