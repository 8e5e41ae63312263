from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .task_draft import TaskCategory, TaskType

"""Commit-side models: the import mode and the fully resolved task entity.

State mapping: a delivered row is committed as DONE with completed_at set to
the commit time; every other row is committed as TODO without a timestamp.
"""

__all__ = [
    "ImportMode",
    "TaskStatus",
    "ResolvedTask",
    "CommitResult",
]


class ImportMode(Enum):
    """How a committed batch relates to the existing store contents.

    - APPEND: union with the tasks already stored
    - OVERWRITE: replace the store contents entirely
    """
    APPEND = "append"
    OVERWRITE = "overwrite"


class TaskStatus(Enum):
    TODO = "todo"
    DONE = "done"


@dataclass(frozen=True)
class ResolvedTask:
    """Task entity ready for persistence; every reference is an id."""
    project_id: str
    sprint_id: str
    demand_id: str
    priority: int
    title: str
    task_type: TaskType
    category: TaskCategory
    assignee_ids: tuple[str, ...]
    estimated_hours: int | float
    has_incident: bool
    is_delivered: bool
    status: TaskStatus
    completed_at: datetime | None
    source_row: int  # row_index of the draft it came from


@dataclass(frozen=True)
class CommitResult:
    mode: ImportMode
    tasks: list[ResolvedTask]
    applied_rows: int  # rows reported by the store
    skipped_rows: tuple[int, ...] = ()  # non-ignored rows missing required fields
