from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""TaskDraft model for the sprint spreadsheet import pipeline.

A TaskDraft is one parsed spreadsheet row after cell coercion. Drafts are the
immutable "source of truth" of a parse run; user corrections never touch them
and are layered on top by the reconciliation overlay instead.
"""

__all__ = [
    "TaskType",
    "TaskCategory",
    "TaskDraft",
    "MergedTask",
]


class TaskType(Enum):
    """Work area of a task (silently defaults to FRONTEND)."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    FULLSTACK = "fullstack"


class TaskCategory(Enum):
    """Kind of work (silently defaults to FEATURE)."""
    BUG = "bug"
    FEATURE = "feature"
    REFINEMENT = "refinement"


@dataclass(frozen=True)
class TaskDraft:
    """Logical representation of a single spreadsheet row after coercion.

    row_index is 1-based and unique across every sheet of one parse run. It is
    the only key findings and overlay entries may use to refer to the row.
    """
    project: str  # "" when absent (blocking)
    demand_id: str  # "" when absent (blocking)
    priority: int | None  # 0-5, None when absent or invalid
    title: str  # "" when absent (blocking)
    task_type: TaskType
    category: TaskCategory
    responsibles: tuple[str, ...]  # normalized first names, unique, ordered
    estimate_hours: int | float  # >= 0, at most one decimal
    has_incident: bool
    is_delivered: bool
    sprint: str  # sheet name
    row_index: int

    @property
    def has_required_fields(self) -> bool:
        """True when project, demand and title are all filled in."""
        return bool(self.project.strip() and self.demand_id.strip() and self.title.strip())


# A draft with overlay overrides applied; same shape, never stored.
MergedTask = TaskDraft
