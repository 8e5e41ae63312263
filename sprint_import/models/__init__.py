"""Domain models for the sprint spreadsheet import pipeline.

This package contains the records exchanged between the pipeline stages:
drafts and findings produced by parsing, member resolution results, the
aggregated parse result, and the resolved entities handed to the task store.
"""

from .finding import SYSTEM_COLUMN, Severity, ValidationFinding
from .match_result import AmbiguousName, BatchResolution, Confidence, MatchResult
from .parse_result import (
    AmbiguousMember,
    CellStatus,
    ParseResult,
    ParseStatus,
    ParseSummary,
    UnmatchedMember,
)
from .reference import Member, Project, Sprint
from .resolved_task import CommitResult, ImportMode, ResolvedTask, TaskStatus
from .task_draft import MergedTask, TaskCategory, TaskDraft, TaskType

__all__ = [
    # Parse models
    "TaskDraft",
    "MergedTask",
    "TaskType",
    "TaskCategory",
    "ValidationFinding",
    "Severity",
    "SYSTEM_COLUMN",
    "ParseResult",
    "ParseStatus",
    "ParseSummary",
    "CellStatus",
    "UnmatchedMember",
    "AmbiguousMember",
    # Resolution models
    "Member",
    "Project",
    "Sprint",
    "Confidence",
    "MatchResult",
    "AmbiguousName",
    "BatchResolution",
    # Commit models
    "ImportMode",
    "TaskStatus",
    "ResolvedTask",
    "CommitResult",
]
