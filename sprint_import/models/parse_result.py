from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field
from enum import Enum

from .finding import Severity, ValidationFinding
from .reference import Member
from .task_draft import TaskDraft

"""Parse result models for the sprint spreadsheet import pipeline.

ParseResult is what the presentation layer receives from parse(): the drafts,
every finding, the aggregated member misses and the summary counts.
"""

__all__ = [
    "ParseStatus",
    "CellStatus",
    "UnmatchedMember",
    "AmbiguousMember",
    "ParseSummary",
    "ParseResult",
]


class ParseStatus(Enum):
    """Overall parse status. Dominance order: ERROR > WARNING > SUCCESS."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class CellStatus(Enum):
    """Display status of one cell in the validation table."""
    VALID = "valid"
    WARNING = "warning"
    ERROR = "error"
    IGNORED = "ignored"


@dataclass(frozen=True)
class UnmatchedMember:
    """Aggregate of every row naming the same unresolved first name."""
    first_name: str
    occurrences: int
    rows: tuple[int, ...]


@dataclass(frozen=True)
class AmbiguousMember:
    """A first name that fits several roster members."""
    first_name: str
    candidates: tuple[Member, ...]
    rows: tuple[int, ...]


@dataclass(frozen=True)
class ParseSummary:
    total_tasks: int
    valid_tasks: int  # total_tasks - tasks_with_errors
    tasks_with_errors: int  # blocking rows
    tasks_with_warnings: int  # cautionary rows (warnings, no error)
    total_projects: int
    total_sprints: int
    unmatched_members_count: int

    @staticmethod
    def empty() -> ParseSummary:
        return ParseSummary(0, 0, 0, 0, 0, 0, 0)


@dataclass(frozen=True)
class ParseResult:
    """Complete, explorable outcome of one parse run."""
    status: ParseStatus
    drafts: list[TaskDraft]
    findings: list[ValidationFinding]
    unmatched_members: list[UnmatchedMember]
    summary: ParseSummary
    projects: list[str] = field(default_factory=list)
    sprints: list[str] = field(default_factory=list)
    ambiguous_members: list[AmbiguousMember] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for f in self.findings if f.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for f in self.findings if f.severity is Severity.WARNING)

    def findings_for_row(self, row_index: int) -> list[ValidationFinding]:
        return [f for f in self.findings if f.row == row_index]

    def cell_status(
        self, row_index: int, column: str, ignored: Collection[int] = ()
    ) -> CellStatus:
        """Status of one cell: ignored rows win, then error, then warning."""
        if row_index in ignored:
            return CellStatus.IGNORED
        severities = {f.severity for f in self.findings if f.row == row_index and f.column == column}
        if Severity.ERROR in severities:
            return CellStatus.ERROR
        if Severity.WARNING in severities:
            return CellStatus.WARNING
        return CellStatus.VALID
