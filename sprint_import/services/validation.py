from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence

from ..models.finding import Severity, ValidationFinding
from ..models.match_result import MatchResult
from ..models.parse_result import (
    AmbiguousMember,
    ParseResult,
    ParseStatus,
    ParseSummary,
    UnmatchedMember,
)
from ..models.reference import Member
from ..models.task_draft import TaskDraft
from .member_resolver import find_member, normalize_name
from .row_parser import COLUMN_LABELS

"""Validation aggregator.

Combines the row parser's coercion findings with one warning per responsible
name that does not resolve against the current roster, then classifies rows
and tallies the summary:

- blocking: the row owns at least one error finding
- cautionary: warnings only
- clean: no finding

aggregate() is pure and always recomputes everything from the drafts; after
the roster changes (e.g. a missing member was created) call it again. There is
no incremental path.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "aggregate",
    "summarize",
    "overall_status",
    "member_findings",
]

RESPONSIBLE_COLUMN = COLUMN_LABELS["responsibles"]


def _unmatched_message(name: str) -> str:
    return f'Membro "{name}" não encontrado no sistema.'


def _ambiguous_message(name: str, candidates: Sequence[Member]) -> str:
    names = ", ".join(m.name for m in candidates)
    return f'Membro "{name}" corresponde a mais de um membro: {names}.'


def _add_row(rows_by_key: dict[str, list[int]], spelling: dict[str, str], name: str, row: int) -> None:
    key = normalize_name(name)
    spelling.setdefault(key, name)
    rows = rows_by_key.setdefault(key, [])
    if not rows or rows[-1] != row:
        rows.append(row)


def member_findings(
    drafts: Iterable[TaskDraft],
    roster: Sequence[Member],
) -> tuple[list[ValidationFinding], list[UnmatchedMember], list[AmbiguousMember]]:
    """Resolve every responsible token and report the ones that fail.

    One finding per (row, token); misses sharing a normalized first name
    ("joão" and "joao") are aggregated once under the first spelling seen,
    with one occurrence per row.
    """
    cache: dict[str, MatchResult] = {}
    findings: list[ValidationFinding] = []
    spelling: dict[str, str] = {}
    unmatched_rows: dict[str, list[int]] = {}
    ambiguous_rows: dict[str, list[int]] = {}

    for draft in drafts:
        for name in draft.responsibles:
            result = cache.get(name)
            if result is None:
                result = find_member(name, roster)
                cache[name] = result
            if result.is_match:
                continue
            if result.is_ambiguous:
                findings.append(ValidationFinding.warning(
                    draft.row_index, RESPONSIBLE_COLUMN, _ambiguous_message(name, result.candidates)
                ))
                _add_row(ambiguous_rows, spelling, name, draft.row_index)
            else:
                findings.append(ValidationFinding.warning(
                    draft.row_index, RESPONSIBLE_COLUMN, _unmatched_message(name)
                ))
                _add_row(unmatched_rows, spelling, name, draft.row_index)

    unmatched = [
        UnmatchedMember(first_name=spelling[key], occurrences=len(rows), rows=tuple(rows))
        for key, rows in unmatched_rows.items()
    ]
    ambiguous = [
        AmbiguousMember(first_name=spelling[key], candidates=cache[spelling[key]].candidates, rows=tuple(rows))
        for key, rows in ambiguous_rows.items()
    ]
    return findings, unmatched, ambiguous


def overall_status(findings: Iterable[ValidationFinding]) -> ParseStatus:
    severities = {f.severity for f in findings}
    if Severity.ERROR in severities:
        return ParseStatus.ERROR
    if Severity.WARNING in severities:
        return ParseStatus.WARNING
    return ParseStatus.SUCCESS


def summarize(
    drafts: Sequence[TaskDraft],
    findings: Iterable[ValidationFinding],
    *,
    total_projects: int,
    total_sprints: int,
    unmatched_members_count: int,
    ignored: Collection[int] = (),
) -> ParseSummary:
    """Tally rows by classification, leaving out ignored row indices."""
    rows = {d.row_index for d in drafts} - set(ignored)
    error_rows: set[int] = set()
    warning_rows: set[int] = set()
    for f in findings:
        if f.row not in rows:
            continue
        if f.severity is Severity.ERROR:
            error_rows.add(f.row)
        else:
            warning_rows.add(f.row)
    warning_rows -= error_rows

    return ParseSummary(
        total_tasks=len(rows),
        valid_tasks=len(rows) - len(error_rows),
        tasks_with_errors=len(error_rows),
        tasks_with_warnings=len(warning_rows),
        total_projects=total_projects,
        total_sprints=total_sprints,
        unmatched_members_count=unmatched_members_count,
    )


def aggregate(
    drafts: Sequence[TaskDraft],
    coercion_findings: Iterable[ValidationFinding],
    roster: Sequence[Member],
    *,
    projects: Sequence[str] = (),
    sprints: Sequence[str] = (),
) -> ParseResult:
    """Build the full ParseResult for one parse generation."""
    resolution_findings, unmatched, ambiguous = member_findings(drafts, roster)
    # stable sort keeps each row's coercion findings ahead of its member findings
    findings = sorted([*coercion_findings, *resolution_findings], key=lambda f: f.row)

    summary = summarize(
        drafts,
        findings,
        total_projects=len(projects),
        total_sprints=len(sprints),
        unmatched_members_count=len(unmatched),
    )
    status = overall_status(findings)
    logger.debug(
        "aggregate status=%s tasks=%d errors=%d warnings=%d unmatched=%d ambiguous=%d",
        status.value,
        summary.total_tasks,
        summary.tasks_with_errors,
        summary.tasks_with_warnings,
        len(unmatched),
        len(ambiguous),
    )
    return ParseResult(
        status=status,
        drafts=list(drafts),
        findings=findings,
        unmatched_members=unmatched,
        summary=summary,
        projects=list(projects),
        sprints=list(sprints),
        ambiguous_members=ambiguous,
    )
