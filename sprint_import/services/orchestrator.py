from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from ..config.loader import ImportConfig
from ..db.store import TaskStore
from ..excel.reader import WorkbookReadError, read_workbook
from ..models.finding import ValidationFinding
from ..models.parse_result import ParseResult, ParseStatus, ParseSummary
from ..models.reference import Member
from ..models.resolved_task import CommitResult, ImportMode
from ..models.task_draft import MergedTask
from .coercion import DEFAULT_NULL_SENTINELS
from .commit import commit
from .overlay import ReconciliationOverlay, is_importable
from .progress import SheetProgress
from .row_parser import SheetFormatError, SheetParseOutcome, parse_sheets
from .validation import aggregate, summarize

"""Service orchestration: parse pipeline and import session lifecycle.

parse() runs stages 1-4 (coercion, row parsing, member resolution,
aggregation) and always returns a ParseResult. Per-row problems come back as
findings; only a systemic failure (undecodable file, malformed grid)
short-circuits, and it is reported as a single "Sistema" error finding with no
drafts rather than as an exception.

ImportSession holds one parse generation (drafts + overlay) between the parse
and the commit. Starting a new parse discards the previous generation, since
row indices only mean something within the parse that produced them.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "parse",
    "parse_file",
    "failed_result",
    "ImportSession",
    "SessionError",
]


class SessionError(Exception):
    """Raised when a session operation needs a parse that has not happened."""


def failed_result(message: str) -> ParseResult:
    """Result of a systemic failure: zero drafts, one "Sistema" error finding."""
    return ParseResult(
        status=ParseStatus.ERROR,
        drafts=[],
        findings=[ValidationFinding.system(message)],
        unmatched_members=[],
        summary=ParseSummary.empty(),
    )


def _run_pipeline(
    raw_sheets: Mapping[str, Any],
    roster: Sequence[Member],
    null_sentinels: Collection[str],
    column_aliases: Mapping[str, Collection[str]] | None,
) -> tuple[SheetParseOutcome | None, ParseResult]:
    try:
        with SheetProgress(len(raw_sheets)) as progress:
            outcome = parse_sheets(
                raw_sheets,
                null_sentinels=null_sentinels,
                column_aliases=column_aliases,
                progress=progress,
            )
    except SheetFormatError as e:
        logger.error("parse failed: %s", e)
        return None, failed_result(str(e))
    result = aggregate(
        outcome.drafts, outcome.findings, roster,
        projects=outcome.projects, sprints=outcome.sprints,
    )
    return outcome, result


def parse(
    raw_sheets: Mapping[str, Any],
    roster: Sequence[Member],
    *,
    null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS,
    column_aliases: Mapping[str, Collection[str]] | None = None,
) -> ParseResult:
    """Run the full parse pipeline over decoded sheets against a roster snapshot."""
    _, result = _run_pipeline(raw_sheets, roster, null_sentinels, column_aliases)
    return result


def parse_file(
    path: Path,
    roster: Sequence[Member],
    *,
    null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS,
    column_aliases: Mapping[str, Collection[str]] | None = None,
) -> ParseResult:
    """Decode a spreadsheet file and parse it; decode failures become a failed result."""
    try:
        raw_sheets = read_workbook(path)
    except WorkbookReadError as e:
        logger.error("decode failed: %s", e)
        return failed_result(str(e))
    return parse(raw_sheets, roster, null_sentinels=null_sentinels, column_aliases=column_aliases)


class ImportSession:
    """One import dialog: parse -> review (ignore/edit) -> commit or cancel.

    Nothing here touches durable storage before commit().
    """

    def __init__(self, config: ImportConfig) -> None:
        self.config = config
        self.generation = 0
        self._outcome: SheetParseOutcome | None = None
        self._result: ParseResult | None = None
        self._overlay: ReconciliationOverlay | None = None

    @property
    def result(self) -> ParseResult:
        if self._result is None:
            raise SessionError("no parse in progress")
        return self._result

    @property
    def overlay(self) -> ReconciliationOverlay:
        if self._overlay is None:
            raise SessionError("no parse in progress")
        return self._overlay

    @property
    def active(self) -> bool:
        return self._result is not None

    def _begin(self, outcome: SheetParseOutcome | None, result: ParseResult) -> ParseResult:
        self.generation += 1
        self._outcome = outcome
        self._result = result
        self._overlay = ReconciliationOverlay(result.drafts)
        logger.debug(
            "session generation=%d status=%s drafts=%d",
            self.generation,
            result.status.value,
            len(result.drafts),
        )
        return result

    def start(self, raw_sheets: Mapping[str, Any], roster: Sequence[Member]) -> ParseResult:
        """Parse decoded sheets, replacing any previous generation."""
        self.cancel()
        outcome, result = _run_pipeline(
            raw_sheets, roster, self.config.null_sentinels, self.config.column_aliases
        )
        return self._begin(outcome, result)

    def start_file(self, path: Path, roster: Sequence[Member]) -> ParseResult:
        self.cancel()
        try:
            raw_sheets = read_workbook(path)
        except WorkbookReadError as e:
            logger.error("decode failed: %s", e)
            return self._begin(None, failed_result(str(e)))
        return self.start(raw_sheets, roster)

    def refresh_roster(self, roster: Sequence[Member]) -> ParseResult:
        """Re-run the aggregator in full against a changed roster.

        The overlay is kept: drafts and row indices are unchanged.
        """
        if self._result is None:
            raise SessionError("no parse in progress")
        if self._outcome is None:
            return self._result
        self._result = aggregate(
            self._outcome.drafts, self._outcome.findings, roster,
            projects=self._outcome.projects, sprints=self._outcome.sprints,
        )
        return self._result

    def merged(self) -> list[MergedTask]:
        return self.overlay.merge()

    def is_importable(self) -> bool:
        return is_importable(self.merged(), self.overlay.ignored)

    def effective_summary(self) -> ParseSummary:
        """Summary counts with ignored rows left out."""
        result = self.result
        return summarize(
            result.drafts,
            result.findings,
            total_projects=result.summary.total_projects,
            total_sprints=result.summary.total_sprints,
            unmatched_members_count=result.summary.unmatched_members_count,
            ignored=self.overlay.ignored,
        )

    def commit(
        self, store: TaskStore, mode: ImportMode | str, *, now: datetime | None = None
    ) -> CommitResult:
        """Commit the accepted rows; the generation is discarded only on success."""
        overlay = self.overlay
        committed = commit(overlay.merge(), overlay.ignored, mode, store, self.config, now=now)
        self.cancel()
        return committed

    def cancel(self) -> None:
        """Discard drafts and overlay without any side effect."""
        self._outcome = None
        self._result = None
        self._overlay = None
