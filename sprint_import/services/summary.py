from __future__ import annotations

from ..models.parse_result import ParseResult, ParseSummary

"""Summary line rendering service.

Format:
SUMMARY status={status} tasks={n} valid={n} errors={n} warnings={n}
projects={n} sprints={n} unmatched={n} ignored={n}
"""


def render_summary_line(
    result: ParseResult, summary: ParseSummary | None = None, ignored_count: int = 0
) -> str:
    """Render a SUMMARY line for a parse result.

    Args:
        result: ParseResult whose status is reported
        summary: counts to report (e.g. the effective summary after ignoring
            rows); defaults to result.summary
        ignored_count: number of ignored rows

    Examples:
        >>> from sprint_import.services.orchestrator import failed_result
        >>> render_summary_line(failed_result("boom"))
        'SUMMARY status=error tasks=0 valid=0 errors=0 warnings=0 projects=0 sprints=0 unmatched=0 ignored=0'
    """
    s = summary or result.summary
    return (
        f"SUMMARY status={result.status.value} "
        f"tasks={s.total_tasks} "
        f"valid={s.valid_tasks} "
        f"errors={s.tasks_with_errors} "
        f"warnings={s.tasks_with_warnings} "
        f"projects={s.total_projects} "
        f"sprints={s.total_sprints} "
        f"unmatched={s.unmatched_members_count} "
        f"ignored={ignored_count}"
    )
