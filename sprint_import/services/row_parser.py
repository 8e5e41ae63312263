from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.finding import ValidationFinding
from ..models.task_draft import TaskDraft
from .coercion import (
    DEFAULT_NULL_SENTINELS,
    cell_text,
    coerce_bool,
    coerce_category,
    coerce_hours,
    coerce_priority,
    coerce_responsibles,
    coerce_text,
    coerce_type,
    is_absent,
)
from .progress import SheetProgress

"""Row parser: raw sheet grids -> TaskDraft records + coercion findings.

Every sheet is one sprint (the tab name is the sprint label). The first row of
a grid holds the headers; columns are located by case-insensitive substring
match so that "Responsável (nome)" still maps to the responsibles column. The
header substrings below are the only format contract of the importer and must
stay backward compatible.

Row indices are global to one parse run: they start at 1 and advance once per
emitted draft across all sheets, so overlay entries keyed by row index never
collide between sheets.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "COLUMN_PATTERNS",
    "COLUMN_LABELS",
    "REQUIRED_FIELDS",
    "SheetFormatError",
    "SheetParseOutcome",
    "locate_columns",
    "parse_sheets",
]

COLUMN_PATTERNS: dict[str, tuple[str, ...]] = {
    "project": ("projeto",),
    "demand_id": ("demanda",),
    "priority": ("prioridade",),
    "title": ("título", "titulo"),
    "task_type": ("tipo",),
    "category": ("categoria",),
    "responsibles": ("responsável", "responsavel"),
    "estimate_hours": ("estimativa",),
    "has_incident": ("intercorrência", "intercorrencia"),
    "is_delivered": ("entregue",),
}

# Column labels used in findings (what the user sees in the sheet)
COLUMN_LABELS: dict[str, str] = {
    "project": "Projeto",
    "demand_id": "Demanda",
    "priority": "Prioridade",
    "title": "Título",
    "task_type": "Tipo",
    "category": "Categoria",
    "responsibles": "Responsável",
    "estimate_hours": "Estimativa",
    "has_incident": "Intercorrência",
    "is_delivered": "Entregue",
}

# Hard-required text fields: an empty value blocks the row
REQUIRED_FIELDS: dict[str, str] = {
    "project": "Esta tarefa não está associada a nenhum projeto.",
    "demand_id": "Número da task inválido ou ausente.",
    "title": "O título da tarefa é obrigatório.",
}

# Present-but-invalid values raise a warning, absent ones are fine
VALIDATED_RULES = {
    "priority": coerce_priority,
    "estimate_hours": coerce_hours,
}

# Silent defaults: never produce a finding
DEFAULTED_RULES = {
    "task_type": coerce_type,
    "category": coerce_category,
    "responsibles": coerce_responsibles,
    "has_incident": coerce_bool,
    "is_delivered": coerce_bool,
}


class SheetFormatError(Exception):
    """Raised when a sheet grid is not a sequence of row sequences."""


@dataclass
class SheetParseOutcome:
    drafts: list[TaskDraft] = field(default_factory=list)
    findings: list[ValidationFinding] = field(default_factory=list)  # coercion findings only
    projects: list[str] = field(default_factory=list)  # distinct non-empty, first-seen order
    sprints: list[str] = field(default_factory=list)


def locate_columns(
    headers: Sequence[Any],
    column_aliases: Mapping[str, Collection[str]] | None = None,
) -> dict[str, int | None]:
    """Map each field to the index of the first header containing one of its substrings."""
    normalized = [cell_text(h).lower() if not is_absent(h, ()) else "" for h in headers]
    located: dict[str, int | None] = {}
    for field_name, patterns in COLUMN_PATTERNS.items():
        subs = tuple(patterns) + tuple((column_aliases or {}).get(field_name, ()))
        located[field_name] = next(
            (i for i, h in enumerate(normalized) if h and any(s in h for s in subs)),
            None,
        )
    return located


def _cell(row: Sequence[Any], index: int | None) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def _check_grid(sheet_name: str, grid: Any) -> None:
    if isinstance(grid, (str, bytes)) or not isinstance(grid, Sequence):
        raise SheetFormatError(f"sheet '{sheet_name}' is not a grid of rows")
    for row in grid:
        if row is not None and (isinstance(row, (str, bytes)) or not isinstance(row, Sequence)):
            raise SheetFormatError(f"sheet '{sheet_name}' contains a row that is not a sequence of cells")


def parse_sheets(
    raw_sheets: Mapping[str, Any],
    *,
    null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS,
    column_aliases: Mapping[str, Collection[str]] | None = None,
    progress: SheetProgress | None = None,
) -> SheetParseOutcome:
    """Parse every sheet into drafts and coercion findings.

    Args:
        raw_sheets: sheet name -> grid (header row first), in workbook order
        null_sentinels: lowercase cell texts treated as absent
        column_aliases: extra header substrings per field
        progress: optional progress display

    Raises:
        SheetFormatError: If a grid is malformed (systemic failure).
    """
    outcome = SheetParseOutcome()
    seen_projects: set[str] = set()

    for sheet_name, grid in raw_sheets.items():
        sheet_name = str(sheet_name)
        _check_grid(sheet_name, grid)
        if progress is not None:
            progress.start_sheet(sheet_name)

        if len(grid) < 2:
            logger.debug("sheet=%s skipped (no data rows)", sheet_name)
            if progress is not None:
                progress.finish_sheet(0)
            continue

        outcome.sprints.append(sheet_name)
        columns = locate_columns(grid[0] or [], column_aliases)
        missing = [COLUMN_LABELS[f] for f, idx in columns.items() if idx is None]
        if missing:
            logger.debug("sheet=%s columns not found: %s", sheet_name, missing)

        emitted = 0
        for row in grid[1:]:
            if not row:
                continue
            draft, findings = _parse_row(
                row, columns, sheet_name, len(outcome.drafts) + 1, null_sentinels
            )
            if draft is None:
                continue
            outcome.drafts.append(draft)
            outcome.findings.extend(findings)
            emitted += 1
            if draft.project and draft.project not in seen_projects:
                seen_projects.add(draft.project)
                outcome.projects.append(draft.project)

        logger.debug("sheet=%s parsed rows=%d", sheet_name, emitted)
        if progress is not None:
            progress.finish_sheet(emitted)

    return outcome


def _parse_row(
    row: Sequence[Any],
    columns: Mapping[str, int | None],
    sprint: str,
    row_index: int,
    null_sentinels: Collection[str],
) -> tuple[TaskDraft | None, list[ValidationFinding]]:
    """Coerce one data row. Returns (None, []) for a blank spacer row."""
    values: dict[str, Any] = {}
    for field_name in REQUIRED_FIELDS:
        values[field_name] = coerce_text(_cell(row, columns[field_name]), null_sentinels).value

    if not any(values[f] for f in REQUIRED_FIELDS):
        return None, []

    findings = [
        ValidationFinding.error(row_index, COLUMN_LABELS[f], message)
        for f, message in REQUIRED_FIELDS.items()
        if not values[f]
    ]
    for field_name, rule in VALIDATED_RULES.items():
        coerced = rule(_cell(row, columns[field_name]), null_sentinels)
        values[field_name] = coerced.value
        if coerced.message is not None:
            findings.append(ValidationFinding.warning(row_index, COLUMN_LABELS[field_name], coerced.message))
    for field_name, rule in DEFAULTED_RULES.items():
        values[field_name] = rule(_cell(row, columns[field_name]), null_sentinels).value

    return TaskDraft(sprint=sprint, row_index=row_index, **values), findings
