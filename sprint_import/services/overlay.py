from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import fields, replace
from types import MappingProxyType
from typing import Any

from ..models.task_draft import MergedTask, TaskDraft
from .coercion import (
    coerce_bool,
    coerce_category,
    coerce_hours,
    coerce_priority,
    coerce_responsibles,
    coerce_text,
    coerce_type,
)

"""Reconciliation overlay: user ignores and cell edits on top of a parse.

The drafts are never mutated. The overlay keeps a set of ignored row indices
and a sparse row_index -> {field: value} map of overrides; merge() projects
them onto the drafts on demand. Everything is keyed by row_index, never by
list position, so entries stay valid however the caller sorts or filters.

An overlay belongs to one parse generation: row indices of a new parse mean
different rows, so a new overlay must be created for each parse.
"""

__all__ = [
    "OverlayError",
    "FIELD_ALIASES",
    "ReconciliationOverlay",
    "is_importable",
]

# Column keys used by the spreadsheet UI -> TaskDraft attribute
FIELD_ALIASES: dict[str, str] = {
    "projeto": "project",
    "demanda": "demand_id",
    "prioridade": "priority",
    "titulo": "title",
    "título": "title",
    "tipo": "task_type",
    "categoria": "category",
    "responsavel": "responsibles",
    "responsável": "responsibles",
    "responsaveis": "responsibles",
    "estimativa": "estimate_hours",
    "intercorrencia": "has_incident",
    "intercorrência": "has_incident",
    "entregue": "is_delivered",
}

_FIELD_COERCIONS = {
    "project": coerce_text,
    "demand_id": coerce_text,
    "title": coerce_text,
    "sprint": coerce_text,
    "priority": coerce_priority,
    "estimate_hours": coerce_hours,
    "task_type": coerce_type,
    "category": coerce_category,
    "responsibles": coerce_responsibles,
    "has_incident": coerce_bool,
    "is_delivered": coerce_bool,
}

EDITABLE_FIELDS = frozenset(f.name for f in fields(TaskDraft)) - {"row_index"}


class OverlayError(Exception):
    """Raised for edits that target an unknown row or field."""


def _resolve_field(field_name: str) -> str:
    key = field_name.strip()
    resolved = FIELD_ALIASES.get(key.lower(), key)
    if resolved not in EDITABLE_FIELDS:
        raise OverlayError(f"field not editable: {field_name!r}")
    return resolved


def _coerce_override(field_name: str, value: Any) -> Any:
    """Bring a raw edited value to the draft's type.

    Typed values pass through unchanged; text from the UI goes through the same
    rule the parser uses (its findings are not reported for edits).
    """
    if field_name == "priority" and value is None:
        return None
    if field_name == "priority" and isinstance(value, int) and not isinstance(value, bool):
        # out-of-range numbers go through the text rule and come back as None
        return value if 0 <= value <= 5 else coerce_priority(value).value
    if field_name == "responsibles" and isinstance(value, (list, tuple)):
        return coerce_responsibles(" + ".join(str(v) for v in value)).value
    if field_name in ("has_incident", "is_delivered") and isinstance(value, bool):
        return value
    return _FIELD_COERCIONS[field_name](value).value


class ReconciliationOverlay:
    """Sparse, non-destructive user corrections for one parse generation."""

    def __init__(self, drafts: Sequence[TaskDraft]) -> None:
        self._drafts: tuple[TaskDraft, ...] = tuple(drafts)
        self._row_indices = frozenset(d.row_index for d in self._drafts)
        self._ignored: set[int] = set()
        self._overrides: dict[int, dict[str, Any]] = {}

    @property
    def drafts(self) -> tuple[TaskDraft, ...]:
        return self._drafts

    @property
    def ignored(self) -> frozenset[int]:
        return frozenset(self._ignored)

    @property
    def overrides(self) -> Mapping[int, Mapping[str, Any]]:
        return MappingProxyType({k: MappingProxyType(dict(v)) for k, v in self._overrides.items()})

    def _check_row(self, row_index: int) -> None:
        if row_index not in self._row_indices:
            raise OverlayError(f"unknown row index: {row_index}")

    def toggle_ignore(self, row_index: int) -> bool:
        """Flip the ignore flag of a row; returns True when the row is now ignored."""
        self._check_row(row_index)
        if row_index in self._ignored:
            self._ignored.discard(row_index)
            return False
        self._ignored.add(row_index)
        return True

    def edit_cell(self, row_index: int, field_name: str, value: Any) -> None:
        """Record an override; other overrides of the same row are kept."""
        self._check_row(row_index)
        resolved = _resolve_field(field_name)
        self._overrides.setdefault(row_index, {})[resolved] = _coerce_override(resolved, value)

    def clear_override(self, row_index: int, field_name: str | None = None) -> None:
        """Drop one override of a row, or every override of it when field_name is None."""
        self._check_row(row_index)
        if field_name is None:
            self._overrides.pop(row_index, None)
            return
        entry = self._overrides.get(row_index)
        if entry is None:
            return
        entry.pop(_resolve_field(field_name), None)
        if not entry:
            del self._overrides[row_index]

    def reset(self) -> None:
        self._ignored.clear()
        self._overrides.clear()

    def merge(self) -> list[MergedTask]:
        """Drafts with overrides applied field by field. Ignored rows are kept."""
        return [
            replace(d, **self._overrides[d.row_index]) if d.row_index in self._overrides else d
            for d in self._drafts
        ]


def is_importable(merged: Iterable[MergedTask], ignored: Collection[int]) -> bool:
    """Commit gate: some non-ignored task has project, demand and title.

    Warning-level findings never block.
    """
    return any(t.has_required_fields for t in merged if t.row_index not in ignored)
