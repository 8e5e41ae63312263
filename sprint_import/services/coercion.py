from __future__ import annotations

import math
import re
from collections.abc import Collection
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real
from typing import Any

from ..models.task_draft import TaskCategory, TaskType

"""Cell coercion rules.

Each rule turns one raw cell value into a typed field value and reports whether
the cell was "present". A dash, an empty/whitespace string, None and float NaN
(pandas' empty cell) all mean absent, never zero or false.

Rules fall into three groups that must stay separate:

- required text (project, demand, title): absent -> "" and the row parser
  raises a blocking error for it
- validated values (priority, hours): absent is fine, present-but-invalid
  produces a warning message
- silent defaults (type, category, booleans, responsibles): never produce a
  message, absent simply resolves to the default
"""

__all__ = [
    "Coerced",
    "DEFAULT_NULL_SENTINELS",
    "is_absent",
    "cell_text",
    "coerce_text",
    "coerce_priority",
    "coerce_hours",
    "coerce_type",
    "coerce_category",
    "coerce_bool",
    "coerce_responsibles",
    "PRIORITY_MESSAGE",
    "HOURS_MESSAGE",
]

DEFAULT_NULL_SENTINELS: frozenset[str] = frozenset({"-"})

TRUE_TOKENS = frozenset({"sim", "yes", "true", "1"})

PRIORITY_MESSAGE = "Prioridade deve estar entre p0 e p5."
HOURS_MESSAGE = "Informe a estimativa em horas (ex: 2.5)."

ONE_DECIMAL = Decimal("0.1")

_PRIORITY_RE = re.compile(r"^p?([0-5])$", re.IGNORECASE)


@dataclass(frozen=True)
class Coerced:
    """Result of one coercion rule.

    message is set only when a present value could not be used; the caller
    decides the row/column it belongs to.
    """
    value: Any
    present: bool
    message: str | None = None


def cell_text(value: Any) -> str:
    """Render a raw cell as trimmed text.

    Integral floats lose their ".0" so that a numeric cell 3 read by pandas as
    3.0 compares equal to the text "3".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Real) and not isinstance(value, int):
        f = float(value)
        if math.isfinite(f) and f.is_integer():
            return str(int(f))
        return str(f)
    return str(value).strip()


def is_absent(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    text = cell_text(value)
    return text == "" or text.lower() in null_sentinels


def coerce_text(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> Coerced:
    if is_absent(value, null_sentinels):
        return Coerced("", False)
    return Coerced(cell_text(value), True)


def coerce_priority(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> Coerced:
    """p0..p5 (any case) or a bare 0..5; anything else present is a warning."""
    if is_absent(value, null_sentinels):
        return Coerced(None, False)
    match = _PRIORITY_RE.match(cell_text(value))
    if match is None:
        return Coerced(None, True, PRIORITY_MESSAGE)
    return Coerced(int(match.group(1)), True)


def coerce_hours(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> Coerced:
    """Hours estimate: "2,5h" -> 2.5, "10" -> 10, negatives and junk -> 0."""
    if is_absent(value, null_sentinels):
        return Coerced(0, False)
    text = cell_text(value)
    if text[-1:] in ("h", "H"):
        text = text[:-1].strip()
    text = text.replace(",", ".")
    try:
        hours = float(text)
    except ValueError:
        return Coerced(0, True, HOURS_MESSAGE)
    if not math.isfinite(hours) or hours < 0:
        return Coerced(0, True, HOURS_MESSAGE)
    try:
        # half-up at one decimal: "2.25" -> 2.3, "0,45" -> 0.5
        rounded = Decimal(str(hours)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Coerced(0, True, HOURS_MESSAGE)
    if rounded == rounded.to_integral_value():
        return Coerced(int(rounded), True)
    return Coerced(float(rounded), True)


def coerce_type(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> Coerced:
    if isinstance(value, TaskType):
        return Coerced(value, True)
    if is_absent(value, null_sentinels):
        return Coerced(TaskType.FRONTEND, False)
    text = cell_text(value).lower()
    if "full" in text or "stack" in text:
        return Coerced(TaskType.FULLSTACK, True)
    if "back" in text:
        return Coerced(TaskType.BACKEND, True)
    return Coerced(TaskType.FRONTEND, True)


def coerce_category(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> Coerced:
    if isinstance(value, TaskCategory):
        return Coerced(value, True)
    if is_absent(value, null_sentinels):
        return Coerced(TaskCategory.FEATURE, False)
    text = cell_text(value).lower()
    if "bug" in text:
        return Coerced(TaskCategory.BUG, True)
    if "refin" in text:
        return Coerced(TaskCategory.REFINEMENT, True)
    return Coerced(TaskCategory.FEATURE, True)


def coerce_bool(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> Coerced:
    """Sim/Yes/True/1 -> True; anything else (including "Não") -> False."""
    if is_absent(value, null_sentinels):
        return Coerced(False, False)
    return Coerced(cell_text(value).lower() in TRUE_TOKENS, True)


def coerce_responsibles(value: Any, null_sentinels: Collection[str] = DEFAULT_NULL_SENTINELS) -> Coerced:
    """Split "Illian Souza + natan" into ("illian", "natan").

    Only the first word of each "+"-separated token is kept, lowercased and
    deduplicated in first-seen order.
    """
    if is_absent(value, null_sentinels):
        return Coerced((), False)
    names: list[str] = []
    for token in cell_text(value).split("+"):
        words = token.split()
        if not words:
            continue
        first = words[0].lower()
        if first not in names:
            names.append(first)
    return Coerced(tuple(names), True)
