from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

"""ValidationFinding model.

Findings are accumulated, never raised: every per-cell problem and every
responsible name that fails to resolve becomes one finding attached to a row.
row=0 is reserved for systemic (decode-level) failures reported in the
"Sistema" column.
"""

__all__ = [
    "Severity",
    "ValidationFinding",
    "SYSTEM_COLUMN",
]

SYSTEM_COLUMN = "Sistema"


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationFinding:
    """Structured validation finding.

    Attributes:
        row: row_index of the offending draft (1-based). 0 for systemic failures
        column: Spreadsheet column label (e.g. "Projeto", "Responsável")
        message: Human readable description shown next to the cell
        severity: ERROR blocks the row, WARNING is advisory
    """
    row: int
    column: str
    message: str
    severity: Severity

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    @staticmethod
    def error(row: int, column: str, message: str) -> ValidationFinding:
        return ValidationFinding(row=row, column=column, message=message, severity=Severity.ERROR)

    @staticmethod
    def warning(row: int, column: str, message: str) -> ValidationFinding:
        return ValidationFinding(row=row, column=column, message=message, severity=Severity.WARNING)

    @staticmethod
    def system(message: str) -> ValidationFinding:
        """Create the single summary-level finding for a failed decode/parse."""
        return ValidationFinding.error(0, SYSTEM_COLUMN, message)

    def to_dict(self) -> dict[str, object]:
        return {
            "row": self.row,
            "column": self.column,
            "message": self.message,
            "severity": self.severity.value,
        }

    def to_json_line(self) -> str:
        """Serialize to a JSON Lines record (fixed key set)."""
        return json.dumps(self.to_dict(), ensure_ascii=False)
