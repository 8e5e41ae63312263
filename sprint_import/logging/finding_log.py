from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.finding import ValidationFinding

"""Finding log buffering.

Findings of a parse run are buffered in memory and written once as JSON Lines
(fixed key set: row, column, message, severity) to
logs/findings-YYYYMMDD-HHMMSS.log (UTC). The file is created on first flush
that has something to write.
"""

__all__ = [
    "FindingLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class FindingLogBuffer:
    """In-memory buffer of findings; flush() appends them to the log file."""

    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self._records: list[ValidationFinding] = []
        self._logs_dir = logs_dir
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"findings-{stamp}.log"
        return self._file_path

    def append(self, finding: ValidationFinding) -> None:
        self._records.append(finding)

    def extend(self, findings: Iterable[ValidationFinding]) -> None:
        self._records.extend(findings)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered findings; returns the file path, or None when empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
