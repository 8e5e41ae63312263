from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display service with tqdm (TTY only).

Shows one bar over the sheets of a workbook while the row parser walks them.
In non-TTY environments (CI, piped output) the bar is disabled entirely to
avoid ANSI control sequence spam.
"""

__all__ = [
    "SheetProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class SheetProgress:
    """Progress tracker using tqdm for sheet parsing."""

    def __init__(self, total_sheets: int, *, description: str = "Parsing sheets") -> None:
        self.total_sheets = total_sheets
        self.description = description
        self.current_sheet = 0
        self.parsed_rows = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_sheets,
                desc=description,
                unit="sheet",
                leave=False,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_sheet(self, sheet_name: str) -> None:
        self.current_sheet += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({sheet_name})")

    def finish_sheet(self, rows_parsed: int = 0) -> None:
        """Finish a sheet, adding its emitted drafts to the running total."""
        self.parsed_rows += rows_parsed
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(rows=self.parsed_rows)
            self.pbar.set_description(self.description)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> SheetProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
