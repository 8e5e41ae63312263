from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook decoder: spreadsheet file -> raw sheet grids.

Each sheet becomes a list of rows (first row = headers) of plain Python cell
values; empty cells are None. No header or value interpretation happens here,
that belongs to the row parser. CSV files decode to a single sheet named
after the file stem.
"""

SUPPORTED_SUFFIXES = (".xlsx", ".xls", ".csv")

RawSheets = dict[str, list[list[Any]]]


class WorkbookReadError(Exception):
    """Raised when a file cannot be decoded into sheet grids."""


def _frame_to_grid(df: pd.DataFrame) -> list[list[Any]]:
    cleaned = df.astype(object).where(df.notna(), None)
    return [list(row) for row in cleaned.itertuples(index=False, name=None)]


def read_workbook(path: Path, target_sheets: Iterable[str] | None = None) -> RawSheets:
    """Read every sheet (or only target_sheets) of a workbook as raw grids.

    Parameters
    ----------
    path: .xlsx / .xls / .csv file
    target_sheets: restrict to these sheet names (None = all, workbook order)
    """
    if not path.exists():
        raise WorkbookReadError(f"file not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise WorkbookReadError(f"unsupported file type: {path.suffix or '<none>'}")

    try:
        if suffix == ".csv":
            # keep every cell as text; "" is an absent cell for the parser
            df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
            return {path.stem: _frame_to_grid(df)}

        wanted = set(target_sheets) if target_sheets is not None else None
        sheets: RawSheets = {}
        with pd.ExcelFile(path) as xls:
            for name in xls.sheet_names:
                if wanted is not None and str(name) not in wanted:
                    continue
                # header=None: the first row stays a data row for the parser.
                # keep_default_na=False: texts like "NA" are kept literally
                df = xls.parse(name, header=None, keep_default_na=False, na_values=[""])
                sheets[str(name)] = _frame_to_grid(df)
        return sheets
    except WorkbookReadError:
        raise
    except Exception as e:
        raise WorkbookReadError(f"failed to read {path.name}: {e}") from e
