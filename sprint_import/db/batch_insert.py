from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""DB batch insert helper.

Batched INSERT using psycopg2.extras.execute_values. With returning=True the
statement gets a RETURNING clause and the returned rows (across every page) are
collected via execute_values(fetch=True).
"""


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Metrics data for a single batch insert operation."""
    batch_size: int  # Number of rows in this batch
    elapsed_seconds: float  # Time spent on execute_values call
    start_time: float  # Start timestamp (time.time())
    end_time: float  # End timestamp (time.time())


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: str | None = None,
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Perform batched INSERT using psycopg2.extras.execute_values.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table (trusted identifier, never user input)
    columns: insert columns
    rows: row sequences, in column order
    returning: column list for a RETURNING clause (e.g. "id"), None for no clause
    page_size: execute_values page size
    metrics_callback: receives BatchMetrics after the statement ran.
        Not invoked when rows is empty (the function returns early).
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if returning:
        sql += f" RETURNING {returning}"

    start_time = time.time()
    returned = None
    try:
        result = execute_values(cursor, sql, rows_list, page_size=page_size, fetch=bool(returning))
        if returning:
            returned = [tuple(r) for r in result]
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(BatchMetrics(
                batch_size=len(rows_list),
                elapsed_seconds=end_time - start_time,
                start_time=start_time,
                end_time=end_time,
            ))

    return InsertResult(inserted_rows=len(rows_list), returned_values=returned)
