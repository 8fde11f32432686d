from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from psycopg2.extras import execute_values

"""DB batch upsert.

psycopg2.extras.execute_values INSERT with an ``ON CONFLICT ... DO UPDATE``
clause, so re-committing a tracked file overwrites its previous row.
Table and column names come from validated configuration only.
"""

__all__ = [
    "BatchUpsertError",
    "batch_upsert",
]


class BatchUpsertError(Exception):
    pass


def build_upsert_sql(table: str, columns: Sequence[str], conflict_columns: Sequence[str]) -> str:
    cols_sql = ",".join(f'"{c}"' for c in columns)
    conflict_sql = ",".join(f'"{c}"' for c in conflict_columns)
    updates = [c for c in columns if c not in conflict_columns]
    if updates:
        set_sql = ",".join(f'"{c}"=EXCLUDED."{c}"' for c in updates)
        action = f"DO UPDATE SET {set_sql}"
    else:
        action = "DO NOTHING"
    return f"INSERT INTO {table} ({cols_sql}) VALUES %s ON CONFLICT ({conflict_sql}) {action}"


def batch_upsert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    conflict_columns: Sequence[str],
    page_size: int = 1000,
) -> int:
    """Upsert ``rows`` into ``table``; returns the number of rows sent.

    Raises:
        BatchUpsertError: wraps any driver error
    """
    rows_list = list(rows)
    if not rows_list:
        return 0
    sql = build_upsert_sql(table, columns, conflict_columns)
    try:
        execute_values(cursor, sql, rows_list, page_size=page_size)
    except Exception as e:
        raise BatchUpsertError(str(e)) from e
    return len(rows_list)
