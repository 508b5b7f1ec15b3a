from __future__ import annotations

import re
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT via psycopg2.extras.execute_values.

Used by the Postgres storage to write one row per indicator record.
Transaction boundaries (COMMIT / ROLLBACK) belong to the caller.
"""

__all__ = [
    "BatchInsertError",
    "InsertResult",
    "batch_insert",
    "validate_identifier",
]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    elapsed_seconds: float = 0.0


def validate_identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise BatchInsertError(f"invalid SQL identifier: {name!r}")
    return name


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    template: str | None = None,
) -> InsertResult:
    """Insert rows in pages of page_size.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table (plain identifier)
    columns: insert columns, same order as each row
    rows: row sequences
    page_size: execute_values page size
    template: optional VALUES template, e.g. "(%s,%s,%s::jsonb)"
    """
    validate_identifier(table)
    for c in columns:
        validate_identifier(c)

    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"

    start = time.time()
    try:
        execute_values(cursor, sql, rows_list, template=template, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    return InsertResult(inserted_rows=len(rows_list), elapsed_seconds=time.time() - start)
