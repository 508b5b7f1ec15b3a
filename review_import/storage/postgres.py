from __future__ import annotations

import json
import logging
import time
from typing import Any

from ..db.batch_insert import BatchInsertError, batch_insert, validate_identifier
from ..models.parse_result import ImportMetadata
from .base import StorageError

"""PostgreSQL storage: one row per indicator record, JSON payload.

    import_id        bigint      (ms timestamp, shared by all rows of one import)
    source_file      text
    employee_name    text
    evaluation_period text
    indicator_name   text
    payload          jsonb       (the serialized IndicatorRecord)
    imported_at      timestamptz default now()

Each save() is its own transaction: COMMIT on success, ROLLBACK on failure.
"""

__all__ = ["PostgresStorage", "INSERT_COLUMNS"]

logger = logging.getLogger(__name__)

INSERT_COLUMNS = (
    "import_id",
    "source_file",
    "employee_name",
    "evaluation_period",
    "indicator_name",
    "payload",
)
_TEMPLATE = "(%s,%s,%s,%s,%s,%s::jsonb)"


class PostgresStorage:
    def __init__(self, cursor: Any, table: str = "performance_records", history_limit: int = 100, page_size: int = 1000) -> None:
        self.cursor = cursor
        self.table = validate_identifier(table)
        self.history_limit = history_limit
        self.page_size = page_size

    def ensure_table(self) -> None:
        self.cursor.execute(
            f"CREATE TABLE IF NOT EXISTS {self.table} ("
            "id bigserial PRIMARY KEY, "
            "import_id bigint NOT NULL, "
            "source_file text, "
            "employee_name text, "
            "evaluation_period text, "
            "indicator_name text, "
            "payload jsonb NOT NULL, "
            "imported_at timestamptz NOT NULL DEFAULT now())"
        )
        self.cursor.execute("COMMIT")

    def save(self, records: list[dict[str, Any]], metadata: ImportMetadata) -> int:
        import_id = int(time.time() * 1000)
        rows = [
            (
                import_id,
                metadata.original_filename,
                r.get("employeeName"),
                r.get("evaluationPeriod"),
                r.get("indicatorName"),
                json.dumps(r, ensure_ascii=False),
            )
            for r in records
        ]
        try:
            result = batch_insert(
                self.cursor,
                table=self.table,
                columns=INSERT_COLUMNS,
                rows=rows,
                page_size=self.page_size,
                template=_TEMPLATE,
            )
            self.cursor.execute("COMMIT")
        except BatchInsertError as e:
            self.cursor.execute("ROLLBACK")
            raise StorageError(f"insert into {self.table} failed: {e}") from e
        logger.debug(
            "table=%s import_id=%d inserted_rows=%d elapsed=%.3fs",
            self.table, import_id, result.inserted_rows, result.elapsed_seconds,
        )
        return import_id

    def list_history(self) -> list[dict[str, Any]]:
        self.cursor.execute(
            f"SELECT import_id, min(source_file), count(*), "
            f"array_remove(array_agg(DISTINCT evaluation_period), NULL), min(imported_at) "
            f"FROM {self.table} GROUP BY import_id ORDER BY import_id DESC LIMIT %s",
            (self.history_limit,),
        )
        history = []
        for import_id, filename, count, periods, imported_at in self.cursor.fetchall():
            history.append({
                "id": import_id,
                "filename": filename,
                "recordCount": count,
                "periods": list(periods or []),
                "status": "success",
                "importTime": imported_at.isoformat() if hasattr(imported_at, "isoformat") else imported_at,
            })
        return history
