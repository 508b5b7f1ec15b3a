from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..models.parse_result import ImportMetadata
from .base import RecordNotFoundError, StorageError

"""Flat JSON file storage.

Layout below data_dir:

    performance/performance_<id>.json   one document per import:
                                        {metadata, data, importTime, id}
    imports/history.json                import history, most recent first,
                                        capped at history_limit entries

Point updates and deletes are linear scan-and-rewrite over the documents.
"""

__all__ = ["JsonFileStorage"]

logger = logging.getLogger(__name__)

PERFORMANCE_DIR = "performance"
IMPORTS_DIR = "imports"
HISTORY_FILE = "history.json"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class JsonFileStorage:
    def __init__(self, data_dir: Path, history_limit: int = 100) -> None:
        self.data_dir = Path(data_dir)
        self.history_limit = history_limit
        self._initialized = False

    @property
    def performance_dir(self) -> Path:
        return self.data_dir / PERFORMANCE_DIR

    @property
    def history_path(self) -> Path:
        return self.data_dir / IMPORTS_DIR / HISTORY_FILE

    def _init_dirs(self) -> None:
        if self._initialized:
            return
        for d in (self.performance_dir, self.history_path.parent):
            d.mkdir(parents=True, exist_ok=True)
        self._initialized = True

    @staticmethod
    def _read_json(path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StorageError(f"corrupt json document {path}: {e}") from e
        except OSError as e:
            raise StorageError(f"cannot read {path}: {e}") from e

    @staticmethod
    def _write_json(path: Path, obj: Any) -> None:
        try:
            path.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"cannot write {path}: {e}") from e

    def _next_id(self) -> int:
        import_id = int(time.time() * 1000)
        while (self.performance_dir / f"performance_{import_id}.json").exists():
            import_id += 1
        return import_id

    # ------------------------------------------------------------------ save / history

    def save(self, records: list[dict[str, Any]], metadata: ImportMetadata) -> int:
        """Write one import document and prepend its history entry."""
        self._init_dirs()
        import_id = self._next_id()
        path = self.performance_dir / f"performance_{import_id}.json"
        import_time = _now_iso()
        self._write_json(path, {
            "metadata": metadata.to_dict(),
            "data": records,
            "importTime": import_time,
            "id": import_id,
        })
        self._append_history({
            "id": import_id,
            "filename": metadata.original_filename,
            "filepath": str(path),
            "recordCount": len(records),
            "periods": list(metadata.detected_periods),
            "status": "success",
            "importTime": import_time,
        })
        logger.debug("saved import id=%d records=%d path=%s", import_id, len(records), path)
        return import_id

    def _append_history(self, entry: dict[str, Any]) -> None:
        history = self.list_history()
        history.insert(0, entry)
        self._write_json(self.history_path, history[: self.history_limit])

    def list_history(self) -> list[dict[str, Any]]:
        self._init_dirs()
        if not self.history_path.exists():
            return []
        history = self._read_json(self.history_path)
        if not isinstance(history, list):
            raise StorageError(f"history file {self.history_path} is not a list")
        return history

    # ------------------------------------------------------------------ read

    def _documents(self) -> Iterator[tuple[Path, dict[str, Any]]]:
        self._init_dirs()
        for path in sorted(self.performance_dir.glob("*.json")):
            doc = self._read_json(path)
            if isinstance(doc, dict) and isinstance(doc.get("data"), list):
                yield path, doc
            else:
                logger.warning("skipping %s: no data array", path.name)

    def load_all(self) -> dict[str, Any]:
        """All imported records merged across documents, newest import first."""
        records: list[dict[str, Any]] = []
        periods: dict[str, None] = {}
        for _, doc in self._documents():
            metadata = doc.get("metadata") or {}
            for record in doc["data"]:
                records.append({
                    **record,
                    "importFile": metadata.get("originalFilename"),
                    "importTime": doc.get("importTime"),
                })
            for period in metadata.get("detectedPeriods") or []:
                periods.setdefault(period, None)
        # ISO-8601 UTC strings sort chronologically; stable sort keeps row order
        records.sort(key=lambda r: r.get("importTime") or "", reverse=True)
        return {
            "records": records,
            "periods": list(periods),
            "totalRecords": len(records),
            "summary": {
                "totalEmployees": len({r.get("employeeName") for r in records}),
                "totalPeriods": len(periods),
                "latestImport": records[0]["importTime"] if records else None,
            },
        }

    def latest(self) -> dict[str, Any] | None:
        """The most recently written import document, or None."""
        docs = list(self._documents())
        if not docs:
            return None
        path, doc = max(docs, key=lambda item: (item[0].stat().st_mtime, item[0].name))
        return doc

    # ------------------------------------------------------------------ point mutations

    def _rewrite(self, mutate: Callable[[list[dict[str, Any]]], tuple[list[dict[str, Any]], int]], *, first_only: bool = False) -> int:
        """Apply mutate() to every document's data; rewrite documents that changed."""
        touched = 0
        for path, doc in self._documents():
            data, changed = mutate(doc["data"])
            if not changed:
                continue
            doc["data"] = data
            metadata = doc.setdefault("metadata", {})
            metadata["totalRecords"] = len(data)
            metadata["lastModified"] = _now_iso()
            self._write_json(path, doc)
            touched += changed
            if first_only:
                break
        return touched

    def delete_employee(self, employee_name: str) -> int:
        def mutate(data: list[dict[str, Any]]) -> tuple[list[dict[str, Any]], int]:
            kept = [r for r in data if r.get("employeeName") != employee_name]
            return kept, len(data) - len(kept)

        deleted = self._rewrite(mutate)
        logger.info("deleted %d record(s) of employee %s", deleted, employee_name)
        return deleted

    def delete_indicator(self, indicator_id: str) -> bool:
        def mutate(data: list[dict[str, Any]]) -> tuple[list[dict[str, Any]], int]:
            kept = [r for r in data if r.get("id") != indicator_id]
            return kept, len(data) - len(kept)

        return self._rewrite(mutate, first_only=True) > 0

    def update_employee(self, employee_name: str, changes: dict[str, Any]) -> int:
        def mutate(data: list[dict[str, Any]]) -> tuple[list[dict[str, Any]], int]:
            count = 0
            out = []
            for r in data:
                if r.get("employeeName") == employee_name:
                    r = {**r, **changes, "id": r.get("id"), "lastModified": _now_iso()}
                    count += 1
                out.append(r)
            return out, count

        updated = self._rewrite(mutate)
        logger.info("updated %d record(s) of employee %s", updated, employee_name)
        return updated

    def update_indicator(self, indicator_id: str, changes: dict[str, Any]) -> bool:
        def mutate(data: list[dict[str, Any]]) -> tuple[list[dict[str, Any]], int]:
            count = 0
            out = []
            for r in data:
                if r.get("id") == indicator_id:
                    r = {**r, **changes, "id": indicator_id, "lastModified": _now_iso()}
                    count += 1
                out.append(r)
            return out, count

        return self._rewrite(mutate, first_only=True) > 0

    def create_indicator(self, indicator: dict[str, Any]) -> str:
        """Append a hand-entered indicator to the document holding that employee and period.

        Raises:
            RecordNotFoundError: no document has a record for that employee and period
        """
        name = indicator.get("employeeName")
        period = indicator.get("evaluationPeriod")
        for path, doc in self._documents():
            data = doc["data"]
            if not any(r.get("employeeName") == name and r.get("evaluationPeriod") == period for r in data):
                continue
            max_index = -1
            for r in data:
                _, _, suffix = str(r.get("id", "")).rpartition("_")
                if suffix.isdigit():
                    max_index = max(max_index, int(suffix))
            new_id = f"{int(time.time() * 1000)}_{max_index + 1}"
            template = data[0]
            data.append({
                "id": new_id,
                "employeeName": name,
                "employeeId": indicator.get("employeeId", ""),
                "department": indicator.get("department", ""),
                "position": "",
                "evaluationForm": indicator.get("evaluationForm", ""),
                "evaluationPeriod": period or "",
                "currentNode": indicator.get("currentNode", ""),
                "dimensionName": indicator.get("dimensionName", ""),
                "indicatorName": indicator.get("indicatorName", ""),
                "assessmentStandard": indicator.get("assessmentStandard", ""),
                "weight": indicator.get("weight"),
                "selfEvaluationResult": indicator.get("selfEvaluationResult", ""),
                "supervisorEvaluationResult": indicator.get("supervisorEvaluationResult", ""),
                "level": template.get("level", ""),
                "evaluator": template.get("evaluator", ""),
                "evaluationDate": template.get("evaluationDate"),
                "comments": "",
                "rawRowIndex": len(data) + 2,
                "createdAt": _now_iso(),
            })
            metadata = doc.setdefault("metadata", {})
            metadata["totalRecords"] = len(data)
            metadata["lastModified"] = _now_iso()
            self._write_json(path, doc)
            logger.info("created indicator id=%s employee=%s", new_id, name)
            return new_id
        raise RecordNotFoundError(f"no import holds employee '{name}' for period '{period}'")
