from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from review_import.models.diagnostic import DiagnosticRecord

"""Diagnostic log buffering.

Row-level parse notes (skipped rows, duplicate columns, unnamed reviewers)
and whole-file failures are collected during a run and written once as
JSON Lines to `logs/diagnostics-YYYYMMDD-HHMMSS.log` (UTC). The file is
only created when there is something to write.
"""

__all__ = [
    "DiagnosticRecord",
    "DiagnosticLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class DiagnosticLogBuffer:
    """In-memory buffer of DiagnosticRecord; flush() appends JSON Lines.

    The file path is fixed on first access. Single-threaded use only.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[DiagnosticRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"diagnostics-{stamp}.log"
        return self._file_path

    def append(self, record: DiagnosticRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[DiagnosticRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
