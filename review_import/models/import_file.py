from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

"""ImportFile domain model and FileStatus enum.

ImportFile is the processing context for one spreadsheet during a directory
run, tracking it from discovery to success/failure.
"""


class FileStatus(Enum):
    """Lifecycle of one file: pending → processing → (success | failed)."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportFile:
    path: Path
    name: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    total_records: int = 0
    block_count: int = 0
    import_id: int | None = None
    error: str | None = None  # 失敗理由
