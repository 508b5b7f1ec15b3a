from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for a directory import run."""


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics (detail rows of ProcessingResult)."""
    file_name: str
    status: str  # success/failed
    records: int
    elapsed_seconds: float
    import_id: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results behind the SUMMARY line."""
    success_files: int
    failed_files: int
    total_records: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float  # total_records / elapsed
    file_stats: list[FileStat] | None = None
