from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""Diagnostic models for the parser and the import run.

ParseDiagnostic is produced by the parser itself (pure, no timestamp).
DiagnosticRecord is the JSON Lines form written to the diagnostic log once
the file name and the wall clock are known.

row=-1 is used for notes that are not tied to a single sheet row
(duplicate columns, file-level failures).
"""

__all__ = [
    "ParseDiagnostic",
    "DiagnosticRecord",
]


@dataclass(frozen=True)
class ParseDiagnostic:
    """A recoverable problem noticed while parsing one sheet.

    Attributes:
        sheet: Sheet name
        row: 1-based sheet row, -1 when not row specific
        kind: Classification in UPPER_SNAKE_CASE (e.g. ROW_MALFORMED)
        message: Human readable detail
    """
    sheet: str
    row: int
    kind: str
    message: str


@dataclass(frozen=True)
class DiagnosticRecord:
    """Structured diagnostic line for the JSON Lines log.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Original file name
        sheet: Sheet name, "<FILE_LEVEL>" for whole-file failures
        row: 1-based row number, -1 when unknown
        kind: UPPER_SNAKE classification
        message: Detail
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int
    kind: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, kind: str, message: str) -> DiagnosticRecord:
        """Create a new DiagnosticRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return DiagnosticRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            kind=kind,
            message=message,
        )

    @staticmethod
    def from_parse(file: str, diagnostic: ParseDiagnostic) -> DiagnosticRecord:
        return DiagnosticRecord.create(
            file=file,
            sheet=diagnostic.sheet,
            row=diagnostic.row,
            kind=diagnostic.kind,
            message=diagnostic.message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
