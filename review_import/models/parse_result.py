from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .diagnostic import ParseDiagnostic
from .indicator_record import IndicatorRecord

"""Parse result models handed from the parser to the storage layer."""

__all__ = [
    "ImportMetadata",
    "ParseResult",
]


@dataclass(frozen=True)
class ImportMetadata:
    original_filename: str
    detected_periods: list[str]
    total_records: int
    headers: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalFilename": self.original_filename,
            "detectedPeriods": list(self.detected_periods),
            "totalRecords": self.total_records,
            "headers": list(self.headers),
        }


@dataclass(frozen=True)
class ParseResult:
    """Records of one sheet plus metadata and the notes collected on the way."""
    records: list[IndicatorRecord]
    metadata: ImportMetadata
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)
    block_count: int = 0

    def record_dicts(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self.records]

    def to_payload(self) -> dict[str, Any]:
        """JSON-serializable payload (records + metadata)."""
        payload = self.metadata.to_dict()
        payload["data"] = self.record_dicts()
        return payload
