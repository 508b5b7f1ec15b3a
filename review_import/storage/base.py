from __future__ import annotations

from typing import Any, Protocol

from ..models.parse_result import ImportMetadata

"""Storage interface injected into the import service.

The parser never persists anything; the caller hands its records and
metadata to a Storage implementation and gets an import id back.
"""

__all__ = [
    "Storage",
    "StorageError",
    "RecordNotFoundError",
]


class StorageError(Exception):
    """Raised when persisted data cannot be read or written."""


class RecordNotFoundError(StorageError):
    """Raised when an operation targets a record that does not exist."""


class Storage(Protocol):
    def save(self, records: list[dict[str, Any]], metadata: ImportMetadata) -> int:
        """Persist one import; returns its id."""
        ...

    def list_history(self) -> list[dict[str, Any]]:
        """Import history entries, most recent first."""
        ...
