"""Storage backends for imported review records."""

from .base import RecordNotFoundError, Storage, StorageError
from .json_store import JsonFileStorage
from .postgres import PostgresStorage

__all__ = [
    "Storage",
    "StorageError",
    "RecordNotFoundError",
    "JsonFileStorage",
    "PostgresStorage",
]
