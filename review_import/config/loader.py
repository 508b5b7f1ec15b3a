from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..parser.records import DEFAULT_SUMMARY_MARKERS
from ..parser.segmenter import DEFAULT_SENTINEL
from ..parser.service import ParserSettings

"""Config loader.

Responsibilities:
- Load YAML config/import.yml
- Validate it against config_schema.json (shipped next to this module)
- Apply defaults for every optional key
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

DEFAULT_DATA_DIRECTORY = "./data"
DEFAULT_HISTORY_LIMIT = 100
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_TABLE = "performance_records"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Fallback connection settings; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    table: str = DEFAULT_TABLE


@dataclass(frozen=True)
class ImportConfig:
    source_directory: str
    data_directory: str = DEFAULT_DATA_DIRECTORY
    storage: str = "json"
    sentinel_label: str = DEFAULT_SENTINEL
    summary_markers: tuple[str, ...] = DEFAULT_SUMMARY_MARKERS
    history_limit: int = DEFAULT_HISTORY_LIMIT
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @property
    def parser_settings(self) -> ParserSettings:
        return ParserSettings(sentinel_label=self.sentinel_label, summary_markers=self.summary_markers)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
        table=db_raw.get("table", DEFAULT_TABLE),
    )
    return ImportConfig(
        source_directory=data["source_directory"],
        data_directory=data.get("data_directory", DEFAULT_DATA_DIRECTORY),
        storage=data.get("storage", "json"),
        sentinel_label=data.get("sentinel_label", DEFAULT_SENTINEL),
        summary_markers=tuple(data.get("summary_markers", DEFAULT_SUMMARY_MARKERS)),
        history_limit=data.get("history_limit", DEFAULT_HISTORY_LIMIT),
        max_upload_bytes=data.get("max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES),
        database=db,
    )
