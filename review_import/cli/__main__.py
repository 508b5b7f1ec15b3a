from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from review_import.config.loader import ConfigError, ImportConfig, load_config
from review_import.logging.init import log_summary, setup_logging
from review_import.services.orchestrator import ProcessingError, process_all, scan_review_files
from review_import.services.summary import render_summary_line
from review_import.storage.base import Storage, StorageError
from review_import.storage.json_store import JsonFileStorage
from review_import.storage.postgres import PostgresStorage

"""CLI entrypoint.

Flow:
- Load .env, then config/import.yml
- Open the configured storage (JSON files or PostgreSQL)
- Import every .xlsx/.xls of source_directory and print the SUMMARY line

Exit codes: 0 all files imported, 2 at least one file failed, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

CONFIG_PATH = Path("config/import.yml")


def _resolve_dsn(cfg: ImportConfig) -> str:
    """DSN resolution order: DATABASE_URL / PGDSN, then PG* variables, then config."""
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_cursor(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (needs a live database)
    conn = psycopg2.connect(_resolve_dsn(cfg))
    conn.autocommit = False  # PostgresStorage issues COMMIT / ROLLBACK per import
    try:
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


@contextmanager
def _open_storage(cfg: ImportConfig) -> Iterator[Storage]:
    if cfg.storage == "postgres":
        with _db_cursor(cfg) as cur:
            storage = PostgresStorage(cur, table=cfg.database.table, history_limit=cfg.history_limit)
            storage.ensure_table()
            yield storage
    else:
        yield JsonFileStorage(Path(cfg.data_directory), history_limit=cfg.history_limit)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over variables already in the process."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Performance review Excel importer")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print header blocks, rosters & sample records then exit")
    p.add_argument("--history", action="store_true", help="Print the import history then exit")
    p.add_argument("--config", type=Path, default=CONFIG_PATH, help="Config file (default: config/import.yml)")
    return p.parse_args(argv)


def _json_safe(record: dict[str, Any]) -> dict[str, Any]:
    return {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in record.items()}


def _inspect_data(cfg: ImportConfig) -> int:
    from review_import.excel.reader import SheetReadError, read_sheet_matrix
    from review_import.parser.columns import map_columns
    from review_import.parser.segmenter import segment
    from review_import.parser.service import SheetStructureError, parse_rows

    try:
        files = scan_review_files(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no .xlsx/.xls files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            matrix = read_sheet_matrix(f)
        except SheetReadError as e:
            print(f"  read_error: {e}")
            continue
        print(f"  SHEET: {matrix.sheet_name} rows={len(matrix.rows)}")
        for block in segment(matrix.rows, cfg.sentinel_label, sheet=matrix.sheet_name):
            column_map = map_columns(block.raw_header_labels)
            roles = {role.value: index for role, index in column_map.fixed.items()}
            print(
                f"    BLOCK: header_row={block.header_row_index + 1} data_rows={len(block.data_rows)} "
                f"roster={list(column_map.roster)} columns={roles}"
            )
        try:
            result = parse_rows(matrix.rows, f.name, sheet=matrix.sheet_name, id_prefix="inspect", settings=cfg.parser_settings)
        except SheetStructureError as e:
            print(f"  parse_error: {e}")
            continue
        sample = [_json_safe(r) for r in result.record_dicts()[:3]]
        print(f"  records={result.metadata.total_records} periods={result.metadata.detected_periods}")
        print("  sample_records=", json.dumps(sample, ensure_ascii=False))
    return EXIT_SUCCESS_ALL


def _print_history(storage: Storage) -> int:
    for entry in storage.list_history():
        print(json.dumps(_json_safe(entry), ensure_ascii=False))
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when argv is None (tests call main([]))
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        for h in logger.handlers:
            h.setLevel("DEBUG")
        logger.setLevel("DEBUG")
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(cfg)

    directory = Path(cfg.source_directory)
    if not args.history and not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    try:
        with _open_storage(cfg) as storage:
            if args.history:
                return _print_history(storage)
            logger.info(f"Importing files from: {directory} (storage={cfg.storage})")
            result = process_all(cfg, storage)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except StorageError as e:
        logger.error(f"storage: {e}")
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"database error: {e}")
        return EXIT_FATAL

    total_files = result.success_files + result.failed_files
    summary_line = render_summary_line(total_files, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
