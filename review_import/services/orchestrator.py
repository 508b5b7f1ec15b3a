from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ..config.loader import DEFAULT_MAX_UPLOAD_BYTES, ImportConfig
from ..excel.reader import SheetReadError
from ..logging.diagnostic_log import DiagnosticLogBuffer
from ..models.diagnostic import DiagnosticRecord
from ..models.import_file import FileStatus, ImportFile
from ..models.parse_result import ParseResult
from ..models.processing_result import FileStat, ProcessingResult
from ..parser.service import ParserSettings, SheetStructureError, parse_excel_file
from ..storage.base import Storage, StorageError
from .progress import ProgressTracker

"""Import orchestration.

import_upload(): one uploaded file -> parse -> save, temp file always removed.
process_all():   every review export in a directory, one file at a time;
                 a failing file is recorded and the run continues.

A file either imports completely or not at all: structural parse errors
and storage errors fail the whole file, row-level problems only produce
diagnostics.
"""

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".xlsx", ".xls"})


class ProcessingError(Exception):
    """Fatal error that prevents a directory run from starting."""


class UploadRejectedError(Exception):
    """Raised for uploads with a wrong extension or over the size limit."""


@dataclass(frozen=True)
class ImportOutcome:
    import_id: int
    result: ParseResult


def scan_review_files(directory: Path) -> list[Path]:
    """List .xlsx/.xls files of a directory (non-recursive, sorted by name).

    Raises:
        ProcessingError: directory missing, not a directory, or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in ALLOWED_EXTENSIONS and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _check_upload(path: Path, original_filename: str, max_bytes: int) -> None:
    if Path(original_filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise UploadRejectedError("只支持Excel文件格式(.xlsx, .xls)")
    size = path.stat().st_size
    if size > max_bytes:
        raise UploadRejectedError(f"file too large: {size} bytes (limit {max_bytes})")


def import_file(
    path: Path,
    storage: Storage,
    *,
    original_filename: str | None = None,
    settings: ParserSettings | None = None,
) -> ImportOutcome:
    """Parse one workbook and persist its records.

    Raises:
        SheetReadError / SheetStructureError: file cannot be parsed
        StorageError: records could not be saved
    """
    name = original_filename or path.name
    logger.info("importing %s", name)
    result = parse_excel_file(path, name, settings)
    import_id = storage.save(result.record_dicts(), result.metadata)
    logger.info(
        "imported %s: import_id=%d records=%d periods=%s",
        name, import_id, result.metadata.total_records, result.metadata.detected_periods,
    )
    return ImportOutcome(import_id=import_id, result=result)


def import_upload(
    path: Path,
    original_filename: str,
    storage: Storage,
    *,
    config: ImportConfig | None = None,
    settings: ParserSettings | None = None,
    max_upload_bytes: int | None = None,
) -> ImportOutcome:
    """Import a temporary uploaded file; the file is deleted on every exit path.

    Parser settings and the size limit are taken from config unless passed
    explicitly; with neither, the defaults apply.

    Raises:
        UploadRejectedError: extension not .xlsx/.xls or file over max_upload_bytes
        SheetReadError / SheetStructureError / StorageError: as import_file()
    """
    if config is not None:
        settings = settings or config.parser_settings
        if max_upload_bytes is None:
            max_upload_bytes = config.max_upload_bytes
    if max_upload_bytes is None:
        max_upload_bytes = DEFAULT_MAX_UPLOAD_BYTES
    try:
        _check_upload(path, original_filename, max_upload_bytes)
        return import_file(path, storage, original_filename=original_filename, settings=settings)
    except (UploadRejectedError, SheetReadError, SheetStructureError, StorageError) as e:
        logger.error("import failed: %s: %s", original_filename, e)
        raise
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as cleanup_error:
            logger.warning("failed to remove temporary upload %s: %s", path, cleanup_error)


_FAILURE_KINDS: dict[type[Exception], str] = {
    SheetReadError: "SHEET_READ_ERROR",
    SheetStructureError: "SHEET_STRUCTURE_ERROR",
    StorageError: "STORAGE_ERROR",
}


def _process_single_file(
    file_path: Path,
    storage: Storage,
    settings: ParserSettings,
    diagnostics: DiagnosticLogBuffer,
) -> ImportFile:
    start_time = datetime.now(UTC)
    try:
        outcome = import_file(file_path, storage, settings=settings)
    except (SheetReadError, SheetStructureError, StorageError) as e:
        logger.error("%s: %s", file_path.name, e)
        diagnostics.append(DiagnosticRecord.create(
            file=file_path.name,
            sheet="<FILE_LEVEL>",
            row=-1,
            kind=next(kind for cls, kind in _FAILURE_KINDS.items() if isinstance(e, cls)),
            message=str(e),
        ))
        return ImportFile(
            path=file_path,
            name=file_path.name,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.FAILED,
            error=str(e),
        )

    diagnostics.extend([DiagnosticRecord.from_parse(file_path.name, d) for d in outcome.result.diagnostics])
    return ImportFile(
        path=file_path,
        name=file_path.name,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.SUCCESS,
        total_records=outcome.result.metadata.total_records,
        block_count=outcome.result.block_count,
        import_id=outcome.import_id,
    )


def process_all(config: ImportConfig, storage: Storage, diagnostics: DiagnosticLogBuffer | None = None) -> ProcessingResult:
    """Import every review export in config.source_directory.

    Raises:
        ProcessingError: the source directory cannot be scanned
    """
    start_time = datetime.now(UTC)
    diagnostics = diagnostics if diagnostics is not None else DiagnosticLogBuffer()
    settings = config.parser_settings

    file_paths = scan_review_files(Path(config.source_directory))

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_records = 0

    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            imported = _process_single_file(file_path, storage, settings, diagnostics)

            if imported.status == FileStatus.SUCCESS:
                success_count += 1
                total_records += imported.total_records
            else:
                failed_count += 1

            progress.set_postfix(success=success_count, failed=failed_count, records=total_records)
            progress.finish_file(success=(imported.status == FileStatus.SUCCESS))

            elapsed = (imported.end_time - imported.start_time).total_seconds() if imported.start_time and imported.end_time else 0.0
            file_stats.append(FileStat(
                file_name=imported.name,
                status=imported.status.value,
                records=imported.total_records,
                elapsed_seconds=elapsed,
                import_id=imported.import_id,
                error=imported.error,
            ))

    try:
        log_path = diagnostics.flush()
    except OSError as e:
        logger.warning("could not write diagnostic log: %s", e)
    else:
        if log_path is not None:
            logger.info("diagnostics written to %s", log_path)

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput = total_records / elapsed_seconds if elapsed_seconds > 0 else 0.0

    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        total_records=total_records,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput,
        file_stats=file_stats,
    )
