from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..excel.reader import is_blank_row, read_sheet_matrix
from ..models.diagnostic import ParseDiagnostic
from ..models.header_block import ColumnRole
from ..models.indicator_record import IndicatorRecord
from ..models.parse_result import ImportMetadata, ParseResult
from .columns import map_columns
from .period import extract_period_from_filename
from .records import DEFAULT_SUMMARY_MARKERS, build_records
from .segmenter import DEFAULT_SENTINEL, segment

"""Sheet parser: raw cell matrix -> ParseResult.

Pipeline (strictly forward):

    segment()  ->  map_columns() per block  ->  build_records() per block

Every block gets its own ColumnMap, so reviewer fields never leak from one
employee block into another. parse_rows is pure: no file access, no state
kept between calls. Only the record id prefix depends on the clock, and
callers can pin it.
"""

__all__ = [
    "SheetStructureError",
    "ParserSettings",
    "parse_rows",
    "parse_excel_file",
]

logger = logging.getLogger(__name__)


class SheetStructureError(Exception):
    """Raised when a sheet cannot be parsed at all (no partial output)."""


@dataclass(frozen=True)
class ParserSettings:
    sentinel_label: str = DEFAULT_SENTINEL
    summary_markers: tuple[str, ...] = DEFAULT_SUMMARY_MARKERS


def _unique_in_order(values: Sequence[str]) -> list[str]:
    seen: dict[str, None] = {}
    for v in values:
        if v and v not in seen:
            seen[v] = None
    return list(seen)


def parse_rows(
    rows: Sequence[list[Any] | None],
    original_filename: str,
    *,
    sheet: str = "Sheet1",
    id_prefix: str | None = None,
    settings: ParserSettings | None = None,
) -> ParseResult:
    """Parse one sheet matrix into indicator records.

    Args:
        rows: Cell rows of the sheet (row 0 is usually a title or blank)
        original_filename: Uploaded file name; supplies the default period
        sheet: Sheet name for diagnostics
        id_prefix: Record id prefix (default: current time in ms)
        settings: Sentinel label / summary markers

    Raises:
        SheetStructureError: empty sheet, fewer than 2 rows, or no usable header row
    """
    settings = settings or ParserSettings()
    if sum(1 for r in rows if not is_blank_row(r)) < 2:
        raise SheetStructureError("sheet needs a header row and at least one data row")

    diagnostics: list[ParseDiagnostic] = []
    blocks = segment(rows, settings.sentinel_label, sheet=sheet, diagnostics=diagnostics)
    if not blocks:  # pragma: no cover (guarded by the row count check)
        raise SheetStructureError("sheet has no rows")

    column_maps = [
        map_columns(
            block.raw_header_labels,
            sheet=sheet,
            header_row=block.header_row_index + 1,
            diagnostics=diagnostics,
        )
        for block in blocks
    ]
    if blocks[0].implicit and column_maps[0].index_of(ColumnRole.INDICATOR_NAME) is None:
        raise SheetStructureError(
            f"no header row found: no row contains '{settings.sentinel_label}' "
            "and the first row has no 指标名称 column"
        )
    logger.info("sheet=%s header blocks=%d", sheet, len(blocks))

    period_hint = extract_period_from_filename(original_filename)
    prefix = id_prefix if id_prefix is not None else str(int(time.time() * 1000))

    records: list[IndicatorRecord] = []
    for number, (block, column_map) in enumerate(zip(blocks, column_maps), start=1):
        built = build_records(
            block,
            column_map,
            block.data_rows,
            period_hint,
            id_prefix=prefix,
            sheet=sheet,
            summary_markers=settings.summary_markers,
            diagnostics=diagnostics,
        )
        logger.debug(
            "sheet=%s block=%d header_row=%d data_rows=%d records=%d roster=%s",
            sheet, number, block.header_row_index + 1, len(block.data_rows), len(built),
            list(column_map.roster),
        )
        records.extend(built)

    headers = _unique_in_order([label for block in blocks for label in block.raw_header_labels])
    metadata = ImportMetadata(
        original_filename=original_filename,
        detected_periods=_unique_in_order([r.evaluation_period for r in records]),
        total_records=len(records),
        headers=headers,
    )
    if diagnostics:
        logger.info("sheet=%s records=%d diagnostics=%d", sheet, len(records), len(diagnostics))
    return ParseResult(records=records, metadata=metadata, diagnostics=diagnostics, block_count=len(blocks))


def parse_excel_file(path: Path, original_filename: str | None = None, settings: ParserSettings | None = None) -> ParseResult:
    """Read the first sheet of a workbook and parse it."""
    matrix = read_sheet_matrix(path)
    return parse_rows(
        matrix.rows,
        original_filename or path.name,
        sheet=matrix.sheet_name,
        settings=settings,
    )
