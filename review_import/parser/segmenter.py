from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..excel.reader import cell_text, is_blank_row
from ..models.diagnostic import ParseDiagnostic
from ..models.header_block import HeaderBlock
from .columns import discover_reviewers

"""Header-block segmenter.

A review export repeats its header row for every employee block. A row is a
header row when any of its cells contains the sentinel label (所在考评表 by
default). Everything up to the next header row belongs to the block.
Segmentation is purely structural; noise rows inside a block are left to
the record builder.
"""

__all__ = [
    "DEFAULT_SENTINEL",
    "is_header_row",
    "segment",
]

logger = logging.getLogger(__name__)

DEFAULT_SENTINEL = "所在考评表"


def is_header_row(row: Sequence[Any] | None, sentinel: str = DEFAULT_SENTINEL) -> bool:
    if not row:
        return False
    return any(sentinel in cell_text(cell) for cell in row)


def _labels(row: Sequence[Any]) -> tuple[str, ...]:
    return tuple(cell_text(cell) for cell in row)


def _block(header_index: int, header: Sequence[Any], data: list[tuple[int, list[Any]]], *, implicit: bool = False) -> HeaderBlock:
    labels = _labels(header)
    return HeaderBlock(
        header_row_index=header_index,
        raw_header_labels=labels,
        reviewer_roster=discover_reviewers(labels),
        data_rows=tuple(data),
        implicit=implicit,
    )


def segment(
    rows: Sequence[list[Any] | None],
    sentinel: str = DEFAULT_SENTINEL,
    *,
    sheet: str = "",
    diagnostics: list[ParseDiagnostic] | None = None,
) -> list[HeaderBlock]:
    """Split a sheet matrix into header blocks.

    Zero sentinel rows -> a single implicit block headed by the first
    non-blank row (one employee per file). Non-blank rows seen before the
    first header row have no owning block and are dropped.

    Returns an empty list only for a sheet with no non-blank rows.
    """
    header_indexes = [i for i, row in enumerate(rows) if is_header_row(row, sentinel)]

    if not header_indexes:
        first = next((i for i, row in enumerate(rows) if not is_blank_row(row)), None)
        if first is None:
            return []
        logger.info("no '%s' header row in sheet=%s; using row %d as header", sentinel, sheet, first + 1)
        data = [(i, list(rows[i] or [])) for i in range(first + 1, len(rows))]
        return [_block(first, rows[first] or [], data, implicit=True)]

    dropped = 0
    for i in range(header_indexes[0]):
        if is_blank_row(rows[i]):
            continue
        dropped += 1
        if diagnostics is not None:
            diagnostics.append(ParseDiagnostic(
                sheet=sheet,
                row=i + 1,
                kind="ROW_BEFORE_HEADER",
                message="row precedes the first header row and has no owning block",
            ))
    if dropped:
        logger.warning("sheet=%s dropped %d row(s) before the first header row", sheet, dropped)

    blocks: list[HeaderBlock] = []
    bounds = header_indexes + [len(rows)]
    for start, end in zip(bounds, bounds[1:]):
        data = [(i, list(rows[i] or [])) for i in range(start + 1, end)]
        blocks.append(_block(start, rows[start] or [], data))
    return blocks
