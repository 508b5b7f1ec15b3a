from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import pandas as pd

from ..excel.reader import cell_text
from ..models.diagnostic import ParseDiagnostic
from ..models.header_block import ColumnMap, ColumnRole, HeaderBlock
from ..models.indicator_record import IndicatorRecord, PeerReview
from .columns import HEADER_ECHO_NAMES

"""Record builder: block rows -> IndicatorRecord list.

Only the first row of an employee's indicator list usually repeats the
identity columns, so the builder carries the last seen employee forward
over rows whose name cell is empty. Summary rows (总分/总评/小计), blank
separators and echoed header rows produce no record.
"""

__all__ = [
    "DEFAULT_SUMMARY_MARKERS",
    "parse_weight",
    "parse_date",
    "build_records",
]

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_MARKERS: tuple[str, ...] = ("总分", "总评", "小计")

# Excel serial day 0
_EXCEL_EPOCH = "1899-12-30"
# pandas resolves these against the wall clock
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def _fraction(num: float) -> float | None:
    if not math.isfinite(num):
        return None
    return num / 100 if num > 1 else num


def parse_weight(value: Any) -> float | None:
    """Normalize a weight cell to a 0-1 fraction.

    "40%" -> 0.4, "40" -> 0.4, "0.4" -> 0.4, "" / None / garbage -> None.
    Zero is a real weight. Values above 100% are kept as-is ("150" -> 1.5).
    NaN and infinities are not weights and give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _fraction(float(value))
    text = cell_text(value).replace("％", "%")
    if not text:
        return None
    try:
        if text.endswith("%"):
            num = float(text[:-1].strip())
            return num / 100 if math.isfinite(num) else None
        num = float(text)
    except ValueError:
        return None
    return _fraction(num)


def parse_date(value: Any) -> str | None:
    """ISO-8601 text of a date cell, None when empty or unparseable. Never raises."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (datetime, date)):
            ts = pd.Timestamp(value)
        elif isinstance(value, (int, float)):
            if not math.isfinite(value):
                return None
            ts = pd.to_datetime(value, unit="D", origin=_EXCEL_EPOCH)
        else:
            text = cell_text(value)
            if not text or text.lower() in _RELATIVE_DATE_WORDS:
                return None
            ts = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError, pd.errors.OutOfBoundsDatetime):
        return None
    if pd.isna(ts):
        return None
    return ts.isoformat()


@dataclass(frozen=True)
class _Employee:
    """Identity columns carried forward across an employee's indicator rows."""
    name: str
    employee_id: str
    department: str
    position: str
    evaluation_form: str
    evaluation_period: str
    current_node: str
    level: str
    evaluator: str
    evaluation_date: str | None


def _cell(row: Sequence[Any], index: int | None) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def _text(row: Sequence[Any], column_map: ColumnMap, role: ColumnRole) -> str:
    return cell_text(_cell(row, column_map.index_of(role)))


def _employee_from(row: Sequence[Any], column_map: ColumnMap, name: str, period_hint: str) -> _Employee:
    return _Employee(
        name=name,
        employee_id=_text(row, column_map, ColumnRole.EMPLOYEE_ID),
        department=_text(row, column_map, ColumnRole.DEPARTMENT),
        position=_text(row, column_map, ColumnRole.POSITION),
        evaluation_form=_text(row, column_map, ColumnRole.EVALUATION_FORM),
        evaluation_period=_text(row, column_map, ColumnRole.PERIOD) or period_hint,
        current_node=_text(row, column_map, ColumnRole.CURRENT_NODE),
        level=_text(row, column_map, ColumnRole.LEVEL),
        evaluator=_text(row, column_map, ColumnRole.EVALUATOR),
        evaluation_date=parse_date(_cell(row, column_map.index_of(ColumnRole.EVALUATION_DATE))),
    )


def _peer_reviews(row: Sequence[Any], column_map: ColumnMap) -> dict[str, PeerReview]:
    reviews: dict[str, PeerReview] = {}
    for reviewer in column_map.roster:
        columns = column_map.reviewers[reviewer]
        result = cell_text(_cell(row, columns.result_index))
        if not result:
            continue  # reviewer did not score this indicator
        remark = cell_text(_cell(row, columns.remark_index)) or None
        reviews[reviewer] = PeerReview(result=result, remark=remark)
    return reviews


def _overflow(row: Sequence[Any], width: int) -> bool:
    return any(cell_text(v) for v in row[width:])


def build_records(
    block: HeaderBlock,
    column_map: ColumnMap,
    data_rows: Iterable[tuple[int, Sequence[Any]]],
    period_hint: str,
    *,
    id_prefix: str = "0",
    sheet: str = "",
    summary_markers: Sequence[str] = DEFAULT_SUMMARY_MARKERS,
    diagnostics: list[ParseDiagnostic] | None = None,
) -> list[IndicatorRecord]:
    """Build indicator records for the data rows of one header block.

    Args:
        block: Owning header block (diagnostics reference its header row)
        column_map: Map derived from block.raw_header_labels
        data_rows: (sheet_row_index, row) pairs, normally block.data_rows
        period_hint: Evaluation period used when a row carries none
        id_prefix: Record ids are f"{id_prefix}_{sheet_row_index}"
        sheet: Sheet name for diagnostics
        summary_markers: Indicator names containing any of these are skipped
        diagnostics: Optional sink for skipped-row notes

    Returns:
        Records in row order; reviewer fields limited to this block's roster
    """
    def note(row_index: int, kind: str, message: str) -> None:
        if diagnostics is not None:
            diagnostics.append(ParseDiagnostic(sheet=sheet, row=row_index + 1, kind=kind, message=message))

    name_index = column_map.index_of(ColumnRole.NAME)
    indicator_index = column_map.index_of(ColumnRole.INDICATOR_NAME)
    if name_index is None or indicator_index is None:
        missing = "name" if name_index is None else "indicator name"
        logger.warning(
            "sheet=%s header_row=%d has no %s column; block skipped",
            sheet, block.header_row_index + 1, missing,
        )
        note(block.header_row_index, "MISSING_COLUMN", f"header has no {missing} column")
        return []

    records: list[IndicatorRecord] = []
    current: _Employee | None = None

    for row_index, row in data_rows:
        row = list(row or [])
        name = cell_text(_cell(row, name_index))

        if name in HEADER_ECHO_NAMES:
            continue
        if _overflow(row, column_map.width):
            note(row_index, "ROW_MALFORMED", f"row has values beyond the {column_map.width} header columns")
            if name:
                # the following rows belong to the rejected employee, not the previous one
                current = None
            continue
        if name:
            current = _employee_from(row, column_map, name, period_hint)

        indicator = cell_text(_cell(row, indicator_index))
        if not indicator or any(marker in indicator for marker in summary_markers):
            continue
        if current is None:
            note(row_index, "ROW_WITHOUT_EMPLOYEE", f"indicator '{indicator}' precedes any employee row")
            continue

        records.append(IndicatorRecord(
            id=f"{id_prefix}_{row_index}",
            employee_name=current.name,
            employee_id=current.employee_id,
            department=current.department,
            position=current.position,
            evaluation_form=current.evaluation_form,
            evaluation_period=current.evaluation_period,
            current_node=current.current_node,
            dimension_name=_text(row, column_map, ColumnRole.DIMENSION_NAME),
            indicator_name=indicator,
            assessment_standard=_text(row, column_map, ColumnRole.ASSESSMENT_STANDARD),
            weight=parse_weight(_cell(row, column_map.index_of(ColumnRole.WEIGHT))),
            self_evaluation_result=_text(row, column_map, ColumnRole.SELF_EVALUATION_RESULT),
            self_evaluation_remark=_text(row, column_map, ColumnRole.SELF_EVALUATION_REMARK),
            supervisor_evaluation_result=_text(row, column_map, ColumnRole.SUPERVISOR_EVALUATION_RESULT),
            supervisor_evaluation_remark=_text(row, column_map, ColumnRole.SUPERVISOR_EVALUATION_REMARK),
            level=current.level,
            performance_result=_text(row, column_map, ColumnRole.PERFORMANCE_RESULT),
            evaluator=current.evaluator,
            evaluation_date=current.evaluation_date,
            comments=_text(row, column_map, ColumnRole.COMMENTS),
            raw_row_index=row_index + 1,
            peer_reviews=_peer_reviews(row, column_map),
        ))
    return records
