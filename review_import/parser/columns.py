from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..excel.reader import cell_text
from ..models.diagnostic import ParseDiagnostic
from ..models.header_block import ColumnMap, ColumnRole, ReviewerColumns

"""Column mapper: header labels -> ColumnMap.

Reviewer columns come in pairs per 360° reviewer:

    360°评分-李四（80%）          -> result column of 李四
    360°评分-刘志润（0.0%）（0.0%）  -> result column of 刘志润 (doubled weight suffix)
    360°评分-李四评分说明          -> remark column of 李四

extract_reviewer_name() is the only place a reviewer name is derived from
a label. The result path, the remark path and the segmenter's roster all go
through it, so a result column and its remark column always agree on the
name.

Fixed roles are decided by one ordered rule table; the first matching rule
wins for a column, and the first column wins for a role.
"""

__all__ = [
    "REVIEWER_PREFIX",
    "REMARK_MARKER",
    "extract_reviewer_name",
    "is_reviewer_label",
    "is_reviewer_remark_label",
    "classify_label",
    "discover_reviewers",
    "map_columns",
]

logger = logging.getLogger(__name__)

REVIEWER_PREFIX = "360°评分-"
REMARK_MARKER = "评分说明"

# prefix, then the name up to the first (full/half width) open paren or the remark marker
_REVIEWER_RE = re.compile(
    r"^\s*360°评分\s*[-－]\s*(?P<name>.*?)\s*(?:[（(]|" + REMARK_MARKER + r"|$)",
    re.DOTALL,
)
_REVIEWER_PREFIX_RE = re.compile(r"^\s*360°评分\s*[-－]")

# name-cell values that mark a repeated header row
HEADER_ECHO_NAMES = frozenset({"姓名", "工号"})


def is_reviewer_label(label: str) -> bool:
    return bool(_REVIEWER_PREFIX_RE.match(label))


def is_reviewer_remark_label(label: str) -> bool:
    return is_reviewer_label(label) and REMARK_MARKER in label


def extract_reviewer_name(label: str) -> str | None:
    """Reviewer name of a 360° column label, or None if there is none.

    >>> extract_reviewer_name("360°评分-刘志润（0.0%）（0.0%）")
    '刘志润'
    >>> extract_reviewer_name("360°评分-李四评分说明")
    '李四'
    >>> extract_reviewer_name("360°评分-（0.0%）") is None
    True
    """
    m = _REVIEWER_RE.match(label)
    if m is None:
        return None
    name = m.group("name").strip()
    return name or None


def _has(*needles: str) -> Callable[[str, str], bool]:
    def predicate(label: str, lowered: str) -> bool:
        return any(n in label or n in lowered for n in needles)
    return predicate


def _equals(expected: str) -> Callable[[str, str], bool]:
    def predicate(label: str, lowered: str) -> bool:
        return label == expected
    return predicate


def _self_result(label: str, lowered: str) -> bool:
    return "自评-" in label and "说明" not in label


def _self_remark(label: str, lowered: str) -> bool:
    return "自评" in label and "说明" in label


def _supervisor_result(label: str, lowered: str) -> bool:
    return "上级评分-" in label and "100.0%" in label and "说明" not in label


def _supervisor_remark(label: str, lowered: str) -> bool:
    return "上级评分" in label and "说明" in label


@dataclass(frozen=True)
class _Rule:
    role: ColumnRole
    predicate: Callable[[str, str], bool]


# Order matters: first matching rule classifies the column.
COLUMN_RULES: tuple[_Rule, ...] = (
    _Rule(ColumnRole.NAME, _has("姓名", "name")),
    _Rule(ColumnRole.EMPLOYEE_ID, _has("工号", "员工号", "id")),
    _Rule(ColumnRole.DEPARTMENT, _has("部门", "department")),
    _Rule(ColumnRole.POSITION, _has("职位", "岗位", "position")),
    _Rule(ColumnRole.EVALUATION_FORM, _has("考评表", "评估表")),
    _Rule(ColumnRole.PERIOD, _has("周期", "期间", "period")),
    _Rule(ColumnRole.LEVEL, _has("等级", "级别", "level")),
    _Rule(ColumnRole.PERFORMANCE_RESULT, _equals("绩效结果")),
    _Rule(ColumnRole.CURRENT_NODE, _has("节点")),
    _Rule(ColumnRole.DIMENSION_NAME, _equals("维度名称")),
    _Rule(ColumnRole.INDICATOR_NAME, _equals("指标名称")),
    _Rule(ColumnRole.ASSESSMENT_STANDARD, _has("标准")),
    _Rule(ColumnRole.WEIGHT, _has("权重", "weight")),
    _Rule(ColumnRole.SELF_EVALUATION_RESULT, _self_result),
    _Rule(ColumnRole.SELF_EVALUATION_REMARK, _self_remark),
    _Rule(ColumnRole.SUPERVISOR_EVALUATION_RESULT, _supervisor_result),
    _Rule(ColumnRole.SUPERVISOR_EVALUATION_RESULT_PLAIN, _equals("上级评分")),
    _Rule(ColumnRole.SUPERVISOR_EVALUATION_REMARK, _supervisor_remark),
    _Rule(ColumnRole.EVALUATOR, _has("评价人", "考核人", "evaluator")),
    _Rule(ColumnRole.EVALUATION_DATE, _has("日期", "时间", "date")),
    _Rule(ColumnRole.COMMENTS, _has("备注", "评语", "comment")),
)

# A plain "上级评分" column stands in only when no weighted one exists.
_FALLBACK_ROLES = {
    ColumnRole.SUPERVISOR_EVALUATION_RESULT_PLAIN: ColumnRole.SUPERVISOR_EVALUATION_RESULT,
}


def classify_label(label: str) -> ColumnRole | None:
    """Fixed role of a (non reviewer) label, None when no rule matches."""
    text = label.strip()
    if not text:
        return None
    lowered = text.lower()
    for rule in COLUMN_RULES:
        if rule.predicate(text, lowered):
            return rule.role
    return None


def discover_reviewers(labels: Sequence[object]) -> tuple[str, ...]:
    """Sorted, unique names of reviewers that own a result column."""
    names: set[str] = set()
    for raw in labels:
        label = cell_text(raw)
        if is_reviewer_label(label) and not is_reviewer_remark_label(label):
            name = extract_reviewer_name(label)
            if name:
                names.add(name)
    return tuple(sorted(names))


def map_columns(
    labels: Sequence[object],
    *,
    sheet: str = "",
    header_row: int = -1,
    diagnostics: list[ParseDiagnostic] | None = None,
) -> ColumnMap:
    """Build the ColumnMap of one header block.

    Args:
        labels: Header cells of the block, in column order
        sheet: Sheet name (diagnostics only)
        header_row: 1-based header row (diagnostics only)
        diagnostics: Optional sink for mapping notes (duplicates, unnamed reviewers)

    Returns:
        ColumnMap private to this block
    """
    def note(kind: str, message: str) -> None:
        logger.debug("sheet=%s header_row=%d %s: %s", sheet, header_row, kind, message)
        if diagnostics is not None:
            diagnostics.append(ParseDiagnostic(sheet=sheet, row=header_row, kind=kind, message=message))

    fixed: dict[ColumnRole, int] = {}
    results: dict[str, int] = {}
    remarks: dict[str, int] = {}
    width = 0

    for index, raw in enumerate(labels):
        label = cell_text(raw)
        if not label:
            continue
        width = index + 1

        if is_reviewer_label(label):
            name = extract_reviewer_name(label)
            if name is None:
                note("REVIEWER_NAME_MISSING", f"column {index} '{label}' has no reviewer name")
                continue
            target = remarks if is_reviewer_remark_label(label) else results
            if name in target:
                note("DUPLICATE_COLUMN", f"reviewer '{name}' column {index} ignored (first is {target[name]})")
                continue
            target[name] = index
            continue

        role = classify_label(label)
        if role is None:
            continue
        if role in fixed:
            note("DUPLICATE_COLUMN", f"{role.value} column {index} '{label}' ignored (first is {fixed[role]})")
            continue
        fixed[role] = index

    for plain, primary in _FALLBACK_ROLES.items():
        index = fixed.pop(plain, None)
        if index is not None and primary not in fixed:
            fixed[primary] = index

    reviewers: dict[str, ReviewerColumns] = {}
    for name in sorted(results):
        reviewers[name] = ReviewerColumns(result_index=results[name], remark_index=remarks.get(name))
    for name in sorted(set(remarks) - set(results)):
        note("REMARK_WITHOUT_RESULT", f"remark column {remarks[name]} of '{name}' has no result column")

    return ColumnMap(fixed=fixed, reviewers=reviewers, width=width)
