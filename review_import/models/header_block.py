from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Header block and column map models.

A review sheet repeats its header row once per employee block, and every
block can name a different set of 360° reviewers. HeaderBlock is the
structural unit found by the segmenter; ColumnMap is derived from exactly
one block's labels and is never shared between blocks.
"""

__all__ = [
    "ColumnRole",
    "HeaderBlock",
    "ReviewerColumns",
    "ColumnMap",
]

RawCell = Any  # str | int | float | datetime | None
RawRow = list[RawCell]


class ColumnRole(Enum):
    """Fixed semantic roles a header column can be classified into."""
    NAME = "name"
    EMPLOYEE_ID = "employee_id"
    DEPARTMENT = "department"
    POSITION = "position"
    EVALUATION_FORM = "evaluation_form"
    PERIOD = "period"
    LEVEL = "level"
    PERFORMANCE_RESULT = "performance_result"
    CURRENT_NODE = "current_node"
    DIMENSION_NAME = "dimension_name"
    INDICATOR_NAME = "indicator_name"
    ASSESSMENT_STANDARD = "assessment_standard"
    WEIGHT = "weight"
    SELF_EVALUATION_RESULT = "self_evaluation_result"
    SELF_EVALUATION_REMARK = "self_evaluation_remark"
    SUPERVISOR_EVALUATION_RESULT = "supervisor_evaluation_result"
    SUPERVISOR_EVALUATION_RESULT_PLAIN = "supervisor_evaluation_result_plain"
    SUPERVISOR_EVALUATION_REMARK = "supervisor_evaluation_remark"
    EVALUATOR = "evaluator"
    EVALUATION_DATE = "evaluation_date"
    COMMENTS = "comments"


@dataclass(frozen=True)
class HeaderBlock:
    """One header row plus the data rows that follow it.

    data_rows holds (sheet_row_index, row) pairs so diagnostics and record
    ids can refer back to the original sheet position.
    """
    header_row_index: int  # 0-based index in the sheet matrix
    raw_header_labels: tuple[str, ...]
    reviewer_roster: tuple[str, ...]  # sorted, unique
    data_rows: tuple[tuple[int, RawRow], ...] = ()
    implicit: bool = False  # True when no sentinel row existed (fallback block)


@dataclass(frozen=True)
class ReviewerColumns:
    result_index: int
    remark_index: int | None = None


@dataclass(frozen=True)
class ColumnMap:
    """Column classification for a single header block."""
    fixed: Mapping[ColumnRole, int] = field(default_factory=dict)
    reviewers: Mapping[str, ReviewerColumns] = field(default_factory=dict)
    width: int = 0  # last non-blank label index + 1

    @property
    def roster(self) -> tuple[str, ...]:
        return tuple(sorted(self.reviewers))

    def index_of(self, role: ColumnRole) -> int | None:
        return self.fixed.get(role)
