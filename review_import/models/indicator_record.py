from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

"""IndicatorRecord: the output unit of the parser.

One record per (employee, indicator) row. Reviewer scores live in a typed
mapping (reviewer name -> PeerReview) and are flattened into
peerEvaluationResult_<name> / peerEvaluationRemark_<name> keys only when the
record is serialized.
"""

__all__ = [
    "PeerReview",
    "IndicatorRecord",
    "PEER_RESULT_PREFIX",
    "PEER_REMARK_PREFIX",
]

PEER_RESULT_PREFIX = "peerEvaluationResult_"
PEER_REMARK_PREFIX = "peerEvaluationRemark_"


@dataclass(frozen=True)
class PeerReview:
    result: str
    remark: str | None = None


@dataclass(frozen=True)
class IndicatorRecord:
    """Normalized indicator row for one employee.

    weight is a 0-1 fraction (None when the cell was empty or unparseable).
    evaluation_date is an ISO-8601 string or None.
    """
    id: str
    employee_name: str
    employee_id: str = ""
    department: str = ""
    position: str = ""
    evaluation_form: str = ""
    evaluation_period: str = ""
    current_node: str = ""
    dimension_name: str = ""
    indicator_name: str = ""
    assessment_standard: str = ""
    weight: float | None = None
    self_evaluation_result: str = ""
    self_evaluation_remark: str = ""
    supervisor_evaluation_result: str = ""
    supervisor_evaluation_remark: str = ""
    level: str = ""
    performance_result: str = ""
    evaluator: str = ""
    evaluation_date: str | None = None
    comments: str = ""
    raw_row_index: int = 0  # 1-based sheet row
    peer_reviews: Mapping[str, PeerReview] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape used by storage and the front end."""
        out: dict[str, Any] = {
            "id": self.id,
            "employeeName": self.employee_name,
            "employeeId": self.employee_id,
            "department": self.department,
            "position": self.position,
            "evaluationForm": self.evaluation_form,
            "evaluationPeriod": self.evaluation_period,
            "currentNode": self.current_node,
            "dimensionName": self.dimension_name,
            "indicatorName": self.indicator_name,
            "assessmentStandard": self.assessment_standard,
            "weight": self.weight,
            "selfEvaluationResult": self.self_evaluation_result,
            "selfEvaluationRemark": self.self_evaluation_remark,
            "supervisorEvaluationResult": self.supervisor_evaluation_result,
            "supervisorEvaluationRemark": self.supervisor_evaluation_remark,
            "level": self.level,
            "performanceResult": self.performance_result,
            "evaluator": self.evaluator,
            "evaluationDate": self.evaluation_date,
            "comments": self.comments,
            "rawRowIndex": self.raw_row_index,
        }
        for reviewer in sorted(self.peer_reviews):
            review = self.peer_reviews[reviewer]
            out[f"{PEER_RESULT_PREFIX}{reviewer}"] = review.result
            if review.remark is not None:
                out[f"{PEER_REMARK_PREFIX}{reviewer}"] = review.remark
        return out
