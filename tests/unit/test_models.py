from __future__ import annotations

from pathlib import Path

import pytest

from review_import.models import (
    ColumnMap,
    ColumnRole,
    FileStatus,
    ImportFile,
    ImportMetadata,
    IndicatorRecord,
    ParseResult,
    PeerReview,
    ReviewerColumns,
)


def test_indicator_record_flattens_peer_reviews():
    record = IndicatorRecord(
        id="1_2",
        employee_name="张三",
        indicator_name="交付质量",
        weight=0.4,
        peer_reviews={
            "王五": PeerReview(result="70"),
            "李四": PeerReview(result="85", remark="交付及时"),
        },
    )
    out = record.to_dict()
    assert out["employeeName"] == "张三"
    assert out["weight"] == 0.4
    assert out["peerEvaluationResult_李四"] == "85"
    assert out["peerEvaluationRemark_李四"] == "交付及时"
    assert out["peerEvaluationResult_王五"] == "70"
    # no remark cell value -> no remark key
    assert "peerEvaluationRemark_王五" not in out
    # reviewers in sorted order, result before remark
    assert [k for k in out if k.startswith("peer")] == [
        "peerEvaluationResult_李四",
        "peerEvaluationRemark_李四",
        "peerEvaluationResult_王五",
    ]


def test_indicator_record_is_immutable():
    record = IndicatorRecord(id="1_2", employee_name="张三")
    with pytest.raises(AttributeError):
        record.employee_name = "李雷"  # type: ignore[misc]


def test_parse_result_payload():
    meta = ImportMetadata(original_filename="q2.xlsx", detected_periods=["2025年第2季度"], total_records=1, headers=["姓名"])
    result = ParseResult(records=[IndicatorRecord(id="p_1", employee_name="张三")], metadata=meta)
    payload = result.to_payload()
    assert payload["originalFilename"] == "q2.xlsx"
    assert payload["detectedPeriods"] == ["2025年第2季度"]
    assert payload["totalRecords"] == 1
    assert payload["headers"] == ["姓名"]
    assert payload["data"][0]["id"] == "p_1"
    assert result.diagnostics == []


def test_column_map_roster_and_lookup():
    cm = ColumnMap(
        fixed={ColumnRole.NAME: 0},
        reviewers={"王五": ReviewerColumns(3), "李四": ReviewerColumns(1, 2)},
        width=4,
    )
    assert cm.roster == tuple(sorted(["王五", "李四"]))
    assert cm.index_of(ColumnRole.NAME) == 0
    assert cm.index_of(ColumnRole.WEIGHT) is None


def test_import_file_defaults():
    f = ImportFile(path=Path("data/q2.xlsx"), name="q2.xlsx")
    assert f.status is FileStatus.PENDING
    assert f.total_records == 0
    assert f.import_id is None and f.error is None
