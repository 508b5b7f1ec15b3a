from __future__ import annotations

import json

import pytest

from review_import.models.indicator_record import PEER_REMARK_PREFIX, PEER_RESULT_PREFIX
from review_import.parser.service import ParserSettings, SheetStructureError, parse_rows


def test_single_block_without_sentinel():
    rows = [
        ["姓名", "部门", "维度名称", "指标名称", "360°评分-李四（80%）", "360°评分-李四评分说明"],
        ["张三", "技术部", "业绩", "交付质量", "85", "交付及时"],
    ]
    result = parse_rows(rows, "review.xlsx", id_prefix="p")
    assert result.metadata.total_records == 1
    (record,) = result.record_dicts()
    assert record["employeeName"] == "张三"
    assert record["peerEvaluationResult_李四"] == "85"
    assert record["peerEvaluationRemark_李四"] == "交付及时"
    assert record["evaluationPeriod"] == "review"
    assert record["id"] == "p_1"


def test_reviewer_fields_do_not_leak_between_blocks(two_block_rows):
    result = parse_rows(two_block_rows, "2025年第2季度绩效考核.xlsx", id_prefix="p")
    assert result.block_count == 2
    by_indicator = {r["indicatorName"]: r for r in result.record_dicts()}
    assert set(by_indicator) == {"交付质量", "代码质量", "客户拓展"}

    block2 = by_indicator["客户拓展"]
    assert block2["employeeName"] == "赵六"
    assert "peerEvaluationResult_李四" not in block2
    assert block2["peerEvaluationResult_王五"] == "70"
    assert block2["peerEvaluationRemark_王五"] == "需加强"

    for name in ("交付质量", "代码质量"):
        record = by_indicator[name]
        assert record["employeeName"] == "张三"
        assert not any(k.endswith("_王五") for k in record)


def test_roster_isolation_over_every_record(two_block_rows):
    result = parse_rows(two_block_rows, "x.xlsx", id_prefix="p")
    allowed = {"张三": {"李四"}, "赵六": {"王五"}}
    for record in result.record_dicts():
        reviewers = {
            k[len(PEER_RESULT_PREFIX):] for k in record if k.startswith(PEER_RESULT_PREFIX)
        } | {
            k[len(PEER_REMARK_PREFIX):] for k in record if k.startswith(PEER_REMARK_PREFIX)
        }
        assert reviewers <= allowed[record["employeeName"]]


def test_metadata(two_block_rows):
    result = parse_rows(two_block_rows, "2025年第2季度绩效考核.xlsx", id_prefix="p")
    meta = result.metadata.to_dict()
    assert meta["originalFilename"] == "2025年第2季度绩效考核.xlsx"
    assert meta["detectedPeriods"] == ["2025年第2季度"]
    assert meta["totalRecords"] == 3
    # union of both header rows, first seen order
    assert meta["headers"][0] == "姓名"
    assert "360°评分-李四（20%）" in meta["headers"]
    assert "360°评分-王五（20%）" in meta["headers"]
    assert meta["headers"].count("姓名") == 1


def test_diagnostics_collected(two_block_rows):
    result = parse_rows(two_block_rows, "x.xlsx", sheet="导出", id_prefix="p")
    assert [(d.sheet, d.row, d.kind) for d in result.diagnostics] == [("导出", 1, "ROW_BEFORE_HEADER")]


def test_fixed_prefix_gives_identical_output(two_block_rows):
    first = parse_rows(two_block_rows, "x.xlsx", id_prefix="fixed")
    second = parse_rows(two_block_rows, "x.xlsx", id_prefix="fixed")
    assert json.dumps(first.to_payload(), ensure_ascii=False) == json.dumps(second.to_payload(), ensure_ascii=False)


def test_default_prefix_is_millisecond_timestamp(two_block_rows):
    result = parse_rows(two_block_rows, "x.xlsx")
    prefix, _, index = result.records[0].id.partition("_")
    assert prefix.isdigit() and len(prefix) >= 13
    assert index == "2"


def test_fallback_block_uses_first_row_as_header():
    rows = [["姓名", "指标名称", "权重"], ["张三", "交付质量", "40"]]
    result = parse_rows(rows, "2025年3月考核.xls", id_prefix="p")
    assert result.block_count == 1
    (record,) = result.records
    assert record.indicator_name == "交付质量"
    assert record.weight == pytest.approx(0.4)
    assert record.evaluation_period == "2025年3月"


@pytest.mark.parametrize(
    "rows",
    [
        [],
        [None, [None]],
        [["姓名", "所在考评表", "指标名称"]],
    ],
)
def test_too_few_rows_is_fatal(rows):
    with pytest.raises(SheetStructureError):
        parse_rows(rows, "x.xlsx")


def test_no_header_row_found_is_fatal():
    rows = [["张三", "技术部"], ["李雷", "市场部"]]
    with pytest.raises(SheetStructureError, match="no header row found"):
        parse_rows(rows, "x.xlsx")


def test_custom_sentinel():
    rows = [
        ["姓名", "考核表", "指标名称"],
        ["张三", "A表", "交付"],
        ["姓名", "考核表", "指标名称"],
        ["李雷", "B表", "沟通"],
    ]
    result = parse_rows(rows, "x.xlsx", id_prefix="p", settings=ParserSettings(sentinel_label="考核表"))
    assert result.block_count == 2
    assert [r.employee_name for r in result.records] == ["张三", "李雷"]
