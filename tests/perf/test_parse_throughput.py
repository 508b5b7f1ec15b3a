from __future__ import annotations

import importlib.util
import time
from pathlib import Path

import pytest

from review_import.models.indicator_record import PEER_RESULT_PREFIX
from review_import.parser.service import parse_rows

"""Parser throughput smoke test over a generated multi-block export."""

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "gen_sample_workbook.py"


@pytest.fixture(scope="module")
def generator():
    spec = importlib.util.spec_from_file_location("gen_sample_workbook", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_generated_export_parses_quickly(generator):
    rows = generator.generate_review_rows(employees=300, period="2025年第2季度", seed=7)
    indicator_rows = sum(1 for r in rows[1:] if len(r) > 7 and r[7] and r[7] != "指标名称" and "总分" not in r[7])

    start = time.perf_counter()
    result = parse_rows(rows, "2025年第2季度绩效考核.xlsx", id_prefix="perf")
    elapsed = time.perf_counter() - start

    assert result.block_count == 300
    assert result.metadata.total_records == indicator_rows
    assert result.metadata.detected_periods == ["2025年第2季度"]
    # lenient so CI stays stable
    assert elapsed < 5.0, f"parse too slow: {elapsed:.3f}s"


def test_generated_blocks_keep_their_own_rosters(generator):
    rows = generator.generate_review_rows(employees=50, seed=11, period="2025年第3季度")
    result = parse_rows(rows, "x.xlsx", id_prefix="perf")
    roster_by_row: dict[int, set[str]] = {}
    current: set[str] = set()
    for index, row in enumerate(rows):
        if row and row[0] == "姓名":
            current = {label.split("-", 1)[1].split("（")[0] for label in row if str(label).startswith("360°评分-") and "评分说明" not in label}
        else:
            roster_by_row[index] = current
    for record in result.record_dicts():
        reviewers = {k[len(PEER_RESULT_PREFIX):] for k in record if k.startswith(PEER_RESULT_PREFIX)}
        assert reviewers <= roster_by_row[record["rawRowIndex"] - 1]
