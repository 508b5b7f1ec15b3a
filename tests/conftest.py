# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path

import pandas as pd
import pytest

REVIEW_HEADER = [
    "姓名", "工号", "部门", "所在考评表", "考评周期", "当前节点",
    "维度名称", "指标名称", "考核标准", "权重",
    "自评-本人（0.0%）", "自评说明",
    "上级评分-王经理（100.0%）", "上级评分说明",
]


def review_header(*reviewers: str) -> list[str]:
    """Header row of one employee block with a result/remark pair per reviewer."""
    labels = list(REVIEW_HEADER)
    for name in reviewers:
        labels += [f"360°评分-{name}（20%）", f"360°评分-{name}评分说明"]
    return labels


def make_workbook(path: Path, rows: list[list[object]], sheet_name: str = "Sheet1") -> Path:
    """Write rows verbatim (no header, no index) into a real .xlsx file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
data_directory: ./store
storage: json
history_limit: 10
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def two_block_rows() -> list[list[object]]:
    """Two employee blocks with different 360° rosters, plus a title row."""
    return [
        ["2025年第2季度绩效考核导出"],
        review_header("李四"),
        ["张三", "E001", "技术部", "研发考评表", "2025年第2季度", "已完成",
         "业绩", "交付质量", "按期交付", "40%", "90", "自评良好", "88", "不错", "85", "交付及时"],
        [None, None, None, None, None, None,
         "业绩", "代码质量", "缺陷率", "60%", "80", None, "82", None, "80", None],
        [None, None, None, None, None, None,
         None, "工作业绩总分", None, None, "86", None, "85", None, "83", None],
        review_header("王五"),
        ["赵六", "E002", "市场部", "市场考评表", "2025年第2季度", "已完成",
         "业绩", "客户拓展", "新增客户数", "100%", "75", None, "78", None, "70", "需加强"],
    ]


@pytest.fixture()
def sample_workbook(temp_workdir: Path, two_block_rows) -> Path:
    return make_workbook(temp_workdir / "data" / "2025年第2季度绩效考核.xlsx", two_block_rows)


@pytest.fixture(name="review_header")
def review_header_fixture():
    return review_header


@pytest.fixture(name="make_workbook")
def make_workbook_fixture():
    return make_workbook
