#!/usr/bin/env python3
"""Generate a synthetic multi-block performance review export.

The generated sheet mimics the HR system export the importer reads:
- Row 1: Title row
- Per employee: a header row (containing 所在考评表) with that employee's own
  set of 360° reviewer columns, the indicator rows (identity columns filled
  on the first row only), and a 总分 summary row

Useful for trying the CLI (--inspect-data) and for rough timing runs.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

SURNAMES = list("张王李赵刘陈杨黄周吴徐孙马朱胡郭何高林罗")
GIVEN = ["伟", "芳", "娜", "敏", "静", "强", "磊", "洋", "艳", "勇", "军", "杰", "娟", "涛", "超"]
DEPARTMENTS = ["技术部", "市场部", "财务部", "人力资源部", "运营部"]
DIMENSIONS = {
    "业绩": ["交付质量", "交付及时率", "目标达成率", "成本控制"],
    "能力": ["专业技能", "沟通协作", "问题解决"],
    "态度": ["责任心", "主动性"],
}

FIXED_HEADER = [
    "姓名", "工号", "部门", "所在考评表", "考评周期", "当前节点",
    "维度名称", "指标名称", "考核标准", "权重",
    "自评-本人（0.0%）", "自评说明",
    "上级评分-直属上级（100.0%）", "上级评分说明",
]


def _person(rng: np.random.Generator) -> str:
    return str(rng.choice(SURNAMES)) + "".join(rng.choice(GIVEN, size=int(rng.integers(1, 3))))


def generate_review_rows(employees: int, period: str, seed: int = 42) -> list[list[Any]]:
    """Build the raw sheet rows of a review export.

    Args:
        employees: Number of employee blocks
        period: Evaluation period written into every identity row
        seed: Random seed for reproducible data

    Returns:
        Row lists, ready for a header-less DataFrame
    """
    rng = np.random.default_rng(seed)
    rows: list[list[Any]] = [[f"{period}绩效考核结果导出"]]

    for n in range(employees):
        reviewers = sorted({_person(rng) for _ in range(int(rng.integers(1, 4)))})
        header = list(FIXED_HEADER)
        for name in reviewers:
            share = round(100 / len(reviewers), 1)
            header += [f"360°评分-{name}（{share}%）", f"360°评分-{name}评分说明"]
        rows.append(header)

        indicators = [(dim, ind) for dim, names in DIMENSIONS.items() for ind in names]
        picked = sorted(rng.choice(len(indicators), size=int(rng.integers(3, 7)), replace=False))
        weights = rng.dirichlet(np.ones(len(picked)))
        weights = np.floor(weights * 100).astype(int)
        weights[-1] = 100 - weights[:-1].sum()

        department = str(rng.choice(DEPARTMENTS))
        scores = []
        for i, (idx, weight) in enumerate(zip(picked, weights)):
            dimension, indicator = indicators[idx]
            identity = (
                [_person(rng), f"E{n + 1:04d}", department, f"{department}考评表", period, "已完成"]
                if i == 0 else [None] * 6
            )
            self_score = int(rng.integers(60, 101))
            boss_score = int(rng.integers(60, 101))
            scores.append(boss_score)
            row = identity + [
                dimension, indicator, f"{indicator}达到预期", f"{weight}%",
                self_score, "自评" if rng.random() < 0.3 else None,
                boss_score, "上级意见" if rng.random() < 0.3 else None,
            ]
            for _ in reviewers:
                scored = rng.random() < 0.9
                row += [int(rng.integers(60, 101)) if scored else None, "同意" if scored and rng.random() < 0.2 else None]
            rows.append(row)

        total = [None] * 7 + ["工作业绩总分", None, None, None, None, int(np.mean(scores)), None]
        rows.append(total)
    return rows


def create_excel_file(output_path: Path, employees: int, period: str, seed: int = 42) -> int:
    """Write the export to output_path; returns the number of sheet rows."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    rows = generate_review_rows(employees, period, seed)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
    print(f"Created Excel file: {output_path}")
    print(f"  Employees: {employees}")
    print(f"  Sheet rows: {len(rows)}")
    return len(rows)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic multi-block performance review export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/2025年第2季度绩效考核.xlsx
  %(prog)s data/big.xlsx --employees 2000 --period 2025年第3季度 --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output Excel file path")
    parser.add_argument("--employees", type=int, default=20, help="Number of employee blocks (default: 20)")
    parser.add_argument("--period", default="2025年第2季度", help="Evaluation period (default: 2025年第2季度)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducible data (default: 42)")
    args = parser.parse_args()

    if args.employees <= 0:
        print("Error: --employees must be positive", file=sys.stderr)
        return 1

    try:
        create_excel_file(args.output, args.employees, args.period, args.seed)
    except OSError as e:
        print(f"Error generating workbook: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
