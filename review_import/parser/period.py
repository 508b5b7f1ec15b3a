from __future__ import annotations

import re
from pathlib import PurePath

"""Evaluation period hint derived from the uploaded file name."""

__all__ = ["extract_period_from_filename"]

# (pattern, formatter); first match wins
_PERIOD_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(\d{4})年.*?第(\d+)季度"), "{0}年第{1}季度"),   # 2025年第2季度
    (re.compile(r"(\d{4})年(\d{1,2})月"), "{0}年{1}月"),          # 2025年3月
    (re.compile(r"(\d{4})-[Qq]([1-4])(?!\d)"), "{0}年第{1}季度"),  # 2025-Q2
    (re.compile(r"(\d{4})-(\d{1,2})(?!\d)"), "{0}年{1}月"),        # 2025-03
    (re.compile(r"(\d{4}).*?([上下])半年"), "{0}年{1}半年"),       # 2025年上半年
)


def extract_period_from_filename(filename: str) -> str:
    """Period label such as 2025年第2季度, or the file name without extension.

    >>> extract_period_from_filename("2025年第2季度绩效考核.xlsx")
    '2025年第2季度'
    >>> extract_period_from_filename("绩效-2025-Q3.xlsx")
    '2025年第3季度'
    >>> extract_period_from_filename("review.xlsx")
    'review'
    """
    for pattern, fmt in _PERIOD_PATTERNS:
        m = pattern.search(filename)
        if m:
            year, rest = m.group(1), m.groups()[1:]
            return fmt.format(year, *(g.lstrip("0") or "0" for g in rest))
    return PurePath(filename).stem if filename else ""
