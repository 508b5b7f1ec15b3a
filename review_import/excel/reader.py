from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

"""Excel reader: workbook -> raw cell matrix.

The parser never touches files. This module decodes the first (or a named)
sheet with pandas, reading without a header so that every header block of
a multi-block review sheet stays an ordinary row, and normalizes cells to
plain Python values:

- NaN / NaT / blank or whitespace-only strings -> None
- numpy scalars -> int / float
- pandas Timestamp -> datetime
"""

__all__ = [
    "SheetReadError",
    "SheetMatrix",
    "read_sheet_matrix",
    "normalize_cell",
    "normalize_rows",
    "cell_text",
    "is_blank_row",
]


class SheetReadError(Exception):
    """Raised when the workbook cannot be opened or the sheet is missing."""


@dataclass
class SheetMatrix:
    sheet_name: str
    rows: list[list[Any]]  # 正規化済セル (row index == sheet row - 1)


def normalize_cell(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def normalize_rows(df: pd.DataFrame) -> list[list[Any]]:
    """Convert a header-less DataFrame to a list of normalized rows."""
    return [[normalize_cell(v) for v in raw] for raw in df.itertuples(index=False, name=None)]


def read_sheet_matrix(path: Path, sheet_name: str | None = None) -> SheetMatrix:
    """Read one sheet of an .xlsx/.xls workbook as a normalized cell matrix.

    Parameters
    ----------
    path: workbook path
    sheet_name: sheet to read (None -> first sheet, as uploads carry one sheet)
    """
    # corrupt files surface as BadZipFile, XLRDError, KeyError, ... depending on the engine
    try:
        xls = pd.ExcelFile(path)
    except Exception as e:
        raise SheetReadError(f"cannot open workbook {path.name}: {e}") from e
    if not xls.sheet_names:
        raise SheetReadError(f"workbook {path.name} has no sheets")
    if sheet_name is None:
        target = str(xls.sheet_names[0])
    elif sheet_name in [str(n) for n in xls.sheet_names]:
        target = sheet_name
    else:
        raise SheetReadError(f"sheet '{sheet_name}' not found in {path.name}")
    # raw read without a header row: header blocks are located by the segmenter
    try:
        df = xls.parse(target, header=None, dtype=object, keep_default_na=False, na_values=[""])
    except Exception as e:
        raise SheetReadError(f"cannot read sheet '{target}' of {path.name}: {e}") from e
    return SheetMatrix(sheet_name=target, rows=normalize_rows(df))


def cell_text(value: Any) -> str:
    """Text form of a cell, trimmed. None -> "".

    Integral floats lose their ".0" so a score typed as 85 reads "85"
    whichever numeric type the decoder produced.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def is_blank_row(row: list[Any] | None) -> bool:
    if not row:
        return True
    return all(cell_text(v) == "" for v in row)
