"""Multi-block review sheet parser (segmenter -> column mapper -> record builder)."""

from .columns import extract_reviewer_name, map_columns
from .period import extract_period_from_filename
from .records import build_records, parse_date, parse_weight
from .segmenter import segment
from .service import ParserSettings, SheetStructureError, parse_excel_file, parse_rows

__all__ = [
    "extract_reviewer_name",
    "map_columns",
    "extract_period_from_filename",
    "build_records",
    "parse_date",
    "parse_weight",
    "segment",
    "ParserSettings",
    "SheetStructureError",
    "parse_excel_file",
    "parse_rows",
]
