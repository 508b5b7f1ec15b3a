"""Domain models for the performance review importer.

Parser models (header blocks, column maps, indicator records) and the
bookkeeping models of an import run.
"""

from .diagnostic import DiagnosticRecord, ParseDiagnostic
from .header_block import ColumnMap, ColumnRole, HeaderBlock, ReviewerColumns
from .import_file import FileStatus, ImportFile
from .indicator_record import IndicatorRecord, PeerReview
from .parse_result import ImportMetadata, ParseResult
from .processing_result import FileStat, ProcessingResult

__all__ = [
    # Parser models
    "ColumnMap",
    "ColumnRole",
    "HeaderBlock",
    "ReviewerColumns",
    "IndicatorRecord",
    "PeerReview",
    "ImportMetadata",
    "ParseResult",
    # Diagnostics
    "DiagnosticRecord",
    "ParseDiagnostic",
    # Run bookkeeping
    "FileStatus",
    "ImportFile",
    "FileStat",
    "ProcessingResult",
]
