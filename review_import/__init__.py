"""Performance review Excel importer.

Turns review spreadsheets (one header block per employee, dynamic 360°
reviewer columns) into normalized per-indicator records.
"""

__version__ = "0.1.0"
