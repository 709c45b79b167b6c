"""
Estimate export.
"""

from .interchange import (
    InterchangeExportData,
    InterchangeExporter,
    escape_xml,
    parse_line_item_groups,
    read_archive,
)

__all__ = [
    "InterchangeExportData",
    "InterchangeExporter",
    "escape_xml",
    "parse_line_item_groups",
    "read_archive",
]
