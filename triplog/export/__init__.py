"""Export package."""

from triplog.export.csv_formatter import (
    EXPORT_COLUMNS,
    ExportColumn,
    build_export,
    export_filename,
    parse_delimited_text,
    to_delimited_text,
)

__all__ = [
    "EXPORT_COLUMNS",
    "ExportColumn",
    "build_export",
    "export_filename",
    "parse_delimited_text",
    "to_delimited_text",
]
