from __future__ import annotations

"""Error taxonomy for the flex absence tracker.

Import-time failures (ConversionError, NoAttachment, ReportNotFound, ColumnMappingError)
are caught per report kind by the importer and recorded. Enrichment preconditions
(RosterNotFound, EmptyRoster, SourceTableMissing) abort the whole command.
"""

__all__ = [
    "FlexAbsenceError",
    "ConversionError",
    "NoAttachment",
    "ReportNotFound",
    "RosterNotFound",
    "EmptyRoster",
    "SourceTableMissing",
    "ColumnMappingError",
]


class FlexAbsenceError(Exception):
    """Base exception for processing errors."""


class ConversionError(FlexAbsenceError):
    """Raised when an attachment cannot be parsed as tabular data."""


class NoAttachment(FlexAbsenceError):
    """Raised when a located email carries no spreadsheet attachment."""


class ReportNotFound(FlexAbsenceError):
    """Raised when no email matches a report kind's search."""


class RosterNotFound(FlexAbsenceError):
    """Raised when zero (or ambiguously many) roster tables match the name pattern."""


class EmptyRoster(FlexAbsenceError):
    """Raised when the roster has no data rows below its header band."""


class SourceTableMissing(FlexAbsenceError):
    """Raised when a table the enrichment reads from does not exist."""

    def __init__(self, table_name: str, hint: str = "") -> None:
        self.table_name = table_name
        message = f"table not found: {table_name!r}"
        if hint:
            message += f" ({hint})"
        super().__init__(message)


class ColumnMappingError(FlexAbsenceError):
    """Raised when a column reorder mapping is malformed or incomplete."""
