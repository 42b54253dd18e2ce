from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

"""Config dataclasses for the flex absence tracker.

These are the immutable configuration values built once by ``flexabsence.config.loader``
and passed explicitly to each service. All column positions are zero-based indexes that
were converted from spreadsheet letters and validated at load time.
"""

__all__ = [
    "ReportKind",
    "ReportConfig",
    "AttendanceReportConfig",
    "CoursesReportConfig",
    "ContactsReportConfig",
    "MailConfig",
    "RosterConfig",
    "StagingConfig",
    "AppConfig",
]


class ReportKind(Enum):
    """The closed set of reports the importer knows how to consolidate.

    Declaration order is processing order.
    """
    ATTENDANCE = "attendance"
    COURSES = "courses"
    CONTACTS = "contacts"


@dataclass(frozen=True)
class ReportConfig:
    """Settings shared by every report kind."""
    kind: ReportKind
    subject: str  # Email subject to search for (contains match)
    table_name: str  # Destination table for the imported grid
    id_column: int  # Student ID column in the destination table
    value_columns: tuple[int, ...]  # Columns pulled into the lookup map


@dataclass(frozen=True)
class AttendanceReportConfig(ReportConfig):
    """Attendance bulletin: only rows for one period are kept."""
    period_column: int = 9
    period_filter: str = "02"


@dataclass(frozen=True)
class CoursesReportConfig(ReportConfig):
    """Course/teacher list: columns are reordered and pruned on import."""
    original_columns: tuple[str, ...] = ()
    target_columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContactsReportConfig(ReportConfig):
    """Contact info: imported unchanged."""


@dataclass(frozen=True)
class MailConfig:
    from_address: str | None
    attachment_extensions: tuple[str, ...] = (".xlsx",)
    attachment_mime_types: tuple[str, ...] = (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


@dataclass(frozen=True)
class RosterConfig:
    """Layout of the user-pasted roster table.

    The derived header band runs from ``band_start`` for ``len(band_labels)`` columns on
    row ``header_rows`` (1-based). The loader guarantees the comment, attendance, teacher
    and email columns tile that band exactly.
    """
    name_pattern: str
    name_format: str
    header_rows: int
    id_column: int
    comment_column: int
    attendance_code_column: int
    teacher_column: int
    email_columns: tuple[int, int, int]
    band_start: int
    band_labels: tuple[str, ...]
    sentinel: str = "#N/A"
    instruction: str = "Paste FlexiSched data here (will overwrite this row and row 2)"

    @property
    def first_data_row(self) -> int:
        """1-based row number of the first roster data row."""
        return self.header_rows + 1

    @property
    def band_end(self) -> int:
        """Zero-based index one past the last derived column."""
        return self.band_start + len(self.band_labels)


@dataclass(frozen=True)
class StagingConfig:
    table_name: str
    headers: tuple[str, ...]


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object (read-only at run time)."""
    timezone: str
    mail: MailConfig
    reports: Mapping[ReportKind, ReportConfig]
    roster: RosterConfig
    staging: StagingConfig

    def report(self, kind: ReportKind) -> ReportConfig:
        return self.reports[kind]
