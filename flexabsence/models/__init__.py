"""Domain models for the flex absence tracker.

Configuration values, the tabular dataset, processing results and the error taxonomy.
"""

from .config_models import (
    AppConfig,
    AttendanceReportConfig,
    ContactsReportConfig,
    CoursesReportConfig,
    MailConfig,
    ReportConfig,
    ReportKind,
    RosterConfig,
    StagingConfig,
)
from .dataset import Dataset, cell_text, pad_rows
from .processing_result import (
    CommentSyncResult,
    EnrichmentResult,
    ImportSummary,
    ReportImportResult,
    ReportStatus,
)

__all__ = [
    # Configuration models
    "AppConfig",
    "AttendanceReportConfig",
    "ContactsReportConfig",
    "CoursesReportConfig",
    "MailConfig",
    "ReportConfig",
    "ReportKind",
    "RosterConfig",
    "StagingConfig",
    # Tabular data
    "Dataset",
    "cell_text",
    "pad_rows",
    # Processing results
    "CommentSyncResult",
    "EnrichmentResult",
    "ImportSummary",
    "ReportImportResult",
    "ReportStatus",
]
