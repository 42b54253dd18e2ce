from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .config_models import ReportKind

"""Processing result models returned by the importer, the enrichment engine and the
comment synchronizer. The CLI renders them into SUMMARY lines.
"""

__all__ = [
    "ReportStatus",
    "ReportImportResult",
    "ImportSummary",
    "EnrichmentResult",
    "CommentSyncResult",
]


class ReportStatus(Enum):
    """Outcome of one report kind in an import run.

    - IMPORTED: data written to the destination table
    - MISSING: no matching email was found
    - FAILED: the email was found but retrieval, conversion or writing failed
    """
    IMPORTED = "imported"
    MISSING = "missing"
    FAILED = "failed"


@dataclass(frozen=True)
class ReportImportResult:
    """Per-kind import outcome."""
    kind: ReportKind
    table_name: str
    status: ReportStatus
    subject: str
    rows_written: int = 0  # Data rows written below the header
    note: str = ""  # Text attached to the destination table's A1 note
    error: str | None = None


@dataclass(frozen=True)
class ImportSummary:
    """Aggregate of one import run over the three report kinds."""
    results: list[ReportImportResult]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def imported(self) -> int:
        return sum(1 for r in self.results if r.status is ReportStatus.IMPORTED)

    @property
    def missing(self) -> list[str]:
        """Subjects of reports whose email was not found."""
        return [r.subject for r in self.results if r.status is ReportStatus.MISSING]

    @property
    def failed(self) -> list[str]:
        """Kinds whose email was found but could not be imported."""
        return [r.kind.value for r in self.results if r.status is ReportStatus.FAILED]


@dataclass(frozen=True)
class EnrichmentResult:
    """Outcome of one enrichment run."""
    roster_name: str
    rows_processed: int  # Roster data rows scanned (including empty-ID rows)
    attendance_matched: int
    teacher_matched: int
    contact_matched: int
    skipper_rows: list[list[Any]] = field(default_factory=list)
    headers_restored: bool = False

    @property
    def skippers(self) -> int:
        return len(self.skipper_rows)


@dataclass(frozen=True)
class CommentSyncResult:
    """Outcome of one comment sync run."""
    roster_name: str
    comments_available: int  # Staging rows carrying a non-empty comment
    updated: int  # Roster comment cells whose value actually changed
    unmatched: int  # Roster rows with an ID absent from the comment map
