from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, tzinfo
from typing import Any, Protocol

from ..config.loader import resolve_timezone
from ..excel.reader import parse_excel_data
from ..excel.transform import filter_by_period, reorder_columns
from ..logging.error_log import ErrorLogBuffer
from ..mail.mailbox import Attachment, MailMessage, MailThread, spreadsheet_attachments
from ..models.config_models import (
    AppConfig,
    AttendanceReportConfig,
    CoursesReportConfig,
    ReportConfig,
    ReportKind,
)
from ..models.dataset import pad_rows
from ..models.error_record import ErrorRecord
from ..models.errors import ReportNotFound
from ..models.processing_result import ImportSummary, ReportImportResult, ReportStatus
from ..store.workbook import WorkbookStore
from .progress import ProgressTracker

"""Report importer: mailbox -> extract -> transform -> destination table.

Each report kind is processed in declaration order. A failure of one kind is caught,
logged, written to the error log and to the destination table's A1 note, and does not
stop the remaining kinds.
"""

__all__ = [
    "Mailbox",
    "TRANSFORMS",
    "import_report",
    "import_reports",
    "transform_report",
]

logger = logging.getLogger(__name__)

NOTE_CELL = "A1"
NOTE_TIME_FMT = "%m/%d/%Y, %I:%M:%S %p"

Grid = list[list[Any]]


class Mailbox(Protocol):
    def search(self, from_address: str | None, subject: str, max_results: int = 1) -> list[MailThread]: ...

    def get_attachments(self, message_id: str) -> list[Attachment]: ...


def _wrong_config(report: ReportConfig, expected: type) -> TypeError:
    return TypeError(f"{report.kind.value} transform needs {expected.__name__}, got {type(report).__name__}")


def _filter_attendance(grid: Grid, report: ReportConfig) -> Grid:
    if not isinstance(report, AttendanceReportConfig):
        raise _wrong_config(report, AttendanceReportConfig)
    logger.info("applying period %s filter to attendance data...", report.period_filter)
    return filter_by_period(grid, report.period_column, report.period_filter)


def _reorder_courses(grid: Grid, report: ReportConfig) -> Grid:
    if not isinstance(report, CoursesReportConfig):
        raise _wrong_config(report, CoursesReportConfig)
    logger.info("reordering columns for courses data...")
    return reorder_columns(grid, report.original_columns, report.target_columns)


def _pass_through(grid: Grid, report: ReportConfig) -> Grid:
    return grid


TRANSFORMS: dict[ReportKind, Callable[[Grid, ReportConfig], Grid]] = {
    ReportKind.ATTENDANCE: _filter_attendance,
    ReportKind.COURSES: _reorder_courses,
    ReportKind.CONTACTS: _pass_through,
}

_missing_transforms = set(ReportKind) - set(TRANSFORMS)
if _missing_transforms:  # pragma: no cover - guards future ReportKind additions
    raise RuntimeError(f"no transform registered for: {sorted(k.value for k in _missing_transforms)}")


def transform_report(kind: ReportKind, grid: Grid, report: ReportConfig) -> Grid:
    return TRANSFORMS[kind](grid, report)


def _now(tz: tzinfo) -> str:
    return datetime.now(tz).strftime(NOTE_TIME_FMT)


def _find_latest_message(
    mailbox: Mailbox, from_address: str | None, report: ReportConfig
) -> MailMessage:
    threads = mailbox.search(from_address, report.subject, max_results=1)
    if not threads or not threads[0].messages:
        raise ReportNotFound(f"Report not found: {report.subject}")
    message = threads[0].latest
    logger.info("found email: %r from %s", message.subject, message.date.isoformat())
    return message


def import_report(
    report: ReportConfig,
    message: MailMessage,
    mailbox: Mailbox,
    store: WorkbookStore,
    config: AppConfig,
    tz: tzinfo,
) -> tuple[int, str]:
    """Import one located report email into its destination table.

    Returns ``(data rows written, A1 note text)``.
    """
    logger.info("processing %s report from email: %s", report.kind.value, message.subject)
    attachments = spreadsheet_attachments(
        mailbox.get_attachments(message.message_id),
        config.mail.attachment_extensions,
        config.mail.attachment_mime_types,
        message_id=message.message_id,
    )
    attachment = attachments[0]
    logger.info("processing attachment: %s", attachment.filename)

    grid = parse_excel_data(attachment.payload).to_grid()
    grid = transform_report(report.kind, grid, report)

    table = store.get_or_create_table(report.table_name)
    table.clear_below(2)
    if grid:
        table.set_values(1, 1, pad_rows(grid))
    else:
        table.clear_range(1, 1, 1, max(table.last_column(), 1))
    rows_written = max(len(grid) - 1, 0)

    email_date = message.date.astimezone(tz).strftime(NOTE_TIME_FMT)
    note = f"Successfully imported on {_now(tz)} from email dated {email_date}"
    table.set_note(NOTE_CELL, note)
    logger.info("imported %s report to %s (%d data rows)", report.kind.value, table.name, rows_written)
    return rows_written, note


def _record_failure(
    store: WorkbookStore,
    report: ReportConfig,
    message: str,
    exc: Exception,
    tz: tzinfo,
    error_log: ErrorLogBuffer | None,
) -> None:
    table = store.get_or_create_table(report.table_name)
    table.set_note(NOTE_CELL, f"{_now(tz)}: {message}")
    if error_log is not None:
        error_log.append(
            ErrorRecord.create(
                operation="import",
                table=report.table_name,
                row=-1,
                error_type=ErrorRecord.error_type_for(exc),
                message=message,
            )
        )


def import_reports(
    config: AppConfig,
    mailbox: Mailbox,
    store: WorkbookStore,
    from_address: str | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportSummary:
    """Import every report kind, isolating failures per kind.

    Args:
        config: application config (report subjects, tables, transforms' columns)
        mailbox: source of report emails
        store: destination workbook
        from_address: only accept emails from this sender (defaults to ``mail.from_address``)
        error_log: buffer that receives one record per missing or failed kind

    Returns:
        ImportSummary with one ReportImportResult per kind, in processing order
    """
    start_time = datetime.now(UTC)
    tz = resolve_timezone(config.timezone)
    sender = from_address or config.mail.from_address
    results: list[ReportImportResult] = []

    with ProgressTracker(len(ReportKind)) as progress:
        for kind in ReportKind:
            report = config.report(kind)
            progress.start_report(kind.value)
            logger.info("searching for %s report: %s", kind.value, report.subject)

            try:
                message = _find_latest_message(mailbox, sender, report)
            except ReportNotFound as e:
                logger.warning("report=%s table=%s %s", kind.value, report.table_name, e)
                _record_failure(store, report, str(e), e, tz, error_log)
                results.append(
                    ReportImportResult(
                        kind=kind,
                        table_name=report.table_name,
                        status=ReportStatus.MISSING,
                        subject=report.subject,
                        error=str(e),
                    )
                )
                progress.finish_report()
                continue

            try:
                rows, note = import_report(report, message, mailbox, store, config, tz)
            except Exception as e:
                error_msg = f"Error importing {kind.value} report: {e}"
                logger.error("report=%s table=%s %s", kind.value, report.table_name, error_msg)
                _record_failure(store, report, error_msg, e, tz, error_log)
                results.append(
                    ReportImportResult(
                        kind=kind,
                        table_name=report.table_name,
                        status=ReportStatus.FAILED,
                        subject=report.subject,
                        error=error_msg,
                    )
                )
            else:
                results.append(
                    ReportImportResult(
                        kind=kind,
                        table_name=report.table_name,
                        status=ReportStatus.IMPORTED,
                        subject=report.subject,
                        rows_written=rows,
                        note=note,
                    )
                )
            progress.set_postfix(
                imported=sum(1 for r in results if r.status is ReportStatus.IMPORTED)
            )
            progress.finish_report()

    end_time = datetime.now(UTC)
    summary = ImportSummary(
        results=results,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
    )
    logger.info("import complete: imported %d of %d reports", summary.imported, summary.total)
    return summary
