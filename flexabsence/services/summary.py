from __future__ import annotations

from ..models.processing_result import CommentSyncResult, EnrichmentResult, ImportSummary

"""SUMMARY line rendering.

Formats (one line per command, parsed by scheduled-job wrappers):

    SUMMARY reports=<imported>/<total> imported=<n> missing=<n> failed=<n> elapsed_sec=<x>
    SUMMARY roster="<name>" rows=<n> skippers=<n> attendance_matched=<n> teacher_matched=<n> contact_matched=<n>
    SUMMARY roster="<name>" comments_updated=<n> unmatched=<n>
"""

__all__ = [
    "describe_import",
    "render_comment_summary",
    "render_enrichment_summary",
    "render_import_summary",
]


def _format_elapsed(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # Avoid scientific notation for very small values
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_import_summary(summary: ImportSummary) -> str:
    """Render the import SUMMARY line.

    Examples:
        >>> from datetime import datetime, UTC
        >>> t = datetime(2024, 11, 3, 7, 0, tzinfo=UTC)
        >>> render_import_summary(ImportSummary([], t, t, 0.0))
        'SUMMARY reports=0/0 imported=0 missing=0 failed=0 elapsed_sec=0'
    """
    return (
        f"SUMMARY reports={summary.imported}/{summary.total} "
        f"imported={summary.imported} "
        f"missing={len(summary.missing)} "
        f"failed={len(summary.failed)} "
        f"elapsed_sec={_format_elapsed(summary.elapsed_seconds)}"
    )


def render_enrichment_summary(result: EnrichmentResult) -> str:
    return (
        f'SUMMARY roster="{result.roster_name}" '
        f"rows={result.rows_processed} "
        f"skippers={result.skippers} "
        f"attendance_matched={result.attendance_matched} "
        f"teacher_matched={result.teacher_matched} "
        f"contact_matched={result.contact_matched}"
    )


def render_comment_summary(result: CommentSyncResult) -> str:
    return (
        f'SUMMARY roster="{result.roster_name}" '
        f"comments_updated={result.updated} "
        f"unmatched={result.unmatched}"
    )


def describe_import(summary: ImportSummary) -> str:
    """User-facing message for an import run (printed after the SUMMARY line)."""
    if summary.total and summary.imported == summary.total:
        return f"Successfully imported all {summary.total} reports!"
    if summary.imported == 0:
        return "Failed to import any reports. Check cell A1 notes in each table for details."

    message = f"Imported {summary.imported} of {summary.total} reports."
    if summary.missing:
        message += "\n\nMissing reports:\n" + "\n".join(f"- {s}" for s in summary.missing)
    if summary.failed:
        message += "\n\nFailed to import: " + ", ".join(summary.failed)
    return message + "\n\nCheck cell A1 notes in each table for details."
