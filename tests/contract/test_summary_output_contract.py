from __future__ import annotations

import re
from datetime import UTC, datetime

from flexabsence.models.config_models import ReportKind
from flexabsence.models.processing_result import (
    CommentSyncResult,
    EnrichmentResult,
    ImportSummary,
    ReportImportResult,
    ReportStatus,
)
from flexabsence.services.summary import (
    render_comment_summary,
    render_enrichment_summary,
    render_import_summary,
)

"""SUMMARY line format contract (parsed by scheduled-job wrappers)."""

IMPORT_PATTERN = re.compile(
    r"^SUMMARY\s+reports=([0-9]+)/([0-9]+)\s+imported=(\1)\s+missing=([0-9]+)\s+"
    r"failed=([0-9]+)\s+elapsed_sec=([0-9]+\.?[0-9]*)$"
)
ENRICH_PATTERN = re.compile(
    r'^SUMMARY\s+roster="([^"]+)"\s+rows=([0-9]+)\s+skippers=([0-9]+)\s+'
    r"attendance_matched=([0-9]+)\s+teacher_matched=([0-9]+)\s+contact_matched=([0-9]+)$"
)
COMMENTS_PATTERN = re.compile(
    r'^SUMMARY\s+roster="([^"]+)"\s+comments_updated=([0-9]+)\s+unmatched=([0-9]+)$'
)


def test_import_pattern_example_line():
    assert IMPORT_PATTERN.match("SUMMARY reports=3/3 imported=3 missing=0 failed=0 elapsed_sec=0.84")


def test_rendered_import_line_matches_contract():
    t = datetime(2025, 11, 3, tzinfo=UTC)
    results = [
        ReportImportResult(ReportKind.ATTENDANCE, "BHS attendance", ReportStatus.IMPORTED, "a"),
        ReportImportResult(ReportKind.COURSES, "2nd period default", ReportStatus.MISSING, "b"),
        ReportImportResult(ReportKind.CONTACTS, "contact info", ReportStatus.FAILED, "c"),
    ]
    line = render_import_summary(ImportSummary(results, t, t, 1.234567))
    m = IMPORT_PATTERN.match(line)
    assert m, line
    assert m.group(1, 2, 4, 5) == ("1", "3", "1", "1")


def test_rendered_enrichment_line_matches_contract():
    line = render_enrichment_summary(
        EnrichmentResult("11.3 flex absences", 12, 10, 11, 9, skipper_rows=[["1"]])
    )
    m = ENRICH_PATTERN.match(line)
    assert m, line
    assert m.group(1) == "11.3 flex absences"
    assert m.group(3) == "1"


def test_rendered_comment_line_matches_contract():
    line = render_comment_summary(CommentSyncResult("11.3 flex absences", 4, 3, 2))
    m = COMMENTS_PATTERN.match(line)
    assert m, line
    assert m.group(2, 3) == ("3", "2")
