from __future__ import annotations

import logging
from typing import Any

from ..models.config_models import AppConfig, ReportConfig, ReportKind
from ..models.dataset import cell_text
from ..models.errors import SourceTableMissing
from ..models.processing_result import EnrichmentResult
from ..store.workbook import Table, WorkbookStore
from .headers import ensure_enrichment_headers
from .lookup import LookupMap, build_lookup
from .roster import find_roster, require_data_rows

"""Enrichment engine: joins the imported reports onto the roster and stages skippers.

One invocation runs strictly in order and aborts on the first failure:

1. locate the roster (name pattern, or an explicit name)
2. require at least one data row below the header band
3. require the three source tables
4. restore the derived header band
5. build the attendance, teacher and contact lookup maps
6. derive the attendance / teacher / email cells for every roster row
7. write them as three batched range writes (one per column group)
8. re-read the roster and classify skippers (attendance cell == sentinel)
9. rebuild the staging table from the skipper rows

There is no rollback: if a later step raises, earlier writes stay applied. Rows with an
empty Student ID keep whatever their derived cells already held and are never skippers.
"""

__all__ = [
    "enrich_roster",
    "identify_skippers",
    "rebuild_staging",
]

logger = logging.getLogger(__name__)


def _require_source(store: WorkbookStore, report: ReportConfig) -> Table:
    table = store.get_table(report.table_name)
    if table is None:
        raise SourceTableMissing(report.table_name, "import the reports first")
    return table


def _build_source_lookup(table: Table, report: ReportConfig) -> LookupMap:
    return build_lookup(
        table.read_all(),
        report.id_column,
        report.value_columns,
        header_rows=1,
        source=table.name,
    )


def identify_skippers(
    rows: list[list[Any]], id_column: int, attendance_column: int, sentinel: str
) -> list[list[Any]]:
    """Rows with a Student ID whose attendance cell, as trimmed text, equals the sentinel.

    Rows without an ID are never skippers, whatever their attendance cell still holds.
    """
    return [
        list(row)
        for row in rows
        if id_column < len(row)
        and cell_text(row[id_column]) != ""
        and attendance_column < len(row)
        and cell_text(row[attendance_column]) == sentinel
    ]


def rebuild_staging(store: WorkbookStore, config: AppConfig, skipper_rows: list[list[Any]]) -> Table:
    """Replace the staging table's data with ``skipper_rows``.

    Everything below the header row is cleared first, so an empty skipper list still
    removes the previous run's rows. The header row is written only when it is empty.
    """
    staging = store.get_or_create_table(config.staging.table_name)
    staging.clear_below(2)

    headers = list(config.staging.headers)
    current = staging.get_values(1, 1, 1, len(headers))[0]
    if all(cell_text(h) == "" for h in current):
        staging.set_values(1, 1, [headers])
        staging.set_bold(1, 1, 1, len(headers))
        logger.info("set headers in %s", staging.name)

    if not skipper_rows:
        logger.info("no skippers to copy to %s", staging.name)
        return staging

    staging.set_values(2, 1, skipper_rows)
    logger.info("copied %d skippers to %s", len(skipper_rows), staging.name)
    return staging


def enrich_roster(
    store: WorkbookStore, config: AppConfig, roster_name: str | None = None
) -> EnrichmentResult:
    roster = config.roster
    table = find_roster(store, config, roster_name)
    num_rows = require_data_rows(table, config)

    sources = {kind: _require_source(store, config.report(kind)) for kind in ReportKind}

    restored = ensure_enrichment_headers(table, roster)

    logger.info("building student lookup maps...")
    attendance_map = _build_source_lookup(
        sources[ReportKind.ATTENDANCE], config.report(ReportKind.ATTENDANCE)
    )
    teacher_map = _build_source_lookup(sources[ReportKind.COURSES], config.report(ReportKind.COURSES))
    contact_map = _build_source_lookup(
        sources[ReportKind.CONTACTS], config.report(ReportKind.CONTACTS)
    )
    logger.info(
        "built maps: %d attendance records, %d teacher records, %d contact records",
        len(attendance_map),
        len(teacher_map),
        len(contact_map),
    )

    first_row = roster.first_data_row
    width = max(table.last_column(), roster.band_end)
    snapshot = table.get_values(first_row, 1, num_rows, width)

    att_col = roster.attendance_code_column
    teacher_col = roster.teacher_column
    email_cols = roster.email_columns

    attendance_codes: list[list[Any]] = []
    teacher_names: list[list[Any]] = []
    contact_info: list[list[Any]] = []
    att_matched = teacher_matched = contact_matched = 0

    for offset, row in enumerate(snapshot):
        student_id = cell_text(row[roster.id_column])
        if not student_id:
            # Carry existing cells through so the batched write leaves them untouched.
            attendance_codes.append([row[att_col]])
            teacher_names.append([row[teacher_col]])
            contact_info.append([row[c] for c in email_cols])
            continue

        found = attendance_map.get(student_id)
        if found is not None:
            attendance_codes.append([found[0]])
            att_matched += 1
        else:
            attendance_codes.append([roster.sentinel])

        found = teacher_map.get(student_id)
        if found is not None:
            teacher_names.append([found[0]])
            teacher_matched += 1
        else:
            teacher_names.append([""])

        found = contact_map.get(student_id)
        if found is not None:
            contact_info.append(list(found))
            contact_matched += 1
        else:
            contact_info.append(["", "", ""])
            if num_rows - offset <= 3 or contact_matched == 0:
                logger.debug("student %s not found in contact map (row %d)", student_id, first_row + offset)

    table.set_values(first_row, att_col + 1, attendance_codes)
    table.set_values(first_row, teacher_col + 1, teacher_names)
    table.set_values(first_row, email_cols[0] + 1, contact_info)
    logger.info(
        "enriched %d rows in %s (attendance=%d teacher=%d contact=%d matched)",
        num_rows,
        table.name,
        att_matched,
        teacher_matched,
        contact_matched,
    )

    enriched = table.get_values(first_row, 1, num_rows, width)
    skippers = identify_skippers(enriched, roster.id_column, att_col, roster.sentinel)
    logger.info("identified %d skippers in %s", len(skippers), table.name)

    rebuild_staging(store, config, skippers)

    return EnrichmentResult(
        roster_name=table.name,
        rows_processed=num_rows,
        attendance_matched=att_matched,
        teacher_matched=teacher_matched,
        contact_matched=contact_matched,
        skipper_rows=skippers,
        headers_restored=restored,
    )
