from __future__ import annotations

import logging
from typing import Any

from ..models.config_models import AppConfig
from ..models.dataset import cell_text
from ..models.errors import SourceTableMissing
from ..models.processing_result import CommentSyncResult
from ..store.workbook import WorkbookStore
from .lookup import build_lookup
from .roster import find_roster, require_data_rows

"""Copy comments entered on the staging table back onto the roster.

Staging rows are exact copies of roster rows, so the ID and comment columns share the
roster's positions. Only non-empty staging comments are propagated; roster rows with an
empty ID or an ID absent from staging keep their comment.
"""

__all__ = ["sync_comments"]

logger = logging.getLogger(__name__)


def _has_comment(column: int):
    def predicate(row: list[Any]) -> bool:
        return column < len(row) and cell_text(row[column]) != ""

    return predicate


def sync_comments(
    store: WorkbookStore, config: AppConfig, roster_name: str | None = None
) -> CommentSyncResult:
    roster = config.roster
    table = find_roster(store, config, roster_name)
    num_rows = require_data_rows(table, config)

    staging = store.get_table(config.staging.table_name)
    if staging is None:
        raise SourceTableMissing(config.staging.table_name, "run enrichment first")

    comment_map = build_lookup(
        staging.read_all(),
        roster.id_column,
        (roster.comment_column,),
        header_rows=1,
        include=_has_comment(roster.comment_column),
        source=staging.name,
    )
    logger.info("found %d comments in %s", len(comment_map), staging.name)

    first_row = roster.first_data_row
    ids = table.get_values(first_row, roster.id_column + 1, num_rows, 1)
    current = table.get_values(first_row, roster.comment_column + 1, num_rows, 1)

    comments: list[list[Any]] = []
    updated = unmatched = 0
    for (id_cell,), (existing,) in zip(ids, current, strict=True):
        student_id = cell_text(id_cell)
        found = comment_map.get(student_id) if student_id else None
        if found is None:
            if student_id:
                unmatched += 1
            comments.append([existing])
            continue
        if cell_text(existing) != cell_text(found[0]):
            updated += 1
        comments.append([found[0]])

    if updated:
        table.set_values(first_row, roster.comment_column + 1, comments)
        logger.info("updated %d comments in %s", updated, table.name)
    else:
        logger.info("no comment changes for %s", table.name)

    return CommentSyncResult(
        roster_name=table.name,
        comments_available=len(comment_map),
        updated=updated,
        unmatched=unmatched,
    )
