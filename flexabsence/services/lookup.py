from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ..models.dataset import cell_text

"""Student lookup builder.

Builds the run-scoped ``Student ID -> tuple of values`` maps used by every enrichment
join and by the comment synchronizer. IDs are trimmed text; duplicate IDs overwrite
(the last row wins).
"""

__all__ = [
    "LookupMap",
    "build_lookup",
]

logger = logging.getLogger(__name__)

LookupMap = dict[str, tuple[Any, ...]]


def build_lookup(
    rows: Sequence[Sequence[Any]],
    id_column: int,
    value_columns: Sequence[int],
    header_rows: int = 1,
    include: Callable[[Sequence[Any]], bool] | None = None,
    source: str = "",
) -> LookupMap:
    """Build a lookup map from a table snapshot.

    Parameters
    ----------
    rows: table snapshot including its header row(s)
    id_column: zero-based column holding the Student ID
    value_columns: zero-based columns extracted, in order, into each tuple
    header_rows: leading rows to skip
    include: optional predicate; rows for which it returns False are never inserted
    source: table name, for logging only

    Rows with an empty ID are skipped. Indexes beyond a row's length yield ``""``.
    """
    lookup: LookupMap = {}
    duplicates = 0
    for row in rows[header_rows:]:
        student_id = cell_text(row[id_column]) if id_column < len(row) else ""
        if not student_id:
            continue
        if include is not None and not include(row):
            continue
        values = tuple(
            ("" if row[c] is None else row[c]) if c < len(row) else "" for c in value_columns
        )
        if student_id in lookup:
            duplicates += 1
        lookup[student_id] = values

    if duplicates:
        logger.debug("lookup source=%s duplicate ids overwritten=%d", source or "?", duplicates)
    logger.info("built student map from %s: %d students", source or "table", len(lookup))
    return lookup
