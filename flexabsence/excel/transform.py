from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.dataset import cell_text
from ..models.errors import ColumnMappingError

"""Report transformer: report-specific shaping of an extracted grid.

- ``filter_by_period``: keep the header row plus rows for one period (attendance)
- ``reorder_columns``: reorder and prune columns by header name (courses)

Both take and return a grid whose first row holds the headers.
"""

__all__ = [
    "filter_by_period",
    "reorder_columns",
]

logger = logging.getLogger(__name__)


def filter_by_period(
    data: Sequence[Sequence[Any]], period_column: int, period_value: str
) -> list[list[Any]]:
    """Keep the header row and the data rows whose period cell equals ``period_value``.

    The cell is coerced to trimmed text and compared with string equality, so a text
    ``"02"`` matches ``"02"`` while ``"2"`` or a numeric ``2`` do not. Empty or missing
    cells never match.
    """
    if not data:
        logger.info("no data to filter")
        return []

    headers = list(data[0])
    data_rows = data[1:]
    kept: list[list[Any]] = []
    for row in data_rows:
        value = cell_text(row[period_column]) if period_column < len(row) else ""
        if value and value == period_value:
            kept.append(list(row))
    logger.info(
        "filtered %d rows to %d rows where column %d = %r",
        len(data_rows),
        len(kept),
        period_column,
        period_value,
    )
    return [headers] + kept


def _validate_names(names: Any, label: str) -> list[str]:
    if not isinstance(names, Sequence) or isinstance(names, str) or not names:
        raise ColumnMappingError(f"column mapping must include a non-empty {label} list")
    if not all(isinstance(n, str) for n in names):
        raise ColumnMappingError(f"{label} must contain only column names")
    return [n.strip() for n in names]


def reorder_columns(
    data: Sequence[Sequence[Any]],
    original_columns: Sequence[str] | None,
    target_columns: Sequence[str] | None,
) -> list[list[Any]]:
    """Rebuild the grid with exactly ``target_columns`` in that order.

    Each target name is resolved to its source index by trimmed, case-sensitive match
    against the header row. A target with no match yields ``""`` for every row and a
    warning; it is not an error. Source columns not named in the target list are dropped.

    Raises
    ------
    ColumnMappingError: either name list is missing, empty or not a list of strings.
    """
    original = _validate_names(original_columns, "originalColumns")
    targets = _validate_names(target_columns, "targetColumns")

    if not data:
        logger.info("no data to reorder")
        return []

    headers = data[0]
    index_by_name: dict[str, int] = {}
    for i, h in enumerate(headers):
        # First occurrence wins when a header label is repeated.
        index_by_name.setdefault(cell_text(h), i)

    unexpected = [cell_text(h) for h in headers if cell_text(h) and cell_text(h) not in original]
    if unexpected:
        logger.warning("source header has columns outside the configured originals: %s", unexpected)

    target_indices: list[int | None] = []
    for name in targets:
        idx = index_by_name.get(name)
        if idx is None:
            logger.warning("target column %r not found in source header", name)
        target_indices.append(idx)

    rows: list[list[Any]] = [list(targets)]
    for row in data[1:]:
        rows.append(
            [row[i] if i is not None and i < len(row) else "" for i in target_indices]
        )
    logger.info("reordered data from %d columns to %d columns", len(headers), len(targets))
    return rows
