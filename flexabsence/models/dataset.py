from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

"""Tabular dataset model shared by the extractor, transformer and store.

A grid is a plain ``list[list[Any]]``: row 0 holds header labels, the remaining rows hold
data. Cells are text, numbers or ``""`` for empty.
"""

__all__ = [
    "Dataset",
    "cell_text",
    "pad_rows",
]

Row = list[Any]


def cell_text(value: Any) -> str:
    """Coerce a cell value to trimmed text for ID / code comparison.

    Integral floats drop their decimal part so that a numeric ``1234.0`` read back from
    spreadsheet storage compares equal to the text ``"1234"``.
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def pad_rows(rows: Sequence[Sequence[Any]], width: int | None = None) -> list[Row]:
    """Return rows padded with ``""`` to a common width (longest row when width is None)."""
    if width is None:
        width = max((len(r) for r in rows), default=0)
    padded: list[Row] = []
    for r in rows:
        row = ["" if v is None else v for v in list(r)[:width]]
        if len(row) < width:
            row.extend([""] * (width - len(row)))
        padded.append(row)
    return padded


@dataclass
class Dataset:
    """Header row plus data rows, as produced by the tabular extractor."""
    headers: Row = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)

    @classmethod
    def from_grid(cls, grid: Sequence[Sequence[Any]]) -> Dataset:
        if not grid:
            return cls(headers=[], rows=[])
        return cls(headers=list(grid[0]), rows=[list(r) for r in grid[1:]])

    def to_grid(self) -> list[Row]:
        if not self.headers and not self.rows:
            return []
        return [list(self.headers)] + [list(r) for r in self.rows]

    @property
    def width(self) -> int:
        return len(self.headers)
