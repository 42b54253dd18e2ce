from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.comments import Comment
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

"""Tabular store backed by an .xlsx workbook (openpyxl).

Each named table is a worksheet. Coordinates are 1-based (row, column) like the
spreadsheet UI. Empty cells read back as ``""`` and writing ``""`` clears a cell.
Range writes are issued as one ``set_values`` call per logical block; ``Table.writes``
counts those calls.
"""

__all__ = [
    "Table",
    "WorkbookStore",
]

logger = logging.getLogger(__name__)

NOTE_AUTHOR = "flexabsence"


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class Table:
    """A named table (worksheet) with range read/write helpers."""

    def __init__(self, worksheet: Worksheet) -> None:
        self._ws = worksheet
        self.writes = 0  # number of set_values calls issued against this table

    @property
    def name(self) -> str:
        return self._ws.title

    @property
    def worksheet(self) -> Worksheet:
        return self._ws

    def last_row(self) -> int:
        """1-based index of the last row holding a value (0 for an empty table)."""
        last = 0
        for idx, row in enumerate(self._ws.iter_rows(values_only=True), start=1):
            if any(not _is_empty(v) for v in row):
                last = idx
        return last

    def last_column(self) -> int:
        """1-based index of the last column holding a value (0 for an empty table)."""
        last = 0
        for row in self._ws.iter_rows(values_only=True):
            for idx, v in enumerate(row, start=1):
                if idx > last and not _is_empty(v):
                    last = idx
        return last

    def get_values(self, row: int, column: int, num_rows: int, num_columns: int) -> list[list[Any]]:
        if num_rows <= 0 or num_columns <= 0:
            return []
        values: list[list[Any]] = []
        for r in self._ws.iter_rows(
            min_row=row,
            max_row=row + num_rows - 1,
            min_col=column,
            max_col=column + num_columns - 1,
            values_only=True,
        ):
            values.append(["" if v is None else v for v in r])
        return values

    def read_all(self) -> list[list[Any]]:
        """Snapshot of the whole used range, rows padded to the last used column."""
        return self.get_values(1, 1, self.last_row(), self.last_column())

    def set_values(self, row: int, column: int, values: Sequence[Sequence[Any]]) -> None:
        """Write a rectangular block whose top-left cell is (row, column)."""
        if not values:
            return
        width = len(values[0])
        if any(len(r) != width for r in values):
            raise ValueError(f"table {self.name!r}: range values must be rectangular")
        for r_off, r in enumerate(values):
            for c_off, v in enumerate(r):
                cell = self._ws.cell(row=row + r_off, column=column + c_off, value=None if v == "" else v)
                # openpyxl types "#N/A" and friends as error cells; markers are stored as text.
                if isinstance(v, str) and cell.data_type == "e":
                    cell.data_type = "s"
        self.writes += 1
        logger.debug(
            "table=%s wrote %d rows x %d columns at row=%d col=%d",
            self.name,
            len(values),
            width,
            row,
            column,
        )

    def clear_range(self, row: int, column: int, num_rows: int, num_columns: int) -> None:
        for r in range(row, row + num_rows):
            for c in range(column, column + num_columns):
                self._ws.cell(row=r, column=c).value = None

    def clear_below(self, start_row: int) -> int:
        """Clear the contents of every row from ``start_row`` down. Returns rows cleared."""
        last_row = self.last_row()
        last_col = self.last_column()
        if start_row > last_row or last_col == 0:
            logger.debug("table=%s nothing to clear from row %d", self.name, start_row)
            return 0
        num_rows = last_row - start_row + 1
        self.clear_range(start_row, 1, num_rows, last_col)
        logger.debug("table=%s cleared %d rows starting at row %d", self.name, num_rows, start_row)
        return num_rows

    def set_note(self, cell: str, text: str) -> None:
        self._ws[cell].comment = Comment(text, NOTE_AUTHOR)
        logger.debug("table=%s note added to %s", self.name, cell)

    def get_note(self, cell: str) -> str | None:
        comment = self._ws[cell].comment
        return comment.text if comment is not None else None

    def set_bold(self, row: int, column: int, num_rows: int = 1, num_columns: int = 1) -> None:
        for r in range(row, row + num_rows):
            for c in range(column, column + num_columns):
                self._ws.cell(row=r, column=c).font = Font(bold=True)

    def set_italic(self, cell: str, color: str | None = None) -> None:
        self._ws[cell].font = Font(italic=True, color=color)

    def is_bold(self, row: int, column: int) -> bool:
        return bool(self._ws.cell(row=row, column=column).font.b)


class WorkbookStore:
    """Named-table access over one openpyxl workbook.

    ``WorkbookStore.open(path)`` loads an existing workbook or starts a new one that is
    written on ``save()``. Passing a ``Workbook`` directly keeps everything in memory.
    """

    def __init__(self, workbook: Workbook | None = None, path: Path | None = None) -> None:
        self._wb = workbook if workbook is not None else Workbook()
        self.path = path
        self._tables: dict[str, Table] = {}

    @classmethod
    def open(cls, path: Path) -> WorkbookStore:
        if path.exists():
            logger.debug("loading workbook %s", path)
            return cls(load_workbook(path), path=path)
        logger.info("workbook %s does not exist yet; it will be created on save", path)
        return cls(Workbook(), path=path)

    @property
    def workbook(self) -> Workbook:
        return self._wb

    def _wrap(self, ws: Worksheet) -> Table:
        # One Table per worksheet so write counters survive repeated lookups.
        table = self._tables.get(ws.title)
        if table is None or table.worksheet is not ws:
            table = Table(ws)
            self._tables[ws.title] = table
        return table

    def table_names(self) -> list[str]:
        return list(self._wb.sheetnames)

    def get_table(self, name: str) -> Table | None:
        if name not in self._wb.sheetnames:
            return None
        return self._wrap(self._wb[name])

    def create_table(self, name: str) -> Table:
        ws = self._wb.create_sheet(title=name)
        logger.info("created table: %s", name)
        return self._wrap(ws)

    def get_or_create_table(self, name: str) -> Table:
        table = self.get_table(name)
        if table is None:
            table = self.create_table(name)
        return table

    def find_tables(self, pattern: str | re.Pattern[str]) -> list[Table]:
        """Tables whose name matches ``pattern`` (case-insensitive search), in workbook order."""
        regex = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, re.IGNORECASE)
        return [self._wrap(ws) for ws in self._wb.worksheets if regex.search(ws.title)]

    def save(self, path: Path | None = None) -> Path:
        target = path or self.path
        if target is None:
            raise ValueError("no workbook path to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        self._wb.save(target)
        logger.debug("saved workbook %s", target)
        return target
