from __future__ import annotations

import logging
from collections.abc import Iterable
from io import BytesIO
from typing import Any

import pandas as pd

from ..models.dataset import Dataset, pad_rows
from ..models.errors import ConversionError

"""Tabular extractor: spreadsheet attachment bytes -> grid -> Dataset.

The attachment is parsed with pandas (openpyxl engine) without a header row so the
first row reaches the caller unchanged. ``dtype=object`` keeps numeric and text cells
apart (text "02" stays "02", numeric 2 stays 2). pandas' default NA-string conversion is
disabled so literal values such as ``NA`` or ``#N/A`` survive as text; only cells that
are truly empty become ``""``.
"""

__all__ = [
    "read_excel_bytes",
    "parse_excel_data",
]

logger = logging.getLogger(__name__)


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):  # pragma: no cover - non-scalar cell
        pass
    return value


def read_excel_bytes(
    blob: bytes, sheet_name: str | int = 0, na_strings: Iterable[str] | None = None
) -> list[list[Any]]:
    """Read one sheet of an .xlsx payload into a rectangular grid.

    Parameters
    ----------
    blob: raw attachment bytes
    sheet_name: sheet to read (first sheet by default)
    na_strings: strings that should be treated as empty cells (none by default)

    Raises
    ------
    ConversionError: the payload is not a readable workbook. No partial grid is returned.
    """
    na_values = list(na_strings) if na_strings else None
    try:
        # ExcelFile closes its workbook handle on exit, success or failure.
        with pd.ExcelFile(BytesIO(blob), engine="openpyxl") as xls:
            df = xls.parse(
                sheet_name,
                header=None,
                dtype=object,
                keep_default_na=False,
                na_values=na_values,
            )
    except Exception as e:
        raise ConversionError(f"failed to convert spreadsheet attachment: {e}") from e

    grid = [[_cell(v) for v in row] for row in df.itertuples(index=False, name=None)]
    # Drop fully empty trailing rows left by formatted-but-empty cells.
    while grid and all(v == "" for v in grid[-1]):
        grid.pop()
    grid = pad_rows(grid)
    logger.debug("converted attachment to grid rows=%d cols=%d", len(grid), len(grid[0]) if grid else 0)
    return grid


def parse_excel_data(blob: bytes) -> Dataset:
    """Split an attachment into header row + data rows.

    Only the first row is treated as headers. An empty sheet yields an empty Dataset.
    """
    grid = read_excel_bytes(blob)
    if not grid:
        logger.info("no data found in spreadsheet attachment")
        return Dataset(headers=[], rows=[])
    dataset = Dataset.from_grid(grid)
    logger.debug("parsed attachment: %d columns, %d data rows", dataset.width, len(dataset.rows))
    return dataset
