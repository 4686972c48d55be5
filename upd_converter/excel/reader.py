from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from upd_converter.models.document import Cell, Grid

"""Grid reader.

Loads the first sheet of a spreadsheet into a Grid: a list of rows, each a
list of plain Python cell values (str / int / float / None). Nothing is
treated as a header and no type coercion happens beyond what the engine
provides, except:
- NaN / NaT (empty cells) -> None; NA-like text ("NA", "null") stays text
- numpy scalars -> Python scalars
- whole floats -> int (pandas upcasts integer columns with gaps to float64)
- dates -> "DD.MM.YYYY" strings, the form the date normalizer understands

`.xlsx` goes through openpyxl, `.xls` through xlrd (pandas picks the engine
by extension).
"""

__all__ = [
    "GridReadError",
    "SUPPORTED_SUFFIXES",
    "read_grid",
    "dataframe_to_grid",
]

SUPPORTED_SUFFIXES = (".xlsx", ".xls")


class GridReadError(Exception):
    """Raised when the spreadsheet cannot be opened or parsed."""


def _to_cell(value: Any) -> Cell:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        # pd.Timestamp тоже наследует datetime
        if pd.isna(value):
            return None
        return value.strftime("%d.%m.%Y")
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float):
        if np.isnan(value):
            return None
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, (int, str)):
        return value
    if pd.isna(value):
        return None
    return str(value)


def dataframe_to_grid(df: pd.DataFrame) -> Grid:
    """Convert a header-less DataFrame into a Grid (trailing Nones trimmed per row)."""
    grid: Grid = []
    for raw in df.itertuples(index=False, name=None):
        row = [_to_cell(v) for v in raw]
        while row and row[-1] is None:
            row.pop()
        grid.append(row)
    return grid


def read_grid(path: Path) -> Grid:
    """Read the first sheet of `path` into a Grid.

    Raises:
        GridReadError: unsupported extension, missing file or a file the
            engine cannot parse (corrupt bytes, wrong format).
    """
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise GridReadError(f"unsupported file type: {path.name}")
    if not path.exists():
        raise GridReadError(f"file not found: {path}")
    try:
        with pd.ExcelFile(path) as xls:
            if not xls.sheet_names:
                raise GridReadError(f"workbook has no sheets: {path.name}")
            # "NA", "null", "#N/A" и т.п. остаются текстом, NaN только для пустых ячеек
            df = xls.parse(
                xls.sheet_names[0], header=None, dtype=object, keep_default_na=False, na_values=[""]
            )
    except GridReadError:
        raise
    except Exception as e:
        raise GridReadError(f"cannot read {path.name}: {e}") from e
    return dataframe_to_grid(df)
