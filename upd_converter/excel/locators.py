from __future__ import annotations

from collections.abc import Iterable, Iterator

from upd_converter.models.document import Cell, CellPosition, Grid

"""Field locators: label search and bounds-checked reads over a Grid.

All "find the label, then read a fixed column on that row" logic in the
extractors goes through these functions. Absence is never an error: a search
without a match returns `CellPosition(None, None)` and an out-of-range read
returns None.
"""

__all__ = [
    "cell_text",
    "find_cell_by_text",
    "find_row_with_any",
    "get_cell",
    "iter_cells",
]


def cell_text(value: Cell) -> str:
    """String representation used for substring matching ("" for None)."""
    if value is None:
        return ""
    return str(value)


def get_cell(grid: Grid, row: int, col: int) -> Cell:
    """Return grid[row][col], or None when either index is out of range.

    Negative indices count as out of range (no Python wrap-around).
    """
    if row < 0 or row >= len(grid):
        return None
    row_data = grid[row]
    if not row_data or col < 0 or col >= len(row_data):
        return None
    return row_data[col]


def iter_cells(grid: Grid, max_rows: int | None = None) -> Iterator[tuple[int, int, Cell]]:
    """Yield (row, col, value) for non-empty cells, row by row, left to right."""
    limit = len(grid) if max_rows is None else min(max_rows, len(grid))
    for row_idx in range(limit):
        row = grid[row_idx]
        if not row:
            continue
        for col_idx, value in enumerate(row):
            if value is None:
                continue
            yield row_idx, col_idx, value


def find_cell_by_text(grid: Grid, search: str, max_rows: int | None = None) -> CellPosition:
    """First cell whose text contains `search` (case-sensitive substring)."""
    for row_idx, col_idx, value in iter_cells(grid, max_rows):
        if search in cell_text(value):
            return CellPosition(row_idx, col_idx)
    return CellPosition(None, None)


def find_row_with_any(grid: Grid, labels: Iterable[str], max_rows: int | None = None) -> int | None:
    """Index of the first row holding a cell that contains any of `labels`."""
    variants = [s for s in labels if s]
    for row_idx, _, value in iter_cells(grid, max_rows):
        text = cell_text(value)
        if any(v in text for v in variants):
            return row_idx
    return None
