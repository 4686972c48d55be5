"""Spreadsheet access: grid reading and label locators."""

from .locators import cell_text, find_cell_by_text, find_row_with_any, get_cell, iter_cells
from .reader import GridReadError, SUPPORTED_SUFFIXES, dataframe_to_grid, read_grid

__all__ = [
    "GridReadError",
    "SUPPORTED_SUFFIXES",
    "cell_text",
    "dataframe_to_grid",
    "find_cell_by_text",
    "find_row_with_any",
    "get_cell",
    "iter_cells",
    "read_grid",
]
