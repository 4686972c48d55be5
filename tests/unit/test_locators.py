from __future__ import annotations

from upd_converter.excel.locators import cell_text, find_cell_by_text, find_row_with_any, get_cell, iter_cells

"""Unit tests for grid locators."""

GRID = [
    ["Счет-фактура №", None, "42"],
    [],
    [None, "Продавец:", "ООО Ромашка"],
    [None, None, None, "№\nп/п"],
]


def test_get_cell_in_range():
    assert get_cell(GRID, 0, 2) == "42"
    assert get_cell(GRID, 2, 1) == "Продавец:"


def test_get_cell_out_of_range_returns_none():
    assert get_cell(GRID, 10, 0) is None
    assert get_cell(GRID, 0, 10) is None
    assert get_cell(GRID, 1, 0) is None  # пустая строка
    assert get_cell([], 0, 0) is None


def test_get_cell_negative_indices_never_wrap():
    assert get_cell(GRID, -1, 0) is None
    assert get_cell(GRID, 0, -1) is None


def test_cell_text():
    assert cell_text(None) == ""
    assert cell_text(42) == "42"
    assert cell_text("abc") == "abc"


def test_iter_cells_skips_empty_and_respects_max_rows():
    cells = list(iter_cells(GRID))
    assert cells[0] == (0, 0, "Счет-фактура №")
    assert all(v is not None for _, _, v in cells)
    assert [r for r, _, _ in iter_cells(GRID, max_rows=1)] == [0, 0]


def test_find_cell_by_text_substring():
    pos = find_cell_by_text(GRID, "Продавец")
    assert pos.found
    assert (pos.row, pos.col) == (2, 1)


def test_find_cell_by_text_not_found():
    pos = find_cell_by_text(GRID, "Покупатель:")
    assert not pos.found
    assert pos.row is None and pos.col is None


def test_find_cell_by_text_max_rows_limits_scan():
    assert not find_cell_by_text(GRID, "Продавец", max_rows=2).found


def test_find_row_with_any():
    assert find_row_with_any(GRID, ("№ п/п", "№\nп/п")) == 3
    assert find_row_with_any(GRID, ("нет такого",)) is None
    # пустые варианты игнорируются, иначе "" совпадал бы с любой ячейкой
    assert find_row_with_any(GRID, ("", "№\nп/п")) == 3
