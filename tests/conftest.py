# Shared pytest fixtures
from __future__ import annotations
import logging
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd  # type: ignore
import pytest

from upd_converter.logging.init import LOGGER_NAME, reset_logging
from upd_converter.models.document import Cell, Grid

# Колонки по умолчанию (ColumnMapping)
COL_ROW_NUMBER = 5
COL_NAME = 9
COL_DOC_NUMBER = 15
COL_SELLER = 17
COL_UNIT_CODE = 22
COL_UNIT_NAME = 24
COL_QUANTITY = 26
COL_PRICE = 29
COL_AMOUNT_NO_VAT = 39
COL_VAT_RATE = 51
COL_VAT_AMOUNT = 53
COL_BUYER = 56
COL_AMOUNT_WITH_VAT = 57


def build_grid(cells: dict[tuple[int, int], Cell]) -> Grid:
    """Sparse {(row, col): value} -> Grid with ragged rows."""
    if not cells:
        return []
    n_rows = max(r for r, _ in cells) + 1
    grid: Grid = [[] for _ in range(n_rows)]
    for (r, c), value in cells.items():
        row = grid[r]
        if len(row) <= c:
            row.extend([None] * (c + 1 - len(row)))
        row[c] = value
    return grid


def item_cells(
    row: int,
    number: Any,
    name: Any,
    *,
    unit_code: Any = 796,
    unit_name: Any = "шт",
    quantity: Any = 1,
    price: Any = 100,
    amount_no_vat: Any = 100,
    vat_rate: Any = 0.2,
    vat_amount: Any = 20,
    amount_with_vat: Any = 120,
) -> dict[tuple[int, int], Cell]:
    return {
        (row, COL_ROW_NUMBER): number,
        (row, COL_NAME): name,
        (row, COL_UNIT_CODE): unit_code,
        (row, COL_UNIT_NAME): unit_name,
        (row, COL_QUANTITY): quantity,
        (row, COL_PRICE): price,
        (row, COL_AMOUNT_NO_VAT): amount_no_vat,
        (row, COL_VAT_RATE): vat_rate,
        (row, COL_VAT_AMOUNT): vat_amount,
        (row, COL_AMOUNT_WITH_VAT): amount_with_vat,
    }


def header_cells() -> dict[tuple[int, int], Cell]:
    """UPD header block, rows 0-8."""
    return {
        (0, 0): "Универсальный передаточный документ",
        (0, 1): "Счет-фактура №",
        (0, COL_DOC_NUMBER): "42",
        (0, 22): "от",
        (0, 24): "15 января 2026 г.",
        (1, 1): "Исправление №",
        (1, COL_DOC_NUMBER): "--",
        (2, 1): "Продавец:",
        (2, COL_SELLER): 'ООО "Ромашка"',
        (3, 1): "Адрес:",
        (3, COL_SELLER): "г. Москва, ул. Ленина, д. 1",
        (4, 1): "ИНН/КПП продавца:",
        (4, COL_SELLER): "7743013902/774301001",
        (5, 1): "Грузоотправитель и его адрес:",
        (5, COL_SELLER): "он же",
        (6, 1): "Покупатель:",
        (6, COL_BUYER): "ИП Иванов & сыновья",
        (7, 1): "Адрес:",
        (7, COL_BUYER): "г. Казань",
        (8, 1): "ИНН/КПП покупателя:",
        (8, COL_BUYER): "1655000000 / 165501001",
    }


def upd_cells() -> dict[tuple[int, int], Cell]:
    """Complete UPD sheet: header block, item table with 3 items and a totals row."""
    cells = header_cells()
    cells[(9, COL_ROW_NUMBER)] = "№\nп/п"
    cells[(9, COL_NAME)] = "Наименование товара"
    cells[(10, COL_ROW_NUMBER)] = "А"
    cells[(10, COL_NAME)] = "1а"
    cells.update(item_cells(
        11, 1, "ABC-123 Болт М8",
        quantity=10, price=15.5, amount_no_vat=155, vat_rate=0.2, vat_amount=31, amount_with_vat=186,
    ))
    cells.update(item_cells(
        12, 2, "Гайка <М8>",
        unit_code=166, unit_name="кг", quantity=2.5, price=100, amount_no_vat=250,
        vat_rate=20, vat_amount=50, amount_with_vat=300,
    ))
    cells.update(item_cells(
        13, 3, "Шайба",
        quantity=3, price=10, amount_no_vat=30, vat_rate="20%", vat_amount=6, amount_with_vat=36,
    ))
    cells[(14, COL_NAME)] = "Всего к оплате"
    cells[(14, COL_AMOUNT_NO_VAT)] = 435
    return cells


def write_excel(path: Path, grid: Grid) -> Path:
    """Write a Grid into the first sheet of an .xlsx file (no header row)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(grid).to_excel(writer, sheet_name="УПД", header=False, index=False)
    return path


@pytest.fixture(autouse=True)
def _reset_app_logger():
    # setup_logging() отключает propagate, caplog после этого ничего не видит
    yield
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def upd_grid() -> Grid:
    return build_grid(upd_cells())


@pytest.fixture()
def sample_config_yaml() -> str:
    return """mapping:
  document_number_column: 15
  max_items: 500
xml:
  program_version: "UPD Converter test"
  output_encoding: windows-1251
defaults:
  unit: "шт"
  okei_code: 796
  vat_rate: 20
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "convert.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def upd_excel_files(temp_workdir: Path, upd_grid: Grid) -> list[Path]:
    data_dir = temp_workdir / "data"
    return [
        write_excel(data_dir / "upd_001.xlsx", upd_grid),
        write_excel(data_dir / "upd_002.xlsx", upd_grid),
    ]
