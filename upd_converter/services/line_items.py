from __future__ import annotations

import logging
import math
import re
from decimal import Decimal

from upd_converter.excel.locators import find_row_with_any, get_cell
from upd_converter.models.config_models import ColumnMapping, XmlSettings
from upd_converter.models.document import Cell, Grid, LineItem
from upd_converter.services.normalizers import cell_to_text, extract_article, to_decimal

"""Item table extraction.

Two phases:
1. locate the header row ("№ п/п" in one of its line-break spellings) and
   the first data row below it;
2. walk down from the data row reading fixed columns until the row-number
   column stops being a number or a totals row ("Всего", "Итого") appears.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "extract_line_items",
    "find_data_start_row",
    "find_header_row",
]

TOTALS_KEYWORDS = ("всего", "итого")
_LEADING_INT_RE = re.compile(r"\s*(\d+)")
_DIGITS_ONLY_RE = re.compile(r"\d+")


def _row_number(value: Cell) -> int | None:
    """Integer in the row-number column, None when the cell is empty or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    m = _LEADING_INT_RE.match(str(value))
    return int(m.group(1)) if m else None


def _is_first_row_number(value: Cell) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 1
    return isinstance(value, str) and value.strip() == "1"


def _looks_like_item_name(value: Cell) -> bool:
    return (
        isinstance(value, str)
        and len(value) > 3
        and _DIGITS_ONLY_RE.fullmatch(value.strip()) is None
    )


def find_header_row(grid: Grid, mapping: ColumnMapping) -> int | None:
    """Row of the item table header ("№ п/п" in any of its line-break spellings).

    Args:
        grid: Sheet contents
        mapping: Supplies the configured header label tried first

    Returns:
        Row index, or None when the sheet has no item table
    """
    return find_row_with_any(grid, mapping.header_labels)


def find_data_start_row(grid: Grid, mapping: ColumnMapping) -> int | None:
    """First item row below the header.

    Looks for row number 1 with a real (non-numeric, longer than 3 chars) name
    within `data_start_scan_rows` rows after the header. The column-number row
    ("1", "2", ... under the header) fails the name test and is skipped. When
    nothing qualifies the row at header + `data_start_fallback_offset` is used.
    """
    header_row = find_header_row(grid, mapping)
    if header_row is None:
        return None

    last = min(header_row + mapping.data_start_scan_rows + 1, len(grid))
    for row_idx in range(header_row + 1, last):
        row_num = get_cell(grid, row_idx, mapping.row_number_column)
        name = get_cell(grid, row_idx, mapping.name_column)
        if _is_first_row_number(row_num) and _looks_like_item_name(name):
            return row_idx

    fallback = header_row + mapping.data_start_fallback_offset
    logger.debug("data start not detected after header row %d, fallback to %d", header_row, fallback)
    return fallback


def _is_totals_row(name: Cell) -> bool:
    if name is None:
        return False
    text = str(name).lower()
    return any(k in text for k in TOTALS_KEYWORDS)


def _build_item(grid: Grid, row_idx: int, row_num: int, name: str, mapping: ColumnMapping, settings: XmlSettings) -> LineItem:
    def cell(col: int) -> Cell:
        return get_cell(grid, row_idx, col)

    unit_code = cell(mapping.unit_code_column)
    unit_name = cell(mapping.unit_name_column)

    # Ставка хранится как есть: 0.2, 20 или текст "20%" / "без НДС"
    raw_rate = cell(mapping.vat_rate_column)
    if isinstance(raw_rate, str):
        raw_rate = raw_rate.strip() or None
    vat_rate: str | Decimal | None
    if isinstance(raw_rate, str):
        vat_rate = raw_rate
    else:
        vat_rate = to_decimal(raw_rate)
    if vat_rate is None:
        vat_rate = Decimal(settings.default_vat_rate)

    return LineItem(
        row_number=row_num,
        name=name,
        article=extract_article(name),
        unit_code=cell_to_text(unit_code) or str(settings.default_okei_code),
        unit_name=cell_to_text(unit_name) or settings.default_unit,
        quantity=to_decimal(cell(mapping.quantity_column)),
        price=to_decimal(cell(mapping.price_column)),
        amount_no_vat=to_decimal(cell(mapping.amount_no_vat_column)),
        vat_rate=vat_rate,
        vat_amount=to_decimal(cell(mapping.vat_amount_column)),
        amount_with_vat=to_decimal(cell(mapping.amount_with_vat_column)),
    )


def extract_line_items(grid: Grid, mapping: ColumnMapping, settings: XmlSettings | None = None) -> list[LineItem]:
    """Extract item rows in source order.

    Walks down from the first data row until the row-number cell is empty or
    the name carries a totals keyword. Rows with a name shorter than two
    characters are skipped. At most `mapping.max_items` items are kept.

    Args:
        grid: Sheet contents
        mapping: Item table columns and scan limits
        settings: Supplies the default unit, OKEI code and VAT rate

    Returns:
        Items in source order; empty when the sheet has no item table
    """
    settings = settings or XmlSettings()
    items: list[LineItem] = []
    data_start = find_data_start_row(grid, mapping)
    if data_start is None:
        logger.debug("item table header not found")
        return items

    for row_idx in range(data_start, len(grid)):
        row_num = _row_number(get_cell(grid, row_idx, mapping.row_number_column))
        name_cell = get_cell(grid, row_idx, mapping.name_column)
        if row_num is None or _is_totals_row(name_cell):
            break

        name = cell_to_text(name_cell)
        if name is None or len(name) < 2:
            continue
        if len(items) >= mapping.max_items:
            logger.warning("item limit %d reached, remaining rows ignored", mapping.max_items)
            break
        items.append(_build_item(grid, row_idx, row_num, name, mapping, settings))

    logger.debug("extracted %d item(s) starting at row %d", len(items), data_start)
    return items
