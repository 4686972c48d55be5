from __future__ import annotations

import logging

from upd_converter.excel.locators import cell_text, find_cell_by_text, get_cell, iter_cells
from upd_converter.models.config_models import ColumnMapping
from upd_converter.models.document import Cell, DocumentInfo, Grid
from upd_converter.services.normalizers import find_date, is_normalized_date, parse_date, parse_inn_kpp

"""Document header extraction.

Every field follows the same pattern: find the row holding a label, then read
a fixed column on that row. Nothing is invented here; a field whose label or
value is missing stays None and the assembler decides the fallback.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "extract_document_info",
]


def _read_after_label(grid: Grid, label: str, column: int) -> Cell:
    pos = find_cell_by_text(grid, label)
    if not pos.found:
        logger.debug("label not found: %r", label)
        return None
    return get_cell(grid, pos.row, column)  # type: ignore[arg-type]


def _stripped(value: Cell) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _date_after_label(grid: Grid, mapping: ColumnMapping, rows: int) -> str | None:
    label = mapping.document_date_label
    for row_idx in range(rows):
        if any(value is not None and str(value).strip() == label for value in grid[row_idx]):
            candidate = parse_date(get_cell(grid, row_idx, mapping.document_date_column))
            if is_normalized_date(candidate):
                return candidate
    return None


def _date_in_any_cell(grid: Grid, rows: int) -> str | None:
    for _, _, value in iter_cells(grid, rows):
        found = find_date(cell_text(value))
        if found:
            return found
    return None


def _find_document_date(grid: Grid, mapping: ColumnMapping) -> str | None:
    """Scan the top `date_scan_rows` rows for the document date.

    (a) A cell equal to the date label ("от") with a parseable date in the
    configured column, first such row wins. (b) Only when no row satisfies
    (a): the first cell carrying a month-name or DD.MM.YYYY date. The legal
    citation above the form ("... от 26 декабря 2011 г.") has its date in the
    same cell as "от", so it never satisfies (a).
    """
    rows = min(mapping.date_scan_rows, len(grid))
    found = _date_after_label(grid, mapping, rows)
    if found is None:
        found = _date_in_any_cell(grid, rows)
        if found is not None:
            logger.debug("date label not matched, using first date in header: %s", found)
    return found


def _find_addresses(grid: Grid, mapping: ColumnMapping) -> tuple[str | None, str | None]:
    """Seller and buyer addresses from the "Адрес:" labels.

    The first label cell belongs to the seller and the second to the buyer;
    the UPD layout always lists the seller block first. The labels are not
    otherwise checked.
    """
    hits = [
        row_idx
        for row_idx, _, value in iter_cells(grid, mapping.address_scan_rows)
        if mapping.address_label in cell_text(value)
    ]
    seller = buyer = None
    if hits:
        seller = _stripped(get_cell(grid, hits[0], mapping.seller_address_column))
    if len(hits) > 1:
        buyer = _stripped(get_cell(grid, hits[1], mapping.buyer_address_column))
    return seller, buyer


def extract_document_info(grid: Grid, mapping: ColumnMapping) -> DocumentInfo:
    """Extract the document header fields from the top of the sheet.

    Args:
        grid: Sheet contents
        mapping: Labels and columns of the header fields

    Returns:
        DocumentInfo; fields whose label or value is missing stay None.
        INN/KPP pairs are split, the date is DD.MM.YYYY when one was found.
    """
    info = DocumentInfo()

    info.doc_number = _read_after_label(grid, mapping.document_number_label, mapping.document_number_column)
    info.doc_date = _find_document_date(grid, mapping)

    info.seller_name = _read_after_label(grid, mapping.seller_name_label, mapping.seller_name_column)
    info.buyer_name = _read_after_label(grid, mapping.buyer_name_label, mapping.buyer_name_column)

    info.seller_address, info.buyer_address = _find_addresses(grid, mapping)

    seller = parse_inn_kpp(_read_after_label(grid, mapping.seller_inn_kpp_label, mapping.seller_inn_kpp_column))
    info.seller_inn, info.seller_kpp = seller.inn, seller.kpp
    buyer = parse_inn_kpp(_read_after_label(grid, mapping.buyer_inn_kpp_label, mapping.buyer_inn_kpp_column))
    info.buyer_inn, info.buyer_kpp = buyer.inn, buyer.kpp

    logger.debug(
        "document number=%r date=%r seller_inn=%r buyer_inn=%r",
        info.doc_number,
        info.doc_date,
        info.seller_inn,
        info.buyer_inn,
    )
    return info
