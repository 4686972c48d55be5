from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

"""Document domain models: the values extracted from one UPD grid.

Grid is the in-memory first sheet (row-major, 0-indexed). DocumentInfo and
LineItem hold what the extractors found and nothing else; fallbacks such as
"Организация" or "0000000000" are applied only by the XML assembler.
"""

__all__ = [
    "Cell",
    "Grid",
    "CellPosition",
    "DocumentInfo",
    "LineItem",
    "Totals",
    "ConversionResult",
]

Cell = Union[str, int, float, None]
Grid = list[list[Cell]]


@dataclass(frozen=True)
class CellPosition:
    """Grid coordinates of a located cell. Both are None when nothing matched."""
    row: int | None = None
    col: int | None = None

    @property
    def found(self) -> bool:
        return self.row is not None


@dataclass
class DocumentInfo:
    """Header fields of the UPD. Every field is optional."""
    doc_number: Cell = None
    doc_date: str | None = None  # DD.MM.YYYY или исходный текст
    seller_name: Cell = None
    seller_address: str | None = None
    seller_inn: str | None = None
    seller_kpp: str | None = None
    buyer_name: Cell = None
    buyer_address: str | None = None
    buyer_inn: str | None = None
    buyer_kpp: str | None = None


@dataclass(frozen=True)
class LineItem:
    """One row of the item table."""
    row_number: int
    name: str
    article: str
    unit_code: Cell
    unit_name: Cell
    quantity: Decimal | None
    price: Decimal | None
    amount_no_vat: Decimal | None
    vat_rate: str | Decimal
    vat_amount: Decimal | None
    amount_with_vat: Decimal | None


@dataclass(frozen=True)
class Totals:
    total_no_vat: Decimal = Decimal("0")
    total_vat: Decimal = Decimal("0")
    total_with_vat: Decimal = Decimal("0")
    total_quantity: Decimal = Decimal("0")


@dataclass(frozen=True)
class ConversionResult:
    """Rendered XML text plus the generated ИдФайл. Encoding is the caller's job."""
    xml_text: str
    file_id: str
    item_count: int = 0
