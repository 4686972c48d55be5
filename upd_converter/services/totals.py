from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from upd_converter.models.document import LineItem, Totals

__all__ = [
    "compute_totals",
]


def compute_totals(items: Iterable[LineItem]) -> Totals:
    """Sum item amounts and quantities in one pass.

    Missing (None) values count as zero. Nothing is rounded here; rounding
    happens when the totals are rendered.
    """
    no_vat = vat = with_vat = quantity = Decimal(0)
    for item in items:
        no_vat += item.amount_no_vat or 0
        vat += item.vat_amount or 0
        with_vat += item.amount_with_vat or 0
        quantity += item.quantity or 0
    return Totals(
        total_no_vat=no_vat,
        total_vat=vat,
        total_with_vat=with_vat,
        total_quantity=quantity,
    )
