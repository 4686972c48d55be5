from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the UPD Excel -> XML converter.

These are the typed, immutable view of `config/convert.yml` produced by
`upd_converter.config.loader`. Every field carries the default used when the
YAML file (or the key) is absent, so `ConverterConfig()` alone is a working
configuration for the common 1C-exported UPD layout.
"""

__all__ = [
    "ColumnMapping",
    "XmlSettings",
    "ConverterConfig",
    "DEFAULT_HEADER_LABELS",
]

# Варианты заголовка "№ п/п" с разными переносами строки внутри ячейки
DEFAULT_HEADER_LABELS: tuple[str, ...] = ("№\nп/п", "№\r\nп/п", "№ п/п", "№п/п")


@dataclass(frozen=True)
class ColumnMapping:
    """Label search texts and 0-based column indices of the source grid.

    Label fields are substrings searched with `find_cell_by_text`; column
    fields are the fixed offsets read on the row where the label was found
    (document header) or on every item row (item table).
    """
    # Документ
    document_number_label: str = "Счет-фактура №"
    document_number_column: int = 15
    document_date_label: str = "от"
    document_date_column: int = 24
    date_scan_rows: int = 20

    # Продавец
    seller_name_label: str = "Продавец:"
    seller_name_column: int = 17
    seller_address_column: int = 17
    seller_inn_kpp_label: str = "ИНН/КПП продавца"
    seller_inn_kpp_column: int = 17

    # Покупатель
    buyer_name_label: str = "Покупатель:"
    buyer_name_column: int = 56
    buyer_address_column: int = 56
    buyer_inn_kpp_label: str = "ИНН/КПП покупателя"
    buyer_inn_kpp_column: int = 56

    address_label: str = "Адрес:"
    address_scan_rows: int = 15

    # Табличная часть
    header_label: str = "№\nп/п"
    row_number_column: int = 5
    name_column: int = 9
    unit_code_column: int = 22
    unit_name_column: int = 24
    quantity_column: int = 26
    price_column: int = 29
    amount_no_vat_column: int = 39
    vat_rate_column: int = 51
    vat_amount_column: int = 53
    amount_with_vat_column: int = 57
    data_start_scan_rows: int = 6
    data_start_fallback_offset: int = 3
    max_items: int = 1000

    @property
    def header_labels(self) -> tuple[str, ...]:
        """Configured header text first, then the known line-break variants."""
        labels = [self.header_label]
        labels.extend(v for v in DEFAULT_HEADER_LABELS if v != self.header_label)
        return tuple(labels)


@dataclass(frozen=True)
class XmlSettings:
    """Constants and render-time fallbacks of the ON_NSCHFDOPPR document."""
    version: str = "5.03"
    function: str = "ДОП"
    currency_code: str = "643"
    currency_name: str = "Российский рубль"
    default_country: str = "КИТАЙ"
    program_version: str = "UPD Converter 1.0"
    default_unit: str = "шт"
    default_okei_code: int = 796
    default_vat_rate: int = 20
    output_encoding: str = "windows-1251"


@dataclass(frozen=True)
class ConverterConfig:
    """Root configuration object, read-only for the whole batch."""
    mapping: ColumnMapping = field(default_factory=ColumnMapping)
    xml: XmlSettings = field(default_factory=XmlSettings)
