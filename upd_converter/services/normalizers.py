from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import NamedTuple

from upd_converter.models.document import Cell

"""Value normalizers shared by the extractors and the XML assembler.

None of these raise on bad input: unparseable numbers become None (or zero
when formatted), unparseable dates pass through unchanged.
"""

__all__ = [
    "InnKpp",
    "MONTHS",
    "cell_to_text",
    "escape_xml_text",
    "extract_article",
    "find_date",
    "format_number",
    "format_quantity",
    "format_vat_rate",
    "is_normalized_date",
    "parse_date",
    "parse_inn_kpp",
    "to_decimal",
]

# Родительный падеж, как в "15 января 2026 г."
MONTHS = {
    "января": "01",
    "февраля": "02",
    "марта": "03",
    "апреля": "04",
    "мая": "05",
    "июня": "06",
    "июля": "07",
    "августа": "08",
    "сентября": "09",
    "октября": "10",
    "ноября": "11",
    "декабря": "12",
}

# День может стоять в кавычках: «15» января 2026
_MONTH_DATE_RE = re.compile(
    r"(\d{1,2})[\"'»”]?\s*(" + "|".join(MONTHS) + r")\s+(\d{4})",
    re.IGNORECASE,
)
_NUMERIC_DATE_RE = re.compile(r"(\d{2})\.(\d{2})\.(\d{4})")
_NORMALIZED_DATE_RE = re.compile(r"\d{2}\.\d{2}\.\d{4}")
_ARTICLE_RE = re.compile(r"[A-Za-z0-9\-]+")
_WHITESPACE_RE = re.compile(r"\s+")

_XML_ESCAPES = (
    ("&", "&amp;"),  # первым, иначе получим &amp;lt;
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


class InnKpp(NamedTuple):
    inn: str | None
    kpp: str | None


def find_date(text: str) -> str | None:
    """Locate a date inside free text and return it as DD.MM.YYYY.

    Month-name dates win over numeric ones; a numeric DD.MM.YYYY match is
    returned verbatim.
    """
    m = _MONTH_DATE_RE.search(text)
    if m:
        day, month_name, year = m.groups()
        return f"{day.zfill(2)}.{MONTHS[month_name.lower()]}.{year}"
    m = _NUMERIC_DATE_RE.search(text)
    if m:
        return m.group(0)
    return None


def parse_date(value: Cell) -> str | None:
    """Normalize a date cell to DD.MM.YYYY, falling back to the trimmed text.

    >>> parse_date("15 января 2026")
    '15.01.2026'
    >>> parse_date("garbage")
    'garbage'
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return find_date(text) or text


def is_normalized_date(value: str | None) -> bool:
    return value is not None and _NORMALIZED_DATE_RE.fullmatch(value) is not None


def parse_inn_kpp(value: Cell) -> InnKpp:
    """Split "INN/KPP" (whitespace ignored). No slash means the whole value is the INN."""
    if value is None:
        return InnKpp(None, None)
    text = _WHITESPACE_RE.sub("", str(value))
    if not text:
        return InnKpp(None, None)
    if "/" in text:
        inn, _, rest = text.partition("/")
        kpp = rest.split("/")[0]
        return InnKpp(inn, kpp or None)
    return InnKpp(text, None)


def to_decimal(value: Cell) -> Decimal | None:
    """Coerce a cell to Decimal; "1 234,5" -> Decimal("1234.5"). None if not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        raw = str(value)
    else:
        raw = _WHITESPACE_RE.sub("", str(value)).replace(",", ".")
        if not raw:
            return None
    try:
        d = Decimal(raw)
    except InvalidOperation:
        return None
    if not d.is_finite():
        return None
    return d


def format_number(value: Cell | Decimal, decimals: int = 2) -> str:
    """Fixed-point string with `decimals` digits, half-up; non-numeric -> zero."""
    d = value if isinstance(value, Decimal) else to_decimal(value)
    if d is None or not d.is_finite():
        d = Decimal(0)
    q = d.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    if q.is_zero():
        q = q.copy_abs()
    return f"{q:f}"


def format_quantity(value: Cell | Decimal) -> str:
    """Whole quantities render bare ("5"), fractional ones with 2 decimals."""
    d = value if isinstance(value, Decimal) else to_decimal(value)
    if d is None:
        return "0"
    if d == d.to_integral_value():
        return str(int(d))
    return format_number(d, 2)


def format_vat_rate(value: Cell | Decimal, default: int = 20) -> str:
    """Canonical "NN%" form of a VAT rate.

    0.2, 20, "20", "20%" all give "20%". Text that is not a number at all
    ("без НДС") is returned trimmed, as it is a valid rate in the schema.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return f"{default}%"
    if isinstance(value, Decimal):
        d: Decimal | None = value
    else:
        d = to_decimal(str(value).strip().rstrip("%") if isinstance(value, str) else value)
    if d is None:
        return str(value).strip()
    if d < 1:
        d = d * 100
    return f"{d.quantize(Decimal(1), rounding=ROUND_HALF_UP)}%"


def escape_xml_text(value: Cell) -> str:
    """Escape & < > " ' for attribute and text content. Nothing else is touched."""
    if value is None:
        return ""
    text = str(value)
    for char, entity in _XML_ESCAPES:
        text = text.replace(char, entity)
    return text


def extract_article(name: Cell) -> str:
    """Leading run of ASCII letters, digits and hyphens of an item name."""
    if name is None:
        return ""
    m = _ARTICLE_RE.match(str(name))
    return m.group(0) if m else ""


def cell_to_text(value: Cell) -> str | None:
    """Render-friendly text of a cell: whole floats lose ".0", strings are trimmed."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
