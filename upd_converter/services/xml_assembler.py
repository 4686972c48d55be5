from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from upd_converter.models.config_models import XmlSettings
from upd_converter.models.document import ConversionResult, DocumentInfo, LineItem, Totals
from upd_converter.services.normalizers import (
    cell_to_text,
    escape_xml_text,
    format_number,
    format_quantity,
    format_vat_rate,
    is_normalized_date,
)

"""ON_NSCHFDOPPR XML assembly.

Renders extracted values into the fixed 5.03 document layout. This is the
only place where fallbacks for missing data are applied. The result is text
without an XML declaration; the writer adds the declaration matching the
byte encoding it chooses.
"""

__all__ = [
    "FILE_ID_PREFIX",
    "generate_xml",
    "build_file_id",
]

FILE_ID_PREFIX = "ON_NSCHFDOPPR"
KND = "1115131"
DOC_NAME = "Универсальный передаточный документ"
PO_FAKT_HZH = (
    "Документ об отгрузке товаров (выполнении работ), передаче имущественных прав "
    "(документ об оказании услуг)"
)
NAIM_DOK_OPR = (
    "Документ об отгрузке товаров (выполнении работ), передаче имущественных прав "
    "(Документ об оказании услуг)"
)

DEFAULT_SELLER_NAME = "Организация"
DEFAULT_BUYER_NAME = "Покупатель"
DEFAULT_INN = "0000000000"
DEFAULT_KPP = "000000000"
DEFAULT_DOC_NUMBER = "1"


def build_file_id(
    buyer_inn: str, buyer_kpp: str, seller_inn: str, seller_kpp: str, compact_date: str, file_uuid: str
) -> str:
    """Compose ИдФайл: ON_NSCHFDOPPR_<buyer INN>_<buyer KPP>_<seller INN>_<seller KPP>_<YYYYMMDD>_<uuid>.

    Args:
        buyer_inn, buyer_kpp: Receiver identifiers (fallbacks already applied)
        seller_inn, seller_kpp: Sender identifiers (fallbacks already applied)
        compact_date: Document date as YYYYMMDD
        file_uuid: UUID4 string unique to this file

    Returns:
        The file identifier, also used as the ИдФайл attribute
    """
    return "_".join([FILE_ID_PREFIX, buyer_inn, buyer_kpp, seller_inn, seller_kpp, compact_date, file_uuid])


def _document_dates(doc_date: str | None, now: datetime) -> tuple[str, str]:
    """(DD.MM.YYYY, YYYYMMDD) of the document, or of `now` when the date is unusable."""
    if is_normalized_date(doc_date):
        try:
            parsed = datetime.strptime(doc_date, "%d.%m.%Y")  # type: ignore[arg-type]
        except ValueError:
            parsed = None
        if parsed is not None:
            return doc_date, parsed.strftime("%Y%m%d")  # type: ignore[return-value]
    return now.strftime("%d.%m.%Y"), now.strftime("%Y%m%d")


class _XmlLines:
    """Tab-indented line accumulator."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def add(self, depth: int, text: str) -> None:
        self._lines.append("\t" * depth + text)

    def text(self) -> str:
        return "\n".join(self._lines)


def _party(out: _XmlLines, tag: str, name: str, inn: str, kpp: str, address: str) -> None:
    out.add(3, f"<{tag}>")
    out.add(4, "<ИдСв>")
    out.add(5, f'<СвЮЛУч НаимОрг="{name}" ИННЮЛ="{inn}" КПП="{kpp}"/>')
    out.add(4, "</ИдСв>")
    out.add(4, "<Адрес>")
    out.add(5, f'<АдрИнф КодСтр="643" НаимСтран="РОССИЯ" АдрТекст="{address}"/>')
    out.add(4, "</Адрес>")
    out.add(3, f"</{tag}>")


def _item(out: _XmlLines, item: LineItem, settings: XmlSettings) -> None:
    item_uuid = str(uuid.uuid4())
    name = escape_xml_text(item.name)
    okei = escape_xml_text(item.unit_code if item.unit_code not in (None, "") else settings.default_okei_code)
    unit = escape_xml_text(item.unit_name or settings.default_unit)
    article = escape_xml_text(item.article)
    vat_rate = format_vat_rate(item.vat_rate, settings.default_vat_rate)
    vat_rate_1c = vat_rate[:-1] if vat_rate.endswith("%") else vat_rate

    out.add(
        3,
        f'<СведТов НомСтр="{item.row_number}" НаимТов="{name}" ОКЕИ_Тов="{okei}" '
        f'НаимЕдИзм="{unit}" КолТов="{format_quantity(item.quantity)}" '
        f'ЦенаТов="{format_number(item.price)}" СтТовБезНДС="{format_number(item.amount_no_vat)}" '
        f'НалСт="{escape_xml_text(vat_rate)}" СтТовУчНал="{format_number(item.amount_with_vat)}">',
    )
    out.add(4, f'<ДопСведТов ПрТовРаб="1" КодТов="{article}">')
    out.add(5, f"<КрНаимСтрПр>{escape_xml_text(settings.default_country)}</КрНаимСтрПр>")
    out.add(4, "</ДопСведТов>")
    out.add(4, "<Акциз>")
    out.add(5, "<БезАкциз>без акциза</БезАкциз>")
    out.add(4, "</Акциз>")
    out.add(4, "<СумНал>")
    out.add(5, f"<СумНал>{format_number(item.vat_amount)}</СумНал>")
    out.add(4, "</СумНал>")
    out.add(4, f'<ИнфПолФХЖ2 Идентиф="Для1С_Идентификатор" Значен="{item_uuid}##"/>')
    out.add(4, f'<ИнфПолФХЖ2 Идентиф="Для1С_Наименование" Значен="{name}"/>')
    out.add(4, f'<ИнфПолФХЖ2 Идентиф="Для1С_ЕдиницаИзмерения" Значен="{unit}"/>')
    out.add(4, f'<ИнфПолФХЖ2 Идентиф="Для1С_ЕдиницаИзмеренияКод" Значен="{okei}"/>')
    out.add(4, f'<ИнфПолФХЖ2 Идентиф="Для1С_Артикул" Значен="{article}"/>')
    out.add(4, f'<ИнфПолФХЖ2 Идентиф="Для1С_СтавкаНДС" Значен="{escape_xml_text(vat_rate_1c)}"/>')
    out.add(4, f'<ИнфПолФХЖ2 Идентиф="ИД" Значен="{item_uuid}##"/>')
    out.add(3, "</СведТов>")


def generate_xml(
    document_info: DocumentInfo,
    items: Sequence[LineItem],
    totals: Totals,
    settings: XmlSettings | None = None,
    *,
    now: datetime | None = None,
) -> ConversionResult:
    """Render one ON_NSCHFDOPPR document.

    Args:
        document_info: Extracted header fields (any may be None)
        items: Extracted item rows, rendered in order
        totals: Sums over `items`
        settings: Format constants and fallbacks
        now: Clock used for ВремИнфПр and for a missing/unparseable date

    Returns:
        ConversionResult with the XML text and the generated ИдФайл
    """
    settings = settings or XmlSettings()
    now = now or datetime.now()
    info = document_info

    file_uuid = str(uuid.uuid4())
    doc_uuid = str(uuid.uuid4())

    seller_inn = escape_xml_text(info.seller_inn or DEFAULT_INN)
    seller_kpp = escape_xml_text(info.seller_kpp or DEFAULT_KPP)
    buyer_inn = escape_xml_text(info.buyer_inn or DEFAULT_INN)
    buyer_kpp = escape_xml_text(info.buyer_kpp or DEFAULT_KPP)

    doc_number = escape_xml_text(cell_to_text(info.doc_number) or DEFAULT_DOC_NUMBER)
    doc_date, compact_date = _document_dates(info.doc_date, now)
    file_id = build_file_id(buyer_inn, buyer_kpp, seller_inn, seller_kpp, compact_date, file_uuid)

    seller_name = escape_xml_text(cell_to_text(info.seller_name) or DEFAULT_SELLER_NAME)
    buyer_name = escape_xml_text(cell_to_text(info.buyer_name) or DEFAULT_BUYER_NAME)
    seller_address = escape_xml_text(info.seller_address or "")
    buyer_address = escape_xml_text(info.buyer_address or "")

    out = _XmlLines()
    out.add(
        0,
        '<Файл xmlns:xs="http://www.w3.org/2001/XMLSchema" '
        'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
        f'ИдФайл="{file_id}" ВерсФорм="{escape_xml_text(settings.version)}" '
        f'ВерсПрог="{escape_xml_text(settings.program_version)}">',
    )
    out.add(
        1,
        f'<Документ КНД="{KND}" Функция="{escape_xml_text(settings.function)}" '
        f'ПоФактХЖ="{PO_FAKT_HZH}" НаимДокОпр="{NAIM_DOK_OPR}" '
        f'ДатаИнфПр="{doc_date}" ВремИнфПр="{now.strftime("%H.%M.%S")}" '
        f'НаимЭконСубСост="{seller_name}, ИНН/КПП {seller_inn}/{seller_kpp}">',
    )

    out.add(2, f'<СвСчФакт НомерДок="{doc_number}" ДатаДок="{doc_date}">')
    _party(out, "СвПрод", seller_name, seller_inn, seller_kpp, seller_address)
    out.add(3, "<ГрузОт>")
    out.add(4, "<ОнЖе>он же</ОнЖе>")
    out.add(3, "</ГрузОт>")
    _party(out, "ГрузПолуч", buyer_name, buyer_inn, buyer_kpp, buyer_address)
    out.add(
        3,
        f'<ДокПодтвОтгрНом РеквНаимДок="{DOC_NAME}" РеквНомерДок="{doc_number}" РеквДатаДок="{doc_date}"/>',
    )
    _party(out, "СвПокуп", buyer_name, buyer_inn, buyer_kpp, buyer_address)
    out.add(
        3,
        f'<ДенИзм КодОКВ="{escape_xml_text(settings.currency_code)}" '
        f'НаимОКВ="{escape_xml_text(settings.currency_name)}" КурсВал="1.00"/>',
    )
    out.add(3, "<ИнфПолФХЖ1>")
    out.add(4, f'<ТекстИнф Идентиф="ИдентификаторДокументаОснования" Значен="{doc_uuid}"/>')
    out.add(4, '<ТекстИнф Идентиф="ВидСчетаФактуры" Значен="Реализация"/>')
    out.add(4, '<ТекстИнф Идентиф="ТолькоУслуги" Значен="false"/>')
    out.add(
        4,
        f'<ТекстИнф Идентиф="ДокументОбОтгрузке" '
        f'Значен="№ п/п 1-{len(items)} № {doc_number} от {doc_date} г."/>',
    )
    out.add(3, "</ИнфПолФХЖ1>")
    out.add(2, "</СвСчФакт>")

    out.add(2, "<ТаблСчФакт>")
    for item in items:
        _item(out, item, settings)
    out.add(
        3,
        f'<ВсегоОпл СтТовБезНДСВсего="{format_number(totals.total_no_vat)}" '
        f'СтТовУчНалВсего="{format_number(totals.total_with_vat)}" '
        f'КолНеттоВс="{format_number(totals.total_quantity, 0)}">',
    )
    out.add(4, "<СумНалВсего>")
    out.add(5, f"<СумНал>{format_number(totals.total_vat)}</СумНал>")
    out.add(4, "</СумНалВсего>")
    out.add(3, "</ВсегоОпл>")
    out.add(2, "</ТаблСчФакт>")

    out.add(2, "<СвПродПер>")
    out.add(3, f'<СвПер СодОпер="Товары переданы" ВидОпер="Продажа" ДатаПер="{doc_date}">')
    out.add(4, f'<ОснПер РеквНаимДок="{DOC_NAME}" РеквНомерДок="{doc_number}" РеквДатаДок="{doc_date}"/>')
    out.add(3, "</СвПер>")
    out.add(3, "<ИнфПолФХЖ3>")
    out.add(4, f'<ТекстИнф Идентиф="ИдентификаторДокументаОснования" Значен="{doc_uuid}"/>')
    out.add(3, "</ИнфПолФХЖ3>")
    out.add(2, "</СвПродПер>")

    out.add(2, '<Подписант ТипПодпис="2" СпосПодтПолном="1">')
    out.add(3, '<ФИО Фамилия="-" Имя="-"/>')
    out.add(2, "</Подписант>")
    out.add(1, "</Документ>")
    out.add(0, "</Файл>")

    return ConversionResult(xml_text=out.text(), file_id=file_id, item_count=len(items))
