from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from upd_converter.excel.reader import read_grid
from upd_converter.models.config_models import ConverterConfig
from upd_converter.models.document import ConversionResult, Grid
from upd_converter.services.document_info import extract_document_info
from upd_converter.services.line_items import extract_line_items
from upd_converter.services.totals import compute_totals
from upd_converter.services.xml_assembler import generate_xml

"""Single-document conversion: grid -> XML text, spreadsheet file -> XML file.

`convert_grid` is pure (apart from UUID and clock). `convert_file` adds the
I/O: reading the spreadsheet, adding the XML declaration and encoding the
text into the configured byte encoding.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "convert_grid",
    "convert_file",
    "encode_xml",
    "output_path_for",
    "preview_file",
]


def convert_grid(grid: Grid, config: ConverterConfig | None = None, *, now: datetime | None = None) -> ConversionResult:
    """Convert one UPD sheet into ON_NSCHFDOPPR XML text.

    Args:
        grid: Sheet contents as read by `read_grid`
        config: Column mapping and XML settings (defaults when None)
        now: Clock for ВремИнфПр and the date fallback (current time when None)

    Returns:
        ConversionResult with the XML text (no declaration), ИдФайл and item count
    """
    config = config or ConverterConfig()
    info = extract_document_info(grid, config.mapping)
    items = extract_line_items(grid, config.mapping, config.xml)
    totals = compute_totals(items)
    return generate_xml(info, items, totals, config.xml, now=now)


def encode_xml(xml_text: str, encoding: str) -> bytes:
    """Prefix the declaration and encode. Unencodable characters become '?'."""
    declaration = f'<?xml version="1.0" encoding="{encoding}"?>\n'
    return (declaration + xml_text).encode(encoding, errors="replace")


def output_path_for(input_path: Path, output_dir: Path) -> Path:
    """`<output_dir>/<input stem>.xml`; "a.xlsx" and "a.xls" map to the same path."""
    return output_dir / f"{input_path.stem}.xml"


def preview_file(input_path: Path, config: ConverterConfig | None = None) -> ConversionResult:
    """Convert without writing anything (XML text only)."""
    return convert_grid(read_grid(input_path), config)


def convert_file(input_path: Path, output_path: Path, config: ConverterConfig | None = None) -> ConversionResult:
    """Read `input_path`, convert and write the encoded XML to `output_path`.

    Raises:
        GridReadError: the spreadsheet cannot be read
        OSError: the output cannot be written
    """
    config = config or ConverterConfig()
    result = preview_file(input_path, config)
    payload = encode_xml(result.xml_text, config.xml.output_encoding)
    output_path.write_bytes(payload)
    logger.debug("wrote %s (%d bytes, %d items)", output_path, len(payload), result.item_count)
    return result
