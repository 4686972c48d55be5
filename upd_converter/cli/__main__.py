from __future__ import annotations

import argparse
import codecs
import os
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from upd_converter.config.loader import ConfigError, load_config
from upd_converter.excel.reader import GridReadError, read_grid
from upd_converter.logging.init import enable_debug, log_summary, setup_logging
from upd_converter.models.config_models import ConverterConfig
from upd_converter.services.converter import preview_file
from upd_converter.services.document_info import extract_document_info
from upd_converter.services.line_items import extract_line_items
from upd_converter.services.normalizers import format_number, format_quantity
from upd_converter.services.orchestrator import ProcessingError, collect_input_files, convert_all
from upd_converter.services.summary import render_summary_line
from upd_converter.services.totals import compute_totals

"""CLI entrypoint.

    upd-converter INPUT [INPUT ...] [-o OUTDIR] [--config FILE] [--encoding ENC]
                  [--preview | --inspect] [--debug]

INPUT may be a spreadsheet or a directory (scanned non-recursively).
Environment (also read from `.env`): UPD_CONFIG, UPD_OUTPUT_DIR,
UPD_OUTPUT_ENCODING.

Exit codes: 0 all files converted, 2 at least one file failed, 1 fatal
(bad config, no inputs, unusable output directory).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_OUTPUT_DIR = "output"


def _load_env_file(path: Path) -> None:
    """Load .env via python-dotenv; real environment variables win."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="upd-converter",
        description="Конвертация УПД из Excel в XML (ON_NSCHFDOPPR 5.03)",
    )
    p.add_argument("inputs", nargs="*", type=Path, help="Excel files (.xlsx/.xls) or directories")
    p.add_argument("-o", "--output-dir", type=Path, default=None, help="Output directory for .xml files")
    p.add_argument("--config", type=Path, default=None, help="YAML config (default: config/convert.yml)")
    p.add_argument("--encoding", default=None, help="Output byte encoding (default: windows-1251)")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--preview", action="store_true", help="Print generated XML to stdout, write nothing")
    mode.add_argument("--inspect", action="store_true", help="Print extracted header and items, write nothing")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> ConverterConfig:
    config_env = os.getenv("UPD_CONFIG")
    config_path = args.config or (Path(config_env) if config_env else None)
    cfg = load_config(config_path)

    encoding = args.encoding or os.getenv("UPD_OUTPUT_ENCODING")
    if encoding:
        try:
            codecs.lookup(encoding)
        except LookupError as e:
            raise ConfigError(f"unknown output encoding: {encoding}") from e
        cfg = replace(cfg, xml=replace(cfg.xml, output_encoding=encoding))
    return cfg


def _inspect(files: list[Path], cfg: ConverterConfig) -> int:
    failed = 0
    for f in files:
        print(f"FILE: {f.name}")
        try:
            grid = read_grid(f)
        except GridReadError as e:
            print(f"  read_error: {e}")
            failed += 1
            continue
        info = extract_document_info(grid, cfg.mapping)
        items = extract_line_items(grid, cfg.mapping, cfg.xml)
        totals = compute_totals(items)
        print(f"  number={info.doc_number!r} date={info.doc_date!r}")
        print(f"  seller={info.seller_name!r} inn={info.seller_inn!r} kpp={info.seller_kpp!r}")
        print(f"  seller_address={info.seller_address!r}")
        print(f"  buyer={info.buyer_name!r} inn={info.buyer_inn!r} kpp={info.buyer_kpp!r}")
        print(f"  buyer_address={info.buyer_address!r}")
        print(f"  items={len(items)}")
        for item in items:
            print(
                f"    {item.row_number:>3} {item.name[:40]:<40} "
                f"qty={format_quantity(item.quantity)} price={format_number(item.price)} "
                f"total={format_number(item.amount_with_vat)}"
            )
        print(
            f"  totals no_vat={format_number(totals.total_no_vat)} "
            f"vat={format_number(totals.total_vat)} with_vat={format_number(totals.total_with_vat)}"
        )
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def _preview(files: list[Path], cfg: ConverterConfig) -> int:
    failed = 0
    for f in files:
        try:
            result = preview_file(f, cfg)
        except GridReadError as e:
            print(f"ERROR {f.name}: {e}", file=sys.stderr)
            failed += 1
            continue
        print(result.xml_text)
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # sys.argv читаем только при argv=None: main([]) из тестов не должен подхватить аргументы pytest
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        enable_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        files = collect_input_files(args.inputs)
    except ProcessingError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    if not files:
        logger.error("no input files")
        return EXIT_FATAL

    if args.inspect:
        return _inspect(files, cfg)
    if args.preview:
        return _preview(files, cfg)

    output_dir = args.output_dir or Path(os.getenv("UPD_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR)
    logger.info(f"Converting {len(files)} file(s) into: {output_dir}")

    try:
        result = convert_all(files, output_dir, cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result)
    # log_summary добавляет префикс "SUMMARY " сам
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
