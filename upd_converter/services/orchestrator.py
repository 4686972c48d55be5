from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path

from upd_converter.excel.reader import SUPPORTED_SUFFIXES, GridReadError
from upd_converter.logging.error_log import ErrorLogBuffer
from upd_converter.models.config_models import ConverterConfig
from upd_converter.models.error_record import ErrorRecord
from upd_converter.models.processing_result import BatchResult, FileResult, FileStatus
from upd_converter.services.converter import convert_file, output_path_for
from upd_converter.services.progress import ProgressTracker

"""Batch orchestration for the UPD converter.

Files are converted strictly one after another. A failure in one file (bad
spreadsheet bytes, unwritable output) is recorded in the error log and in
that file's FileResult; the batch always moves on to the next file. Only
problems with the batch itself (no inputs, unusable output directory) raise
ProcessingError.
"""

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, FileResult], None]


class ProcessingError(Exception):
    """Fatal batch-level error."""
    pass


class OutputConflictError(Exception):
    """Another input of the batch already produced this output file."""


def scan_excel_files(directory: Path) -> list[Path]:
    """Spreadsheets directly inside `directory` (non-recursive), sorted by name.

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def collect_input_files(paths: Iterable[Path]) -> list[Path]:
    """Expand directories into their spreadsheets; plain files are kept as given."""
    files: list[Path] = []
    for p in paths:
        if p.is_dir():
            files.extend(scan_excel_files(p))
        else:
            files.append(p)
    return files


def _classify(exc: Exception) -> tuple[str, str]:
    """(stage, error_type) for the error log."""
    if isinstance(exc, GridReadError):
        return "read", "READ_ERROR"
    if isinstance(exc, OutputConflictError):
        return "write", "DUPLICATE_OUTPUT"
    if isinstance(exc, UnicodeError):
        return "write", "ENCODING_ERROR"
    if isinstance(exc, OSError):
        return "write", "WRITE_ERROR"
    return "convert", "UNEXPECTED_ERROR"


def _convert_single_file(
    input_path: Path,
    output_dir: Path,
    config: ConverterConfig,
    error_log: ErrorLogBuffer,
    produced: dict[Path, Path],
) -> FileResult:
    started = time.perf_counter()
    output_path = output_path_for(input_path, output_dir)
    try:
        # a.xlsx и a.xls дают один a.xml: второй файл не перезаписывает первый
        if output_path in produced:
            raise OutputConflictError(
                f"{output_path.name} already written from {produced[output_path].name}"
            )
        result = convert_file(input_path, output_path, config)
    except Exception as e:
        stage, error_type = _classify(e)
        error_log.append(ErrorRecord.create(input_path.name, stage, error_type, str(e)))
        logger.error("failed %s: %s", input_path.name, e)
        return FileResult(
            input_path=input_path,
            status=FileStatus.ERROR,
            error=str(e),
            elapsed_seconds=time.perf_counter() - started,
        )

    produced[output_path] = input_path
    logger.info("converted %s -> %s items=%d", input_path.name, output_path.name, result.item_count)
    return FileResult(
        input_path=input_path,
        status=FileStatus.SUCCESS,
        output_path=output_path,
        file_id=result.file_id,
        item_count=result.item_count,
        elapsed_seconds=time.perf_counter() - started,
    )


def convert_all(
    input_paths: Iterable[Path],
    output_dir: Path,
    config: ConverterConfig | None = None,
    *,
    on_progress: ProgressCallback | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> BatchResult:
    """Convert every input file into `output_dir`, one file at a time.

    Args:
        input_paths: Spreadsheet files and/or directories to scan
        output_dir: Target directory (created if missing)
        config: Read-only configuration shared by every file
        on_progress: Called after each file with (current, total, file_result)
        error_log: Buffer for per-file failures (flushed once at the end)

    Returns:
        BatchResult with per-file results in input order

    Raises:
        ProcessingError: no input files, or the output directory is unusable
    """
    config = config or ConverterConfig()
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    start_time = datetime.now(UTC)

    files = collect_input_files(input_paths)
    if not files:
        raise ProcessingError("no input files")

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ProcessingError(f"cannot create output directory {output_dir}: {e}") from e
    if not output_dir.is_dir():
        raise ProcessingError(f"Path is not a directory: {output_dir}")

    results: list[FileResult] = []
    produced: dict[Path, Path] = {}
    success_count = 0
    failed_count = 0
    total_items = 0

    with ProgressTracker(len(files), description="Converting files") as progress:
        for input_path in files:
            progress.start_file(input_path)

            file_result = _convert_single_file(input_path, output_dir, config, error_log, produced)
            results.append(file_result)

            if file_result.ok:
                success_count += 1
                total_items += file_result.item_count
            else:
                failed_count += 1

            progress.set_postfix(success=success_count, failed=failed_count)
            progress.finish_file(success=file_result.ok)
            if on_progress is not None:
                on_progress(progress.current_file, len(files), file_result)

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning("error log flush failed: %s", e)
    else:
        if log_path is not None and failed_count:
            logger.info("error log: %s", log_path)

    end_time = datetime.now(UTC)
    return BatchResult(
        success_files=success_count,
        failed_files=failed_count,
        total_items=total_items,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_results=results,
    )
