from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from upd_converter.logging.error_log import ErrorLogBuffer
from upd_converter.models.processing_result import FileStatus
from upd_converter.services.converter import convert_file as real_convert_file
from upd_converter.services.orchestrator import (
    ProcessingError,
    collect_input_files,
    convert_all,
    scan_excel_files,
)

from tests.conftest import write_excel


def test_scan_excel_files_filters_and_sorts(temp_workdir: Path):
    data = temp_workdir / "data"
    for name in ["b.xlsx", "a.XLS", "c.csv", "~$a.xlsx", "notes.txt"]:
        (data / name).write_bytes(b"")
    (data / "sub.xlsx").mkdir()

    files = scan_excel_files(data)
    assert [f.name for f in files] == ["a.XLS", "b.xlsx"]


def test_scan_excel_files_missing_directory(temp_workdir: Path):
    with pytest.raises(ProcessingError, match="Directory not found"):
        scan_excel_files(temp_workdir / "missing")


def test_scan_excel_files_not_a_directory(temp_workdir: Path):
    f = temp_workdir / "file.xlsx"
    f.write_bytes(b"")
    with pytest.raises(ProcessingError, match="Path is not a directory"):
        scan_excel_files(f)


def test_collect_input_files_mixes_files_and_directories(temp_workdir: Path):
    (temp_workdir / "data" / "x.xlsx").write_bytes(b"")
    single = temp_workdir / "single.xls"
    single.write_bytes(b"")

    files = collect_input_files([single, temp_workdir / "data"])
    assert [f.name for f in files] == ["single.xls", "x.xlsx"]


def test_convert_all_success(upd_excel_files: list[Path], temp_workdir: Path):
    out = temp_workdir / "out"
    result = convert_all([temp_workdir / "data"], out)

    assert result.success_files == 2
    assert result.failed_files == 0
    assert result.total_files == 2
    assert result.total_items == 6
    assert result.elapsed_seconds >= 0
    assert sorted(p.name for p in out.iterdir()) == ["upd_001.xml", "upd_002.xml"]
    assert [r.status for r in result.file_results] == [FileStatus.SUCCESS, FileStatus.SUCCESS]
    ids = {r.file_id for r in result.file_results}
    assert len(ids) == 2
    # без ошибок лог не создаётся
    assert not list((temp_workdir / "logs").iterdir())


def test_convert_all_partial_failure(upd_excel_files: list[Path], temp_workdir: Path):
    broken = temp_workdir / "data" / "upd_000_broken.xlsx"
    broken.write_bytes(b"this is not an excel file")
    out = temp_workdir / "out"

    result = convert_all([temp_workdir / "data"], out)

    assert result.success_files == 2
    assert result.failed_files == 1
    assert result.total_items == 6
    first = result.file_results[0]
    assert first.file_name == "upd_000_broken.xlsx"
    assert first.status is FileStatus.ERROR
    assert first.output_path is None
    assert "cannot read" in first.error
    assert not (out / "upd_000_broken.xml").exists()

    [log_file] = list((temp_workdir / "logs").glob("errors-*.log"))
    [line] = log_file.read_text(encoding="utf-8").strip().splitlines()
    record = json.loads(line)
    assert record["file"] == "upd_000_broken.xlsx"
    assert record["stage"] == "read"
    assert record["error_type"] == "READ_ERROR"


def test_convert_all_missing_file_is_a_file_error(temp_workdir: Path, upd_grid):
    ok = write_excel(temp_workdir / "data" / "ok.xlsx", upd_grid)
    missing = temp_workdir / "data" / "missing.xlsx"

    buf = ErrorLogBuffer(temp_workdir / "logs")
    result = convert_all([missing, ok], temp_workdir / "out", error_log=buf)

    assert result.failed_files == 1
    assert result.success_files == 1
    assert "file not found" in result.file_results[0].error


def test_convert_all_write_error_is_classified(upd_excel_files: list[Path], temp_workdir: Path):
    buf = ErrorLogBuffer(temp_workdir / "logs")
    with patch("upd_converter.services.converter.Path.write_bytes", side_effect=PermissionError("denied")):
        result = convert_all(upd_excel_files[:1], temp_workdir / "out", error_log=buf)

    assert result.failed_files == 1
    [line] = next((temp_workdir / "logs").glob("errors-*.log")).read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["stage"] == "write"
    assert record["error_type"] == "WRITE_ERROR"


def test_convert_all_unexpected_error_does_not_stop_batch(upd_excel_files: list[Path], temp_workdir: Path):
    calls = []

    def flaky(input_path, output_path, config):
        calls.append(input_path.name)
        if len(calls) == 1:
            raise ValueError("boom")
        return real_convert_file(input_path, output_path, config)

    buf = ErrorLogBuffer(temp_workdir / "logs")
    with patch("upd_converter.services.orchestrator.convert_file", side_effect=flaky):
        result = convert_all(upd_excel_files, temp_workdir / "out", error_log=buf)

    assert calls == ["upd_001.xlsx", "upd_002.xlsx"]
    assert result.failed_files == 1
    assert result.success_files == 1
    record = json.loads(next((temp_workdir / "logs").glob("errors-*.log")).read_text(encoding="utf-8"))
    assert record["stage"] == "convert"
    assert record["error_type"] == "UNEXPECTED_ERROR"


def test_convert_all_same_output_name_is_not_overwritten(upd_grid, temp_workdir: Path):
    first = write_excel(temp_workdir / "data" / "upd.xlsx", upd_grid)
    second = write_excel(temp_workdir / "other" / "upd.xlsx", upd_grid)
    out = temp_workdir / "out"

    buf = ErrorLogBuffer(temp_workdir / "logs")
    result = convert_all([first, second], out, error_log=buf)

    assert result.success_files == 1
    assert result.failed_files == 1
    ok, dup = result.file_results
    assert ok.output_path == out / "upd.xml"
    assert ok.file_id in (out / "upd.xml").read_text(encoding="windows-1251")
    assert dup.status is FileStatus.ERROR
    assert "already written" in dup.error
    record = json.loads(next((temp_workdir / "logs").glob("errors-*.log")).read_text(encoding="utf-8"))
    assert record["stage"] == "write"
    assert record["error_type"] == "DUPLICATE_OUTPUT"


def test_convert_all_progress_callback(upd_excel_files: list[Path], temp_workdir: Path):
    seen = []
    convert_all(
        upd_excel_files,
        temp_workdir / "out",
        on_progress=lambda current, total, fr: seen.append((current, total, fr.file_name, fr.ok)),
    )
    assert seen == [(1, 2, "upd_001.xlsx", True), (2, 2, "upd_002.xlsx", True)]


def test_convert_all_no_inputs(temp_workdir: Path):
    with pytest.raises(ProcessingError, match="no input files"):
        convert_all([temp_workdir / "data"], temp_workdir / "out")


def test_convert_all_output_dir_is_a_file(upd_excel_files: list[Path], temp_workdir: Path):
    out = temp_workdir / "out"
    out.write_text("", encoding="utf-8")
    with pytest.raises(ProcessingError):
        convert_all(upd_excel_files, out)
