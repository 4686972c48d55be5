from __future__ import annotations

import json
from pathlib import Path

from upd_converter.cli import main as cli_main

"""Integration test: one unreadable file among good ones.

The bad file is reported (ERROR line + error log record), the other files
are still written and the exit code is 2.
"""


def test_partial_failure_end_to_end(upd_excel_files: list[Path], temp_workdir: Path, capsys):
    bad = temp_workdir / "data" / "upd_0015.xlsx"
    bad.write_bytes(b"PK\x03\x04 truncated zip")

    code = cli_main(["data", "-o", "out"])
    out = capsys.readouterr().out

    assert code == 2
    assert "SUMMARY files=3/3 success=2 failed=1 items=6" in out
    assert "ERROR failed upd_0015.xlsx: cannot read upd_0015.xlsx" in out
    assert sorted(p.name for p in (temp_workdir / "out").iterdir()) == ["upd_001.xml", "upd_002.xml"]

    [log_file] = (temp_workdir / "logs").glob("errors-*.log")
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [(r["file"], r["stage"], r["error_type"]) for r in records] == [
        ("upd_0015.xlsx", "read", "READ_ERROR"),
    ]


def test_all_files_fail(temp_workdir: Path, capsys):
    for name in ("a.xlsx", "b.xls"):
        (temp_workdir / "data" / name).write_bytes(b"junk")

    code = cli_main(["data", "-o", "out"])
    out = capsys.readouterr().out

    assert code == 2
    assert "SUMMARY files=2/2 success=0 failed=2 items=0" in out
    assert not list((temp_workdir / "out").iterdir())
