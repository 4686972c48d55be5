from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

"""Batch processing result models.

FileResult is the per-file outcome handed back to the batch driver
(success with an output path, or error with a message). BatchResult
aggregates them for the SUMMARY line and the CLI exit code.
"""


class FileStatus(Enum):
    """Outcome of converting a single input file."""
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class FileResult:
    input_path: Path
    status: FileStatus
    output_path: Path | None = None  # только при успехе
    error: str | None = None  # только при ошибке
    file_id: str | None = None
    item_count: int = 0
    elapsed_seconds: float = 0.0

    @property
    def file_name(self) -> str:
        return self.input_path.name

    @property
    def ok(self) -> bool:
        return self.status is FileStatus.SUCCESS


@dataclass(frozen=True)
class BatchResult:
    """Aggregated results of one batch run."""
    success_files: int
    failed_files: int
    total_items: int  # позиций во всех успешно сконвертированных файлах
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_results: list[FileResult] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
