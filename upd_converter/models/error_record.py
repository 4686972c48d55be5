from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the per-file error log.

One record per failed input file, serialised as a JSON line with a fixed key
set: timestamp, file, stage, error_type, message.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Input file name
        stage: Pipeline stage that failed (read / convert / write)
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Exception message
    """
    timestamp: str
    file: str
    stage: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, stage: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            stage=stage,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
