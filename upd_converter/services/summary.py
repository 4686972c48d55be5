from __future__ import annotations

from upd_converter.models.processing_result import BatchResult

"""SUMMARY line rendering.

Format:
    SUMMARY files={total}/{total} success={success} failed={failed} items={items} elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # без экспоненциальной записи
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line for a finished batch.

    >>> from datetime import datetime, timezone
    >>> t = datetime(2026, 1, 1, tzinfo=timezone.utc)
    >>> render_summary_line(BatchResult(2, 1, 14, t, t, 1.5))
    'SUMMARY files=3/3 success=2 failed=1 items=14 elapsed_sec=1.5'
    """
    total = result.total_files
    return (
        f"SUMMARY files={total}/{total} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"items={result.total_items} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
