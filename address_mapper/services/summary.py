from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format:
SUMMARY files={total}/{total} success={n} failed={n} rows={n} matched={n}
unmatched={n} excluded={n} durable={yes|no|n/a} elapsed_sec={s}
"""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # 指数表記を避ける
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.2f}"


def _format_durable(value: bool | None) -> str:
    if value is None:
        return "n/a"
    return "yes" if value else "no"


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a processing run.

    >>> from datetime import datetime, timezone
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> r = ProcessingResult(
    ...     success_files=1, failed_files=0, total_rows=3, matched_rows=2,
    ...     unmatched_rows=1, removed_rows=1, start_time=t, end_time=t,
    ...     elapsed_seconds=2.0)
    >>> render_summary_line(1, r)
    'SUMMARY files=1/1 success=1 failed=0 rows=3 matched=2 unmatched=1 excluded=1 durable=n/a elapsed_sec=2'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"matched={result.matched_rows} "
        f"unmatched={result.unmatched_rows} "
        f"excluded={result.removed_rows} "
        f"durable={_format_durable(result.customer_company_durable)} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
