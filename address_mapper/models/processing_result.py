from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models.

ProcessingResult aggregates the per-file outcomes of one `process` run and
feeds the SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics (internal helper for ProcessingResult)."""
    file_name: str  # ファイル名
    status: str  # success/failed
    output_rows: int
    matched_rows: int
    removed_rows: int
    elapsed_seconds: float
    output_path: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results and summary output for a processing run."""
    success_files: int
    failed_files: int
    total_rows: int  # 出力された総行数
    matched_rows: int
    unmatched_rows: int
    removed_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    # None: customer-company 表への書き込みが発生しなかった
    customer_company_durable: bool | None = None
    file_stats: list[FileStat] | None = None
