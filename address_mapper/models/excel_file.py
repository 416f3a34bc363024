from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

"""ExcelFile domain model and FileStatus enum.

One ExcelFile per input spreadsheet: success or failure, output location
and the row counts that feed the SUMMARY line.
"""


class FileStatus(Enum):
    """Outcome of processing one spreadsheet."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ExcelFile:
    """Processing context for a single spreadsheet."""
    path: Path                           # 入力ファイル
    name: str
    status: FileStatus
    start_time: datetime | None = None
    end_time: datetime | None = None
    total_rows: int = 0                  # 出力行数 (除外後)
    matched_rows: int = 0                # 住所マッピング一致行 (除外後の出力行のみ)
    unmatched_rows: int = 0
    removed_rows: int = 0                # 除外リストで削除された行
    output_path: Path | None = None
    customer_company_durable: bool | None = None  # None = 書き込み不要だった
    error: str | None = None             # Failure reason summary
