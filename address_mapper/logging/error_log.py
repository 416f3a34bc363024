from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Per-run error log: ErrorRecords buffered in memory, written as JSON Lines.

The file ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC) is only created when a
run actually has something to report.
"""

__all__ = [
    "ErrorLogBuffer",
    "ErrorRecord",
]

LOGS_DIR = Path("logs")


class ErrorLogBuffer:
    """Collects the failures of one run (one buffer per run, not thread safe)."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._logs_dir = logs_dir or LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._path: Path | None = None

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def _target(self) -> Path:
        if self._path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            self._path = self._logs_dir / f"errors-{datetime.now(UTC):%Y%m%d-%H%M%S}.log"
        return self._path

    def flush(self) -> Path | None:
        """Append buffered records to the run's file; None when there was nothing to write."""
        if not self._records:
            return None
        path = self._target()
        with path.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._records)
        self._records.clear()
        return path
