from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm

"""File-level progress bar (tqdm, interactive terminals only)."""


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """One bar over the input files of a `process` run.

    Off a TTY no bar is created and every method is a no-op, so piped output
    only carries the labeled log lines.
    """

    def __init__(self, total_files: int, *, description: str = "Processing files") -> None:
        self.description = description
        self.current_file = 0
        self.pbar: tqdm | None = None
        if is_tty_enabled():
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    @property
    def enabled(self) -> bool:
        return self.pbar is not None

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, **counts: int) -> None:
        """Advance the bar; ``counts`` (e.g. success=3, failed=1) become the postfix."""
        if self.pbar is None:
            return
        if counts:
            self.pbar.set_postfix(**counts)
        self.pbar.update(1)
        self.pbar.set_description(self.description)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
