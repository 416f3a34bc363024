from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

"""TabularDataset model.

A TabularDataset is the in-memory form of one spreadsheet: the header row
(column order preserved) and the data rows keyed by column name. Every row
carries exactly the dataset's columns in the dataset's order, so column
layout survives a write back to xlsx.
"""

__all__ = [
    "TabularDataset",
    "is_blank",
]


def is_blank(value: Any) -> bool:
    """Return True for cells that count as empty (None, NaN, "")."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


@dataclass
class TabularDataset:
    """Ordered rows of named fields with a header-driven schema.

    A dataset with zero rows has no usable schema for processing and is
    reported through ``is_empty``.
    """
    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        # 全行を header 順に揃える (欠損列は None)
        self.rows = [self._conform(r) for r in self.rows]

    def _conform(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return {c: row.get(c) for c in self.columns}

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def __len__(self) -> int:
        return len(self.rows)

    def with_rows(self, rows: list[dict[str, Any]]) -> TabularDataset:
        """Return a dataset with the same columns and a new row list."""
        return TabularDataset(columns=list(self.columns), rows=rows)

    def copy(self) -> TabularDataset:
        return TabularDataset(columns=list(self.columns), rows=[dict(r) for r in self.rows])
