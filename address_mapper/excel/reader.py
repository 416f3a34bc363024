from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from ..models.dataset import TabularDataset, is_blank

"""Excel reader.

The first sheet of the workbook is the dataset: row 1 is the header, rows 2+
are data. Cell types are kept as openpyxl returns them (dtype=object) so that
identifiers such as "00123" or "NA" survive untouched; blank cells become None.
"""


class EmptyDatasetError(Exception):
    """Raised when the sheet has no header or no data rows."""


def read_raw_sheet(path: Path, sheet: str | int = 0) -> pd.DataFrame:
    """Read one sheet as a raw DataFrame (header row applied, no NA guessing)."""
    return pd.read_excel(
        path,
        sheet_name=sheet,
        dtype=object,
        keep_default_na=False,  # "NA" / "null" のような識別子を NaN 化しない
        na_values=[],
        engine="openpyxl",
    )


def normalize_frame(df: pd.DataFrame, source: str = "<dataset>") -> TabularDataset:
    """Convert a raw DataFrame into a TabularDataset.

    Steps:
    1. Column names are stringified (header text kept as written)
    2. Blank cells (None / NaN / "") become None
    3. Rows where every cell is blank are skipped
    4. Zero columns or zero remaining rows raise EmptyDatasetError
    """
    columns = [str(c) for c in df.columns.tolist()]
    if not columns:
        raise EmptyDatasetError(f"{source}: empty file (no header row)")

    rows: list[dict[str, Any]] = []
    for raw in df.itertuples(index=False, name=None):
        values = [None if is_blank(v) else v for v in raw]
        if all(v is None for v in values):
            continue
        rows.append(dict(zip(columns, values, strict=False)))

    if not rows:
        raise EmptyDatasetError(f"{source}: empty file (no data rows)")
    return TabularDataset(columns=columns, rows=rows)


def read_dataset(path: Path) -> TabularDataset:
    """Read the first sheet of an .xlsx file into a TabularDataset."""
    df = read_raw_sheet(path)
    return normalize_frame(df, source=path.name)
