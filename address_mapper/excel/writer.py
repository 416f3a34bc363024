from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..models.dataset import TabularDataset

"""Excel writer: serialize a TabularDataset back to a single-sheet workbook."""

OUTPUT_SHEET_NAME = "Processed Data"


def output_path_for(input_path: Path, output_directory: Path) -> Path:
    return output_directory / f"processed_{input_path.stem}.xlsx"


def write_dataset(dataset: TabularDataset, path: Path, sheet_name: str = OUTPUT_SHEET_NAME) -> Path:
    """Write ``dataset`` to ``path`` keeping the dataset's column order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(dataset.rows, columns=dataset.columns)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return path
