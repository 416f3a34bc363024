from __future__ import annotations

from dataclasses import dataclass

from ..models.dataset import TabularDataset, is_blank
from ..store.lookup_store import LookupStore
from .columns import username_column


@dataclass(frozen=True)
class FilterResult:
    dataset: TabularDataset
    removed_count: int
    username_column: str | None


def filter_excluded(dataset: TabularDataset, excluded: set[str] | list[str]) -> FilterResult:
    """Drop rows whose first-column value (lower-cased) is in ``excluded``.

    Blank identifiers are always kept. Survivor order is preserved.
    """
    column = username_column(dataset)
    if column is None or not excluded:
        return FilterResult(dataset=dataset.copy(), removed_count=0, username_column=column)

    names = set(excluded)
    kept = []
    for row in dataset.rows:
        value = row.get(column)
        if is_blank(value) or str(value).lower() not in names:
            kept.append(dict(row))
    return FilterResult(
        dataset=dataset.with_rows(kept),
        removed_count=len(dataset.rows) - len(kept),
        username_column=column,
    )


def exclude_filtered(dataset: TabularDataset, exclusion_store: LookupStore[list[str]]) -> FilterResult:
    return filter_excluded(dataset, exclusion_store.load())
