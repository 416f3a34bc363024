from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..excel.reader import EmptyDatasetError
from ..models.dataset import TabularDataset

"""Column detection.

- address column:      first header containing "addressstreet" (case-insensitive), required
- customer-id column:  first header containing "unitcustomerid" (case-insensitive), optional
- username column:     always the first column by position

Substring matching can pick up unrelated headers that happen to contain the
token; the first match in header order wins.
"""

ADDRESS_TOKEN = "addressstreet"
CUSTOMER_ID_TOKEN = "unitcustomerid"


class SchemaError(Exception):
    """Raised when a required column is absent."""


@dataclass(frozen=True)
class ResolvedColumns:
    address_column: str
    customer_id_column: str | None


def find_column(columns: Sequence[str], predicate: Callable[[str], bool]) -> str | None:
    for name in columns:
        if predicate(name):
            return name
    return None


def contains_token(token: str) -> Callable[[str], bool]:
    return lambda name: token in str(name).lower()


def username_column(dataset: TabularDataset) -> str | None:
    return dataset.columns[0] if dataset.columns else None


def resolve_columns(dataset: TabularDataset) -> ResolvedColumns:
    """Locate the address and customer-id columns.

    Raises:
        EmptyDatasetError: the dataset has no rows
        SchemaError: no address column
    """
    if dataset.is_empty:
        raise EmptyDatasetError("empty file")
    address = find_column(dataset.columns, contains_token(ADDRESS_TOKEN))
    if address is None:
        raise SchemaError("addressstreet column missing")
    customer_id = find_column(dataset.columns, contains_token(CUSTOMER_ID_TOKEN))
    return ResolvedColumns(address_column=address, customer_id_column=customer_id)
