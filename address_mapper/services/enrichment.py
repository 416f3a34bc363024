from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..models.dataset import TabularDataset, is_blank
from ..store.codecs import AddressMapping
from ..store.lookup_store import LookupStore, WriteResult

"""Row enrichment.

Fills the three derived columns from the address mapping table and collects
customer-id → company-name observations. The customer-company table is
written at most once per run, after all rows are processed.
"""

logger = logging.getLogger(__name__)

COMPANY_COLUMN = "Company"
COMPANY_NAME_COLUMN = "Company Name"
LIFESTYLE_STAGE_COLUMN = "Lifestyle Stage"
DERIVED_COLUMNS = (COMPANY_COLUMN, COMPANY_NAME_COLUMN, LIFESTYLE_STAGE_COLUMN)

WORKER_STAGE = "Worker"


@dataclass(frozen=True)
class EnrichmentResult:
    dataset: TabularDataset
    customer_company_delta: dict[str, str]
    matched_rows: int
    unmatched_rows: int
    write_result: WriteResult | None = None  # None = 書き込み不要


def _cell_text(value: Any) -> str:
    return "" if is_blank(value) else str(value).strip()


def prepare_dataset(dataset: TabularDataset, address_column: str) -> TabularDataset:
    """Insert the derived columns right after the address column.

    Columns before and after the insertion point keep their relative order.
    Derived columns that already exist stay where they are.
    """
    if all(c in dataset.columns for c in DERIVED_COLUMNS):
        return dataset.copy()

    columns: list[str] = []
    for name in dataset.columns:
        if name in DERIVED_COLUMNS:
            continue
        columns.append(name)
        if name == address_column:
            columns.extend(DERIVED_COLUMNS)

    rows = []
    for row in dataset.rows:
        new_row = {c: row.get(c) for c in columns}
        for c in DERIVED_COLUMNS:
            if new_row[c] is None:
                new_row[c] = ""
        rows.append(new_row)
    return TabularDataset(columns=columns, rows=rows)


def enrich(
    dataset: TabularDataset,
    address_column: str,
    customer_id_column: str | None,
    address_table: dict[str, AddressMapping],
) -> EnrichmentResult:
    """Pure enrichment against a table snapshot (no persistence)."""
    prepared = prepare_dataset(dataset, address_column)
    delta: dict[str, str] = {}
    matched = 0

    for row in prepared.rows:
        mapping = address_table.get(_cell_text(row.get(address_column)))
        # Company / Company Name の片方が空のエントリは未一致扱い
        if mapping is not None and mapping.company_id and mapping.company_name:
            row[COMPANY_COLUMN] = mapping.company_id
            row[COMPANY_NAME_COLUMN] = mapping.company_name
            row[LIFESTYLE_STAGE_COLUMN] = WORKER_STAGE
            matched += 1
        else:
            row[COMPANY_COLUMN] = ""
            row[COMPANY_NAME_COLUMN] = ""
            row[LIFESTYLE_STAGE_COLUMN] = ""

        if customer_id_column is None:
            continue
        customer_id = row.get(customer_id_column)
        company_name = row[COMPANY_NAME_COLUMN]
        if not is_blank(customer_id) and company_name:
            # 後勝ち (上から下の行順)
            delta[str(customer_id)] = company_name

    return EnrichmentResult(
        dataset=prepared,
        customer_company_delta=delta,
        matched_rows=matched,
        unmatched_rows=len(prepared.rows) - matched,
    )


def merge_customer_companies(
    store: LookupStore[dict[str, str]], delta: dict[str, str]
) -> WriteResult | None:
    """Merge ``delta`` into the customer-company table; one write only if something changed."""
    if not delta:
        return None

    def _merge(current: dict[str, str]) -> dict[str, str] | None:
        merged = {**current, **delta}
        return None if merged == current else merged

    _, result = store.update(_merge)
    if result is not None:
        logger.debug(f"customer-company table updated with {len(delta)} observation(s)")
    return result


def enrich_and_accumulate(
    dataset: TabularDataset,
    address_column: str,
    customer_id_column: str | None,
    address_store: LookupStore[dict[str, AddressMapping]],
    customer_company_store: LookupStore[dict[str, str]],
) -> EnrichmentResult:
    """Enrich ``dataset`` from the address store and accumulate customer→company pairs."""
    result = enrich(dataset, address_column, customer_id_column, address_store.load())
    write_result = merge_customer_companies(customer_company_store, result.customer_company_delta)
    return EnrichmentResult(
        dataset=result.dataset,
        customer_company_delta=result.customer_company_delta,
        matched_rows=result.matched_rows,
        unmatched_rows=result.unmatched_rows,
        write_result=write_result,
    )
