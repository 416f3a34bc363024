from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..store.codecs import AddressMapping, normalize_username
from ..store.lookup_store import LookupStore, PersistenceWarning, WriteResult

"""Admin operations for the address mapping and exclusion tables.

Validation failures (blank input, duplicate key, missing key) are raised
inside the read-modify-write and converted to an AdminResult here; they never
leave this module as exceptions and never mutate a table.
"""

logger = logging.getLogger(__name__)


class AdminError(Exception):
    kind = "error"


class ValidationError(AdminError):
    kind = "validation"


class DuplicateKeyError(AdminError):
    kind = "duplicate_key"


class NotFoundError(AdminError):
    kind = "not_found"


@dataclass(frozen=True)
class AdminResult:
    success: bool
    message: str
    durable: bool = False
    key: str | None = None
    total: int | None = None
    error: str | None = None  # AdminError.kind
    warning: PersistenceWarning | None = None
    commit_url: str | None = None


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _saved(message: str, key: str, table_size: int, result: WriteResult | None) -> AdminResult:
    durable = bool(result and result.durable)
    where = "saved" if durable else "kept for this session only"
    return AdminResult(
        success=True,
        message=f"{message}; {where}",
        durable=durable,
        key=key,
        total=table_size,
        warning=result.warning if result else None,
        commit_url=result.commit_url if result else None,
    )


def _failed(e: AdminError, key: str | None = None) -> AdminResult:
    logger.debug(f"admin operation rejected ({e.kind}): {e}")
    return AdminResult(success=False, message=str(e), key=key, error=e.kind)


def list_mappings(store: LookupStore[dict[str, AddressMapping]]) -> dict[str, AddressMapping]:
    return store.load()


def add_mapping(
    store: LookupStore[dict[str, AddressMapping]],
    address: Any,
    company_id: Any,
    company_name: Any,
) -> AdminResult:
    key = _clean(address)
    company_id_clean = _clean(company_id)
    company_name_clean = _clean(company_name)

    def _add(table: dict[str, AddressMapping]) -> dict[str, AddressMapping]:
        if not key or not company_id_clean or not company_name_clean:
            raise ValidationError("All fields (address, company id, company name) are required")
        if key in table:
            raise DuplicateKeyError(f"Mapping already exists for {key!r}")
        table[key] = AddressMapping(company_id=company_id_clean, company_name=company_name_clean)
        return table

    try:
        table, result = store.update(_add)
    except AdminError as e:
        return _failed(e, key or None)
    return _saved(f"Mapping for {key!r} added", key, len(table), result)


def remove_mapping(store: LookupStore[dict[str, AddressMapping]], address: Any) -> AdminResult:
    key = _clean(address)

    def _remove(table: dict[str, AddressMapping]) -> dict[str, AddressMapping]:
        if not key:
            raise ValidationError("Address is required")
        if key not in table:
            raise NotFoundError(f"Mapping not found for {key!r}")
        del table[key]
        return table

    try:
        table, result = store.update(_remove)
    except AdminError as e:
        return _failed(e, key or None)
    return _saved(f"Mapping for {key!r} removed", key, len(table), result)


def list_exclusions(store: LookupStore[list[str]]) -> list[str]:
    return store.load()


def add_exclusion(store: LookupStore[list[str]], username: Any) -> AdminResult:
    name = normalize_username(username) if isinstance(username, str) else ""

    def _add(names: list[str]) -> list[str]:
        if not name:
            raise ValidationError("Valid username is required")
        if name in names:
            raise DuplicateKeyError(f"{name!r} is already in the exclusion list")
        names.append(name)
        names.sort()
        return names

    try:
        names, result = store.update(_add)
    except AdminError as e:
        return _failed(e, name or None)
    return _saved(f"{name!r} added to exclusion list", name, len(names), result)


def remove_exclusion(store: LookupStore[list[str]], username: Any) -> AdminResult:
    name = normalize_username(username) if isinstance(username, str) else ""

    def _remove(names: list[str]) -> list[str]:
        if not name:
            raise ValidationError("Valid username is required")
        if name not in names:
            raise NotFoundError(f"{name!r} is not in the exclusion list")
        names.remove(name)
        return names

    try:
        names, result = store.update(_remove)
    except AdminError as e:
        return _failed(e, name or None)
    return _saved(f"{name!r} removed from exclusion list", name, len(names), result)
