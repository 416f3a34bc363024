from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

"""Table codecs: JSON document <-> in-memory lookup table.

The on-disk / remote shapes are kept compatible with the existing data files:

- address mappings:  {"<address>": {"Company": "<id>", "Company Name": "<name>"}}
- customer companies: {"<customer id>": "<company name>"}
- exclusions:        ["alice", "bob"]   (normalized, sorted, unique)
"""

T = TypeVar("T")

COMPANY_KEY = "Company"
COMPANY_NAME_KEY = "Company Name"


class TableFormatError(ValueError):
    """Raised when a stored document does not have the expected table shape."""


@dataclass(frozen=True)
class AddressMapping:
    company_id: str
    company_name: str


def normalize_username(value: Any) -> str:
    return str(value).strip().lower()


class TableCodec(Generic[T]):
    """Base codec. Subclasses define the table shape."""

    def empty(self) -> T:
        raise NotImplementedError

    def decode(self, document: Any) -> T:
        raise NotImplementedError

    def encode(self, table: T) -> Any:
        raise NotImplementedError

    def copy(self, table: T) -> T:
        raise NotImplementedError

    def parse(self, text: str) -> T:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise TableFormatError(f"invalid JSON: {e}") from e
        return self.decode(document)

    def dumps(self, table: T) -> str:
        return json.dumps(self.encode(table), ensure_ascii=False, indent=2)


class AddressMappingCodec(TableCodec[dict[str, AddressMapping]]):
    def empty(self) -> dict[str, AddressMapping]:
        return {}

    def decode(self, document: Any) -> dict[str, AddressMapping]:
        if not isinstance(document, dict):
            raise TableFormatError(f"expected object, got {type(document).__name__}")
        table: dict[str, AddressMapping] = {}
        for address, entry in document.items():
            if not isinstance(entry, dict):
                raise TableFormatError(f"entry for {address!r} is not an object")
            table[address] = AddressMapping(
                company_id=str(entry.get(COMPANY_KEY) or ""),
                company_name=str(entry.get(COMPANY_NAME_KEY) or ""),
            )
        return table

    def encode(self, table: dict[str, AddressMapping]) -> dict[str, dict[str, str]]:
        return {
            address: {COMPANY_KEY: m.company_id, COMPANY_NAME_KEY: m.company_name}
            for address, m in table.items()
        }

    def copy(self, table: dict[str, AddressMapping]) -> dict[str, AddressMapping]:
        return dict(table)  # AddressMapping は frozen


class CustomerCompanyCodec(TableCodec[dict[str, str]]):
    def empty(self) -> dict[str, str]:
        return {}

    def decode(self, document: Any) -> dict[str, str]:
        if not isinstance(document, dict):
            raise TableFormatError(f"expected object, got {type(document).__name__}")
        return {str(k): str(v) for k, v in document.items()}

    def encode(self, table: dict[str, str]) -> dict[str, str]:
        return dict(table)

    def copy(self, table: dict[str, str]) -> dict[str, str]:
        return dict(table)


class ExclusionCodec(TableCodec[list[str]]):
    def empty(self) -> list[str]:
        return []

    def decode(self, document: Any) -> list[str]:
        if not isinstance(document, list):
            raise TableFormatError(f"expected list, got {type(document).__name__}")
        names = {normalize_username(v) for v in document if v is not None}
        names.discard("")
        return sorted(names)

    def encode(self, table: list[str]) -> list[str]:
        return sorted(set(table))

    def copy(self, table: list[str]) -> list[str]:
        return list(table)
