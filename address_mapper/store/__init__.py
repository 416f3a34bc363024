"""Persisted lookup tables (remote → local file → in-process cache → empty)."""

from .codecs import AddressMapping, TableFormatError, normalize_username
from .factory import Stores, build_stores
from .lookup_store import LookupStore, PersistenceWarning, WriteResult
from .sources import LocalFileSource, RemoteSource, TransientSourceError

__all__ = [
    "AddressMapping",
    "LocalFileSource",
    "LookupStore",
    "PersistenceWarning",
    "RemoteSource",
    "Stores",
    "TableFormatError",
    "TransientSourceError",
    "WriteResult",
    "build_stores",
    "normalize_username",
]
