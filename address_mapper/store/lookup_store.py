from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from .codecs import TableCodec
from .sources import LocalFileSource, RemoteSource, TransientSourceError

"""LookupStore: one persisted key→value table with tier fallback.

load() resolution order:
    1. remote store         (if configured)
    2. local JSON file      (if enabled)
    3. in-process cache     (last table loaded or written in this process)
    4. empty table

Any tier failure falls through to the next tier; load() itself never raises.

write() always swaps the in-process cache first. From then on the cache is
authoritative for this process and load() returns it directly; the remote
and local tiers are only written to. Propagation to them is best effort and
its outcome is reported through WriteResult.
"""

T = TypeVar("T")

logger = logging.getLogger(__name__)

_WARNING_TEXT = {
    "not_configured": ("Remote persistence not configured", "Check environment variables"),
    "api_error": ("Remote API error", "Check token permissions and repository access"),
    "get_file_error": ("Could not access repository file", "Check repository name and token permissions"),
    "conflict": ("Remote file changed concurrently", "Reload and retry the change"),
    "network_error": ("Network error connecting to remote store", "Try again in a moment"),
    "local_write_error": ("Could not write local file", "Check filesystem permissions"),
}


@dataclass(frozen=True)
class PersistenceWarning:
    """Non-fatal durable-store failure: the change lives in this process only."""
    reason: str
    detail: str | None = None
    status: int | None = None

    @property
    def message(self) -> str:
        text, _ = _WARNING_TEXT.get(self.reason, ("Save failed", ""))
        if self.status is not None:
            text = f"{text} ({self.status})"
        return text

    @property
    def suggestion(self) -> str:
        return _WARNING_TEXT.get(self.reason, ("", ""))[1]


@dataclass(frozen=True)
class WriteResult:
    durable: bool
    warning: PersistenceWarning | None = None
    commit_sha: str | None = None
    commit_url: str | None = None


class LookupStore(Generic[T]):
    """Process-scoped persisted table. Instances are shared; all methods are thread safe."""

    def __init__(
        self,
        name: str,
        codec: TableCodec[T],
        *,
        description: str | None = None,
        remote: RemoteSource | None = None,
        local: LocalFileSource | None = None,
    ) -> None:
        self.name = name
        self.description = description or name
        self.codec = codec
        self.remote = remote
        self.local = local
        self._cache: T | None = None
        self._authoritative = False  # write() 済みなら True
        self._cache_lock = threading.Lock()
        self._update_lock = threading.RLock()

    @property
    def sources(self) -> list[RemoteSource | LocalFileSource]:
        return [s for s in (self.remote, self.local) if s is not None]

    def _cached(self) -> T | None:
        with self._cache_lock:
            if self._cache is None:
                return None
            return self.codec.copy(self._cache)

    def _swap_cache(self, table: T, authoritative: bool) -> None:
        snapshot = self.codec.copy(table)
        with self._cache_lock:
            self._cache = snapshot
            if authoritative:
                self._authoritative = True

    def load(self) -> T:
        """Return a copy of the table from the highest-priority available tier."""
        with self._cache_lock:
            if self._authoritative and self._cache is not None:
                return self.codec.copy(self._cache)

        for source in self.sources:
            try:
                table = source.try_load()
            except TransientSourceError as e:
                logger.debug(f"{self.name}: {source.name} tier unavailable: {e}")
                continue
            if table is None:
                logger.debug(f"{self.name}: {source.name} tier has no table")
                continue
            logger.debug(f"{self.name}: loaded from {source.name} tier")
            # 権威キャッシュが並行 write で作られていたらそちらを優先
            with self._cache_lock:
                if self._authoritative and self._cache is not None:
                    return self.codec.copy(self._cache)
                self._cache = self.codec.copy(table)
            return table

        cached = self._cached()
        if cached is not None:
            logger.debug(f"{self.name}: using in-process cache")
            return cached
        logger.debug(f"{self.name}: no table found, starting empty")
        return self.codec.empty()

    def write(self, table: T, count: int | None = None) -> WriteResult:
        """Commit ``table`` to the cache, then propagate to local and remote tiers."""
        self._swap_cache(table, authoritative=True)

        local_ok: bool | None = None
        if self.local is not None:
            try:
                self.local.save(table)
                local_ok = True
            except OSError as e:
                logger.debug(f"{self.name}: local write failed: {e}")
                local_ok = False

        if self.remote is None:
            if local_ok:
                return WriteResult(durable=True)
            reason = "local_write_error" if local_ok is False else "not_configured"
            return self._non_durable(PersistenceWarning(reason=reason))

        entries = count if count is not None else len(table)  # type: ignore[arg-type]
        message = f"Update {self.description} ({entries} entries)"
        outcome = self.remote.save(table, message)
        if outcome.ok:
            put = outcome.put
            logger.debug(f"{self.name}: saved to remote store")
            return WriteResult(
                durable=True,
                commit_sha=put.commit_sha if put else None,
                commit_url=put.commit_url if put else None,
            )
        return self._non_durable(
            PersistenceWarning(reason=outcome.reason or "api_error", detail=outcome.detail, status=outcome.status)
        )

    def _non_durable(self, warning: PersistenceWarning) -> WriteResult:
        detail = f": {warning.detail}" if warning.detail else ""
        logger.warning(f"{self.name}: {warning.message}; change kept for this session only{detail}")
        return WriteResult(durable=False, warning=warning)

    def update(self, mutate: Callable[[T], T | None]) -> tuple[T, WriteResult | None]:
        """Serialized read-modify-write.

        ``mutate`` receives a private copy of the current table and returns
        the new table, or None when nothing changed (no write is issued).
        Exceptions raised by ``mutate`` propagate and leave the table untouched.
        """
        with self._update_lock:
            current = self.load()
            new_table = mutate(self.codec.copy(current))
            if new_table is None:
                return current, None
            return new_table, self.write(new_table)
