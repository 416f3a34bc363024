from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .codecs import TableCodec, TableFormatError
from .remote import GitHubContentsClient, PutResult, RemoteConflictError, RemoteNotFoundError, RemoteStoreError

"""Persistence tier sources for LookupStore.

Each source knows one place a table can live. ``try_load`` returns the table,
or None when the source simply has nothing (file absent); every other failure
is raised as TransientSourceError so the store can fall through to the next
tier.
"""

logger = logging.getLogger(__name__)


class TransientSourceError(Exception):
    """A persistence tier could not be read (network, malformed data, I/O)."""


class Source(Protocol):
    name: str

    def try_load(self) -> Any | None: ...


@dataclass(frozen=True)
class RemoteSaveOutcome:
    ok: bool
    reason: str | None = None
    status: int | None = None
    detail: str | None = None
    put: PutResult | None = None


class RemoteSource:
    """Table stored as a JSON file in the remote repository."""

    name = "remote"

    def __init__(self, client: GitHubContentsClient, path: str, codec: TableCodec[Any], retry_on_conflict: bool = False) -> None:
        self.client = client
        self.path = path
        self.codec = codec
        self.retry_on_conflict = retry_on_conflict

    def try_load(self) -> Any | None:
        try:
            remote_file = self.client.get_file(self.path)
        except RemoteNotFoundError:
            return None
        except RemoteStoreError as e:
            raise TransientSourceError(str(e)) from e
        try:
            return self.codec.parse(remote_file.content)
        except TableFormatError as e:
            raise TransientSourceError(f"{self.path}: {e}") from e

    def _current_sha(self) -> str | None:
        try:
            return self.client.get_file(self.path).sha
        except RemoteNotFoundError:
            return None  # 新規作成 (sha なし)

    def save(self, table: Any, message: str) -> RemoteSaveOutcome:
        """Conditional put: fetch the version token, then put with it.

        A stale token is reported as a conflict, not overwritten. With
        ``retry_on_conflict`` one more attempt is made with a fresh token.
        """
        content = self.codec.dumps(table)
        retries_left = 1 if self.retry_on_conflict else 0
        while True:
            try:
                sha = self._current_sha()
            except RemoteStoreError as e:
                return RemoteSaveOutcome(ok=False, reason=_get_reason(e), status=e.status, detail=str(e))
            try:
                put = self.client.put_file(self.path, content, sha=sha, message=message)
            except RemoteConflictError as e:
                if retries_left > 0:
                    retries_left -= 1
                    logger.info(f"remote conflict on {self.path}; retrying with fresh version token")
                    continue
                return RemoteSaveOutcome(ok=False, reason="conflict", status=e.status, detail=str(e))
            except RemoteStoreError as e:
                return RemoteSaveOutcome(ok=False, reason=e.reason, status=e.status, detail=str(e))
            return RemoteSaveOutcome(ok=True, put=put)


def _get_reason(e: RemoteStoreError) -> str:
    return "network_error" if e.reason == "network_error" else "get_file_error"


class LocalFileSource:
    """Table stored as a JSON file on the local filesystem."""

    name = "local"

    def __init__(self, path: Path, codec: TableCodec[Any]) -> None:
        self.path = path
        self.codec = codec

    def try_load(self) -> Any | None:
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise TransientSourceError(f"{self.path}: {e}") from e
        try:
            return self.codec.parse(text)
        except TableFormatError as e:
            raise TransientSourceError(f"{self.path}: {e}") from e

    def save(self, table: Any) -> None:
        """Write the table; raises OSError on failure."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(self.codec.dumps(table) + "\n", encoding="utf-8")
        tmp.replace(self.path)
