from __future__ import annotations

"""
Remote store client for the GitHub contents API.

The remote store is the system of record when persistence is enabled. Only
two operations are needed:

- get_file(path)  -> RemoteFile(content, sha)   (sha = version token)
- put_file(path, content, sha, message)         (conditional on sha)

Every request is bounded by the configured timeout. Errors are mapped to the
exception hierarchy below; callers decide whether they are fatal (they never
are for lookup tables).
"""

import base64
import logging
from dataclasses import dataclass

import requests

from ..models.config_models import RemoteConfig

logger = logging.getLogger(__name__)

USER_AGENT = "HubSpot-Address-Mapper"


class RemoteStoreError(Exception):
    """Remote store request failed (HTTP error or network failure)."""

    def __init__(self, message: str, status: int | None = None, reason: str = "api_error"):
        super().__init__(message)
        self.status = status
        self.reason = reason


class RemoteNotFoundError(RemoteStoreError):
    """The requested path does not exist on the configured branch."""

    def __init__(self, message: str):
        super().__init__(message, status=404, reason="not_found")


class RemoteConflictError(RemoteStoreError):
    """The version token sent with a put no longer matches the stored file."""

    def __init__(self, message: str, status: int):
        super().__init__(message, status=status, reason="conflict")


@dataclass(frozen=True)
class RemoteFile:
    content: str
    sha: str


@dataclass(frozen=True)
class PutResult:
    sha: str  # 新しい version token
    commit_sha: str | None = None
    commit_url: str | None = None


class GitHubContentsClient:
    """
    Minimal GitHub contents API client.

    Session headers, timeouts and status code mapping. No retries here;
    conflict handling belongs to RemoteSource.
    """

    def __init__(self, config: RemoteConfig, session: requests.Session | None = None):
        self.config = config
        self.timeout = config.timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"token {config.token}",
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            }
        )

    def _url(self, path: str) -> str:
        base = self.config.api_base.rstrip("/")
        return f"{base}/repos/{self.config.owner}/{self.config.repo}/contents/{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        logger.debug(f"remote {method} {path} (timeout={self.timeout}s)")
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise RemoteStoreError(
                f"timeout after {self.timeout}s: {method} {path}", reason="network_error"
            ) from e
        except requests.RequestException as e:
            raise RemoteStoreError(
                f"network error: {method} {path}: {e}", reason="network_error"
            ) from e

    def get_file(self, path: str) -> RemoteFile:
        """
        Fetch a file and its version token.

        Raises:
            RemoteNotFoundError: 404 for the path
            RemoteStoreError: any other HTTP status, network failure or bad payload
        """
        response = self._request("GET", path, params={"ref": self.config.branch})

        if response.status_code == 404:
            raise RemoteNotFoundError(f"not found: {path}")
        if response.status_code != 200:
            raise RemoteStoreError(
                f"GET {path} failed: {response.status_code} {response.text[:200]}",
                status=response.status_code,
                reason="get_file_error",
            )

        try:
            payload = response.json()
            content = base64.b64decode(payload["content"]).decode("utf-8")
            sha = payload["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteStoreError(
                f"GET {path}: unexpected payload: {e}",
                status=response.status_code,
                reason="get_file_error",
            ) from e
        return RemoteFile(content=content, sha=sha)

    def put_file(
        self, path: str, content: str, sha: str | None = None, message: str = ""
    ) -> PutResult:
        """
        Create (sha=None) or update (sha given) a file.

        Raises:
            RemoteConflictError: 409/422, the sha is stale or missing for an existing file
            RemoteStoreError: permission failure, other HTTP status or network failure
        """
        body = {
            "message": message or f"Update {path}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.config.branch,
        }
        if sha:
            body["sha"] = sha

        response = self._request("PUT", path, json=body)

        if response.status_code in (200, 201):
            try:
                data = response.json()
            except ValueError:
                data = {}
            commit = data.get("commit") or {}
            return PutResult(
                sha=(data.get("content") or {}).get("sha", ""),
                commit_sha=commit.get("sha"),
                commit_url=commit.get("html_url"),
            )
        if response.status_code in (409, 422):
            raise RemoteConflictError(
                f"PUT {path} rejected: {response.status_code} {response.text[:200]}",
                status=response.status_code,
            )
        raise RemoteStoreError(
            f"PUT {path} failed: {response.status_code} {response.text[:200]}",
            status=response.status_code,
            reason="api_error",
        )
