# Shared pytest fixtures
from __future__ import annotations

import itertools
import tempfile
from pathlib import Path

import pandas as pd
import pytest

from address_mapper.logging.init import reset_logging
from address_mapper.store.codecs import AddressMappingCodec, CustomerCompanyCodec, ExclusionCodec
from address_mapper.store.lookup_store import LookupStore
from address_mapper.store.remote import PutResult, RemoteConflictError, RemoteFile, RemoteNotFoundError, RemoteStoreError
from address_mapper.store.sources import LocalFileSource, RemoteSource
from address_mapper.store.factory import Stores

ENV_KEYS = (
    "ENABLE_GITHUB_PERSISTENCE",
    "GITHUB_TOKEN",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "GITHUB_BRANCH",
    "VERCEL",
    "AWS_LAMBDA_FUNCTION_NAME",
    "NETLIFY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "input").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """output_directory: ./output
persistence:
  remote:
    enabled: false
    owner: acme
    repo: address-data
    branch: main
    timeout_seconds: 5
  local:
    enabled: true
tables:
  exclusions:
    local_path: data/names.json
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "mapper.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_excel(path: Path, columns: list[str], rows: list[list[object]], sheet: str = "Sheet1") -> Path:
    """Create a single-sheet workbook with a header row."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(rows, columns=columns)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet, index=False)
    return path


class FakeRemoteClient:
    """In-memory stand-in for GitHubContentsClient with sha checking."""

    def __init__(self) -> None:
        self.files: dict[str, RemoteFile] = {}
        self._sha = itertools.count(1)
        self.get_calls = 0
        self.put_calls: list[dict] = []
        self.fail_get: RemoteStoreError | None = None
        self.fail_put: RemoteStoreError | None = None
        self.conflicts_remaining = 0

    def seed(self, path: str, content: str) -> None:
        self.files[path] = RemoteFile(content=content, sha=f"sha{next(self._sha)}")

    def get_file(self, path: str) -> RemoteFile:
        self.get_calls += 1
        if self.fail_get is not None:
            raise self.fail_get
        if path not in self.files:
            raise RemoteNotFoundError(f"not found: {path}")
        return self.files[path]

    def put_file(self, path: str, content: str, sha: str | None = None, message: str = "") -> PutResult:
        self.put_calls.append({"path": path, "content": content, "sha": sha, "message": message})
        if self.fail_put is not None:
            raise self.fail_put
        if self.conflicts_remaining > 0:
            self.conflicts_remaining -= 1
            raise RemoteConflictError("sha mismatch", status=409)
        current = self.files.get(path)
        if current is not None and current.sha != sha:
            raise RemoteConflictError("sha mismatch", status=409)
        if current is None and sha is not None:
            raise RemoteConflictError("sha for missing file", status=422)
        self.seed(path, content)
        new_sha = self.files[path].sha
        return PutResult(sha=new_sha, commit_sha=f"c-{new_sha}", commit_url=f"https://example.test/commit/{new_sha}")


@pytest.fixture()
def fake_remote() -> FakeRemoteClient:
    return FakeRemoteClient()


def build_test_stores(
    base: Path | None = None,
    remote: FakeRemoteClient | None = None,
) -> Stores:
    """Stores wired to an optional local directory and an optional fake remote."""

    def _store(name: str, codec, remote_path: str, local_name: str) -> LookupStore:
        r = RemoteSource(remote, remote_path, codec) if remote is not None else None  # type: ignore[arg-type]
        loc = LocalFileSource(base / local_name, codec) if base is not None else None
        return LookupStore(name, codec, description=name, remote=r, local=loc)

    return Stores(
        address_mappings=_store("address_mappings", AddressMappingCodec(), "web-app/data/address_mappings.json", "address_mappings.json"),
        customer_companies=_store("customer_companies", CustomerCompanyCodec(), "web-app/data/customer_company.json", "customer_company.json"),
        exclusions=_store("exclusions", ExclusionCodec(), "web-app/names.json", "names.json"),
    )


@pytest.fixture()
def excel_factory():
    return make_excel


@pytest.fixture()
def stores_factory():
    return build_test_stores
