from __future__ import annotations

import base64
import json
from pathlib import Path
from unittest.mock import Mock

import requests

from address_mapper.config.loader import load_config
from address_mapper.services import admin
from address_mapper.services.pipeline import process_all
from address_mapper.store.factory import build_stores

"""Integration: stores built from config against a stubbed GitHub contents API."""


class ContentsApiStub:
    """Answers session.request() like the contents API, with sha checks."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[str, str]] = {}
        self.version = 0
        self.requests: list[tuple[str, str]] = []

    def _resp(self, status: int, payload: dict) -> Mock:
        resp = Mock()
        resp.status_code = status
        resp.text = json.dumps(payload)
        resp.json.return_value = payload
        return resp

    def seed(self, path: str, document: object) -> None:
        self.version += 1
        self.files[path] = (json.dumps(document), f"v{self.version}")

    def __call__(self, method: str, url: str, timeout: float, **kwargs) -> Mock:
        path = url.split("/contents/", 1)[1]
        self.requests.append((method, path))
        if method == "GET":
            if path not in self.files:
                return self._resp(404, {"message": "Not Found"})
            content, sha = self.files[path]
            return self._resp(200, {"content": base64.b64encode(content.encode()).decode(), "sha": sha})
        body = kwargs["json"]
        current = self.files.get(path)
        if current is not None and body.get("sha") != current[1]:
            return self._resp(409, {"message": "sha mismatch"})
        self.seed(path, json.loads(base64.b64decode(body["content"]).decode()))
        sha = self.files[path][1]
        return self._resp(200, {"content": {"sha": sha}, "commit": {"sha": f"c{sha}", "html_url": f"https://github.test/{sha}"}})


def _stores(write_config: Path, stub: ContentsApiStub):
    env = {"ENABLE_GITHUB_PERSISTENCE": "true", "GITHUB_TOKEN": "t"}
    cfg = load_config(write_config, environ=env)
    session = requests.Session()
    session.request = stub  # type: ignore[method-assign]
    return cfg, build_stores(cfg.persistence, session=session)


def test_remote_tables_drive_processing(temp_workdir: Path, write_config: Path, excel_factory):
    stub = ContentsApiStub()
    stub.seed("web-app/data/address_mappings.json", {"123 Main St": {"Company": "987", "Company Name": "Acme"}})
    stub.seed("web-app/names.json", ["bob"])
    (temp_workdir / "data" / "names.json").write_text('["alice"]', encoding="utf-8")
    cfg, stores = _stores(write_config, stub)

    excel_factory(temp_workdir / "input" / "u.xlsx", ["Username", "AddressStreet", "UnitCustomerId"], [
        ["alice", "123 Main St", "c1"],
        ["bob", "123 Main St", "c2"],
    ])
    result = process_all([temp_workdir / "input"], stores, Path(cfg.output_directory))

    # リモートの除外リストが優先される
    assert result.removed_rows == 1
    assert result.customer_company_durable is True
    stored = json.loads(stub.files["web-app/data/customer_company.json"][0])
    assert stored == {"c1": "Acme", "c2": "Acme"}


def test_admin_change_survives_remote_conflict_in_process(temp_workdir: Path, write_config: Path):
    stub = ContentsApiStub()
    stub.seed("web-app/names.json", ["alice"])
    _, stores = _stores(write_config, stub)

    original_call = stub.__call__

    def racing(method, url, timeout, **kwargs):
        # GET と PUT の間に別プロセスが書き込んだ状態を再現
        if method == "PUT":
            stub.seed("web-app/names.json", ["alice", "zed"])
        return original_call(method, url, timeout, **kwargs)

    stores.exclusions.remote.client.session.request = racing
    result = admin.add_exclusion(stores.exclusions, "bob")

    assert result.success is True
    assert result.durable is False
    assert result.warning.reason == "conflict"
    assert json.loads(stub.files["web-app/names.json"][0]) == ["alice", "zed"]
    assert stores.exclusions.load() == ["alice", "bob"]
