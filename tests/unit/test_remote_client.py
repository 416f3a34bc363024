from __future__ import annotations

import base64
from unittest.mock import Mock

import pytest
import requests

from address_mapper.models.config_models import RemoteConfig
from address_mapper.store.remote import (
    GitHubContentsClient,
    RemoteConflictError,
    RemoteNotFoundError,
    RemoteStoreError,
)

CONFIG = RemoteConfig(enabled=True, owner="acme", repo="address-data", branch="data", token="t0k", timeout_seconds=3.0)
URL = "https://api.github.com/repos/acme/address-data/contents/web-app/names.json"


def _response(status: int, payload: object | None = None, text: str = "") -> Mock:
    resp = Mock()
    resp.status_code = status
    resp.text = text
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


def _client(*responses: Mock) -> tuple[GitHubContentsClient, Mock]:
    session = requests.Session()
    request = Mock(side_effect=list(responses))
    session.request = request  # type: ignore[method-assign]
    return GitHubContentsClient(CONFIG, session=session), request


def test_session_headers():
    client, _ = _client()
    assert client.session.headers["Authorization"] == "token t0k"
    assert client.session.headers["Accept"] == "application/vnd.github.v3+json"


def test_get_file_decodes_content():
    encoded = base64.b64encode('["alice"]'.encode("utf-8")).decode("ascii")
    client, request = _client(_response(200, {"content": encoded, "sha": "abc"}))
    f = client.get_file("web-app/names.json")
    assert f.content == '["alice"]'
    assert f.sha == "abc"
    request.assert_called_once_with("GET", URL, timeout=3.0, params={"ref": "data"})


def test_get_file_not_found():
    client, _ = _client(_response(404, {"message": "Not Found"}))
    with pytest.raises(RemoteNotFoundError):
        client.get_file("web-app/names.json")


def test_get_file_forbidden():
    client, _ = _client(_response(403, {"message": "Forbidden"}, text="Forbidden"))
    with pytest.raises(RemoteStoreError) as e:
        client.get_file("web-app/names.json")
    assert e.value.status == 403
    assert e.value.reason == "get_file_error"


def test_get_file_bad_payload():
    client, _ = _client(_response(200, {"unexpected": True}))
    with pytest.raises(RemoteStoreError) as e:
        client.get_file("web-app/names.json")
    assert e.value.reason == "get_file_error"


def test_timeout_is_network_error():
    session = requests.Session()
    session.request = Mock(side_effect=requests.Timeout("slow"))  # type: ignore[method-assign]
    client = GitHubContentsClient(CONFIG, session=session)
    with pytest.raises(RemoteStoreError) as e:
        client.get_file("web-app/names.json")
    assert e.value.reason == "network_error"
    assert "timeout after 3.0s" in str(e.value)


def test_connection_error_is_network_error():
    session = requests.Session()
    session.request = Mock(side_effect=requests.ConnectionError("refused"))  # type: ignore[method-assign]
    client = GitHubContentsClient(CONFIG, session=session)
    with pytest.raises(RemoteStoreError) as e:
        client.put_file("web-app/names.json", "[]")
    assert e.value.reason == "network_error"


def test_put_file_with_sha():
    payload = {"content": {"sha": "new"}, "commit": {"sha": "c1", "html_url": "https://github.test/c1"}}
    client, request = _client(_response(200, payload))
    result = client.put_file("web-app/names.json", '["bob"]', sha="old", message="Update excluded usernames list (1 entries)")
    assert result.sha == "new"
    assert result.commit_sha == "c1"
    assert result.commit_url == "https://github.test/c1"
    body = request.call_args.kwargs["json"]
    assert body["sha"] == "old"
    assert body["branch"] == "data"
    assert body["message"] == "Update excluded usernames list (1 entries)"
    assert base64.b64decode(body["content"]).decode("utf-8") == '["bob"]'


def test_put_file_create_omits_sha():
    client, request = _client(_response(201, {"content": {"sha": "s1"}, "commit": {}}))
    result = client.put_file("web-app/names.json", "[]")
    assert "sha" not in request.call_args.kwargs["json"]
    assert result.sha == "s1"
    assert result.commit_url is None


@pytest.mark.parametrize("status", [409, 422])
def test_put_file_conflict(status: int):
    client, _ = _client(_response(status, {"message": "sha mismatch"}))
    with pytest.raises(RemoteConflictError) as e:
        client.put_file("web-app/names.json", "[]", sha="stale")
    assert e.value.reason == "conflict"
    assert e.value.status == status


def test_put_file_permission_error():
    client, _ = _client(_response(403, {"message": "Resource not accessible"}))
    with pytest.raises(RemoteStoreError) as e:
        client.put_file("web-app/names.json", "[]")
    assert not isinstance(e.value, RemoteConflictError)
    assert e.value.reason == "api_error"
