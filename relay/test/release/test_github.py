from __future__ import annotations

import json
import urllib.error
import urllib.request
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from relay.core.result import Err, Ok
from relay.release import github as github_mod
from relay.release.github import GitHubReleaseStore

API = "https://api.github.com/repos/acme/pkg"


class _Response:
    def __init__(self, payload: object | None) -> None:
        self._raw = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self) -> _Response:
        return self

    def __exit__(self, *exc: object) -> None:
        return None


class _FakeUrlopen:
    """Replays canned responses and records each request."""

    def __init__(self, responses: list[object]) -> None:
        self.responses = responses
        self.requests: list[urllib.request.Request] = []
        self.bodies: list[bytes | None] = []

    def __call__(self, req: urllib.request.Request, *, timeout: float, context: Any) -> _Response:
        del timeout
        del context
        self.requests.append(req)
        data = req.data
        if data is None or isinstance(data, bytes):
            self.bodies.append(data)
        else:
            self.bodies.append(data.read())  # type: ignore[union-attr]

        response = self.responses.pop(0)
        if isinstance(response, urllib.error.HTTPError):
            raise response
        return _Response(response)


def _http_error(url: str, code: int, reason: str) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(url, code, reason, hdrs=None, fp=None)  # type: ignore[arg-type]


def _release_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": 11,
        "tag_name": "builds",
        "upload_url": "https://uploads.github.com/repos/acme/pkg/releases/11/assets{?name,label}",
        "html_url": "https://github.com/acme/pkg/releases/tag/builds",
        "assets": [
            {"id": 5, "name": "pkg-1.0.xpi", "created_at": "2024-03-01T10:00:00Z"},
        ],
    }
    payload.update(overrides)
    return payload


def _install(monkeypatch: pytest.MonkeyPatch, responses: list[object]) -> _FakeUrlopen:
    fake = _FakeUrlopen(responses)
    monkeypatch.setattr(github_mod.urllib.request, "urlopen", fake)
    return fake


def test_get_release_by_tag_parses_release(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _install(monkeypatch, [_release_payload()])
    store = GitHubReleaseStore("acme/pkg", "secret")

    result = store.get_release_by_tag("builds")

    assert isinstance(result, Ok)
    release = result.value
    assert release is not None
    assert release.id == 11
    assert release.tag_name == "builds"
    assert release.assets[0].name == "pkg-1.0.xpi"
    assert release.assets[0].created_at == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
    req = fake.requests[0]
    assert req.full_url == f"{API}/releases/tags/builds"
    assert req.get_header("Authorization") == "token secret"


def test_get_release_by_tag_not_found_is_none(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, [_http_error(f"{API}/releases/tags/v9", 404, "Not Found")])
    store = GitHubReleaseStore("acme/pkg", None)

    assert store.get_release_by_tag("v9") == Ok(None)


def test_get_release_by_tag_server_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, [_http_error(f"{API}/releases/tags/v9", 503, "Service Unavailable")])
    store = GitHubReleaseStore("acme/pkg", None)

    result = store.get_release_by_tag("v9")

    assert isinstance(result, Err)
    assert result.error.status == 503


def test_create_release_sends_json(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _install(monkeypatch, [_release_payload(tag_name="v1.2.3", assets=[])])
    store = GitHubReleaseStore("acme/pkg", "secret")

    result = store.create_release("v1.2.3", prerelease=True, body="notes")

    assert isinstance(result, Ok)
    assert result.value.tag_name == "v1.2.3"
    req = fake.requests[0]
    assert req.get_method() == "POST"
    assert req.full_url == f"{API}/releases"
    body = fake.bodies[0]
    assert body is not None
    assert json.loads(body) == {"tag_name": "v1.2.3", "prerelease": True, "body": "notes"}


def test_upload_asset_streams_file_with_length(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    artifact = tmp_path / "pkg 1.2.3.xpi"
    artifact.write_bytes(b"0123456789")
    fake = _install(
        monkeypatch,
        [{"id": 99, "name": "pkg 1.2.3.xpi", "created_at": "2024-03-11T12:00:00Z"}],
    )
    store = GitHubReleaseStore("acme/pkg", "secret")

    result = store.upload_asset(
        "https://uploads.github.com/repos/acme/pkg/releases/11/assets{?name,label}",
        artifact,
        name=artifact.name,
        content_type="application/vnd.zotero.plugin",
        content_length=10,
    )

    assert isinstance(result, Ok)
    assert result.value.id == 99
    req = fake.requests[0]
    assert req.full_url == (
        "https://uploads.github.com/repos/acme/pkg/releases/11/assets?name=pkg%201.2.3.xpi"
    )
    assert req.get_header("Content-length") == "10"
    assert req.get_header("Content-type") == "application/vnd.zotero.plugin"
    assert fake.bodies[0] == b"0123456789"


def test_list_assets_follows_pages(monkeypatch: pytest.MonkeyPatch) -> None:
    page1 = [
        {"id": i, "name": f"a{i}.xpi", "created_at": "2024-03-01T00:00:00Z"} for i in range(100)
    ]
    page2 = [{"id": 100, "name": "last.xpi", "created_at": "2024-03-02T00:00:00Z"}]
    fake = _install(monkeypatch, [page1, page2])
    store = GitHubReleaseStore("acme/pkg", None)

    result = store.list_assets(11)

    assert isinstance(result, Ok)
    assert len(result.value) == 101
    assert fake.requests[1].full_url == f"{API}/releases/11/assets?per_page=100&page=2"


def test_delete_asset(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _install(monkeypatch, [None])
    store = GitHubReleaseStore("acme/pkg", "secret")

    assert store.delete_asset(5) == Ok(None)
    assert fake.requests[0].get_method() == "DELETE"
    assert fake.requests[0].full_url == f"{API}/releases/assets/5"


def test_list_open_issues_by_label(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _install(monkeypatch, [[{"number": 3}, {"number": 8}, {"title": "no number"}]])
    store = GitHubReleaseStore("acme/pkg", "secret")

    assert store.list_open_issues("translation") == Ok([3, 8])
    assert fake.requests[0].full_url == (
        f"{API}/issues?state=open&labels=translation&per_page=100&page=1"
    )


def test_create_issue_comment_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, [_http_error(f"{API}/issues/4/comments", 403, "Forbidden")])
    store = GitHubReleaseStore("acme/pkg", "secret")

    result = store.create_issue_comment(4, "hi")

    assert isinstance(result, Err)
    assert result.error.status == 403
    assert str(result.error) == f"HTTP 403: Forbidden ({API}/issues/4/comments)"
