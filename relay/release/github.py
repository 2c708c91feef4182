"""GitHub REST implementation of ReleaseStore.

Handles:
- Token authentication
- JSON request/response bodies with payload validation
- Pagination of asset and issue listings
- Streaming asset uploads with an explicit Content-Length
"""

from __future__ import annotations

import json
import re
import ssl
import urllib.error
import urllib.request
from datetime import datetime
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote

from relay import __version__
from relay.core.config import DEFAULT_API_URL
from relay.core.result import Err, Ok, Result
from relay.core.structured import as_obj_list, as_str_dict, get_int, get_list, get_str
from relay.release.model import AssetRecord, ReleaseRecord
from relay.release.store import StoreError

__all__ = ["GitHubReleaseStore"]

_PER_PAGE = 100
_URI_TEMPLATE = re.compile(r"\{[^}]*\}$")


def _parse_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_asset(obj: object) -> AssetRecord | None:
    data = as_str_dict(obj)
    if data is None:
        return None
    asset_id = get_int(data, "id")
    name = get_str(data, "name")
    created_at = _parse_timestamp(get_str(data, "created_at"))
    if asset_id is None or name is None or created_at is None:
        return None
    return AssetRecord(name=name, id=asset_id, created_at=created_at)


def _parse_release(obj: object) -> ReleaseRecord | None:
    data = as_str_dict(obj)
    if data is None:
        return None
    release_id = get_int(data, "id")
    tag_name = get_str(data, "tag_name")
    upload_url = get_str(data, "upload_url")
    if release_id is None or tag_name is None or upload_url is None:
        return None

    assets: list[AssetRecord] = []
    for item in get_list(data, "assets") or []:
        asset = _parse_asset(item)
        if asset is not None:
            assets.append(asset)

    return ReleaseRecord(
        tag_name=tag_name,
        id=release_id,
        upload_url=upload_url,
        html_url=get_str(data, "html_url") or "",
        assets=tuple(assets),
    )


class GitHubReleaseStore:
    """Release host backed by the GitHub REST API, using urllib.

    Attributes:
        repository: "owner/name" slug all calls are scoped to
    """

    def __init__(
        self,
        repository: str,
        token: str | None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 60.0,
        user_agent: str = f"relay/{__version__}",
    ) -> None:
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
        }
        if token:
            self._headers["Authorization"] = f"token {token}"
        # Use system certificates
        self._ssl_context = ssl.create_default_context()

    def _repo_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.repository}/{path}"

    def _request(
        self,
        method: str,
        url: str,
        *,
        payload: object | None = None,
        body: BinaryIO | None = None,
        headers: dict[str, str] | None = None,
    ) -> Result[object | None, StoreError]:
        """Send one request and decode the JSON response (None for empty bodies)."""
        all_headers = dict(self._headers)
        data: bytes | BinaryIO | None = body
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            all_headers["Content-Type"] = "application/json"
        if headers:
            all_headers.update(headers)

        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                raw: bytes = response.read()
        except urllib.error.HTTPError as e:
            return Err(StoreError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(StoreError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(StoreError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(StoreError(url=url, status=0, message=str(e)))

        if not raw.strip():
            return Ok(None)
        try:
            return Ok(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(StoreError(url=url, status=0, message=f"JSON parse error: {e}"))

    def _paged(self, url: str) -> Result[list[object], StoreError]:
        items: list[object] = []
        page = 1
        sep = "&" if "?" in url else "?"
        while True:
            page_url = f"{url}{sep}per_page={_PER_PAGE}&page={page}"
            result = self._request("GET", page_url)
            if isinstance(result, Err):
                return result
            chunk = as_obj_list(result.value)
            if chunk is None:
                return Err(StoreError(url=page_url, status=0, message="Expected JSON array"))
            items.extend(chunk)
            if len(chunk) < _PER_PAGE:
                return Ok(items)
            page += 1

    def get_release_by_tag(self, tag: str) -> Result[ReleaseRecord | None, StoreError]:
        url = self._repo_url(f"releases/tags/{quote(tag, safe='')}")
        result = self._request("GET", url)
        if isinstance(result, Err):
            if result.error.status == 404:
                return Ok(None)
            return result

        release = _parse_release(result.value)
        if release is None:
            return Err(StoreError(url=url, status=0, message="unexpected release payload"))
        return Ok(release)

    def create_release(
        self, tag: str, *, prerelease: bool, body: str
    ) -> Result[ReleaseRecord, StoreError]:
        url = self._repo_url("releases")
        result = self._request(
            "POST",
            url,
            payload={"tag_name": tag, "prerelease": prerelease, "body": body},
        )
        if isinstance(result, Err):
            return result

        release = _parse_release(result.value)
        if release is None:
            return Err(StoreError(url=url, status=0, message="unexpected release payload"))
        return Ok(release)

    def list_assets(self, release_id: int) -> Result[list[AssetRecord], StoreError]:
        url = self._repo_url(f"releases/{release_id}/assets")
        result = self._paged(url)
        if isinstance(result, Err):
            return result

        assets: list[AssetRecord] = []
        for item in result.value:
            asset = _parse_asset(item)
            if asset is None:
                return Err(StoreError(url=url, status=0, message="unexpected asset payload"))
            assets.append(asset)
        return Ok(assets)

    def upload_asset(
        self,
        upload_url: str,
        path: Path,
        *,
        name: str,
        content_type: str,
        content_length: int,
    ) -> Result[AssetRecord, StoreError]:
        # upload_url is a URI template: .../assets{?name,label}
        url = f"{_URI_TEMPLATE.sub('', upload_url)}?name={quote(name, safe='')}"
        try:
            with path.open("rb") as stream:
                result = self._request(
                    "POST",
                    url,
                    body=stream,
                    headers={
                        "Content-Type": content_type,
                        "Content-Length": str(content_length),
                    },
                )
        except OSError as e:
            return Err(StoreError(url=url, status=0, message=f"cannot read {path}: {e}"))
        if isinstance(result, Err):
            return result

        asset = _parse_asset(result.value)
        if asset is None:
            return Err(StoreError(url=url, status=0, message="unexpected asset payload"))
        return Ok(asset)

    def delete_asset(self, asset_id: int) -> Result[None, StoreError]:
        result = self._request("DELETE", self._repo_url(f"releases/assets/{asset_id}"))
        if isinstance(result, Err):
            return result
        return Ok(None)

    def list_open_issues(self, label: str) -> Result[list[int], StoreError]:
        url = self._repo_url(f"issues?state=open&labels={quote(label, safe='')}")
        result = self._paged(url)
        if isinstance(result, Err):
            return result

        numbers: list[int] = []
        for item in result.value:
            data = as_str_dict(item)
            number = get_int(data, "number") if data is not None else None
            if number is not None:
                numbers.append(number)
        return Ok(numbers)

    def create_issue_comment(self, issue: int, body: str) -> Result[None, StoreError]:
        result = self._request(
            "POST",
            self._repo_url(f"issues/{issue}/comments"),
            payload={"body": body},
        )
        if isinstance(result, Err):
            return result
        return Ok(None)
