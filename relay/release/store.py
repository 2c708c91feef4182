"""Release host abstraction.

This module provides:
- ReleaseStore: Protocol for the release host operations a run needs
- StoreError: transport/API failure details
- MemoryReleaseStore: in-memory implementation for tests

The GitHub implementation lives in ``relay.release.github``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from relay.core.result import Err, Ok, Result
from relay.release.model import AssetRecord, ReleaseRecord

__all__ = [
    "ReleaseStore",
    "StoreError",
    "MemoryReleaseStore",
    "MUTATING_OPERATIONS",
]

MUTATING_OPERATIONS = frozenset(
    {"create_release", "upload_asset", "delete_asset", "create_issue_comment"}
)


@dataclass(frozen=True, slots=True)
class StoreError:
    """Release host error details.

    Attributes:
        url: The endpoint that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class ReleaseStore(Protocol):
    """Operations against the remote release host.

    Every call is a single synchronous attempt; retries are never performed.
    """

    def get_release_by_tag(self, tag: str) -> Result[ReleaseRecord | None, StoreError]:
        """Look up a release; Ok(None) when no release has this tag."""
        ...

    def create_release(
        self, tag: str, *, prerelease: bool, body: str
    ) -> Result[ReleaseRecord, StoreError]: ...

    def list_assets(self, release_id: int) -> Result[list[AssetRecord], StoreError]: ...

    def upload_asset(
        self,
        upload_url: str,
        path: Path,
        *,
        name: str,
        content_type: str,
        content_length: int,
    ) -> Result[AssetRecord, StoreError]:
        """Stream ``path`` to the release; ``content_length`` is declared up front."""
        ...

    def delete_asset(self, asset_id: int) -> Result[None, StoreError]: ...

    def list_open_issues(self, label: str) -> Result[list[int], StoreError]: ...

    def create_issue_comment(self, issue: int, body: str) -> Result[None, StoreError]: ...


def _error(operation: str, status: int, message: str) -> StoreError:
    return StoreError(url=f"memory://{operation}", status=status, message=message)


@dataclass
class _MemoryRelease:
    record: ReleaseRecord
    prerelease: bool
    body: str
    assets: list[AssetRecord]


def _empty_calls() -> list[tuple[str, str]]:
    return []


@dataclass
class MemoryReleaseStore:
    """In-memory release host for testing.

    Usage:
        store = MemoryReleaseStore()
        store.add_release("builds", assets=[("old.xpi", some_datetime)])
        store.fail("create_issue_comment", status=500)
        ...
        assert store.mutations == []

    ``calls`` records ``(operation, argument)`` for every call made.
    """

    now: datetime = field(default_factory=lambda: datetime.now(UTC))
    calls: list[tuple[str, str]] = field(default_factory=_empty_calls)
    comments: list[tuple[int, str]] = field(default_factory=list)
    uploaded: dict[str, bytes] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._releases: dict[str, _MemoryRelease] = {}
        self._labelled: dict[str, list[int]] = {}
        self._failures: dict[str, StoreError] = {}
        self._failing_assets: set[int] = set()
        self._failing_issues: set[int] = set()
        self._next_id = 1

    # Test setup helpers

    def add_release(
        self,
        tag: str,
        *,
        assets: list[tuple[str, datetime]] | None = None,
        prerelease: bool = False,
    ) -> ReleaseRecord:
        release_id = self._new_id()
        records = [
            AssetRecord(name=name, id=self._new_id(), created_at=created)
            for name, created in assets or []
        ]
        self._releases[tag] = _MemoryRelease(
            record=self._record(tag, release_id),
            prerelease=prerelease,
            body="",
            assets=records,
        )
        return self._snapshot(tag)

    def label_issues(self, label: str, numbers: list[int]) -> None:
        self._labelled[label] = list(numbers)

    def fail(self, operation: str, *, status: int = 500, message: str = "mock failure") -> None:
        """Make every call to ``operation`` fail."""
        self._failures[operation] = _error(operation, status, message)

    def fail_asset_delete(self, asset_id: int) -> None:
        self._failing_assets.add(asset_id)

    def fail_comment(self, issue: int) -> None:
        self._failing_issues.add(issue)

    def release(self, tag: str) -> ReleaseRecord | None:
        if tag not in self._releases:
            return None
        return self._snapshot(tag)

    def asset_names(self, tag: str) -> list[str]:
        return [a.name for a in self._releases[tag].assets]

    def release_body(self, tag: str) -> str:
        return self._releases[tag].body

    def is_prerelease(self, tag: str) -> bool:
        return self._releases[tag].prerelease

    @property
    def mutations(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in MUTATING_OPERATIONS]

    # ReleaseStore

    def get_release_by_tag(self, tag: str) -> Result[ReleaseRecord | None, StoreError]:
        self.calls.append(("get_release_by_tag", tag))
        if err := self._failures.get("get_release_by_tag"):
            return Err(err)
        return Ok(self.release(tag))

    def create_release(
        self, tag: str, *, prerelease: bool, body: str
    ) -> Result[ReleaseRecord, StoreError]:
        self.calls.append(("create_release", tag))
        if err := self._failures.get("create_release"):
            return Err(err)
        if tag in self._releases:
            return Err(_error("create_release", 422, "already_exists"))
        self._releases[tag] = _MemoryRelease(
            record=self._record(tag, self._new_id()),
            prerelease=prerelease,
            body=body,
            assets=[],
        )
        return Ok(self._snapshot(tag))

    def list_assets(self, release_id: int) -> Result[list[AssetRecord], StoreError]:
        self.calls.append(("list_assets", str(release_id)))
        if err := self._failures.get("list_assets"):
            return Err(err)
        rel = self._by_id(release_id)
        if rel is None:
            return Err(_error("list_assets", 404, "Not Found"))
        return Ok(list(rel.assets))

    def upload_asset(
        self,
        upload_url: str,
        path: Path,
        *,
        name: str,
        content_type: str,
        content_length: int,
    ) -> Result[AssetRecord, StoreError]:
        self.calls.append(("upload_asset", name))
        if err := self._failures.get("upload_asset"):
            return Err(err)
        rel = self._by_upload_url(upload_url)
        if rel is None:
            return Err(StoreError(url=upload_url, status=404, message="Not Found"))
        if any(a.name == name for a in rel.assets):
            return Err(StoreError(url=upload_url, status=422, message="already_exists"))

        data = path.read_bytes()
        if len(data) != content_length:
            return Err(StoreError(url=upload_url, status=400, message="content length mismatch"))

        asset = AssetRecord(name=name, id=self._new_id(), created_at=self.now)
        rel.assets.append(asset)
        self.uploaded[name] = data
        return Ok(asset)

    def delete_asset(self, asset_id: int) -> Result[None, StoreError]:
        self.calls.append(("delete_asset", str(asset_id)))
        if err := self._failures.get("delete_asset"):
            return Err(err)
        if asset_id in self._failing_assets:
            return Err(_error("delete_asset", 500, "mock failure"))
        for rel in self._releases.values():
            for asset in rel.assets:
                if asset.id == asset_id:
                    rel.assets.remove(asset)
                    return Ok(None)
        return Err(_error("delete_asset", 404, "Not Found"))

    def list_open_issues(self, label: str) -> Result[list[int], StoreError]:
        self.calls.append(("list_open_issues", label))
        if err := self._failures.get("list_open_issues"):
            return Err(err)
        return Ok(list(self._labelled.get(label, [])))

    def create_issue_comment(self, issue: int, body: str) -> Result[None, StoreError]:
        self.calls.append(("create_issue_comment", str(issue)))
        if err := self._failures.get("create_issue_comment"):
            return Err(err)
        if issue in self._failing_issues:
            return Err(_error("create_issue_comment", 404, "Not Found"))
        self.comments.append((issue, body))
        return Ok(None)

    # Internals

    def _new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def _record(self, tag: str, release_id: int) -> ReleaseRecord:
        return ReleaseRecord(
            tag_name=tag,
            id=release_id,
            upload_url=f"memory://releases/{release_id}/assets",
            html_url=f"memory://releases/tag/{tag}",
        )

    def _snapshot(self, tag: str) -> ReleaseRecord:
        rel = self._releases[tag]
        r = rel.record
        return ReleaseRecord(
            tag_name=r.tag_name,
            id=r.id,
            upload_url=r.upload_url,
            html_url=r.html_url,
            assets=tuple(rel.assets),
        )

    def _by_id(self, release_id: int) -> _MemoryRelease | None:
        for rel in self._releases.values():
            if rel.record.id == release_id:
                return rel
        return None

    def _by_upload_url(self, upload_url: str) -> _MemoryRelease | None:
        for rel in self._releases.values():
            if rel.record.upload_url == upload_url:
                return rel
        return None
