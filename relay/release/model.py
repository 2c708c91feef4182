from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True, slots=True)
class AssetRecord:
    name: str
    id: int
    created_at: datetime  # UTC


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    """Handle to a release on the host; only ever obtained from a ReleaseStore."""

    tag_name: str
    id: int
    upload_url: str
    html_url: str
    assets: tuple[AssetRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class RefSet:
    """Hashtags and issue numbers referenced by a run."""

    tags: frozenset[str] = frozenset()
    issues: frozenset[int] = frozenset()

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def with_issues(self, numbers: list[int] | frozenset[int]) -> RefSet:
        extra = frozenset(n for n in numbers if n > 0)
        return RefSet(tags=self.tags, issues=self.issues | extra)


class RunIntent(Enum):
    SKIP_PULL_REQUEST = "skip-pull-request"
    SKIP_NO_RELEASE_TAG = "skip-norelease"
    SKIP_NIGHTLY = "skip-nightly"
    TAGGED_RELEASE = "tagged-release"
    ROLLING_BUILD = "rolling-build"
    SKIP_NO_ISSUES_NO_TAG = "skip-no-issues"

    @property
    def is_skip(self) -> bool:
        return self not in {RunIntent.TAGGED_RELEASE, RunIntent.ROLLING_BUILD}

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class RunDecision:
    intent: RunIntent
    refs: RefSet
    message: str


@dataclass(frozen=True, slots=True)
class RunOutcome:
    intent: RunIntent
    message: str
    release_tag: str | None = None
    announced: tuple[int, ...] = ()
