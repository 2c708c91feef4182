"""CI provider facts, normalized into one read-only structure.

Supported services: GitHub Actions, Travis CI, CircleCI, GitLab CI. Anything
else (a developer laptop included) yields ``is_ci_service=False``, which turns
the run into a dry run; the branch then comes from the local checkout.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from relay.core.result import Ok
from relay.core.structured import as_str_dict, get_str, get_table
from relay.git.repository import Repository

__all__ = ["CiContext", "detect_ci"]


@dataclass(frozen=True, slots=True)
class CiContext:
    is_ci_service: bool
    branch: str
    tag: str | None
    commit_message: str
    is_pull_request: bool
    service: str | None = None


def _flag(environ: Mapping[str, str], key: str) -> bool:
    return environ.get(key, "").strip().lower() == "true"


def _value(environ: Mapping[str, str], key: str) -> str:
    return environ.get(key, "").strip()


def _strip_ref(ref: str) -> str:
    for prefix in ("refs/heads/", "refs/tags/"):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


def _github_event(environ: Mapping[str, str]) -> dict[str, object]:
    path = _value(environ, "GITHUB_EVENT_PATH")
    if not path:
        return {}
    try:
        obj: object = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return {}
    return as_str_dict(obj) or {}


def _github_actions(environ: Mapping[str, str]) -> CiContext:
    event = _github_event(environ)
    ref_type = _value(environ, "GITHUB_REF_TYPE")
    ref_name = _value(environ, "GITHUB_REF_NAME") or _strip_ref(_value(environ, "GITHUB_REF"))
    is_pr = _value(environ, "GITHUB_EVENT_NAME") in {"pull_request", "pull_request_target"}

    tag: str | None = None
    if ref_type == "tag" or _value(environ, "GITHUB_REF").startswith("refs/tags/"):
        tag = ref_name or None
        # Tag pushes carry the branch the tagged commit was on in base_ref.
        branch = _strip_ref(get_str(event, "base_ref") or "")
    elif is_pr:
        branch = _value(environ, "GITHUB_HEAD_REF")
    else:
        branch = ref_name

    head_commit = get_table(event, "head_commit") or {}
    return CiContext(
        is_ci_service=True,
        branch=branch,
        tag=tag,
        commit_message=get_str(head_commit, "message") or "",
        is_pull_request=is_pr,
        service="github-actions",
    )


def _travis(environ: Mapping[str, str]) -> CiContext:
    pr = _value(environ, "TRAVIS_PULL_REQUEST")
    return CiContext(
        is_ci_service=True,
        branch=_value(environ, "TRAVIS_BRANCH"),
        tag=_value(environ, "TRAVIS_TAG") or None,
        commit_message=environ.get("TRAVIS_COMMIT_MESSAGE", ""),
        is_pull_request=pr not in {"", "false"},
        service="travis",
    )


def _circleci(environ: Mapping[str, str]) -> CiContext:
    return CiContext(
        is_ci_service=True,
        branch=_value(environ, "CIRCLE_BRANCH"),
        tag=_value(environ, "CIRCLE_TAG") or None,
        commit_message="",
        is_pull_request=bool(
            _value(environ, "CIRCLE_PULL_REQUEST") or _value(environ, "CIRCLE_PR_NUMBER")
        ),
        service="circleci",
    )


def _gitlab(environ: Mapping[str, str]) -> CiContext:
    return CiContext(
        is_ci_service=True,
        branch=_value(environ, "CI_COMMIT_BRANCH") or _value(environ, "CI_COMMIT_REF_NAME"),
        tag=_value(environ, "CI_COMMIT_TAG") or None,
        commit_message=environ.get("CI_COMMIT_MESSAGE", ""),
        is_pull_request=bool(_value(environ, "CI_MERGE_REQUEST_IID")),
        service="gitlab",
    )


_SERVICES: tuple[tuple[str, Callable[[Mapping[str, str]], CiContext]], ...] = (
    ("GITHUB_ACTIONS", _github_actions),
    ("TRAVIS", _travis),
    ("CIRCLECI", _circleci),
    ("GITLAB_CI", _gitlab),
)


def _tag_branch(repo: Repository, release_branch: str | None) -> str:
    """Branch a tag build came from, read from the checkout.

    Tag pipelines report the tag (or nothing) where the branch should be, so
    the branches whose history contains HEAD decide: the release branch wins,
    a single candidate is taken as is, anything else falls back to HEAD's branch.
    """
    branches = repo.branches_containing_head()
    if release_branch is not None and release_branch in branches:
        return release_branch
    if len(branches) == 1:
        return branches[0]
    return repo.current_branch() or ""


def detect_ci(
    environ: Mapping[str, str],
    *,
    repo: Repository,
    release_branch: str | None = None,
) -> CiContext:
    """Build the run's CiContext from environment variables.

    Missing values default to empty/False. The commit message falls back to
    ``git log`` when the vendor does not expose it, and a tag build whose
    vendor gives no branch (or the tag name as branch) takes it from the checkout.
    """
    ctx: CiContext | None = None
    for marker, reader in _SERVICES:
        if _flag(environ, marker):
            ctx = reader(environ)
            break

    if ctx is None:
        ctx = CiContext(
            is_ci_service=False,
            branch=repo.current_branch() or "",
            tag=None,
            commit_message="",
            is_pull_request=False,
        )

    if ctx.tag is not None and ctx.branch in {"", ctx.tag}:
        ctx = replace(ctx, branch=_tag_branch(repo, release_branch))

    if not ctx.commit_message.strip():
        message = repo.last_commit_message()
        if isinstance(message, Ok):
            ctx = replace(ctx, commit_message=message.value)
    return ctx
