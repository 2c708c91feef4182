from __future__ import annotations

import re

from relay.release.model import RefSet

_HASHTAG = re.compile(r"(?:^|\s)#([A-Za-z0-9]+)", re.MULTILINE)
_ISSUE_BRANCH = re.compile(r"(?:issue-|gh-)?([0-9]+)")


def extract_tags(commit_message: str) -> frozenset[str]:
    """Hashtag bodies in ``commit_message``, as written.

    A hashtag is ``#`` at the start of a line or after whitespace, followed by
    ASCII letters and digits.
    """
    return frozenset(_HASHTAG.findall(commit_message))


def issue_from_branch(branch: str) -> int | None:
    """Issue number for branches named ``123``, ``issue-123`` or ``gh-123``."""
    m = _ISSUE_BRANCH.fullmatch(branch)
    if m is None:
        return None
    number = int(m.group(1))
    return number if number > 0 else None


def extract_refs(commit_message: str, branch: str) -> RefSet:
    tags = extract_tags(commit_message)

    issues: set[int] = {int(t) for t in tags if t.isdigit() and int(t) > 0}
    from_branch = issue_from_branch(branch)
    if from_branch is not None:
        issues.add(from_branch)

    return RefSet(tags=tags, issues=frozenset(issues))
