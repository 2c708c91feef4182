"""Decide what a CI run should do.

Rules are evaluated in order and the first match wins. Nothing here mutates
the release host; the only remote call is the read-only lookup of labelled
issues on the localization branch.
"""

from __future__ import annotations

from collections.abc import Callable

from relay.ci.context import CiContext
from relay.core.config import Config
from relay.core.result import Err, Ok, Result
from relay.release.errors import ReleaseError
from relay.release.model import RefSet, RunDecision, RunIntent

NO_RELEASE_TAG = "norelease"

LabelledIssueLookup = Callable[[], Result[list[int], ReleaseError]]


def validate_tag(
    ctx: CiContext, *, version: str, release_branch: str
) -> Result[None, ReleaseError]:
    """A tag build must match the declared version and come from the release branch."""
    if ctx.tag is None:
        return Ok(None)

    if ctx.tag != f"v{version}":
        return Err(
            ReleaseError(
                kind="version_mismatch",
                message=f"Building tag {ctx.tag}, but package version is {version}",
            )
        )
    if ctx.branch != release_branch:
        return Err(
            ReleaseError(
                kind="branch_mismatch",
                message=f"Building tag {ctx.tag}, but branch is {ctx.branch or '(none)'}",
            )
        )
    return Ok(None)


def classify(
    ctx: CiContext,
    refs: RefSet,
    *,
    config: Config,
    nightly: bool,
    lookup_labelled: LabelledIssueLookup,
) -> Result[RunDecision, ReleaseError]:
    if ctx.is_pull_request:
        return Ok(RunDecision(RunIntent.SKIP_PULL_REQUEST, refs, "Not releasing pull requests"))

    valid = validate_tag(ctx, version=config.package.version, release_branch=config.release.branch)
    if isinstance(valid, Err):
        return valid

    if refs.has_tag(NO_RELEASE_TAG):
        return Ok(
            RunDecision(
                RunIntent.SKIP_NO_RELEASE_TAG,
                refs,
                f"Not releasing on {ctx.branch} because of '{NO_RELEASE_TAG}' tag",
            )
        )

    # Nightly runs never publish, tagged or not.
    if nightly:
        return Ok(RunDecision(RunIntent.SKIP_NIGHTLY, refs, "Nightly run, not releasing"))

    if ctx.branch == config.release.l10n_branch:
        labelled = lookup_labelled()
        if isinstance(labelled, Err):
            return labelled
        refs = refs.with_issues(labelled.value)

    if ctx.tag is not None:
        return Ok(RunDecision(RunIntent.TAGGED_RELEASE, refs, f"Releasing {ctx.tag}"))

    if refs.issues:
        issues = ", ".join(f"#{n}" for n in sorted(refs.issues))
        return Ok(
            RunDecision(
                RunIntent.ROLLING_BUILD,
                refs,
                f"Publishing test build to {config.release.rolling_tag} for {issues}",
            )
        )

    return Ok(
        RunDecision(
            RunIntent.SKIP_NO_ISSUES_NO_TAG,
            refs,
            f"Not releasing {ctx.branch}: no tag and no referenced issues",
        )
    )
