"""End-to-end release run.

Order of work for a run that publishes:
1. classify (no mutations before this point)
2. tagged release: refuse duplicates, create, upload, refresh the update pointer
   rolling build: expire stale assets, upload
3. announce on every referenced issue
"""

from __future__ import annotations

from datetime import datetime

from relay.ci.context import CiContext
from relay.core.result import Err, Ok, Result
from relay.output.console import Style
from relay.release.announce import announce_all, compose_announcement
from relay.release.assets import (
    expire_stale_assets,
    expiry_cutoff,
    replace_pointer_asset,
    upload_asset,
)
from relay.release.classify import classify
from relay.release.errors import ReleaseError
from relay.release.extract import extract_refs
from relay.release.model import ReleaseRecord, RunIntent, RunOutcome
from relay.release.session import ReleaseSession


def _labelled_issues(session: ReleaseSession) -> Result[list[int], ReleaseError]:
    label = session.config.release.translation_label
    result = session.store.list_open_issues(label)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="store_failed",
                message=f"could not list open issues labelled '{label}'",
                hint=str(result.error),
            )
        )
    return result


def _require_release(session: ReleaseSession, tag: str) -> Result[ReleaseRecord, ReleaseError]:
    result = session.store.get_release_by_tag(tag)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="store_failed",
                message=f"Could not get release {tag}",
                hint=str(result.error),
            )
        )
    if result.value is None:
        return Err(
            ReleaseError(
                kind="release_missing",
                message=f"Could not get release {tag}: not found",
                hint=f"Create the '{tag}' release once by hand.",
            )
        )
    return Ok(result.value)


def _refresh_pointer(session: ReleaseSession) -> Result[None, ReleaseError]:
    pointer = session.config.pointer
    if pointer.release is None:
        session.console.print("no update pointer release configured", Style.DIM)
        return Ok(None)

    release = _require_release(session, pointer.release)
    if isinstance(release, Err):
        return release

    replaced = replace_pointer_asset(
        session, release.value, session.config.pointer_path, pointer.content_type
    )
    if isinstance(replaced, Err):
        return replaced
    return Ok(None)


def publish_tagged(session: ReleaseSession, tag: str, *, body: str) -> Result[str, ReleaseError]:
    """Create release ``tag`` and upload the artifact to it."""
    config = session.config
    existing = session.store.get_release_by_tag(tag)
    if isinstance(existing, Err):
        return Err(
            ReleaseError(
                kind="store_failed",
                message=f"Could not check for release {tag}",
                hint=str(existing.error),
            )
        )
    if existing.value is not None:
        return Err(
            ReleaseError(
                kind="release_exists",
                message=f"release {tag} exists, bailing",
                hint=existing.value.html_url or None,
            )
        )

    session.report(f"uploading {config.artifact_name} to new release {tag}")
    if not session.dry_run:
        created = session.store.create_release(
            tag, prerelease=config.release.prerelease, body=body
        )
        if isinstance(created, Err):
            return Err(
                ReleaseError(
                    kind="store_failed",
                    message=f"failed to create release {tag}",
                    hint=str(created.error),
                )
            )
        uploaded = upload_asset(
            session, created.value, config.artifact_path, config.release.content_type
        )
        if isinstance(uploaded, Err):
            return uploaded

    pointed = _refresh_pointer(session)
    if isinstance(pointed, Err):
        return pointed
    return Ok(tag)


def publish_rolling(session: ReleaseSession, *, now: datetime) -> Result[str, ReleaseError]:
    """Expire old test builds from the rolling release, then upload this one."""
    config = session.config
    release = _require_release(session, config.release.rolling_tag)
    if isinstance(release, Err):
        return release

    cutoff = expiry_cutoff(now, days=config.release.expire_days)
    expired = expire_stale_assets(session, release.value, cutoff)
    if isinstance(expired, Err):
        return expired

    uploaded = upload_asset(
        session, release.value, config.artifact_path, config.release.content_type
    )
    if isinstance(uploaded, Err):
        return uploaded
    return Ok(release.value.tag_name)


def run_release(
    session: ReleaseSession,
    ctx: CiContext,
    *,
    body: str,
    nightly: bool,
    now: datetime,
) -> Result[RunOutcome, ReleaseError]:
    refs = extract_refs(ctx.commit_message, ctx.branch)
    decided = classify(
        ctx,
        refs,
        config=session.config,
        nightly=nightly,
        lookup_labelled=lambda: _labelled_issues(session),
    )
    if isinstance(decided, Err):
        return decided

    decision = decided.value
    session.console.print(decision.message)
    if decision.intent.is_skip:
        return Ok(RunOutcome(intent=decision.intent, message=decision.message))

    if decision.intent is RunIntent.TAGGED_RELEASE and ctx.tag is not None:
        published = publish_tagged(session, ctx.tag, body=body)
    else:
        published = publish_rolling(session, now=now)
    if isinstance(published, Err):
        return published

    release_tag = published.value
    message = compose_announcement(ctx, session.config, release_tag)
    announced = announce_all(session, decision.refs, message)

    return Ok(
        RunOutcome(
            intent=decision.intent,
            message=decision.message,
            release_tag=release_tag,
            announced=announced,
        )
    )
