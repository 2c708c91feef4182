from __future__ import annotations

import json

from relay.ci.context import CiContext
from relay.core.config import Config
from relay.core.result import Err
from relay.release.model import RefSet
from relay.release.session import ReleaseSession

NO_ANNOUNCE_TAG = "noannounce"
ANNOUNCE_PREFIX = ":robot: this is your friendly neighborhood build bot announcing "


def download_url(config: Config, release_tag: str) -> str:
    pkg = config.package
    return (
        f"https://github.com/{pkg.owner}/{pkg.repo}/releases/download/"
        f"{release_tag}/{config.artifact_name}"
    )


def build_label(ctx: CiContext, config: Config) -> str:
    if ctx.tag is not None:
        prefix = "pre-" if config.release.prerelease else ""
        return f"{prefix}release {ctx.tag}"
    return f"test build {config.package.version}"


def compose_announcement(ctx: CiContext, config: Config, release_tag: str) -> str:
    """Markdown comment announcing the artifact published under ``release_tag``.

    Test builds also quote the commit message and explain how to install.
    """
    link = f"[{build_label(ctx, config)}]({download_url(config, release_tag)})"

    reason = ""
    if ctx.tag is None:
        reason = f" ({json.dumps(ctx.commit_message)})"
        reason += "\n\n" + config.release.install_instructions.replace("{link}", link)

    return f"{ANNOUNCE_PREFIX}{link}{reason}"


def announce(session: ReleaseSession, issue: int, message: str) -> bool:
    """Post ``message`` on ``issue``. Failures are reported, never raised."""
    session.report(f"announcing on #{issue}: {message}")
    if session.dry_run:
        return True

    posted = session.store.create_issue_comment(issue, message)
    if isinstance(posted, Err):
        session.warn(f"failed to announce on #{issue}: {posted.error}")
        return False
    return True


def announce_all(session: ReleaseSession, refs: RefSet, message: str) -> tuple[int, ...]:
    """Announce on every referenced issue, lowest number first.

    Returns the issues the announcement reached (or would reach, in dry-run mode).
    """
    if refs.has_tag(NO_ANNOUNCE_TAG):
        session.report(f"not announcing because of '{NO_ANNOUNCE_TAG}' tag")
        return ()

    return tuple(issue for issue in sorted(refs.issues) if announce(session, issue, message))
