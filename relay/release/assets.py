"""Asset lifecycle on a release: collision-checked upload, expiry, pointer replacement.

Uploads never overwrite. Deletions are best effort: a failed delete is
reported and the loop moves on to the next asset.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from pathlib import Path

from relay.core.result import Err, Ok, Result
from relay.release.errors import ReleaseError
from relay.release.model import AssetRecord, ReleaseRecord
from relay.release.session import ReleaseSession


def expiry_cutoff(now: datetime, *, days: int) -> datetime:
    return now - timedelta(days=days)


def _list_assets(
    session: ReleaseSession, release: ReleaseRecord
) -> Result[list[AssetRecord], ReleaseError]:
    listed = session.store.list_assets(release.id)
    if isinstance(listed, Err):
        return Err(
            ReleaseError(
                kind="store_failed",
                message=f"failed to list assets of {release.tag_name}",
                hint=str(listed.error),
            )
        )
    return listed


def upload_asset(
    session: ReleaseSession,
    release: ReleaseRecord,
    path: Path,
    content_type: str,
) -> Result[AssetRecord | None, ReleaseError]:
    """Upload ``path`` under its base name; Ok(None) in dry-run mode."""
    name = path.name
    session.report(f"uploading {name} to {release.tag_name}")
    if session.dry_run:
        return Ok(None)

    try:
        size = path.stat().st_size
    except OSError as e:
        return Err(
            ReleaseError(
                kind="artifact_missing",
                message=f"failed to upload {name} to {release.html_url}: {e.strerror or e}",
                hint=str(path),
            )
        )

    existing = _list_assets(session, release)
    if isinstance(existing, Err):
        return existing
    if any(a.name == name for a in existing.value):
        return Err(
            ReleaseError(
                kind="asset_exists",
                message=f"failed to upload {name} to {release.html_url}: asset exists",
            )
        )

    uploaded = session.store.upload_asset(
        release.upload_url,
        path,
        name=name,
        content_type=content_type,
        content_length=size,
    )
    if isinstance(uploaded, Err):
        return Err(
            ReleaseError(
                kind="upload_failed",
                message=f"failed to upload {name} to {release.html_url}: {uploaded.error}",
            )
        )
    return uploaded


def _delete_assets(
    session: ReleaseSession, release: ReleaseRecord, assets: Iterable[AssetRecord]
) -> list[AssetRecord]:
    deleted: list[AssetRecord] = []
    for asset in assets:
        session.report(f"removing {asset.name} from {release.tag_name}")
        if session.dry_run:
            deleted.append(asset)
            continue

        result = session.store.delete_asset(asset.id)
        if isinstance(result, Err):
            session.warn(f"failed to remove {asset.name} from {release.tag_name}: {result.error}")
            continue
        deleted.append(asset)
    return deleted


def expire_stale_assets(
    session: ReleaseSession, release: ReleaseRecord, cutoff: datetime
) -> Result[list[AssetRecord], ReleaseError]:
    """Delete every asset created strictly before ``cutoff``.

    Returns the assets removed (in dry-run mode: the ones that would be).
    Only a failure to list assets is an error.
    """
    listed = _list_assets(session, release)
    if isinstance(listed, Err):
        return listed

    stale = [a for a in listed.value if a.created_at < cutoff]
    return Ok(_delete_assets(session, release, stale))


def replace_pointer_asset(
    session: ReleaseSession,
    release: ReleaseRecord,
    path: Path,
    content_type: str,
) -> Result[AssetRecord | None, ReleaseError]:
    """Delete any asset named like ``path`` from ``release``, then upload ``path``.

    A failed delete is not fatal here, but the collision check in the upload
    that follows will then refuse to overwrite the survivor.
    """
    listed = _list_assets(session, release)
    if isinstance(listed, Err):
        return listed

    _delete_assets(session, release, [a for a in listed.value if a.name == path.name])
    return upload_asset(session, release, path, content_type)
