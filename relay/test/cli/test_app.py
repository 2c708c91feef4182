from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

import relay.cli.app as app_mod
from relay import __version__
from relay.ci.context import CiContext
from relay.core.config import RunEnvironment
from relay.core.errors import ErrorCode
from relay.git.repository import Repository
from relay.output.console import MockConsole
from relay.release.store import MemoryReleaseStore
from relay.test._support import ARTIFACT_BYTES, NOW, make_ctx

CONFIG = """
[package]
name = "pkg"
version = "1.2.3"
repository = "acme/pkg"

[pointer]
release = "update.rdf"
"""


def _write_project(root: Path) -> Path:
    (root / "xpi").mkdir()
    (root / "xpi" / "pkg-1.2.3.xpi").write_bytes(ARTIFACT_BYTES)
    (root / "gen").mkdir()
    (root / "gen" / "update.rdf").write_text("<RDF/>", encoding="utf-8")
    path = root / "release.toml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def _patch(
    monkeypatch: pytest.MonkeyPatch,
    *,
    store: MemoryReleaseStore,
    ctx: CiContext,
    env: RunEnvironment | None = None,
) -> MockConsole:
    console = MockConsole()

    def fake_detect(
        environ: Mapping[str, str], *, repo: Repository, release_branch: str | None = None
    ) -> CiContext:
        del environ
        del repo
        assert release_branch == "master"
        return ctx

    monkeypatch.setattr(app_mod, "build_console", lambda: console)
    monkeypatch.setattr(app_mod, "build_store", lambda config, env: store)
    monkeypatch.setattr(app_mod, "detect_ci", fake_detect)
    monkeypatch.setattr(app_mod, "load_environment", lambda root: env or RunEnvironment())
    return console


def _release(config_path: Path, *, body: str = "", dry_run: bool = False) -> None:
    app_mod.release(body=body, config_path=config_path, dry_run=dry_run, version=False)


@pytest.mark.parametrize(
    ("kind", "code"),
    [
        ("version_mismatch", ErrorCode.USER_ERROR),
        ("branch_mismatch", ErrorCode.USER_ERROR),
        ("release_exists", ErrorCode.CONFLICT),
        ("asset_exists", ErrorCode.CONFLICT),
        ("artifact_missing", ErrorCode.IO_ERROR),
        ("release_missing", ErrorCode.NETWORK_ERROR),
        ("upload_failed", ErrorCode.NETWORK_ERROR),
        ("store_failed", ErrorCode.NETWORK_ERROR),
    ],
)
def test_release_error_code(kind: app_mod.ReleaseErrorKind, code: ErrorCode) -> None:
    assert app_mod.release_error_code(kind) is code


def test_rolling_build_succeeds(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = MemoryReleaseStore(now=NOW)
    store.add_release("builds", assets=[("pkg-1.0.0.xpi", NOW - timedelta(days=30))])
    console = _patch(monkeypatch, store=store, ctx=make_ctx(branch="gh-12"))

    _release(_write_project(tmp_path))

    assert store.asset_names("builds") == ["pkg-1.2.3.xpi"]
    assert [issue for issue, _ in store.comments] == [12]
    assert console.find("OK rolling-build: builds (announced on #12)")


def test_skip_exits_cleanly(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = MemoryReleaseStore(now=NOW)
    console = _patch(monkeypatch, store=store, ctx=make_ctx(branch="develop"))

    _release(_write_project(tmp_path))

    assert store.calls == []
    assert console.find("error: ") == []


def test_fatal_error_maps_to_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = MemoryReleaseStore(now=NOW)
    store.add_release("v1.2.3")
    console = _patch(monkeypatch, store=store, ctx=make_ctx(tag="v1.2.3"))

    with pytest.raises(typer.Exit) as exc:
        _release(_write_project(tmp_path))

    assert exc.value.exit_code == int(ErrorCode.CONFLICT)
    assert console.find("error: release v1.2.3 exists, bailing")


def test_missing_config_is_env_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    console = _patch(monkeypatch, store=MemoryReleaseStore(now=NOW), ctx=make_ctx())

    with pytest.raises(typer.Exit) as exc:
        _release(tmp_path / "release.toml")

    assert exc.value.exit_code == int(ErrorCode.ENV_ERROR)
    assert console.find("error: Config file not found")


def test_local_run_forces_dry_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = MemoryReleaseStore(now=NOW)
    store.add_release("builds")
    ctx = make_ctx(branch="gh-12", is_ci_service=False)
    console = _patch(monkeypatch, store=store, ctx=ctx)

    _release(_write_project(tmp_path))

    assert store.mutations == []
    assert console.find("switching to dry-run mode")
    assert console.find("dry-run: uploading pkg-1.2.3.xpi to builds")


def test_dry_run_flag_on_ci(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = MemoryReleaseStore(now=NOW)
    store.add_release("builds")
    console = _patch(monkeypatch, store=store, ctx=make_ctx(branch="gh-12"))

    _release(_write_project(tmp_path), dry_run=True)

    assert store.mutations == []
    assert console.find("dry-run mode requested")


def test_nightly_flag_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = MemoryReleaseStore(now=NOW)
    _patch(
        monkeypatch,
        store=store,
        ctx=make_ctx(tag="v1.2.3"),
        env=RunEnvironment(nightly=True),
    )

    _release(_write_project(tmp_path))

    assert store.calls == []


def test_body_argument_becomes_release_body(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = MemoryReleaseStore(now=NOW)
    store.add_release("update.rdf")
    _patch(monkeypatch, store=store, ctx=make_ctx(tag="v1.2.3"))
    config_path = _write_project(tmp_path)

    result = CliRunner().invoke(
        app_mod.app, ["Fixes citation export", "--config", str(config_path)]
    )

    assert result.exit_code == 0, result.output
    assert store.release_body("v1.2.3") == "Fixes citation export"
    assert store.asset_names("v1.2.3") == ["pkg-1.2.3.xpi"]


def test_version_flag() -> None:
    result = CliRunner().invoke(app_mod.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
