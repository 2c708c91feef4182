from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import NoReturn

import typer

from relay import __version__
from relay.ci.context import detect_ci
from relay.core.config import (
    DEFAULT_CONFIG_NAME,
    Config,
    RunEnvironment,
    load_config,
    load_environment,
)
from relay.core.errors import ErrorCode
from relay.core.result import Err
from relay.git.repository import Repository
from relay.output.console import ConsoleProtocol, RichConsole
from relay.release.errors import ReleaseErrorKind
from relay.release.github import GitHubReleaseStore
from relay.release.orchestrator import run_release
from relay.release.session import ReleaseSession
from relay.release.store import ReleaseStore

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    rich_markup_mode="rich",
)


def release_error_code(kind: ReleaseErrorKind) -> ErrorCode:
    if kind in {"version_mismatch", "branch_mismatch"}:
        return ErrorCode.USER_ERROR
    if kind in {"release_exists", "asset_exists"}:
        return ErrorCode.CONFLICT
    if kind == "artifact_missing":
        return ErrorCode.IO_ERROR
    return ErrorCode.NETWORK_ERROR


def exit_release(console: ConsoleProtocol, err: str, *, code: ErrorCode) -> NoReturn:
    console.error(err)
    raise typer.Exit(code=int(code))


def build_console() -> ConsoleProtocol:
    return RichConsole()


def build_store(config: Config, env: RunEnvironment) -> ReleaseStore:
    return GitHubReleaseStore(config.package.repository, env.token, api_url=env.api_url)


@app.command()
def release(
    body: str = typer.Argument("", help="Release notes body for tagged releases."),
    config_path: Path = typer.Option(
        Path(DEFAULT_CONFIG_NAME),
        "--config",
        help="Path to the project's release.toml.",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Report what would happen without publishing anything."
    ),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Publish this CI run's artifact as a release or test build, or skip it."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    console = build_console()

    loaded = load_config(config_path)
    if isinstance(loaded, Err):
        exit_release(console, loaded.error.message, code=ErrorCode.ENV_ERROR)
    config = loaded.value

    env = load_environment(config.root)
    ctx = detect_ci(
        os.environ, repo=Repository(config.root), release_branch=config.release.branch
    )
    if not ctx.is_ci_service:
        console.info("Not running on CI service, switching to dry-run mode")
    elif dry_run:
        console.info(f"Running on {ctx.service}, dry-run mode requested")

    session = ReleaseSession(
        store=build_store(config, env),
        console=console,
        config=config,
        dry_run=dry_run or not ctx.is_ci_service,
    )
    outcome = run_release(session, ctx, body=body, nightly=env.nightly, now=datetime.now(UTC))
    if isinstance(outcome, Err):
        exit_release(console, outcome.error.pretty(), code=release_error_code(outcome.error.kind))

    result = outcome.value
    if result.intent.is_skip:
        return

    announced = ", ".join(f"#{n}" for n in result.announced) or "no issues"
    console.success(f"{result.intent}: {result.release_tag} (announced on {announced})")


def main() -> None:
    app()
