"""Typed configuration loading and access.

The project describes itself in ``release.toml``::

    [package]
    name = "zotero-better-bibtex"
    version = "5.2.1"
    repository = "retorquere/zotero-better-bibtex"

    [release]
    rolling_tag = "builds"

    [pointer]
    release = "update.rdf"

Secrets and run flags come from the environment (optionally seeded from a
``.env`` file next to the config).
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_raw_str, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "PackageConfig",
    "PointerConfig",
    "ReleaseConfig",
    "RunEnvironment",
    "load_config",
    "load_environment",
    "DEFAULT_CONFIG_NAME",
]

DEFAULT_CONFIG_NAME = "release.toml"
DEFAULT_API_URL = "https://api.github.com"

DEFAULT_INSTALL_INSTRUCTIONS = (
    'Install in Zotero by downloading {link}, opening the Zotero "Tools" menu, '
    'selecting "Add-ons", open the gear menu in the top right, '
    'and select "Install Add-on From File...".'
)

_REPO_SLUG = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PackageConfig:
    """What is being released and where it lives."""

    name: str
    version: str
    repository: str  # owner/name

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[1]


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Release policy knobs."""

    branch: str = "master"
    rolling_tag: str = "builds"
    l10n_branch: str = "l10n_master"
    translation_label: str = "translation"
    prerelease: bool = False
    expire_days: int = 7
    artifact: str = "xpi/{name}-{version}.xpi"
    content_type: str = "application/vnd.zotero.plugin"
    install_instructions: str = DEFAULT_INSTALL_INSTRUCTIONS


@dataclass(frozen=True, slots=True)
class PointerConfig:
    """Legacy update pointer published to a separate, stable release.

    ``release`` is the tag of that release; None disables the pointer step.
    """

    release: str | None = None
    asset: str = "gen/update.rdf"
    content_type: str = "application/rdf+xml"


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    package: PackageConfig
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    pointer: PointerConfig = field(default_factory=PointerConfig)
    root: Path = field(default_factory=Path.cwd)

    @property
    def artifact_path(self) -> Path:
        rel = self.release.artifact.format(name=self.package.name, version=self.package.version)
        return self.root / rel

    @property
    def artifact_name(self) -> str:
        return self.artifact_path.name

    @property
    def pointer_path(self) -> Path:
        return self.root / self.pointer.asset

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, root: Path) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: when the [package] table is incomplete.
        """
        package: StrDict = get_table(data, "package") or {}
        release: StrDict = get_table(data, "release") or {}
        pointer: StrDict = get_table(data, "pointer") or {}

        name = get_str(package, "name")
        version = get_str(package, "version")
        repository = get_str(package, "repository")
        if name is None or version is None or repository is None:
            raise ValueError("[package] requires name, version and repository")
        if not _REPO_SLUG.match(repository):
            raise ValueError(f"[package] repository must be owner/name, got {repository!r}")

        defaults = ReleaseConfig()
        expire_days = get_int(release, "expire_days")
        if expire_days is not None and expire_days < 0:
            raise ValueError("[release] expire_days must be >= 0")

        pointer_defaults = PointerConfig()
        return cls(
            package=PackageConfig(name=name, version=version, repository=repository),
            release=ReleaseConfig(
                branch=get_str(release, "branch") or defaults.branch,
                rolling_tag=get_str(release, "rolling_tag") or defaults.rolling_tag,
                l10n_branch=get_str(release, "l10n_branch") or defaults.l10n_branch,
                translation_label=get_str(release, "translation_label")
                or defaults.translation_label,
                prerelease=bool(get_bool(release, "prerelease")),
                expire_days=defaults.expire_days if expire_days is None else expire_days,
                artifact=get_str(release, "artifact") or defaults.artifact,
                content_type=get_str(release, "content_type") or defaults.content_type,
                install_instructions=get_raw_str(release, "install_instructions")
                or defaults.install_instructions,
            ),
            pointer=PointerConfig(
                release=get_str(pointer, "release"),
                asset=get_str(pointer, "asset") or pointer_defaults.asset,
                content_type=get_str(pointer, "content_type") or pointer_defaults.content_type,
            ),
            root=root,
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Relative artifact and pointer paths resolve against the file's directory.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value, root=path.resolve().parent))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


@dataclass(frozen=True, slots=True)
class RunEnvironment:
    """Run flags and credentials read from the process environment."""

    token: str | None = None
    nightly: bool = False
    api_url: str = DEFAULT_API_URL


def load_environment(
    root: Path, environ: Mapping[str, str] | None = None
) -> RunEnvironment:
    """Read run flags, loading ``root/.env`` first when no mapping is given.

    Variables already set in the process environment win over the .env file.
    """
    if environ is None:
        env_file = root / ".env"
        if env_file.is_file():
            load_dotenv(env_file, override=False)
        environ = os.environ

    token = (environ.get("GITHUB_TOKEN") or "").strip() or None
    return RunEnvironment(
        token=token,
        nightly=environ.get("NIGHTLY", "").strip().lower() == "true",
        api_url=(environ.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
    )
