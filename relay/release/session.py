from __future__ import annotations

from dataclasses import dataclass

from relay.core.config import Config
from relay.output.console import ConsoleProtocol, Style
from relay.release.store import ReleaseStore

DRY_RUN_PREFIX = "dry-run: "


@dataclass(frozen=True, slots=True)
class ReleaseSession:
    """Collaborators shared by every step of one run.

    In dry-run mode steps still read from the store, so reported decisions
    match a real run, but they skip every mutating call and only report it.
    """

    store: ReleaseStore
    console: ConsoleProtocol
    config: Config
    dry_run: bool

    def report(self, message: str) -> None:
        prefix = DRY_RUN_PREFIX if self.dry_run else ""
        self.console.print(f"{prefix}{message}", Style.INFO)

    def warn(self, message: str) -> None:
        self.console.warning(message)
