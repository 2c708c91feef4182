from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "version_mismatch",
    "branch_mismatch",
    "release_exists",
    "release_missing",
    "asset_exists",
    "artifact_missing",
    "upload_failed",
    "store_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Fatal release failure; always ends the run with a non-zero exit."""

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
