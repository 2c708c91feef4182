"""Release decision and asset lifecycle."""

from .errors import ReleaseError
from .model import AssetRecord, RefSet, ReleaseRecord, RunDecision, RunIntent, RunOutcome
from .orchestrator import run_release
from .session import ReleaseSession
from .store import MemoryReleaseStore, ReleaseStore, StoreError

__all__ = [
    "AssetRecord",
    "MemoryReleaseStore",
    "RefSet",
    "ReleaseError",
    "ReleaseRecord",
    "ReleaseSession",
    "ReleaseStore",
    "RunDecision",
    "RunIntent",
    "RunOutcome",
    "StoreError",
    "run_release",
]
