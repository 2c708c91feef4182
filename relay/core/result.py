"""Result type for explicit error handling.

Release steps return ``Ok(value)`` or ``Err(error)`` instead of raising, so the
orchestrator decides which failures are fatal and which are best effort.

Usage:
    match store.get_release_by_tag("v1.2.3"):
        case Ok(None):
            ...  # free to create
        case Ok(release):
            ...  # duplicate
        case Err(error):
            ...  # transport failure
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """A successful result carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"

@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """A failed result carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"

Result: TypeAlias = Union[Ok[T], Err[E]]
