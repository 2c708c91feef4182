"""CI provider detection."""

from .context import CiContext, detect_ci

__all__ = ["CiContext", "detect_ci"]
