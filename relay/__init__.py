"""CI release orchestration for GitHub-hosted projects."""

__version__ = "0.3.0"
