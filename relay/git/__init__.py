"""Git queries against the local working copy.

Usage:
    from relay.git import Repository

    repo = Repository(Path("."))
    branch = repo.current_branch()
"""

from relay.git.repository import GitError, Repository

__all__ = [
    "GitError",
    "Repository",
]
