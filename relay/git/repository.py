"""Git repository abstraction.

Only the read-only queries a release run needs when CI metadata is missing.

Usage:
    repo = Repository(Path("/path/to/checkout"))

    match repo.last_commit_message():
        case Ok(message):
            print(message)
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relay.core.result import Err, Ok, Result
from relay.platform.process import ProcessError
from relay.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

__all__ = [
    "GitError",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1

    def __str__(self) -> str:
        return f"git {self.command}: {self.message}"


class Repository:
    """A local git checkout.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch in {"", "HEAD"} else branch
            case Err(_):
                return None

    def branches_containing_head(self) -> list[str]:
        """Local and remote-tracking branch names whose history contains HEAD.

        Remote-tracking names lose their remote prefix (``origin/master`` ->
        ``master``). Empty on error.
        """
        result = self._run(["branch", "--all", "--contains", "HEAD", "--format=%(refname)"])
        if isinstance(result, Err):
            return []

        names: list[str] = []
        for line in result.value.splitlines():
            ref = line.strip()
            if ref.startswith("refs/heads/"):
                name = ref[len("refs/heads/") :]
            elif ref.startswith("refs/remotes/"):
                # refs/remotes/<remote>/<branch>
                parts = ref[len("refs/remotes/") :].split("/", 1)
                if len(parts) != 2:
                    continue
                name = parts[1]
            else:
                continue
            if name != "HEAD" and name not in names:
                names.append(name)
        return names

    def last_commit_message(self) -> Result[str, GitError]:
        """Full message (subject and body) of HEAD."""
        result = self._run(["log", "-1", "--pretty=%B"])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="log",
                        message=e.stderr.strip() or "git log failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )
