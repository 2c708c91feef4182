"""Error codes for CLI exit status.

Every intentional skip exits with ``OK``. Fatal outcomes map to one of the
non-zero codes below so CI logs can tell a validation failure from a
transport failure at a glance.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the release run.

    These values are used as process exit codes and should remain stable:
    - 0: Success or intentional skip
    - 1: User error (tag/branch/version mismatch)
    - 2: Environment error (bad or missing configuration)
    - 4: Network error (release host unreachable, upload failed)
    - 5: I/O error (artifact not found)
    - 6: Conflict (release or asset already exists)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    NETWORK_ERROR = 4
    IO_ERROR = 5
    CONFLICT = 6

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")
