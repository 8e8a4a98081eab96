"""Exit codes for the vcsrelease CLI.

The numeric values are part of the CLI contract and should remain stable.
A build server can branch on them to tell an ordinary failed release (the
working copy was rolled back) from one that needs a human to clean up.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes, ordered by severity.

    - 0: Success, branches published
    - 1: User error (bad arguments, out-of-order lifecycle call)
    - 2: Configuration error (invalid config file, unknown remote or branch)
    - 3: VCS error (a git command failed during the run)
    - 4: Build failed (local changes were rolled back cleanly)
    - 5: Rollback error (working copy may be inconsistent)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    VCS_ERROR = 3
    BUILD_FAILED = 4
    ROLLBACK_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def needs_manual_cleanup(self) -> bool:
        """True when the local working copy may be left half rolled back."""
        return self == ErrorCode.ROLLBACK_ERROR
