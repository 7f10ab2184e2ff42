"""Exit codes for the relkit command line.

Each fatal error family maps to one stable process exit code so that CI
scripts can tell a misconfiguration from a rejected push.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User abort or invalid input
    - 2: Configuration error (unknown option, unreadable config file)
    - 3: Version error (no resolvable version)
    - 4: Git error (dirty working dir, push rejected, ...)
    - 5: Remote error (hook, hosting release or registry publish failed)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    VERSION_ERROR = 3
    GIT_ERROR = 4
    REMOTE_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
