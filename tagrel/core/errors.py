"""Exit codes for the tagrel CLI.

These values are used as process exit codes and should remain stable:
- 0: Run completed (repositories may have been skipped)
- 1: Fatal startup error (bad arguments, bad mapping or config, git missing)
- 3: Strict mode and at least one repository failed
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    RELEASE_INCOMPLETE = 3

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
