"""Exception hierarchy for gitwarden.

Every error that should reach the operator as a clean message derives from
GitwardenError, which carries the process exit code used by the CLI.
Per-repository fetch failures are not exceptions; see gitwarden.fetch.results.
"""

from typing import Any, Dict, Optional

from gitwarden.cli.exit_codes import ExitCode


class GitwardenError(Exception):
    """Base exception for gitwarden.

    Attributes:
        message: Error message
        exit_code: Exit code to use when exiting
        details: Optional dictionary of additional error details
    """

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(GitwardenError):
    """Invalid or unreadable configuration."""

    exit_code = ExitCode.CONFIGURATION_ERROR


class PersistenceError(GitwardenError):
    """The repository catalog could not be queried or committed.

    Raised by the catalog layer. Inside a fetch cycle it deliberately crosses
    the per-repository isolation boundary and aborts the rest of the cycle.
    """

    exit_code = ExitCode.DATABASE_ERROR


class NotFoundError(GitwardenError):
    """A requested repository record does not exist."""

    exit_code = ExitCode.NOT_FOUND


class ValidationError(GitwardenError):
    """User input failed validation."""

    exit_code = ExitCode.INVALID_ARGUMENT
