"""Result types for fetch execution.

A fetch that fails to spawn or exits non-zero is an ordinary outcome, not an
exception: the executor returns a FetchResult carrying a FetchError and the
cycle orchestrator logs and records it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

# Upper bound on diagnostic text kept in results and history rows
MAX_ERROR_TEXT = 4000


class FetchErrorKind(Enum):
    """Why a fetch attempt did not succeed."""

    SPAWN_FAILURE = "spawn_failure"      # git could not be started at all
    COMMAND_FAILURE = "command_failure"  # git ran and exited non-zero
    CANCELLED = "cancelled"              # shutdown requested while waiting
    UNEXPECTED = "unexpected"            # anything else raised while processing


@dataclass(frozen=True)
class FetchError:
    """Detailed failure information for one repository.

    Attributes:
        kind: Failure category
        message: Human-readable description
        exit_code: Process exit status for COMMAND_FAILURE
        stderr: Captured error output, preserved for diagnostics
    """

    kind: FetchErrorKind
    message: str
    exit_code: Optional[int] = None
    stderr: str = ""

    def __str__(self) -> str:
        text = self.message
        if self.exit_code is not None:
            text += f" (exit code {self.exit_code})"
        if self.stderr:
            text += f": {self.stderr.strip()[:MAX_ERROR_TEXT]}"
        return text

    @classmethod
    def spawn_failure(cls, reason: str) -> "FetchError":
        return cls(kind=FetchErrorKind.SPAWN_FAILURE, message=f"Failed to start git process: {reason}")

    @classmethod
    def command_failure(cls, exit_code: int, stderr: str) -> "FetchError":
        return cls(
            kind=FetchErrorKind.COMMAND_FAILURE,
            message="Git command failed",
            exit_code=exit_code,
            stderr=stderr[:MAX_ERROR_TEXT],
        )

    @classmethod
    def cancelled(cls) -> "FetchError":
        return cls(kind=FetchErrorKind.CANCELLED, message="Fetch cancelled by shutdown")

    @classmethod
    def from_exception(cls, exception: BaseException) -> "FetchError":
        return cls(
            kind=FetchErrorKind.UNEXPECTED,
            message=f"{type(exception).__name__}: {exception}"[:MAX_ERROR_TEXT],
        )


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single fetch attempt.

    Attributes:
        repository_id: Catalog id of the repository
        repository_name: Name used in logs
        started_at: When the attempt started (UTC)
        completed_at: When the attempt finished (UTC)
        checked_at: New last_checked value; set only on success
        error: Failure details; set only on failure
    """

    repository_id: int
    repository_name: str
    started_at: datetime
    completed_at: datetime
    checked_at: Optional[datetime] = None
    error: Optional[FetchError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def duration(self) -> timedelta:
        return self.completed_at - self.started_at


@dataclass
class CycleReport:
    """Summary of one pass over the repository snapshot."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    selected: int = 0
    results: List[FetchResult] = field(default_factory=list)
    interrupted: bool = False

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def summary(self) -> str:
        text = (
            f"{self.attempted}/{self.selected} repositories fetched: "
            f"{self.succeeded} succeeded, {self.failed} failed"
        )
        if self.interrupted:
            text += " (interrupted by shutdown)"
        return text
