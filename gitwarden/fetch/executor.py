"""Fetch execution for a single repository.

The FetchExecutor resolves a repository's working directory, runs
`git fetch --all --prune` there once, and turns the process outcome into a
FetchResult. It never writes to the catalog; on success the result carries
the new last_checked value for the orchestrator to persist.
"""

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from gitwarden.fetch.process import ProcessRunner
from gitwarden.fetch.results import FetchError, FetchResult
from gitwarden.fetch.selector import RepositorySnapshot

logger = logging.getLogger(__name__)

DEFAULT_GIT_EXECUTABLE = "git"
DEFAULT_FETCH_ARGS = ("fetch", "--all", "--prune")

# git must fail instead of blocking on a credential prompt
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_working_dir(base_path: str, local_path: str) -> str:
    """Join a repository's local path onto the base path.

    An absolute local_path replaces the base path, as with os.path.join.
    """
    return os.path.join(base_path, local_path)


class FetchExecutor:
    """Runs one fetch against one repository.

    Example:
        executor = FetchExecutor(ProcessRunner())
        result = await executor.fetch_one(repo, "/git-repos", shutdown_event)
        if result.success:
            catalog.set_last_checked(repo.id, result.checked_at)
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        git_executable: str = DEFAULT_GIT_EXECUTABLE,
        fetch_args: Sequence[str] = DEFAULT_FETCH_ARGS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the executor.

        Args:
            runner: Process runner (default: ProcessRunner with prompts disabled)
            git_executable: git binary name or path
            fetch_args: Arguments for the fetch-and-prune command
            clock: Source of the current UTC time
        """
        self._runner = runner or ProcessRunner(env=GIT_ENV)
        self._git_executable = git_executable
        self._fetch_args = tuple(fetch_args)
        self._clock = clock

    async def fetch_one(
        self,
        repo: RepositorySnapshot,
        base_path: str,
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> FetchResult:
        """Fetch a single repository.

        No retries are attempted.

        Args:
            repo: Repository to fetch
            base_path: Directory the repository's local path is relative to
            shutdown_event: Interrupts the wait on the git process when set

        Returns:
            FetchResult; checked_at is set only when git exited with status 0
        """
        started_at = self._clock()
        working_dir = resolve_working_dir(base_path, repo.local_path)

        logger.info(f"Fetching updates for repository {repo.name}")
        outcome = await self._runner.run(
            self._git_executable,
            self._fetch_args,
            working_dir,
            shutdown_event,
        )
        completed_at = self._clock()

        if not outcome.started:
            error = FetchError.spawn_failure(outcome.spawn_error or "unknown error")
        elif outcome.cancelled:
            error = FetchError.cancelled()
        elif outcome.exit_code != 0:
            error = FetchError.command_failure(
                outcome.exit_code if outcome.exit_code is not None else -1,
                outcome.stderr or outcome.stdout,
            )
        else:
            logger.debug(f"git output for {repo.name}: {outcome.output.strip()}")
            return FetchResult(
                repository_id=repo.id,
                repository_name=repo.name,
                started_at=started_at,
                completed_at=completed_at,
                checked_at=completed_at,
            )

        return FetchResult(
            repository_id=repo.id,
            repository_name=repo.name,
            started_at=started_at,
            completed_at=completed_at,
            error=error,
        )
