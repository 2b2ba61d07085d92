"""Tests for the fetch executor."""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from gitwarden.database.models import CloneStatus
from gitwarden.fetch.executor import DEFAULT_FETCH_ARGS, FetchExecutor, resolve_working_dir
from gitwarden.fetch.process import ProcessResult, ProcessRunner
from gitwarden.fetch.results import FetchError, FetchErrorKind, FetchResult
from gitwarden.fetch.selector import RepositorySnapshot

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo() -> RepositorySnapshot:
    return RepositorySnapshot(id=7, name="app", local_path="app.git", clone_status=CloneStatus.CLONED)


def make_executor(outcome: ProcessResult, **kwargs) -> tuple[FetchExecutor, Mock]:
    runner = Mock(spec=ProcessRunner)
    runner.run = AsyncMock(return_value=outcome)
    return FetchExecutor(runner, clock=lambda: NOW, **kwargs), runner


class TestResolveWorkingDir:
    """Tests for working directory resolution."""

    def test_relative_path(self):
        assert resolve_working_dir("/git-repos", "team/app.git") == os.path.join("/git-repos", "team/app.git")

    def test_absolute_path_replaces_base(self):
        assert resolve_working_dir("/git-repos", "/srv/app.git") == "/srv/app.git"


class TestFetchError:
    """Tests for FetchError text."""

    def test_command_failure_text(self):
        error = FetchError.command_failure(1, "fatal: unable to access\n")
        assert str(error) == "Git command failed (exit code 1): fatal: unable to access"

    def test_command_failure_without_output(self):
        assert str(FetchError.command_failure(128, "")) == "Git command failed (exit code 128)"

    def test_cancelled_text(self):
        assert str(FetchError.cancelled()) == "Fetch cancelled by shutdown"

    def test_result_duration(self):
        result = FetchResult(7, "app", NOW, NOW + timedelta(seconds=3), checked_at=NOW)
        assert result.duration == timedelta(seconds=3)


class TestFetchExecutor:
    """Tests for FetchExecutor.fetch_one."""

    @pytest.mark.asyncio
    async def test_success(self, repo):
        executor, runner = make_executor(ProcessResult(exit_code=0, stdout="Fetching origin"))

        result = await executor.fetch_one(repo, "/git-repos")

        assert result.success is True
        assert result.checked_at == NOW
        assert result.error is None
        assert result.repository_id == 7
        runner.run.assert_awaited_once_with(
            "git",
            DEFAULT_FETCH_ARGS,
            os.path.join("/git-repos", "app.git"),
            None,
        )

    def test_fetch_and_prune_arguments(self):
        assert DEFAULT_FETCH_ARGS == ("fetch", "--all", "--prune")

    @pytest.mark.asyncio
    async def test_custom_git_and_args(self, repo):
        executor, runner = make_executor(
            ProcessResult(exit_code=0),
            git_executable="/opt/git/bin/git",
            fetch_args=["fetch", "--all"],
        )
        shutdown = asyncio.Event()

        await executor.fetch_one(repo, "/srv", shutdown)

        runner.run.assert_awaited_once_with(
            "/opt/git/bin/git",
            ("fetch", "--all"),
            os.path.join("/srv", "app.git"),
            shutdown,
        )

    @pytest.mark.asyncio
    async def test_command_failure(self, repo):
        executor, _ = make_executor(ProcessResult(exit_code=1, stderr="fatal: unable to access"))

        result = await executor.fetch_one(repo, "/git-repos")

        assert result.success is False
        assert result.checked_at is None
        assert result.error.kind is FetchErrorKind.COMMAND_FAILURE
        assert result.error.exit_code == 1
        assert result.error.stderr == "fatal: unable to access"
        assert "fatal: unable to access" in str(result.error)

    @pytest.mark.asyncio
    async def test_command_failure_falls_back_to_stdout(self, repo):
        executor, _ = make_executor(ProcessResult(exit_code=128, stdout="not a git repository"))

        result = await executor.fetch_one(repo, "/git-repos")

        assert result.error.stderr == "not a git repository"

    @pytest.mark.asyncio
    async def test_spawn_failure(self, repo):
        executor, _ = make_executor(ProcessResult(spawn_error="[Errno 2] No such file or directory"))

        result = await executor.fetch_one(repo, "/git-repos")

        assert result.success is False
        assert result.checked_at is None
        assert result.error.kind is FetchErrorKind.SPAWN_FAILURE
        assert "No such file or directory" in result.error.message

    @pytest.mark.asyncio
    async def test_cancelled(self, repo):
        executor, _ = make_executor(ProcessResult(cancelled=True))

        result = await executor.fetch_one(repo, "/git-repos", asyncio.Event())

        assert result.success is False
        assert result.error.kind is FetchErrorKind.CANCELLED

    @pytest.mark.asyncio
    async def test_runner_exception_propagates(self, repo):
        runner = Mock(spec=ProcessRunner)
        runner.run = AsyncMock(side_effect=RuntimeError("event loop closed"))
        executor = FetchExecutor(runner)

        with pytest.raises(RuntimeError):
            await executor.fetch_one(repo, "/git-repos")

    @pytest.mark.asyncio
    async def test_real_spawn_failure(self, repo, tmp_path):
        executor = FetchExecutor(ProcessRunner(), git_executable=str(tmp_path / "no-git"))

        result = await executor.fetch_one(repo, str(tmp_path))

        assert result.error.kind is FetchErrorKind.SPAWN_FAILURE
        assert result.started_at <= result.completed_at
