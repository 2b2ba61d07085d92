"""Tests for run CLI command."""

import os
import signal
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from gitwarden.cli.exit_codes import ExitCode
from gitwarden.config import load_config, save_config
from gitwarden.main import app


runner = CliRunner()


@pytest.fixture
def pid_path():
    return load_config().pid_file


class TestRunCommand:
    """Tests for the run command."""

    def test_run_help(self):
        result = runner.invoke(app, ["run", "--help"])

        assert result.exit_code == 0
        assert "--daemon" in result.output
        assert "--no-warmup" in result.output

    def test_run_starts_daemon(self, pid_path):
        with patch("gitwarden.daemon.service.run_daemon", new_callable=AsyncMock) as run_daemon:
            result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.output
        run_daemon.assert_awaited_once()
        config, options = run_daemon.await_args.args
        assert options == {"config_path": None, "warmup_seconds": None}
        assert config.pid_file == pid_path
        assert pid_path.read_text() == str(os.getpid())

    def test_run_no_warmup(self):
        with patch("gitwarden.daemon.service.run_daemon", new_callable=AsyncMock) as run_daemon:
            result = runner.invoke(app, ["run", "--no-warmup"])

        assert result.exit_code == 0, result.output
        assert run_daemon.await_args.args[1]["warmup_seconds"] == 0.0

    def test_run_with_config_file(self, config, tmp_path):
        path = save_config(config, tmp_path / "custom.toml")

        with patch("gitwarden.daemon.service.run_daemon", new_callable=AsyncMock) as run_daemon:
            result = runner.invoke(app, ["run", "--config", str(path)])

        assert result.exit_code == 0, result.output
        loaded, options = run_daemon.await_args.args
        assert options["config_path"] == path.resolve()
        assert loaded.repos_base_path == config.repos_base_path

    def test_run_reports_disabled_fetching(self):
        with patch("gitwarden.daemon.service.run_daemon", new_callable=AsyncMock):
            result = runner.invoke(app, ["run"])

        assert "Auto-fetch is disabled" in result.output

    def test_run_refuses_second_instance(self, pid_path):
        pid_path.parent.mkdir(parents=True, exist_ok=True)
        pid_path.write_text(str(os.getpid()))

        with patch("gitwarden.daemon.service.run_daemon", new_callable=AsyncMock) as run_daemon:
            result = runner.invoke(app, ["run"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "already running" in result.output
        run_daemon.assert_not_awaited()

    def test_run_daemon_error(self):
        with patch(
            "gitwarden.daemon.service.run_daemon",
            new_callable=AsyncMock,
            side_effect=RuntimeError("database is locked"),
        ):
            result = runner.invoke(app, ["run"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "database is locked" in result.output


class TestStatusCommand:
    """Tests for run status."""

    def test_status_not_running(self):
        result = runner.invoke(app, ["run", "status"])

        assert result.exit_code == 0
        assert "not running" in result.output

    def test_status_running(self, pid_path):
        pid_path.parent.mkdir(parents=True, exist_ok=True)
        pid_path.write_text(str(os.getpid()))

        result = runner.invoke(app, ["run", "status"])

        assert result.exit_code == 0
        assert "Daemon is running" in result.output
        assert "disabled" in result.output

    def test_status_removes_stale_pid_file(self, pid_path):
        pid_path.parent.mkdir(parents=True, exist_ok=True)
        pid_path.write_text("999999")

        with patch("gitwarden.daemon.pid.os.kill", side_effect=ProcessLookupError):
            result = runner.invoke(app, ["run", "status"])

        assert result.exit_code == 0
        assert not pid_path.exists()


class TestStopCommand:
    """Tests for run stop."""

    def test_stop_without_pid_file(self):
        result = runner.invoke(app, ["run", "stop"])

        assert result.exit_code == 0
        assert "no PID file" in result.output

    def test_stop_stale_pid_file(self, pid_path):
        pid_path.parent.mkdir(parents=True, exist_ok=True)
        pid_path.write_text("999999")

        with patch("gitwarden.daemon.pid.os.kill", side_effect=ProcessLookupError):
            result = runner.invoke(app, ["run", "stop"])

        assert result.exit_code == 0
        assert "stale PID file" in result.output
        assert not pid_path.exists()

    def test_stop_sends_sigterm(self, pid_path):
        pid_path.parent.mkdir(parents=True, exist_ok=True)
        pid_path.write_text("4242")

        with patch("os.kill") as kill:
            result = runner.invoke(app, ["run", "stop"])

        assert result.exit_code == 0
        kill.assert_called_with(4242, signal.SIGTERM)
        assert pid_path.exists()

    def test_stop_force_sends_sigkill(self, pid_path):
        pid_path.parent.mkdir(parents=True, exist_ok=True)
        pid_path.write_text("4242")

        with patch("os.kill") as kill:
            result = runner.invoke(app, ["run", "stop", "--force"])

        assert result.exit_code == 0
        kill.assert_called_with(4242, signal.SIGKILL)
        assert not pid_path.exists()
