"""Tests for config CLI commands."""

from typer.testing import CliRunner

from gitwarden.cli.exit_codes import ExitCode
from gitwarden.config import default_config_path, load_config
from gitwarden.main import app


runner = CliRunner()


class TestConfigShow:
    """Tests for config show."""

    def test_show_table(self):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "interval_minutes" in result.output
        assert "repos_base_path" in result.output

    def test_show_single_section(self):
        result = runner.invoke(app, ["config", "show", "fetch"])

        assert result.exit_code == 0
        assert "git_executable" in result.output
        assert "backup_count" not in result.output

    def test_show_unknown_section(self):
        result = runner.invoke(app, ["config", "show", "plugins"])

        assert result.exit_code == ExitCode.INVALID_ARGUMENT

    def test_show_json(self):
        result = runner.invoke(app, ["config", "show", "--format", "json"])

        assert result.exit_code == 0
        assert '"enabled": false' in result.output
        assert '"interval_minutes": 5' in result.output

    def test_show_yaml(self):
        result = runner.invoke(app, ["config", "show", "--format", "yaml"])

        assert result.exit_code == 0
        assert "interval_minutes: 5" in result.output

    def test_show_unknown_format(self):
        result = runner.invoke(app, ["config", "show", "--format", "xml"])

        assert result.exit_code == ExitCode.INVALID_ARGUMENT


class TestConfigSet:
    """Tests for config set."""

    def test_set_enables_fetching(self):
        result = runner.invoke(app, ["config", "set", "fetch", "enabled", "true"])

        assert result.exit_code == 0, result.output
        assert default_config_path().exists()
        assert load_config().fetch.enabled is True

    def test_set_interval(self):
        result = runner.invoke(app, ["config", "set", "fetch", "interval_minutes", "15"])

        assert result.exit_code == 0, result.output
        assert load_config().fetch.interval_minutes == 15

    def test_set_explicit_config_file(self, tmp_path):
        path = tmp_path / "custom.toml"

        result = runner.invoke(app, [
            "config", "set", "general", "repos_base_path", "/srv/mirrors", "--config", str(path),
        ])

        assert result.exit_code == 0, result.output
        assert load_config(path).repos_base_path == "/srv/mirrors"
        assert not default_config_path().exists()

    def test_set_unknown_key(self):
        result = runner.invoke(app, ["config", "set", "fetch", "parallelism", "4"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR
        assert "Unknown configuration key" in result.output

    def test_set_invalid_value(self):
        result = runner.invoke(app, ["config", "set", "fetch", "interval_minutes", "often"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR


class TestConfigPath:
    """Tests for config path."""

    def test_path_follows_environment(self, tmp_path):
        result = runner.invoke(app, ["config", "path"])

        assert result.exit_code == 0
        assert "config.toml" in result.output
        assert "False" in result.output


class TestConfigValidate:
    """Tests for config validate."""

    def test_validate_defaults_with_warnings(self):
        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_reports_errors(self):
        runner.invoke(app, ["config", "set", "fetch", "warmup_seconds", "--", "-5"])

        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR
        assert "fetch.warmup_seconds" in result.output
