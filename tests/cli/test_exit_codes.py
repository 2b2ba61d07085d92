"""Tests for exit codes module."""

from gitwarden.cli.exit_codes import ExitCode


class TestExitCode:
    """Test exit code constants."""

    def test_success_code(self) -> None:
        assert ExitCode.SUCCESS == 0

    def test_general_error_code(self) -> None:
        assert ExitCode.GENERAL_ERROR == 1

    def test_configuration_error_code(self) -> None:
        assert ExitCode.CONFIGURATION_ERROR == 2

    def test_database_error_code(self) -> None:
        assert ExitCode.DATABASE_ERROR == 3

    def test_git_error_code(self) -> None:
        assert ExitCode.GIT_ERROR == 4

    def test_cancelled_code(self) -> None:
        """Test cancelled exit code (128 + SIGINT)."""
        assert ExitCode.CANCELLED == 130

    def test_codes_are_unique(self) -> None:
        codes = [v for k, v in vars(ExitCode).items() if k.isupper()]
        assert len(codes) == len(set(codes))


class TestExitCodeGetName:
    """Test ExitCode.get_name method."""

    def test_get_name_success(self) -> None:
        assert ExitCode.get_name(0) == "SUCCESS"

    def test_get_name_not_found(self) -> None:
        assert ExitCode.get_name(8) == "NOT_FOUND"

    def test_get_name_unknown(self) -> None:
        assert ExitCode.get_name(99) == "UNKNOWN(99)"
