"""Tests for error handler module and the exception hierarchy."""

import pytest
import typer

from gitwarden.cli.error_handler import handle_errors
from gitwarden.cli.exit_codes import ExitCode
from gitwarden.exceptions import (
    ConfigurationError,
    GitwardenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


class TestGitwardenError:
    """Test base GitwardenError class."""

    def test_basic_error(self) -> None:
        error = GitwardenError("Test error")
        assert error.message == "Test error"
        assert error.exit_code == ExitCode.GENERAL_ERROR
        assert error.details == {}

    def test_error_with_exit_code(self) -> None:
        error = GitwardenError("Test error", exit_code=ExitCode.GIT_ERROR)
        assert error.exit_code == ExitCode.GIT_ERROR

    def test_error_str_without_details(self) -> None:
        assert str(GitwardenError("Test error")) == "Test error"

    def test_error_str_with_details(self) -> None:
        error = GitwardenError("Test error", details={"key": "value"})
        assert str(error) == "Test error (key=value)"


@pytest.mark.parametrize(
    ("error_class", "exit_code"),
    [
        (ConfigurationError, ExitCode.CONFIGURATION_ERROR),
        (PersistenceError, ExitCode.DATABASE_ERROR),
        (NotFoundError, ExitCode.NOT_FOUND),
        (ValidationError, ExitCode.INVALID_ARGUMENT),
    ],
)
def test_subclass_exit_codes(error_class, exit_code) -> None:
    error = error_class("problem")
    assert isinstance(error, GitwardenError)
    assert error.exit_code == exit_code


class TestHandleErrors:
    """Test handle_errors decorator."""

    def test_successful_execution(self) -> None:
        @handle_errors
        def test_func():
            return "success"

        assert test_func() == "success"

    def test_gitwarden_error_handling(self) -> None:
        @handle_errors
        def test_func():
            raise NotFoundError("Repository not found: app")

        with pytest.raises(typer.Exit) as exc_info:
            test_func()

        assert exc_info.value.exit_code == ExitCode.NOT_FOUND

    def test_keyboard_interrupt_handling(self) -> None:
        @handle_errors
        def test_func():
            raise KeyboardInterrupt()

        with pytest.raises(typer.Exit) as exc_info:
            test_func()

        assert exc_info.value.exit_code == ExitCode.CANCELLED

    def test_generic_exception_handling(self) -> None:
        @handle_errors
        def test_func():
            raise RuntimeError("Unexpected error")

        with pytest.raises(typer.Exit) as exc_info:
            test_func()

        assert exc_info.value.exit_code == ExitCode.GENERAL_ERROR

    def test_typer_exit_re_raised(self) -> None:
        @handle_errors
        def test_func():
            raise typer.Exit(code=ExitCode.GIT_ERROR)

        with pytest.raises(typer.Exit) as exc_info:
            test_func()

        assert exc_info.value.exit_code == ExitCode.GIT_ERROR

    def test_preserves_function_name(self) -> None:
        @handle_errors
        def list_repos():
            pass

        assert list_repos.__name__ == "list_repos"
