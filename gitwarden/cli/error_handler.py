"""Error handling for gitwarden CLI commands.

Turns GitwardenError subclasses into a red message on stderr and the
exception's exit code.
"""

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

import typer
from rich.console import Console

from gitwarden.cli.exit_codes import ExitCode
from gitwarden.exceptions import GitwardenError

# Console for error output (stderr)
console = Console(stderr=True)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling across CLI commands.

    Handles:

    - GitwardenError subclasses: error message and the matching exit code
    - KeyboardInterrupt: cancellation message with exit code 130
    - Other exceptions: generic error with GENERAL_ERROR

    Example:
        @app.command()
        @handle_errors
        def show():
            raise ConfigurationError("Invalid config")
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except GitwardenError as e:
            logger.error(
                f"GitwardenError: {e.message}",
                extra={"exit_code": e.exit_code, "details": e.details},
            )
            console.print(f"[red]Error:[/red] {e.message}")

            if e.details:
                for key, value in e.details.items():
                    console.print(f"  [dim]{key}:[/dim] {value}")

            raise typer.Exit(code=e.exit_code)

        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            logger.info("Operation cancelled by user (KeyboardInterrupt)")
            raise typer.Exit(code=ExitCode.CANCELLED)

        except typer.Exit:
            raise

        except Exception as e:
            logger.exception("Unexpected error occurred")
            console.print(f"[red]Unexpected error:[/red] {e}")
            console.print("[dim]Run with --verbose for more details[/dim]")
            raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore[return-value]
