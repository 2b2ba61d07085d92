"""gitwarden run command - start the auto-fetch daemon."""

import asyncio
import atexit
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from gitwarden.cli.exit_codes import ExitCode
from gitwarden.config import LoggingConfig

app = typer.Typer(help="Start the auto-fetch daemon.")
console = Console()

logger = logging.getLogger(__name__)

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file.",
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
)


def _add_file_logging(log_file: Path, settings: LoggingConfig) -> None:
    """Attach a rotating log file to the root logger.

    Args:
        log_file: Log file path
        settings: Logging section of the configuration
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=settings.max_size,
        backupCount=settings.backup_count,
    )
    handler.setFormatter(logging.Formatter(settings.format))

    root = logging.getLogger()
    root.addHandler(handler)
    level = logging.getLevelName(settings.level.upper())
    if isinstance(level, int) and (root.level == logging.NOTSET or root.level > level):
        root.setLevel(level)


@app.callback(invoke_without_command=True)
def run(
    ctx: typer.Context,
    config_file: Optional[Path] = ConfigOption,
    daemon: bool = typer.Option(
        False,
        "--daemon",
        "-d",
        help="Run in background as daemon.",
    ),
    no_warmup: bool = typer.Option(
        False,
        "--no-warmup",
        help="Start the first fetch cycle immediately.",
    ),
) -> None:
    """Start the gitwarden daemon.

    The daemon fetches every cloned repository once per interval while
    [cyan]fetch.enabled[/cyan] is true. Settings are re-read before each
    cycle.

    Example:
        gitwarden run
        gitwarden run --config ~/gitwarden.toml --daemon
        gitwarden run --no-warmup
    """
    if ctx.invoked_subcommand is not None:
        return

    from gitwarden.config import ensure_directories, load_config
    from gitwarden.daemon.pid import PIDFile
    from gitwarden.daemon.service import daemonize, run_daemon

    config = load_config(config_file)
    ensure_directories(config)

    pid_file = PIDFile(config.pid_file)

    if pid_file.is_running():
        console.print("[red]Error: Daemon is already running[/red]")
        console.print(f"[yellow]PID: {pid_file.read()}[/yellow]")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    pid_file.clear_if_stale()

    console.print("[bold green]Starting gitwarden daemon...[/bold green]")
    console.print(f"  Repositories: {config.repos_base_path}")
    console.print(f"  Database: {config.db_url}")
    if not config.fetch.enabled:
        console.print("[yellow]  Auto-fetch is disabled (fetch.enabled = false)[/yellow]")

    log_file = config.logging.file
    if daemon and log_file is None:
        log_file = config.data_dir / "daemon.log"
    if log_file is not None:
        _add_file_logging(Path(log_file), config.logging)

    if daemon:
        if sys.platform == "win32":
            console.print("[yellow]Warning: Daemon mode not supported on Windows, running in foreground[/yellow]")
        else:
            console.print("[dim]Forking to background...[/dim]")
            daemonize(Path(log_file) if log_file else None)

    try:
        pid_file.create()
    except OSError as e:
        console.print(f"[red]Error: Failed to create PID file: {e}[/red]")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    atexit.register(pid_file.remove)

    try:
        asyncio.run(run_daemon(config, {
            "config_path": config_file,
            "warmup_seconds": 0.0 if no_warmup else None,
        }))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
    except Exception as e:
        logger.exception("Daemon error")
        console.print(f"[red]Daemon error: {e}[/red]")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)


@app.command()
def status(
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Check daemon status.

    Example:
        gitwarden run status
    """
    from gitwarden.config import load_config
    from gitwarden.daemon.pid import PIDFile

    config = load_config(config_file)
    pid_file = PIDFile(config.pid_file)

    if pid_file.is_running():
        console.print(f"[green]● Daemon is running[/green] (PID: {pid_file.read()})")
        console.print(f"  Auto-fetch: {'enabled' if config.fetch.enabled else 'disabled'}")
        console.print(f"  Interval: {config.fetch.interval_minutes} minutes")
        console.print(f"  Repositories: {config.repos_base_path}")
        console.print(f"  Database: {config.db_url}")
    else:
        console.print("[yellow]○ Daemon is not running[/yellow]")
        if pid_file.clear_if_stale():
            console.print("[dim]  (removed stale PID file)[/dim]")


@app.command()
def stop(
    config_file: Optional[Path] = ConfigOption,
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Force kill the daemon (SIGKILL).",
    ),
) -> None:
    """Stop the daemon.

    Sends SIGTERM so an in-flight fetch is wound down first. Use
    [cyan]--force[/cyan] to send SIGKILL instead.

    Example:
        gitwarden run stop
        gitwarden run stop --force
    """
    from gitwarden.config import load_config
    from gitwarden.daemon.pid import PIDFile

    config = load_config(config_file)
    pid_file = PIDFile(config.pid_file)

    pid = pid_file.read()

    if pid is None:
        console.print("[yellow]Daemon is not running (no PID file found)[/yellow]")
        raise typer.Exit()

    if not pid_file.is_running():
        console.print("[yellow]Daemon is not running (stale PID file)[/yellow]")
        pid_file.remove()
        raise typer.Exit()

    sig = signal.SIGKILL if force else signal.SIGTERM

    try:
        os.kill(pid, sig)
        if force:
            console.print(f"[red]Force killed daemon (PID: {pid})[/red]")
            pid_file.remove()
        else:
            console.print(f"[green]Shutdown signal sent to daemon (PID: {pid})[/green]")
            console.print("[dim]Daemon will shut down gracefully...[/dim]")
    except ProcessLookupError:
        console.print("[yellow]Daemon process not found (already stopped)[/yellow]")
        pid_file.remove()
    except PermissionError:
        console.print(f"[red]Permission denied: cannot signal process {pid}[/red]")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)
    except OSError as e:
        console.print(f"[red]Error signaling daemon: {e}[/red]")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)
