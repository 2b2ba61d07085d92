"""gitwarden repos command - inspect and manage the repository catalog."""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from gitwarden.cli.error_handler import handle_errors
from gitwarden.cli.exit_codes import ExitCode
from gitwarden.database.models import CloneStatus
from gitwarden.exceptions import ValidationError

app = typer.Typer(help="Inspect and manage mirrored repositories.")
console = Console()

STATUS_STYLES = {
    CloneStatus.CLONED: "green",
    CloneStatus.CLONING: "cyan",
    CloneStatus.NOT_CLONED: "yellow",
    CloneStatus.FAILED: "red",
}


def _format_time(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "Never"


def _parse_status(value: str) -> CloneStatus:
    try:
        return CloneStatus.parse(value)
    except ValueError:
        valid = ", ".join(s.value for s in CloneStatus)
        raise ValidationError(f"Invalid status '{value}'. Choose from: {valid}")


def _open_catalog(config_file: Optional[Path]):
    from gitwarden.config import load_config
    from gitwarden.database.connection import create_tables
    from gitwarden.database.repositories import catalog_scope

    config = load_config(config_file)
    create_tables(config)
    return config, catalog_scope(config)


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


@app.command("list")
@handle_errors
def list_repos(
    status: Optional[str] = typer.Option(
        None,
        "--status",
        "-s",
        help="Filter by clone status (NotCloned, Cloning, Cloned, Failed).",
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """List repositories in the catalog.

    Example:
        gitwarden repos list
        gitwarden repos list --status Cloned
    """
    status_filter = _parse_status(status) if status else None

    _, scope = _open_catalog(config_file)
    with scope as catalog:
        repos = catalog.get_all(status_filter)

    if not repos:
        console.print("[yellow]No repositories found[/yellow]")
        return

    table = Table(title="Repositories")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Local Path")
    table.add_column("Status", style="bold")
    table.add_column("Last Checked")

    for repo in repos:
        style = STATUS_STYLES.get(repo.clone_status, "white")
        table.add_row(
            str(repo.id),
            repo.name,
            repo.local_path,
            f"[{style}]{repo.clone_status.value}[/{style}]",
            _format_time(repo.last_checked),
        )

    console.print(table)


@app.command("add")
@handle_errors
def add_repo(
    name: str = typer.Argument(..., help="Unique repository name."),
    local_path: str = typer.Argument(..., help="Path relative to repos_base_path."),
    remote_url: Optional[str] = typer.Option(
        None,
        "--remote-url",
        "-r",
        help="Remote URL (informational).",
    ),
    status: str = typer.Option(
        CloneStatus.CLONED.value,
        "--status",
        "-s",
        help="Initial clone status.",
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Register an existing local mirror.

    Example:
        gitwarden repos add app app.git
        gitwarden repos add tools mirrors/tools.git --remote-url https://example.com/tools.git
    """
    clone_status = _parse_status(status)

    config, scope = _open_catalog(config_file)
    with scope as catalog:
        repo = catalog.create(name, local_path, remote_url, clone_status)

    console.print(f"[green]✓[/green] Repository added: {repo.name} (ID {repo.id})")
    console.print(f"  Path: {Path(config.repos_base_path) / repo.local_path}")
    console.print(f"  Status: {repo.clone_status.value}")


@app.command("set-status")
@handle_errors
def set_status(
    name: str = typer.Argument(..., help="Repository name."),
    status: str = typer.Argument(..., help="New clone status (NotCloned, Cloning, Cloned, Failed)."),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Change a repository's clone status.

    Only repositories marked Cloned are fetched by the daemon.

    Example:
        gitwarden repos set-status app Cloned
        gitwarden repos set-status web Failed
    """
    clone_status = _parse_status(status)

    _, scope = _open_catalog(config_file)
    with scope as catalog:
        repo = catalog.require_by_name(name)
        previous = repo.clone_status
        catalog.set_clone_status(repo.id, clone_status)
        catalog.commit()

    console.print(f"[green]✓[/green] {name}: {previous.value} → {clone_status.value}")


@app.command("history")
@handle_errors
def history(
    name: str = typer.Argument(..., help="Repository name."),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Number of attempts to show.",
        min=1,
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Show recent fetch attempts for a repository.

    Example:
        gitwarden repos history app --limit 5
    """
    _, scope = _open_catalog(config_file)
    with scope as catalog:
        repo = catalog.require_by_name(name)
        attempts = catalog.get_attempts(repo.id, limit=limit)

    if not attempts:
        console.print(f"[yellow]No fetch attempts recorded for {name}[/yellow]")
        return

    table = Table(title=f"Fetch history: {name}")
    table.add_column("Started")
    table.add_column("Duration")
    table.add_column("Result", style="bold")
    table.add_column("Exit Code")
    table.add_column("Error")

    for attempt in attempts:
        duration = (attempt.completed_at - attempt.started_at).total_seconds()
        result = "[green]ok[/green]" if attempt.success else f"[red]{attempt.error_kind or 'failed'}[/red]"
        table.add_row(
            _format_time(attempt.started_at),
            f"{duration:.1f}s",
            result,
            "" if attempt.exit_code is None else str(attempt.exit_code),
            (attempt.error or "")[:80],
        )

    console.print(table)


@app.command("fetch-now")
@handle_errors
def fetch_now(
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Fetch only this repository.",
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Run one fetch cycle immediately.

    Runs regardless of [cyan]fetch.enabled[/cyan]. Only repositories with
    status Cloned are fetched.

    Example:
        gitwarden repos fetch-now
        gitwarden repos fetch-now --name app
    """
    from gitwarden.fetch.cycle import create_default_orchestrator
    from gitwarden.fetch.selector import RepositorySelector

    config, scope = _open_catalog(config_file)

    if name is not None:
        with scope as catalog:
            repo = catalog.require_by_name(name)
            if repo.clone_status != CloneStatus.CLONED:
                raise ValidationError(
                    f"Repository {name} is not cloned (status: {repo.clone_status.value})"
                )
        orchestrator = create_default_orchestrator(
            config,
            selector_factory=lambda catalog: RepositorySelector(catalog, names=[name]),
        )
    else:
        orchestrator = create_default_orchestrator(config)

    report = asyncio.run(orchestrator.run_cycle(config.repos_base_path))

    for result in report.results:
        seconds = result.duration.total_seconds()
        if result.success:
            console.print(f"[green]✓[/green] {result.repository_name} ({seconds:.1f}s)")
        else:
            console.print(f"[red]✗[/red] {result.repository_name} ({seconds:.1f}s): {result.error}")

    console.print(report.summary())
    if report.failed:
        raise typer.Exit(code=ExitCode.GIT_ERROR)
