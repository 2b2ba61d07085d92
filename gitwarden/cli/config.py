"""gitwarden config command - configuration management."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from gitwarden.cli.error_handler import handle_errors
from gitwarden.cli.exit_codes import ExitCode
from gitwarden.exceptions import ValidationError

app = typer.Typer(help="Manage gitwarden configuration.")
console = Console()

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file.",
    dir_okay=False,
    resolve_path=True,
)

FORMATS = ("table", "yaml", "json")


@app.command("show")
@handle_errors
def show_config(
    section: Optional[str] = typer.Argument(
        None,
        help="Configuration section to show (general, fetch, logging).",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, yaml, json).",
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Show current configuration.

    Example:
        gitwarden config show
        gitwarden config show fetch
        gitwarden config show --format yaml
    """
    from gitwarden.config import export_config_json, export_config_yaml, load_config

    if format not in FORMATS:
        raise ValidationError(f"Unknown format '{format}'. Choose from: {', '.join(FORMATS)}")

    config = load_config(config_file)

    if format == "yaml":
        console.print(Syntax(export_config_yaml(config), "yaml", theme="monokai"))
        return
    if format == "json":
        console.print(Syntax(export_config_json(config), "json", theme="monokai"))
        return

    sections = {
        "general": [
            ("repos_base_path", config.repos_base_path),
            ("config_dir", str(config.config_dir)),
            ("data_dir", str(config.data_dir)),
            ("database_url", config.db_url),
        ],
        "fetch": [
            ("enabled", str(config.fetch.enabled)),
            ("interval_minutes", str(config.fetch.interval_minutes)),
            ("warmup_seconds", str(config.fetch.warmup_seconds)),
            ("git_executable", config.fetch.git_executable),
            ("fetch_args", " ".join(config.fetch.fetch_args)),
            ("terminate_on_cancel", str(config.fetch.terminate_on_cancel)),
            ("terminate_timeout", str(config.fetch.terminate_timeout)),
        ],
        "logging": [
            ("level", config.logging.level),
            ("format", config.logging.format),
            ("file", str(config.logging.file) if config.logging.file else ""),
            ("max_size", str(config.logging.max_size)),
            ("backup_count", str(config.logging.backup_count)),
        ],
    }

    if section is not None and section not in sections:
        raise ValidationError(f"Unknown section: {section}")

    console.print("[bold]gitwarden Configuration[/bold]")
    console.print()

    for sec in [section] if section else sections:
        table = Table(title=sec.capitalize())
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        for key, value in sections[sec]:
            table.add_row(key, value)

        console.print(table)
        console.print()


@app.command("set")
@handle_errors
def set_config(
    section: str = typer.Argument(..., help="Section: general, fetch or logging."),
    key: str = typer.Argument(..., help="Key within the section."),
    value: str = typer.Argument(..., help="New value."),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Set a configuration value and save it to the config file.

    A running daemon picks up fetch.enabled and fetch.interval_minutes
    at its next cycle.

    Example:
        gitwarden config set fetch enabled true
        gitwarden config set fetch interval_minutes 15
        gitwarden config set general repos_base_path /srv/mirrors
    """
    from gitwarden.config import set_config_value

    set_config_value(section, key, value, config_file)
    console.print(f"[green]✓[/green] Set {section}.{key} = {value}")


@app.command("path")
def config_path() -> None:
    """Show configuration file path.

    Example:
        gitwarden config path
    """
    from gitwarden.config import default_config_path

    config_file_path = default_config_path()
    console.print(f"[bold]Config directory:[/bold] {config_file_path.parent}")
    console.print(f"[bold]Config file:[/bold] {config_file_path}")
    console.print(f"[bold]Exists:[/bold] {config_file_path.exists()}")


@app.command("validate")
@handle_errors
def validate_config(
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Validate current configuration.

    Example:
        gitwarden config validate
    """
    from gitwarden.config import default_config_path, load_config
    from gitwarden.config import validate_config as do_validate

    path = config_file or default_config_path()
    config = load_config(path)

    console.print("[bold]Validating configuration...[/bold]")
    console.print()

    if path.exists():
        console.print(f"  [green]✓[/green] Config file: {path}")
    else:
        console.print(f"  [yellow]![/yellow] Config file not found, using defaults: {path}")

    all_passed = True
    errors = do_validate(config)

    if errors:
        console.print()
        console.print("[bold yellow]Validation Results:[/bold yellow]")
        for error in errors:
            if error.severity == "error":
                status = "[red]✗[/red]"
                all_passed = False
            else:
                status = "[yellow]![/yellow]"
            console.print(f"  {status} [{error.severity.upper()}] {error.field}: {error.message}")

    console.print()
    if all_passed:
        console.print("[green]Configuration is valid[/green]")
    else:
        console.print("[red]Configuration has errors[/red]")
        raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR)
