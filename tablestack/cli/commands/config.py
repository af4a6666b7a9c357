#!/usr/bin/env python3
"""
Configuration management commands for the CLI.

Provides commands to:
- Display current configuration (config-show)
- Initialize config file (config-init)
"""

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tablestack.cli.config import CONFIG_FILENAME, CLIConfig, ConfigProfile, load_config_with_precedence
from tablestack.cli.plugin_system import cli_command


console = Console()

PROFILES = {
    "sequential": ConfigProfile.sequential,
    "parallel": ConfigProfile.parallel,
}


@cli_command(name="config-show", group="config", description="Display current configuration settings")
def show_config_command(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file to display (default: auto-detect)"
    ),
    show_sources: bool = typer.Option(
        True,
        "--show-sources/--no-sources",
        help="Show source of each setting"
    )
):
    """
    Display current configuration in a formatted table.

    Shows all configuration fields with their current values,
    and optionally the source of each setting (default/env/override).
    """
    try:
        config = load_config_with_precedence(config_file=config_file)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    table = Table(
        title="Current Configuration",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Setting", style="bold", no_wrap=True)
    table.add_column("Value", style="green")
    if show_sources:
        table.add_column("Source", style="yellow")
    table.add_column("Status", style="blue")

    for field_name in CLIConfig.model_fields:
        value = getattr(config, field_name)

        if isinstance(value, Path):
            value_str = str(value)
            status = "✓ exists" if value.exists() else "⚠ missing"
        elif isinstance(value, bool):
            value_str = "✓ enabled" if value else "✗ disabled"
            status = ""
        else:
            value_str = str(value)
            status = ""

        if show_sources:
            table.add_row(field_name, value_str, config.get_field_source(field_name), status)
        else:
            table.add_row(field_name, value_str, status)

    console.print(table)

    console.print("\n[bold]Configuration Files:[/bold]")
    user_config = Path.home() / CONFIG_FILENAME
    project_config = Path.cwd() / CONFIG_FILENAME

    if user_config.exists():
        console.print(f"  ✓ User config: [cyan]{user_config}[/cyan]")
    else:
        console.print(f"  ✗ User config: [dim]{user_config} (not found)[/dim]")

    if project_config.exists() and project_config != user_config:
        console.print(f"  ✓ Project config: [cyan]{project_config}[/cyan]")
    else:
        console.print(f"  ✗ Project config: [dim]{project_config} (not found)[/dim]")

    if config_file:
        console.print(f"  ✓ Specified config: [cyan]{config_file}[/cyan]")

    console.print("\n[dim]Tip: Use 'config-init' to create a config file[/dim]")


@cli_command(name="config-init", group="config", description="Initialize a configuration file")
def init_config_command(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help=f"Output location (default: ~/{CONFIG_FILENAME})"
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing config file"
    ),
    profile: Optional[str] = typer.Option(
        None,
        "--profile",
        "-p",
        help="Use a profile as base (sequential/parallel)"
    )
):
    """
    Generate a configuration file with defaults or a profile.

    Creates a JSON config file that can be edited to customize behavior.
    """
    output = Path(output) if output is not None else Path.home() / CONFIG_FILENAME

    if output.exists() and not force:
        console.print(f"[yellow]Config file already exists: {output}[/yellow]")
        console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    if profile:
        factory = PROFILES.get(profile.lower())
        if factory is None:
            console.print(f"[red]Unknown profile: {profile}[/red]")
            console.print(f"[dim]Available profiles: {', '.join(PROFILES)}[/dim]")
            raise typer.Exit(1)
        config = factory()
        console.print(f"[green]Using profile: {profile}[/green]")
    else:
        config = CLIConfig()

    try:
        config.save(output, pretty=True)
    except OSError as e:
        console.print(f"[red]Error saving config: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Configuration file created: [cyan]{output}[/cyan]")

    console.print(Panel(
        f"[bold]Configuration file created successfully![/bold]\n\n"
        f"Location: [cyan]{output}[/cyan]\n\n"
        "Edit the file to customize settings, then run [bold]config-show[/bold] to verify.",
        border_style="green",
        box=box.ROUNDED,
    ))
