#!/usr/bin/env python3
"""
Main CLI application entry point with plugin system.

Commands are auto-discovered from the commands/ package using
the @cli_command decorator. No manual registration required.
"""

import typer
from pathlib import Path
from typing import Optional

from tablestack.cli.plugin_system import discover_commands
from tablestack.cli.config import CLIConfig, load_config_with_precedence
from tablestack.cli.context import reset_context
from tablestack.logging_config import setup_logging


# Global configuration singleton
_config: Optional[CLIConfig] = None


def get_config() -> CLIConfig:
    """
    Get or create global config instance.

    Returns the cached config if available, otherwise loads with precedence:
    1. Project config (./.tablestack_config.json)
    2. User config (~/.tablestack_config.json)
    3. Environment variables (TABLESTACK_*)
    4. Defaults
    """
    global _config
    if _config is None:
        _config = load_config_with_precedence()
    return _config


def set_config(config: Optional[CLIConfig]) -> None:
    """Set global config instance (None forces a reload on next access)."""
    global _config
    _config = config


app = typer.Typer(
    name="tablestack",
    help="Stack per-site NEON data files into one table per table name",
    add_completion=False
)


@app.callback()
def global_options(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Echo engine progress to the terminal"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Use specific config file"
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Directory for rotating log files"
    ),
):
    """
    Global options applied to all commands.

    These options override configuration from files and environment variables.
    """
    config = load_config_with_precedence(config_file=config_file)

    overrides = {}
    if verbose:
        overrides["verbose"] = verbose
    if log_dir is not None:
        overrides["log_dir"] = log_dir
    if overrides:
        config = config.merge_with(**overrides)

    set_config(config)
    reset_context()
    setup_logging(config.log_dir, verbose=config.verbose)


# Auto-discover and register all command plugins
discover_commands(app)


def main():
    """Main entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
