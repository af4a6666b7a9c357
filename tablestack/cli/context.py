"""
Per-invocation state shared by CLI commands.

Holds the resolved configuration and the console, and knows how to turn a
``--table-types`` option (or its configured default) into a loaded
table-type dictionary.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console

from tablestack.cli.config import CLIConfig
from tablestack.core.table_types import TableTypeDictionary, get_table_types_cached


@dataclass
class CommandContext:
    """Console plus configuration for one CLI invocation"""

    console: Console
    config: CLIConfig

    @property
    def verbose(self) -> bool:
        return self.config.verbose

    def table_types_path(self, override: Optional[Path] = None) -> Path:
        """The dictionary a command should use: the option if given, else the configured one."""
        return Path(override) if override is not None else self.config.table_types_yaml

    def load_table_types(self, override: Optional[Path] = None) -> TableTypeDictionary:
        """
        Load the table-type dictionary for this invocation.

        Raises ConfigurationError when the file is missing or malformed.
        """
        path = self.table_types_path(override)
        self.print_verbose(f"[dim]Table types: {path}[/dim]")
        return get_table_types_cached(path)

    def print_verbose(self, *args, **kwargs):
        if self.verbose:
            self.console.print(*args, **kwargs)

    def print_error(self, message: str):
        self.console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str):
        self.console.print(f"[yellow]⚠[/yellow] {message}")


_context: Optional[CommandContext] = None


def get_context() -> CommandContext:
    """
    Return the context for the running invocation, building it on first use.

    Context is process-local; stacking worker processes never touch it.
    """
    global _context
    if _context is None:
        from tablestack.cli.main import get_config
        _context = CommandContext(console=Console(), config=get_config())
    return _context


def reset_context():
    """Drop the cached context so the next get_context() sees fresh config."""
    global _context
    _context = None
