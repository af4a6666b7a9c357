"""
CLI Plugin System - Auto-discovery and registration of commands.

Provides decorator-based command registration and automatic discovery
from the commands package.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer
import yaml

from tablestack.core.stack_utils import PACKAGE_CONFIG_DIR

logger = logging.getLogger(__name__)

COMMANDS_DIR = Path(__file__).parent / "commands"
COMMANDS_PACKAGE = "tablestack.cli.commands"
PLUGIN_CONFIG_PATH = PACKAGE_CONFIG_DIR / "cli_plugins.yaml"


@dataclass
class CommandMetadata:
    """Metadata for a CLI command plugin."""

    name: str
    """Command name (kebab-case, e.g., 'config-show')"""

    function: Callable
    """The actual command function"""

    group: str = "general"
    """Command group for organization (e.g., 'stacking', 'config')"""

    description: str = ""
    """Short description for the command"""

    aliases: List[str] = field(default_factory=list)
    """Alternative names for the command"""

    enabled: bool = True

    priority: int = 0
    """Registration priority (higher = earlier)"""


# Global registry of discovered commands
_COMMAND_REGISTRY: Dict[str, CommandMetadata] = {}


def cli_command(
    name: str,
    group: str = "general",
    description: str = "",
    aliases: Optional[List[str]] = None,
    priority: int = 0,
):
    """
    Decorator to register a function as a CLI command plugin.

    Parameters
    ----------
    name : str
        Command name (kebab-case, e.g., 'config-show')
    group : str
        Command group for organization (e.g., 'stacking')
    description : str
        Short description (overrides docstring first line)
    aliases : list[str], optional
        Alternative command names
    priority : int
        Registration priority (higher = registered earlier)

    Examples
    --------
    >>> @cli_command(name="inventory", group="stacking")
    ... def inventory_command(folder: Path):
    ...     '''List the tables found in a download folder'''
    ...     pass
    """
    def decorator(func: Callable) -> Callable:
        if not description and func.__doc__:
            desc = func.__doc__.strip().split('\n')[0]
        else:
            desc = description

        _COMMAND_REGISTRY[name] = CommandMetadata(
            name=name,
            function=func,
            group=group,
            description=desc,
            aliases=aliases or [],
            priority=priority,
        )
        return func

    return decorator


def load_plugin_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load plugin configuration from YAML file.

    Returns
    -------
    dict
        Plugin configuration with keys:
        - enabled_groups: List of enabled command groups
        - disabled_commands: List of disabled command names
        - settings: Additional plugin settings
    """
    if config_path is None:
        config_path = PLUGIN_CONFIG_PATH

    default_config = {
        "enabled_groups": ["all"],  # "all" means enable everything
        "disabled_commands": [],
        "settings": {},
    }

    if not config_path.exists():
        return default_config

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load plugin config {config_path}: {e}")
        return default_config

    return {**default_config, **(config or {})}


def _module_name(module_path: Path, commands_dir: Path) -> str:
    if commands_dir.resolve() == COMMANDS_DIR.resolve():
        return f"{COMMANDS_PACKAGE}.{module_path.stem}"
    # Arbitrary directories: path -> dotted name relative to cwd
    return str(module_path.with_suffix("")).replace("/", ".")


def discover_commands(
    app: typer.Typer,
    commands_dir: str | Path = COMMANDS_DIR,
    config_path: Optional[Path] = None,
) -> int:
    """
    Auto-discover and register all command plugins.

    Imports every module in ``commands_dir`` to trigger the @cli_command
    decorators, then registers the discovered commands with the Typer app.
    Commands are registered in priority order (highest first), then
    alphabetically by name.

    Returns
    -------
    int
        Number of commands registered
    """
    commands_path = Path(commands_dir)

    if not commands_path.exists():
        raise FileNotFoundError(f"Commands directory not found: {commands_path}")

    config = load_plugin_config(config_path)
    enabled_groups = config["enabled_groups"]
    disabled_commands = config["disabled_commands"]

    for module_path in sorted(commands_path.glob("*.py")):
        if module_path.stem == "__init__":
            continue
        module_name = _module_name(module_path, commands_path)
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            logger.warning(f"Failed to load plugin {module_name}: {e}")
            continue
        logger.debug(f"Loaded plugin module: {module_name}")

    sorted_commands = sorted(
        _COMMAND_REGISTRY.values(),
        key=lambda c: (-c.priority, c.name)
    )

    registered_count = 0
    for metadata in sorted_commands:
        if "all" not in enabled_groups and metadata.group not in enabled_groups:
            logger.debug(f"Skipped (group disabled): {metadata.name} [{metadata.group}]")
            continue

        if metadata.name in disabled_commands:
            logger.debug(f"Skipped (explicitly disabled): {metadata.name}")
            continue

        app.command(name=metadata.name)(metadata.function)
        registered_count += 1

        for alias in metadata.aliases:
            app.command(name=alias, hidden=True)(metadata.function)

    logger.debug(f"Total commands registered: {registered_count}/{len(_COMMAND_REGISTRY)}")
    return registered_count

