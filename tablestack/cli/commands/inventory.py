"""Inventory command: classify a download folder without stacking it."""

from pathlib import Path
from typing import Optional

import typer

from tablestack.cli.context import get_context
from tablestack.cli.formatters import RichTableFormatter, get_formatter
from tablestack.cli.plugin_system import cli_command


@cli_command(
    name="inventory",
    group="stacking",
    description="List the tables found in a download folder",
)
def inventory_command(
    folder: Path = typer.Argument(
        ...,
        help="Folder of unzipped data files"
    ),
    table_types: Optional[Path] = typer.Option(
        None,
        "--table-types",
        "-t",
        help="YAML table-type dictionary (default: from config)"
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format: table, json, csv"
    ),
):
    """
    Classify every data file in FOLDER and show one row per table.

    Nothing is written. Useful to check what a stack run would do, and to
    find table names missing from the table-type dictionary.
    """
    from tablestack.core import (
        StackingError,
        build_inventory,
        describe_inventory,
        discover_data_files,
        parse_source_file,
    )

    ctx = get_context()
    try:
        formatter = get_formatter(format)
    except ValueError as e:
        ctx.print_error(str(e))
        raise typer.Exit(1)

    try:
        paths = discover_data_files(folder)
        if not paths:
            ctx.print_warning(f"No data files found under {folder}")
            raise typer.Exit(1)
        inv = build_inventory([parse_source_file(p) for p in paths], ctx.load_table_types(table_types))
    except StackingError as e:
        ctx.print_error(str(e))
        raise typer.Exit(1)

    df = describe_inventory(inv)
    metadata = {
        "folder": str(folder),
        "data_files": inv.data_file_count,
        "variables_files": len(inv.variables),
        "validation_files": len(inv.validation),
        "sensor_position_files": len(inv.sensor_positions),
    }

    typer.echo(formatter.format_dataframe(df, title="Inventory", metadata=metadata), nl=False)
    if isinstance(formatter, RichTableFormatter):
        typer.echo(formatter.format_summary(metadata), nl=False)
