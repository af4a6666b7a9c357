"""Stacking command: stack."""

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from tablestack.cli.plugin_system import cli_command

console = Console()


def _build_parameters(
    folder: Path,
    params_file: Optional[Path],
    overrides: dict,
):
    from tablestack.cli.main import get_config
    from tablestack.models.parameters import StackingParameters

    config = get_config()
    values = {
        "folder": folder,
        "table_types_yaml": config.table_types_yaml,
        "workers": config.workers,
        "force_parallel": config.force_parallel,
        "parallel_threshold_bytes": config.parallel_threshold_bytes,
        "polars_threads": config.polars_threads,
        "join_positions": config.join_positions,
    }
    if params_file is not None:
        with open(params_file) as f:
            values.update(json.load(f))
        values["folder"] = folder
    values.update({k: v for k, v in overrides.items() if v is not None})
    return StackingParameters(**values)


def _print_summary(summary) -> None:
    from tablestack.core.summary import EventKind

    table = Table(title="Stacked Tables", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Table", style="bold")
    table.add_column("Rows", justify="right", style="blue")
    table.add_column("Output", style="dim")

    for ev in summary.of_kind(EventKind.TABLE_STACKED):
        rows = str(ev.rows)
        if ev.expected_rows is not None and ev.rows != ev.expected_rows:
            rows = f"[yellow]{ev.rows} (expected {ev.expected_rows})[/yellow]"
        table.add_row(ev.table, rows, ev.path.name if ev.path else "")
    if summary.tables_stacked:
        console.print(table)
        console.print()

    for msg in summary.messages():
        console.print(f"[dim]•[/dim] {msg}")

    if summary.coercion_warnings:
        console.print()
        console.print(
            f"[yellow]⚠[/yellow] {summary.coercion_failures} value(s) could not be read "
            "as their declared type and were left empty:"
        )
        for w in summary.coercion_warnings[:20]:
            console.print(f"  [dim]{w.format()}[/dim]")
        if len(summary.coercion_warnings) > 20:
            console.print(f"  [dim]... and {len(summary.coercion_warnings) - 20} more[/dim]")


@cli_command(
    name="stack",
    group="stacking",
    description="Stack a folder of data files into one file per table",
    priority=10,
)
def stack_command(
    folder: Path = typer.Argument(
        ...,
        help="Folder of unzipped data files"
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of worker processes (default: from config)"
    ),
    force_parallel: Optional[bool] = typer.Option(
        None,
        "--force-parallel/--no-force-parallel",
        help="Use the requested workers even for small downloads"
    ),
    table_types: Optional[Path] = typer.Option(
        None,
        "--table-types",
        "-t",
        help="YAML table-type dictionary (default: from config)"
    ),
    join_positions: Optional[bool] = typer.Option(
        None,
        "--join-positions/--no-join-positions",
        help="Attach sensor placement columns to instrument tables"
    ),
    polars_threads: Optional[int] = typer.Option(
        None,
        "--polars-threads",
        help="Polars threads per worker"
    ),
    params_file: Optional[Path] = typer.Option(
        None,
        "--params",
        help="JSON file with stacking parameters"
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Print the run summary as JSON instead of tables"
    ),
):
    """
    Stack a folder of data files into one file per table.

    Every table found in FOLDER is written to FOLDER/stackedFiles/<table>.csv,
    together with the newest variables, validation and sensor-position files.

    Examples:

        # Stack a download with defaults
        tablestack stack data/NEON_count-landbird

        # Use four worker processes even for a small download
        tablestack stack data/NEON_count-landbird -w 4 --force-parallel
    """
    from tablestack.core import StackingError, run_stacking_pipeline

    if not folder.exists():
        console.print(f"[bold red]Error:[/bold red] Folder does not exist: {folder}")
        raise typer.Exit(1)

    try:
        params = _build_parameters(
            folder,
            params_file,
            {
                "workers": workers,
                "force_parallel": force_parallel,
                "table_types_yaml": table_types,
                "join_positions": join_positions,
                "polars_threads": polars_threads,
            },
        )
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] Invalid parameters: {e}")
        raise typer.Exit(1)

    if not output_json:
        console.print()
        console.print(Panel.fit(
            "[bold cyan]Stacking Pipeline[/bold cyan]\n"
            "Files → Classify → Select → Coerce → Outer union",
            border_style="cyan"
        ))

        config_table = Table(title="Configuration", show_header=False, box=box.SIMPLE)
        config_table.add_column("Parameter", style="cyan", width=20)
        config_table.add_column("Value", style="white")
        config_table.add_row("Folder", str(params.folder))
        config_table.add_row("Output", str(params.output_dir))
        config_table.add_row("Table types", str(params.table_types_yaml))
        config_table.add_row("Workers", str(params.workers))
        config_table.add_row("Force parallel", "✓ Yes" if params.force_parallel else "✗ No")
        config_table.add_row("Join positions", "✓ Yes" if params.join_positions else "✗ No")
        console.print(config_table)
        console.print()

    try:
        if output_json:
            summary = run_stacking_pipeline(params)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TextColumn("•"),
                TextColumn("[cyan]{task.fields[status]}"),
                console=console,
                transient=False,
            ) as progress:
                task = progress.add_task("Stacking tables", total=None, status="starting")

                def update_progress(current, total, table):
                    progress.update(task, status=f"{current}/{total} tables • {table}")

                summary = run_stacking_pipeline(params, progress_callback=update_progress)
                progress.update(task, status=f"✓ {summary.tables_stacked} tables")
    except StackingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps(summary.to_dict(), indent=2))
        return

    console.print()
    _print_summary(summary)
    console.print()
    console.print(Panel.fit(
        f"[bold green]✓ Stacking Complete[/bold green]\n\n"
        f"Tables: {summary.tables_stacked}\n"
        f"Workers: {summary.workers}\n"
        f"Time: {summary.elapsed_s:.1f}s\n"
        f"Output: {summary.output_dir}",
        border_style="green"
    ))
