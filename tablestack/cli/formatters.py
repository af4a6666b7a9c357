"""
Output formatters for CLI commands.

Decouples presentation of inventories and run summaries from command logic,
so the same data can be rendered as Rich tables, JSON or CSV.

Usage:
    >>> from tablestack.cli.formatters import get_formatter
    >>> formatter = get_formatter("json")
    >>> print(formatter.format_dataframe(df, title="Inventory"))

Available Formats:
    - table: Rich terminal tables (default)
    - json: Machine-readable JSON
    - csv: Spreadsheet-compatible CSV
"""

from __future__ import annotations

import io
import json
import math
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Type

import polars as pl
from rich import box
from rich.console import Console
from rich.table import Table


# ============================================================================
# Abstract Base Class
# ============================================================================

class OutputFormatter(ABC):
    """Base class for output formatters."""

    @abstractmethod
    def format_dataframe(
        self,
        df: pl.DataFrame,
        title: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Format a Polars DataFrame for output."""

    @abstractmethod
    def format_summary(self, data: Dict[str, Any]) -> str:
        """Format a summary dictionary (counts, timings, etc.)."""


# ============================================================================
# Rich Table Formatter
# ============================================================================

class RichTableFormatter(OutputFormatter):
    """
    Rich table formatter for terminal output.

    Table types and stacking status get their own colours; nulls render as
    a dim dash.
    """

    TYPE_STYLES = {
        "site-date": "green",
        "site-all": "cyan",
        "lab-current": "magenta",
        "lab-all": "magenta",
        "other": "white",
    }

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def format_dataframe(
        self,
        df: pl.DataFrame,
        title: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        table = Table(
            title=title or None,
            box=box.ROUNDED,
            show_header=True,
            header_style="bold cyan",
        )

        for col in df.columns:
            if col in ("table", "table_name"):
                table.add_column(col, style="bold")
            elif col in ("files", "selected", "rows", "count"):
                table.add_column(col, style="blue", justify="right")
            elif "publication" in col:
                table.add_column(col, style="cyan")
            else:
                table.add_column(col, justify="left")

        for row in df.iter_rows(named=True):
            values = []
            for col in df.columns:
                value = row[col]
                if value is None or (isinstance(value, float) and not math.isfinite(value)):
                    formatted = "[dim]—[/dim]"
                elif col in ("type", "table_type"):
                    style = self.TYPE_STYLES.get(str(value), "white")
                    formatted = f"[{style}]{value}[/{style}]"
                elif isinstance(value, bool):
                    formatted = "✓" if value else "✗"
                elif isinstance(value, float):
                    formatted = f"{value:.4g}"
                else:
                    formatted = str(value)
                values.append(formatted)
            table.add_row(*values)

        with self.console.capture() as capture:
            self.console.print(table)
        return capture.get()

    def format_summary(self, data: Dict[str, Any]) -> str:
        with self.console.capture() as capture:
            for key, value in data.items():
                if isinstance(value, (list, tuple)):
                    self.console.print(f"[cyan]{key}:[/cyan]")
                    for item in value:
                        self.console.print(f"  • {item}")
                else:
                    self.console.print(f"[cyan]{key}:[/cyan] {value}")
        return capture.get()


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(OutputFormatter):
    """
    JSON formatter for machine-readable output.

    Output Structure:
        {
            "metadata": {...},
            "data": [{...}, {...}, ...]
        }
    """

    def __init__(self, indent: int = 2, ensure_ascii: bool = False):
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def format_dataframe(
        self,
        df: pl.DataFrame,
        title: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        data = [{k: self._serialize_value(v) for k, v in row.items()} for row in df.to_dicts()]
        output = {"metadata": dict(metadata or {}), "data": data}
        if title:
            output["metadata"]["title"] = title
        output["metadata"]["row_count"] = len(data)
        return json.dumps(output, indent=self.indent, ensure_ascii=self.ensure_ascii)

    def format_summary(self, data: Dict[str, Any]) -> str:
        serialized = {k: self._serialize_value(v) for k, v in data.items()}
        return json.dumps(serialized, indent=self.indent, ensure_ascii=self.ensure_ascii)

    def _serialize_value(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return round(value, 10)
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        if isinstance(value, dict):
            return {k: self._serialize_value(v) for k, v in value.items()}
        if isinstance(value, (str, int, bool)):
            return value
        return str(value)


# ============================================================================
# CSV Formatter
# ============================================================================

class CSVFormatter(OutputFormatter):
    """CSV formatter for spreadsheet export (nulls as empty strings)."""

    def __init__(self, null_value: str = ""):
        self.null_value = null_value

    def format_dataframe(
        self,
        df: pl.DataFrame,
        title: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        buffer = io.StringIO()
        df.write_csv(buffer, null_value=self.null_value)
        return buffer.getvalue()

    def format_summary(self, data: Dict[str, Any]) -> str:
        df = pl.DataFrame({
            "key": list(data.keys()),
            "value": [str(v) for v in data.values()],
        })
        buffer = io.StringIO()
        df.write_csv(buffer, null_value=self.null_value)
        return buffer.getvalue()


# ============================================================================
# Formatter Registry and Factory
# ============================================================================

FORMATTERS: Dict[str, Type[OutputFormatter]] = {
    "table": RichTableFormatter,
    "json": JSONFormatter,
    "csv": CSVFormatter,
}

FORMATTER_ALIASES: Dict[str, str] = {
    "rich": "table",
    "terminal": "table",
    "text": "table",
}


def get_formatter(format_name: str) -> OutputFormatter:
    """
    Get formatter instance by name.

    Raises
    ------
    ValueError
        If format name is unknown
    """
    format_name = format_name.strip().lower()
    format_name = FORMATTER_ALIASES.get(format_name, format_name)

    if format_name not in FORMATTERS:
        valid_formats = list(FORMATTERS.keys()) + list(FORMATTER_ALIASES.keys())
        raise ValueError(
            f"Unknown format: '{format_name}'. "
            f"Valid formats: {', '.join(sorted(set(valid_formats)))}"
        )
    return FORMATTERS[format_name]()


def list_formatters() -> List[str]:
    """Available formatter names (canonical names only)."""
    return sorted(FORMATTERS.keys())
