"""
Stacking Layer - per-site files to one table per table name
===========================================================

This package merges a folder of per-site, per-date portal CSV files into one
stacked CSV per table, plus the reference artifacts (variables, validation,
sensor positions, external lab tables) that travel with them.

Key Functions
-------------
- run_stacking_pipeline: Main pipeline orchestrator
- discover_data_files: Find all portal CSV files in a directory tree
- build_inventory: Classify every file by table and table type
- select_files: Per-table-type file selection
- coerce_frame: Cast string columns to their declared types

Usage
-----
Basic stacking from Python:
    >>> from pathlib import Path
    >>> from tablestack.models.parameters import StackingParameters
    >>> from tablestack.core import run_stacking_pipeline
    >>>
    >>> params = StackingParameters(
    ...     folder=Path("data/NEON_count-landbird"),
    ...     table_types_yaml=Path("reference/table_types.yml"),
    ...     workers=4,
    ... )
    >>> summary = run_stacking_pipeline(params)

Command-line usage:
    $ tablestack stack data/NEON_count-landbird --workers 4

Architecture
------------
Files -> Classifier -> Selection -> [read -> coerce -> tag positions] -> outer union -> stackedFiles/<table>.csv
             |                            |
      table_types.yml            variables file (newest)

Features
--------
- Parallel per-file work with ProcessPoolExecutor, sized from input volume
- Atomic writes (temp file + rename)
- Outer-union merge tolerant of schema drift between publications
- Non-fatal coercion failures, reported in the run summary
"""

from .errors import ClassificationError, ConfigurationError, MergeError, StackingError
from .schema_coercer import CoercionWarning, coerce_frame
from .selection import describe_inventory, select_files
from .source_files import (
    SourceFile,
    TableInventory,
    build_inventory,
    classify_file,
    discover_data_files,
    parse_source_file,
)
from .stack_tables import decide_workers, load_file_task, merge_frames, run_stacking_pipeline
from .summary import EventKind, RunEvent, RunSummary
from .table_types import TableType, TableTypeDictionary, get_table_types_cached, load_table_types_yaml
from .variables import VariableDictionary, load_variables

__all__ = [
    "run_stacking_pipeline",
    "decide_workers",
    "load_file_task",
    "merge_frames",
    "discover_data_files",
    "parse_source_file",
    "classify_file",
    "build_inventory",
    "select_files",
    "describe_inventory",
    "coerce_frame",
    "load_variables",
    "load_table_types_yaml",
    "get_table_types_cached",
    "SourceFile",
    "TableInventory",
    "TableType",
    "TableTypeDictionary",
    "VariableDictionary",
    "CoercionWarning",
    "RunSummary",
    "RunEvent",
    "EventKind",
    "StackingError",
    "ConfigurationError",
    "ClassificationError",
    "MergeError",
]
