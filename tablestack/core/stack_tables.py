from __future__ import annotations

import logging
import multiprocessing
import os
import shutil
import time
from concurrent.futures import Future, ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

import polars as pl

from .errors import ConfigurationError, MergeError, StackingError
from .positions import join_sensor_positions, make_position_columns
from .schema_coercer import CoercionWarning, coerce_frame
from .selection import select_files
from .sidecars import copy_sidecars
from .source_files import SourceFile, build_inventory, discover_data_files, parse_source_file
from .stack_utils import OUTPUT_EXT, STACKED_DIRNAME, atomic_write_csv, ensure_dir, read_raw_table
from .summary import EventKind, RunSummary
from .table_types import get_table_types_cached
from .variables import VariableDictionary, load_variables

if TYPE_CHECKING:
    from tablestack.models.parameters import StackingParameters

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


# ------------------------------- Worker ----------------------------------

@dataclass
class FileResult:
    """Typed, position-tagged rows of one source file."""
    table: str
    source_file: str
    frame: pl.DataFrame
    warnings: List[CoercionWarning] = field(default_factory=list)


def load_file_task(
    source: SourceFile,
    spec: Dict[str, str],
    positions: Optional[pl.DataFrame] = None,
) -> FileResult:
    """
    Read, coerce and position-tag one file.

    This is the unit of work dispatched to the worker pool. Arguments are
    plain picklable values; nothing here touches shared state.

    Args:
        source: Parsed file identity
        spec: {fieldName: type} for the file's table
        positions: Consolidated sensor-position table to join, or None

    Returns:
        FileResult with the typed frame and any coercion warnings

    Processing steps:
        1. Read every column as string
        2. Cast declared fields (failures -> null, counted)
        3. Prepend domain/site/position/publication columns
        4. Optionally join sensor placement columns
    """
    df = read_raw_table(source.path)
    df, warnings = coerce_frame(df, spec, table=source.table_name, source_file=source.name)
    df = make_position_columns(df, source)
    df = join_sensor_positions(df, positions)
    return FileResult(table=source.table_name, source_file=source.name, frame=df, warnings=warnings)


# ------------------------------- Merge ----------------------------------

def merge_frames(table: str, frames: List[pl.DataFrame]) -> pl.DataFrame:
    """
    Outer-union row concatenation.

    The output schema is the union of all input schemas in first-seen
    order; columns absent from a frame are null for that frame's rows.
    Columns whose types disagree across frames are widened to a common
    supertype.

    Raises:
        MergeError: if there is nothing to merge or the frames cannot be
            reconciled
    """
    if not frames:
        raise MergeError(table, "no files selected")
    try:
        return pl.concat(frames, how="diagonal_relaxed")
    except pl.exceptions.PolarsError as e:
        raise MergeError(table, str(e)) from e


def _collect(table: str, source: SourceFile, fut: Future) -> FileResult:
    try:
        return fut.result()
    except StackingError:
        raise
    except Exception as e:
        raise MergeError(table, f"{source.name}: {e}") from e


def _finish_table(
    table: str,
    results: List[FileResult],
    out_dir: Path,
    summary: RunSummary,
) -> Optional[Path]:
    for r in results:
        summary.coercion_warnings.extend(r.warnings)

    # zero-byte inputs read as width-0 frames and contribute no rows
    frames = [r.frame for r in results if r.frame.width]
    if not frames:
        logger.warning(f"{table}: all {len(results)} selected file(s) are empty; nothing written")
        summary.add(EventKind.TABLE_EMPTY, f"Skipped {table}: every selected file is empty", table=table)
        return None

    frame = merge_frames(table, frames)
    expected = sum(f.height for f in frames)
    out_file = out_dir / f"{table}.{OUTPUT_EXT}"
    atomic_write_csv(frame, out_file)

    summary.add(
        EventKind.TABLE_STACKED,
        f"Stacked {table}: {frame.height} rows from {len(results)} file(s)",
        table=table,
        path=out_file,
        rows=frame.height,
        expected_rows=expected,
    )
    if frame.height != expected:
        logger.warning(f"{table}: expected {expected} rows, stacked table has {frame.height}")
    return out_file


# ------------------------------- Pool sizing ----------------------------------

def input_volume_bytes(folder: Path) -> int:
    """
    Total size of candidate input files under ``folder``.

    Counts files whose name contains ``NEON``, skipping zip archives and
    anything already under ``stackedFiles``.
    """
    total = 0
    for p in Path(folder).rglob("*NEON*"):
        if not p.is_file() or p.suffix.lower() == ".zip":
            continue
        if STACKED_DIRNAME in p.relative_to(folder).parts:
            continue
        total += p.stat().st_size
    return total


def check_worker_count(requested: int, cores: Optional[int] = None) -> int:
    """
    Fail before any work when more workers are requested than cores exist.

    Returns:
        The machine's core count
    """
    cores = cores or os.cpu_count() or 1
    if requested > cores:
        raise ConfigurationError(
            f"The number of cores selected exceeds the available cores on your machine. "
            f"The maximum number of cores allowed is {cores}, not {requested}"
        )
    return cores


def decide_workers(
    requested: int,
    force_parallel: bool,
    volume_bytes: int,
    threshold_bytes: int,
    cores: int,
) -> Tuple[int, str]:
    """
    Choose the pool size for a run.

    Args:
        requested: Caller-requested worker count
        force_parallel: Use ``requested`` regardless of volume
        volume_bytes: Output of input_volume_bytes
        threshold_bytes: Volume at which all cores are used
        cores: Machine core count

    Returns:
        (worker count, human-readable notice)

    Example:
        >>> decide_workers(1, False, 10_000_000, 25_000, 8)
        (8, 'Parallelizing stacking operation across 8 cores.')
    """
    if force_parallel:
        return requested, f"Parallel stacking forced across {requested} worker(s)."
    if volume_bytes >= threshold_bytes:
        return cores, f"Parallelizing stacking operation across {cores} cores."
    return requested, (
        "File requirements do not meet the threshold for automatic parallelization, "
        "please see force_parallel to run stacking operation across multiple cores. "
        f"Running on {requested} worker(s)."
    )


# ------------------------------- Orchestration ----------------------------------

def _stack_sequential(
    plan: Dict[str, List[SourceFile]],
    variables: VariableDictionary,
    positions: Optional[pl.DataFrame],
    out_dir: Path,
    summary: RunSummary,
    progress_callback: Optional[ProgressCallback],
) -> None:
    total = len(plan)
    for i, (table, files) in enumerate(plan.items(), start=1):
        logger.info(f"Stacking table {table}")
        spec = variables.for_table(table)
        results = []
        for src in files:
            try:
                results.append(load_file_task(src, spec, positions))
            except StackingError:
                raise
            except Exception as e:
                raise MergeError(table, f"{src.name}: {e}") from e
        _finish_table(table, results, out_dir, summary)
        if progress_callback:
            progress_callback(i, total, table)


def _stack_parallel(
    plan: Dict[str, List[SourceFile]],
    variables: VariableDictionary,
    positions: Optional[pl.DataFrame],
    out_dir: Path,
    summary: RunSummary,
    workers: int,
    progress_callback: Optional[ProgressCallback],
) -> None:
    total = len(plan)
    # spawn, not fork: polars thread pools are fork-unsafe
    ex = ProcessPoolExecutor(max_workers=workers, mp_context=multiprocessing.get_context("spawn"))
    try:
        # every file of every table goes in up front; tables then fold in order
        submitted: Dict[str, List[Tuple[SourceFile, Future]]] = {}
        for table, files in plan.items():
            spec = variables.for_table(table)
            submitted[table] = [(src, ex.submit(load_file_task, src, spec, positions)) for src in files]

        for i, (table, futs) in enumerate(submitted.items(), start=1):
            logger.info(f"Stacking table {table}")
            results = [_collect(table, src, fut) for src, fut in futs]
            _finish_table(table, results, out_dir, summary)
            if progress_callback:
                progress_callback(i, total, table)
    finally:
        ex.shutdown(wait=True, cancel_futures=True)


def copy_single_file(path: Path, out_dir: Path, summary: RunSummary) -> Path:
    ensure_dir(out_dir)
    dest = out_dir / path.name
    shutil.copy2(path, dest)
    summary.add(EventKind.TABLE_COPIED, f"Copied {path.name} to /{STACKED_DIRNAME}", path=dest)
    return dest


def run_stacking_pipeline(
    params: StackingParameters,
    progress_callback: Optional[ProgressCallback] = None,
) -> RunSummary:
    """
    Stack a folder of data files into one file per table.

    Args:
        params: Validated StackingParameters instance
        progress_callback: Optional callback(current, total, table) called
            after each table is written

    Returns:
        RunSummary describing every artifact written

    Raises:
        ConfigurationError: more workers than cores, or no input files
        ClassificationError: a data file's table is not in the dictionary
        MergeError: a table could not be stacked

    Example:
        >>> params = StackingParameters(folder=Path("NEON_count-landbird"), workers=4)
        >>> summary = run_stacking_pipeline(params)
        >>> summary.tables_stacked
        7
    """
    start = time.perf_counter()
    folder = Path(params.folder)
    out_dir = params.output_dir

    cores = check_worker_count(params.workers)

    paths = discover_data_files(folder)
    if not paths:
        raise ConfigurationError(f"No data files are present in specified file path: {folder}")
    logger.info(f"Discovered {len(paths)} data files under {folder}")

    summary = RunSummary(folder=folder, output_dir=out_dir, workers=params.workers)

    if len(paths) == 1:
        copy_single_file(paths[0], out_dir, summary)
        summary.elapsed_s = time.perf_counter() - start
        logger.info(f"Single data file copied to {out_dir}")
        return summary

    table_types = get_table_types_cached(params.table_types_yaml)
    inv = build_inventory([parse_source_file(p) for p in paths], table_types)

    sidecars = copy_sidecars(inv, out_dir, summary)
    variables = load_variables(sidecars.variables_path)
    positions = sidecars.sensor_positions if params.join_positions else None

    workers, notice = decide_workers(
        params.workers,
        params.force_parallel,
        input_volume_bytes(folder),
        params.parallel_threshold_bytes,
        cores,
    )
    summary.workers = workers
    summary.add(EventKind.POOL_SIZED, notice)
    logger.info(notice)

    plan = {name: select_files(entry) for name, entry in inv.ordinary_tables.items()}
    plan = {name: files for name, files in plan.items() if files}

    os.environ["POLARS_MAX_THREADS"] = str(params.polars_threads)

    if workers <= 1:
        _stack_sequential(plan, variables, positions, out_dir, summary, progress_callback)
    else:
        _stack_parallel(plan, variables, positions, out_dir, summary, workers, progress_callback)

    summary.elapsed_s = time.perf_counter() - start
    logger.info(f"Finished: All of the data are stacked into {summary.tables_stacked} tables!")
    for msg in summary.messages():
        logger.info(msg)
    if summary.coercion_warnings:
        logger.warning(
            f"{summary.coercion_failures} value(s) in {len(summary.coercion_warnings)} column(s) "
            "could not be read as their declared type and were left empty"
        )
    logger.info(f"Stacking took {summary.elapsed_s:.2f} s")
    return summary
