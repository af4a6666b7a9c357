"""
Copy or consolidate the non-stacked artifacts of a download.

Each category is optional. For every category the most recent publication
wins (ties broken on the greater path), see stack_utils.most_recent.
"""

from __future__ import annotations

import logging
import shutil
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl

from .positions import consolidate_sensor_positions
from .selection import latest_per_lab
from .source_files import SourceFile, TableInventory
from .stack_utils import OUTPUT_EXT, atomic_write_csv, ensure_dir, most_recent
from .summary import EventKind, RunSummary

logger = logging.getLogger(__name__)

VARIABLES_NAME = f"variables.{OUTPUT_EXT}"
VALIDATION_NAME = f"validation.{OUTPUT_EXT}"
SENSOR_POSITIONS_NAME = f"sensor_positions.{OUTPUT_EXT}"


@dataclass
class SidecarResult:
    variables_path: Optional[Path] = None
    validation_path: Optional[Path] = None
    sensor_positions: Optional[pl.DataFrame] = None
    lab_files: int = 0


def _pick(sources: List[SourceFile]) -> Optional[Path]:
    return most_recent(s.path for s in sources)


def copy_lab_tables(inv: TableInventory, out_dir: Path, summary: RunSummary) -> int:
    copied = 0
    for name, entry in inv.lab_tables.items():
        for src in latest_per_lab(entry):
            shutil.copy2(src.path, out_dir / src.name)
            copied += 1
            summary.add(
                EventKind.SIDECAR_COPIED,
                f"Copied the most recent publication of {src.name} to /stackedFiles",
                table=name,
                path=out_dir / src.name,
            )
            logger.info(f"Copied lab table {src.name}")
    return copied


def copy_renamed(sources: List[SourceFile], dest: Path, label: str, summary: RunSummary) -> Optional[Path]:
    """Copy the most recent of ``sources`` to ``dest``; returns the chosen source."""
    chosen = _pick(sources)
    if chosen is None:
        return None
    shutil.copy2(chosen, dest)
    summary.add(
        EventKind.SIDECAR_COPIED,
        f"Copied the most recent publication of {label} file to /stackedFiles and renamed as {dest.name}",
        path=dest,
    )
    logger.info(f"Copied {chosen.name} -> {dest.name}")
    return chosen


def write_sensor_positions(sources: List[SourceFile], out_dir: Path, summary: RunSummary) -> Optional[pl.DataFrame]:
    """
    Consolidate the newest sensor-position file of every site.

    Returns:
        The consolidated table, or None when the download has none
    """
    if not sources:
        return None
    by_site: Dict[str, List[SourceFile]] = defaultdict(list)
    for s in sources:
        by_site[s.site or ""].append(s)
    latest = [max(by_site[site], key=lambda s: s.sort_key) for site in sorted(by_site)]

    positions = consolidate_sensor_positions(latest)
    dest = out_dir / SENSOR_POSITIONS_NAME
    atomic_write_csv(positions, dest)
    summary.add(
        EventKind.SIDECAR_COPIED,
        f"Copied the most recent publication of sensor position file to /stackedFiles and renamed as {dest.name}",
        path=dest,
        rows=positions.height,
    )
    logger.info(f"Wrote {dest.name} covering {len(latest)} site(s)")
    return positions


def copy_sidecars(inv: TableInventory, out_dir: Path, summary: RunSummary) -> SidecarResult:
    """
    Handle lab tables, variables, validation and sensor positions.

    Args:
        inv: Classified inventory
        out_dir: The ``stackedFiles`` directory
        summary: Run summary receiving one event per written artifact

    Returns:
        SidecarResult; ``variables_path`` is the source file the variable
        dictionary should be built from
    """
    ensure_dir(out_dir)
    res = SidecarResult()
    res.lab_files = copy_lab_tables(inv, out_dir, summary)
    res.variables_path = copy_renamed(inv.variables, out_dir / VARIABLES_NAME, "variable definition", summary)
    res.validation_path = copy_renamed(inv.validation, out_dir / VALIDATION_NAME, "validation", summary)
    res.sensor_positions = write_sensor_positions(inv.sensor_positions, out_dir, summary)
    return res
