"""
Positional metadata for instrument (IS) tables.

Instrument file names carry a horizontal and vertical sensor index
(``...001.000.060.030.RH_30min...``). Rows read from such a file are
tagged with the file's domain, site, indices and publication token before
they are unioned with rows from other files, because position meaning is
local to the file that produced the rows.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

import polars as pl

from .source_files import FileKind, SourceFile
from .stack_utils import read_raw_table

logger = logging.getLogger(__name__)

POSITION_COLUMNS = ["domainID", "siteID", "horizontalPosition", "verticalPosition", "publicationDate"]
JOIN_KEYS = ["siteID", "horizontalPosition", "verticalPosition"]
HOR_VER_COL = "HOR.VER"
POSITION_START_COL = "positionStartDateTime"


def make_position_columns(df: pl.DataFrame, source: SourceFile) -> pl.DataFrame:
    """
    Prepend positional identifier columns derived from the file name.

    - Sensor-position files get a ``siteID`` column.
    - Instrument files get domainID, siteID, horizontalPosition,
      verticalPosition and publicationDate.
    - Files that already carry ``siteID`` (observational tables) or that have
      no sensor indices are returned unchanged.

    Args:
        df: Rows read from ``source``
        source: Parsed file identity

    Returns:
        DataFrame with position columns first
    """
    if df.width == 0 or "siteID" in df.columns:
        return df

    if source.kind is FileKind.SENSOR_POSITIONS:
        return df.select([pl.lit(source.site, dtype=pl.String).alias("siteID"), pl.all()])

    if not source.has_positions:
        return df

    values = [
        source.domain,
        source.site,
        source.horizontal_position,
        source.vertical_position,
        source.publication,
    ]
    lits = [pl.lit(v, dtype=pl.String).alias(c) for c, v in zip(POSITION_COLUMNS, values)]
    return df.select(lits + [pl.all()])


def load_sensor_positions(source: SourceFile) -> pl.DataFrame:
    """Read one sensor-position file and tag it with its site."""
    return make_position_columns(read_raw_table(source.path), source)


def consolidate_sensor_positions(sources: Iterable[SourceFile]) -> pl.DataFrame:
    """
    Union per-site sensor-position files into one table.

    Callers pass one file per site (the most recent); see sidecars.py.
    """
    frames: List[pl.DataFrame] = [f for f in (load_sensor_positions(s) for s in sources) if f.width]
    if not frames:
        return pl.DataFrame()
    return pl.concat(frames, how="diagonal_relaxed")


def _position_keys(positions: pl.DataFrame) -> Optional[pl.DataFrame]:
    if HOR_VER_COL not in positions.columns or "siteID" not in positions.columns:
        return None
    hv = pl.col(HOR_VER_COL).cast(pl.String).str.split_exact(".", 1)
    keyed = positions.with_columns(
        hv.struct.field("field_0").alias("horizontalPosition"),
        hv.struct.field("field_1").alias("verticalPosition"),
    )
    # one row per location: the most recent placement wins
    if POSITION_START_COL in keyed.columns:
        keyed = keyed.sort(POSITION_START_COL, nulls_last=False)
    return keyed.unique(subset=JOIN_KEYS, keep="last", maintain_order=True)


def join_sensor_positions(df: pl.DataFrame, positions: Optional[pl.DataFrame]) -> pl.DataFrame:
    """
    Left-join sensor placement columns onto tagged rows.

    Join keys are (siteID, horizontalPosition, verticalPosition); the
    position table's ``HOR.VER`` column supplies the two indices. Columns the
    rows already have are not overwritten, and the row count never changes.

    Args:
        df: Rows already passed through make_position_columns
        positions: Consolidated sensor-position table, or None

    Returns:
        DataFrame with placement columns appended where a match exists
    """
    if positions is None or positions.height == 0:
        return df
    if not all(k in df.columns for k in JOIN_KEYS):
        return df

    keyed = _position_keys(positions)
    if keyed is None:
        logger.debug("Sensor position table lacks siteID or HOR.VER; skipping join")
        return df

    extra = [c for c in keyed.columns if c not in df.columns and c != HOR_VER_COL]
    if not extra:
        return df
    keyed = keyed.select(JOIN_KEYS + extra).with_columns([pl.col(k).cast(pl.String) for k in JOIN_KEYS])
    left = df.with_columns([pl.col(k).cast(pl.String) for k in JOIN_KEYS])
    return left.join(keyed, on=JOIN_KEYS, how="left", maintain_order="left")
