"""
Schema coercion of raw string columns against the variable dictionary.

Usage:
    from tablestack.core.schema_coercer import coerce_frame

    df, warnings = coerce_frame(raw_df, variables.for_table("brd_countdata"),
                                table="brd_countdata", source_file=path.name)
    for w in warnings:
        print(w.format())

Rules:
- Columns without a dictionary entry pass through unchanged.
- A value that fails its declared cast becomes null; the failure is counted
  per column and reported as a CoercionWarning, never raised.
- Coercing an already-coerced frame changes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import polars as pl

DATETIME_DTYPE = pl.Datetime("us", "UTC")

DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%.fZ",
    "%Y-%m-%dT%H:%MZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
)


def target_dtype(declared: str) -> pl.DataType:
    """
    Polars dtype for a canonical declared type.

    Example:
        >>> target_dtype("real")
        Float64
    """
    if declared == "real":
        return pl.Float64
    if declared == "integer":
        return pl.Int64
    if declared == "dateTime":
        return DATETIME_DTYPE
    if declared == "date":
        return pl.Date
    return pl.String


@dataclass(frozen=True)
class CoercionWarning:
    """Values of one column in one file that failed their declared cast."""
    table: str
    column: str
    declared_type: str
    count: int
    source_file: Optional[str] = None

    def format(self) -> str:
        where = f" in {self.source_file}" if self.source_file else ""
        return (
            f"[warn] {self.table}: column '{self.column}' - {self.count} value(s) "
            f"could not be read as {self.declared_type}{where}"
        )


def _cast_expr(col: str, declared: str, dtype: pl.DataType) -> pl.Expr:
    """Cast expression for one column; failures become null."""
    if dtype != pl.String:
        return pl.col(col).cast(target_dtype(declared), strict=False)

    s = pl.col(col).str.strip_chars()
    if declared == "real":
        return s.cast(pl.Float64, strict=False)
    if declared == "integer":
        return s.cast(pl.Int64, strict=False)
    if declared == "date":
        return s.str.strptime(pl.Date, "%Y-%m-%d", strict=False)
    if declared == "dateTime":
        parsed = [s.str.strptime(pl.Datetime("us"), fmt, strict=False) for fmt in DATETIME_FORMATS]
        parsed.append(s.str.strptime(pl.Date, "%Y-%m-%d", strict=False).cast(pl.Datetime("us")))
        return pl.coalesce(parsed).dt.replace_time_zone("UTC")
    return pl.col(col)


def coerce_frame(
    df: pl.DataFrame,
    spec: Dict[str, str],
    table: str = "",
    source_file: Optional[str] = None,
) -> Tuple[pl.DataFrame, List[CoercionWarning]]:
    """
    Cast DataFrame columns to their declared types.

    Args:
        df: Frame as read from disk (typically all ``pl.String``)
        spec: {fieldName: canonical type} for this table
        table: Table name, for warning records
        source_file: File name, for warning records

    Returns:
        (coerced frame, list of CoercionWarning for columns with failures)

    Example:
        >>> df = pl.DataFrame({"count": ["1", "x"], "note": ["a", "b"]})
        >>> out, warns = coerce_frame(df, {"count": "integer"}, table="t")
        >>> out["count"].to_list(), warns[0].count
        ([1, None], 1)
    """
    casts: Dict[str, pl.Expr] = {}
    for col in df.columns:
        declared = spec.get(col)
        if declared is None:
            continue
        dtype = df.schema[col]
        if dtype == target_dtype(declared):
            continue
        casts[col] = _cast_expr(col, declared, dtype)

    if not casts:
        return df, []

    checks = [
        (
            pl.col(col).is_not_null()
            & (pl.col(col).cast(pl.String).str.strip_chars() != "")
            & expr.is_null()
        ).sum().alias(col)
        for col, expr in casts.items()
    ]
    failed = df.select(checks).row(0, named=True)

    df = df.with_columns([expr.alias(col) for col, expr in casts.items()])

    warnings = [
        CoercionWarning(table=table, column=col, declared_type=spec[col], count=int(n), source_file=source_file)
        for col, n in failed.items()
        if n
    ]
    return df, warnings
