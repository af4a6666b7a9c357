"""
Per-table-type file selection.

Each TableType has exactly one selection strategy. The mapping is checked at
import time so adding a TableType member without a strategy fails loudly.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, List

import polars as pl

from .source_files import SourceFile, TableEntry, TableInventory
from .table_types import TableType


def _all_files(entry: TableEntry) -> List[SourceFile]:
    """site-date: each (site, date) file is a distinct observation."""
    return sorted(entry.files, key=lambda s: str(s.path))


def _latest_by(entry: TableEntry, key: Callable[[SourceFile], str]) -> List[SourceFile]:
    groups: Dict[str, List[SourceFile]] = defaultdict(list)
    for src in entry.files:
        groups[key(src)].append(src)
    return [max(groups[k], key=lambda s: s.sort_key) for k in sorted(groups)]


def _latest_per_site(entry: TableEntry) -> List[SourceFile]:
    """site-all: files are cumulative snapshots; keep the newest per site."""
    return _latest_by(entry, lambda s: s.site or "")


def _excluded(entry: TableEntry) -> List[SourceFile]:
    """Lab tables are copied, not stacked."""
    return []


SELECTION_STRATEGIES: Dict[TableType, Callable[[TableEntry], List[SourceFile]]] = {
    TableType.SITE_DATE: _all_files,
    TableType.SITE_ALL: _latest_per_site,
    TableType.LAB_CURRENT: _excluded,
    TableType.LAB_ALL: _excluded,
    TableType.OTHER: _all_files,
}

_missing = set(TableType) - set(SELECTION_STRATEGIES)
if _missing:
    raise RuntimeError(f"no selection strategy for table types: {sorted(t.value for t in _missing)}")


def select_files(entry: TableEntry) -> List[SourceFile]:
    """
    Files of one table that take part in stacking.

    Example:
        >>> [s.name for s in select_files(site_all_entry)]
        ['NEON.D01.HARV.DP1.10003.001.brd_perpoint.basic.20200201T000000Z.csv']
    """
    return SELECTION_STRATEGIES[entry.table_type](entry)


def latest_per_lab(entry: TableEntry) -> List[SourceFile]:
    """Most recent publication of a lab table for each lab identifier."""
    return _latest_by(entry, lambda s: s.site or "")


def describe_inventory(inv: TableInventory) -> pl.DataFrame:
    """
    One row per table: type, files found, files selected, newest publication.

    Lab tables report the files that would be copied rather than stacked.
    """
    rows = []
    for name in sorted(inv.tables):
        entry = inv.tables[name]
        chosen = latest_per_lab(entry) if entry.table_type.is_lab else select_files(entry)
        pubs = [s.publication for s in entry.files if s.publication]
        rows.append({
            "table": name,
            "type": entry.table_type.value,
            "files": len(entry.files),
            "selected": len(chosen),
            "sites": len({s.site for s in entry.files if s.site}),
            "latest_publication": max(pubs) if pubs else None,
        })
    schema = {
        "table": pl.String,
        "type": pl.String,
        "files": pl.Int64,
        "selected": pl.Int64,
        "sites": pl.Int64,
        "latest_publication": pl.String,
    }
    return pl.DataFrame(rows, schema=schema)
