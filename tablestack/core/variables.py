"""
Variable dictionary: declared field types per table.

Built once from the most recently published ``variables`` file and shared
read-only with every worker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import polars as pl

from .errors import ConfigurationError
from .stack_utils import read_raw_table
from .table_types import strip_pub_suffix

logger = logging.getLogger(__name__)

# Declared dataType -> canonical type understood by the coercer.
DATA_TYPE_ALIASES: Dict[str, str] = {
    "real": "real",
    "float": "real",
    "numeric": "real",
    "integer": "integer",
    "int": "integer",
    "signed integer": "integer",
    "unsigned integer": "integer",
    "datetime": "dateTime",
    "date": "date",
    "string": "string",
    "uri": "string",
    "str": "string",
}


def normalize_data_type(raw: Optional[str]) -> str:
    """
    Map a declared dataType to its canonical name.

    Unrecognised or empty values fall back to ``string`` so they pass
    through the coercer untouched.

    Example:
        >>> normalize_data_type("unsigned integer")
        'integer'
        >>> normalize_data_type("dateTime")
        'dateTime'
    """
    if raw is None:
        return "string"
    return DATA_TYPE_ALIASES.get(str(raw).strip().lower(), "string")


@dataclass(frozen=True)
class VariableDictionary:
    """
    Immutable mapping (table, field) -> canonical declared type.

    Attributes:
        fields: {(tableName, fieldName): type}
        source: Variables file it was built from
    """
    fields: Dict[Tuple[str, str], str] = field(default_factory=dict)
    source: Optional[Path] = None

    def __len__(self) -> int:
        return len(self.fields)

    def for_table(self, table_name: str) -> Dict[str, str]:
        """Return {fieldName: type} for one table."""
        table_name = strip_pub_suffix(table_name)
        return {f: t for (tbl, f), t in self.fields.items() if tbl == table_name}

    @classmethod
    def from_frame(cls, df: pl.DataFrame, source: Optional[Path] = None) -> "VariableDictionary":
        missing = {"table", "fieldName", "dataType"} - set(df.columns)
        if missing:
            raise ConfigurationError(f"variables file {source} lacks columns: {sorted(missing)}")
        fields: Dict[Tuple[str, str], str] = {}
        for row in df.select(["table", "fieldName", "dataType"]).iter_rows():
            tbl, fname, dtype = row
            if not tbl or not fname:
                continue
            fields[(strip_pub_suffix(tbl), fname)] = normalize_data_type(dtype)
        return cls(fields=fields, source=source)


def load_variables(path: Optional[Path]) -> VariableDictionary:
    """
    Build the variable dictionary from a variables file.

    Args:
        path: Most recent variables file, or None when the download has none

    Returns:
        VariableDictionary (empty when path is None)
    """
    if path is None:
        logger.info("No variables file found; all columns will be kept as strings")
        return VariableDictionary()
    vd = VariableDictionary.from_frame(read_raw_table(path), source=path)
    logger.debug(f"Loaded {len(vd)} variable definitions from {path.name}")
    return vd
