"""
Table-type dictionary: which combination policy applies to each table name.

The dictionary is static reference data maintained outside this package and
shipped as YAML. Two layouts are accepted:

    table_types:
      site-date: [brd_countdata, RH_30min]
      site-all: [brd_perpoint]

or a flat record list mirroring the portal's own reference table:

    table_types:
      - {tableName: brd_countdata, tableType: site-date}
      - {tableName: brd_perpoint, tableType: site-all}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class TableType(Enum):
    """How files of one table are combined."""
    SITE_DATE = "site-date"
    SITE_ALL = "site-all"
    LAB_CURRENT = "lab-current"
    LAB_ALL = "lab-all"
    OTHER = "other"

    @property
    def is_lab(self) -> bool:
        return self in (TableType.LAB_CURRENT, TableType.LAB_ALL)


def strip_pub_suffix(table_name: str) -> str:
    """Drop the ``_pub`` suffix some releases append to table names."""
    return table_name.replace("_pub", "")


@dataclass(frozen=True)
class TableTypeDictionary:
    """
    Immutable lookup from table name to TableType.

    Built once per run and passed explicitly to the classifier and to every
    worker; nothing mutates it after construction.

    Attributes:
        entries: Mapping {tableName -> TableType}
        source: File the dictionary was loaded from (None when built in code)
    """
    entries: Dict[str, TableType] = field(default_factory=dict)
    source: Optional[Path] = None

    def __contains__(self, table_name: str) -> bool:
        return strip_pub_suffix(table_name) in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, table_name: str) -> Optional[TableType]:
        return self.entries.get(strip_pub_suffix(table_name))

    @classmethod
    def from_records(cls, records: Iterable[Tuple[str, str]], source: Optional[Path] = None) -> "TableTypeDictionary":
        """
        Build a dictionary from (tableName, tableType) pairs.

        Raises:
            ConfigurationError: on an unknown type tag, or a table name
                listed under two different types
        """
        entries: Dict[str, TableType] = {}
        for name, tag in records:
            try:
                ttype = TableType(str(tag).strip())
            except ValueError:
                raise ConfigurationError(f"unknown table type '{tag}' for table '{name}'") from None
            name = strip_pub_suffix(str(name).strip())
            prev = entries.get(name)
            if prev is not None and prev is not ttype:
                raise ConfigurationError(
                    f"table '{name}' is listed as both {prev.value} and {ttype.value}"
                )
            entries[name] = ttype
        return cls(entries=entries, source=source)


def load_table_types_yaml(path: Path) -> TableTypeDictionary:
    """
    Load the table-type dictionary from YAML.

    Args:
        path: Path to table types YAML file

    Returns:
        TableTypeDictionary

    Raises:
        ConfigurationError: if the file is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"table types file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        y = yaml.safe_load(f) or {}
    root = y.get("table_types", y) if isinstance(y, dict) else y

    records: List[Tuple[str, str]] = []
    if isinstance(root, dict):
        for tag, names in root.items():
            for name in names or []:
                records.append((name, tag))
    elif isinstance(root, list):
        for rec in root:
            if not isinstance(rec, dict) or "tableName" not in rec or "tableType" not in rec:
                raise ConfigurationError(f"malformed table type record in {path}: {rec!r}")
            records.append((rec["tableName"], rec["tableType"]))
    else:
        raise ConfigurationError(f"unrecognised table types layout in {path}")

    ttypes = TableTypeDictionary.from_records(records, source=path)
    logger.debug(f"Loaded {len(ttypes)} table types from {path}")
    return ttypes


_TTYPES_CACHE: TableTypeDictionary | None = None
_TTYPES_YAML_PATH: Path | None = None


def get_table_types_cached(path: Path) -> TableTypeDictionary:
    """
    Get the table-type dictionary with caching.

    Note:
        Cache is per process and keyed on the last path loaded. Workers
        receive classified files and never consult it.
    """
    global _TTYPES_CACHE, _TTYPES_YAML_PATH
    path = Path(path)
    if _TTYPES_CACHE is None or _TTYPES_YAML_PATH != path:
        _TTYPES_CACHE = load_table_types_yaml(path)
        _TTYPES_YAML_PATH = path
    return _TTYPES_CACHE
