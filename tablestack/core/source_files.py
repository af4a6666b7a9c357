"""
File discovery and classification.

Portal file names carry their own identity, e.g.

    NEON.D01.HARV.DP1.10003.001.brd_countdata.2015-06.basic.20171106T134640Z.csv
    NEON.D01.HARV.DP1.00098.001.000.060.030.RH_30min.2017-03.basic.20170720T182547Z.csv
    NEON.D01.HARV.DP1.00098.001.sensor_positions.20170720T182547Z.csv
    NEON.BGC.DP1.10086.001.sls_soilChemistry.20200210T204123Z.csv   (external lab)

Names are parsed exactly once into a SourceFile; everything downstream works
on the parsed record.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import ClassificationError
from .stack_utils import STACKED_DIRNAME, extract_publication_token
from .table_types import TableType, TableTypeDictionary, strip_pub_suffix

logger = logging.getLogger(__name__)

PRODUCT_LEVEL_RE = re.compile(r"^DP\d$")
INDEX_RE = re.compile(r"^\d{3}$")


class FileKind(Enum):
    DATA = "data"
    VARIABLES = "variables"
    VALIDATION = "validation"
    SENSOR_POSITIONS = "sensor_positions"
    README = "readme"


_SIDECAR_TOKENS = {k.value: k for k in FileKind if k is not FileKind.DATA}


@dataclass(frozen=True)
class SourceFile:
    """
    One discovered input file, parsed from its name.

    Attributes:
        path: Full path (identity)
        table_name: Table token with any ``_pub`` suffix removed; for sidecar
            files this is the sidecar token (``variables`` etc.)
        kind: Data table or one of the sidecar categories
        site: Site code, or the lab identifier for external-lab files
        domain: Domain code (None for lab files)
        publication: ``YYYYMMDDTHHMMSSZ`` token, None if absent
        horizontal_position / vertical_position: Sensor indices for
            instrument files, None otherwise
    """
    path: Path
    table_name: str
    kind: FileKind = FileKind.DATA
    site: Optional[str] = None
    domain: Optional[str] = None
    publication: Optional[str] = None
    horizontal_position: Optional[str] = None
    vertical_position: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def has_positions(self) -> bool:
        return self.horizontal_position is not None and self.vertical_position is not None

    @property
    def sort_key(self) -> Tuple[str, str]:
        """Recency ordering: publication token, then full path."""
        return (self.publication or "", str(self.path))


def parse_source_file(path: Path) -> SourceFile:
    """
    Parse a portal file name into a SourceFile.

    Args:
        path: Path to the file

    Returns:
        SourceFile with identity fields filled from the name

    Raises:
        ClassificationError: if no data product code or table token can be found

    Example:
        >>> sf = parse_source_file(Path("NEON.D01.HARV.DP1.00098.001.000.060.030.RH_30min.2017-03.basic.20170720T182547Z.csv"))
        >>> sf.table_name, sf.site, sf.horizontal_position, sf.vertical_position
        ('RH_30min', 'HARV', '000', '060')
    """
    path = Path(path)
    parts = path.name.split(".")
    if len(parts) > 1:
        parts = parts[:-1]  # extension

    lvl = next((i for i, p in enumerate(parts) if PRODUCT_LEVEL_RE.match(p)), None)
    if lvl is None or lvl < 2:
        raise ClassificationError(path.name)

    location = parts[1:lvl]
    if len(location) >= 2:
        domain, site = location[0], location[1]
    else:
        domain, site = None, location[0]

    rest = parts[lvl + 3:]
    hor = ver = None
    if len(rest) >= 3 and all(INDEX_RE.match(p) for p in rest[:3]):
        hor, ver = rest[0], rest[1]
        rest = rest[3:]
    if not rest:
        raise ClassificationError(path.name)

    token = rest[0]
    kind = _SIDECAR_TOKENS.get(token, FileKind.DATA)
    table_name = strip_pub_suffix(token) if kind is FileKind.DATA else token

    return SourceFile(
        path=path,
        table_name=table_name,
        kind=kind,
        site=site,
        domain=domain,
        publication=extract_publication_token(path.name),
        horizontal_position=hor,
        vertical_position=ver,
    )


def classify_file(source: SourceFile, table_types: TableTypeDictionary) -> Tuple[str, TableType]:
    """
    Resolve a data file to its (table name, table type) pair.

    Raises:
        ClassificationError: if the table name has no dictionary entry
    """
    ttype = table_types.get(source.table_name)
    if ttype is None:
        raise ClassificationError(source.name, source.table_name)
    return source.table_name, ttype


@dataclass
class TableEntry:
    name: str
    table_type: TableType
    files: List[SourceFile] = field(default_factory=list)


@dataclass
class TableInventory:
    """
    Result of classifying every discovered file.

    Data files are grouped per table; sidecar files are kept apart so lab
    tables and reference files never enter ordinary stacking.
    """
    tables: Dict[str, TableEntry] = field(default_factory=dict)
    variables: List[SourceFile] = field(default_factory=list)
    validation: List[SourceFile] = field(default_factory=list)
    sensor_positions: List[SourceFile] = field(default_factory=list)
    readme: List[SourceFile] = field(default_factory=list)

    @property
    def lab_tables(self) -> Dict[str, TableEntry]:
        return {k: v for k, v in self.tables.items() if v.table_type.is_lab}

    @property
    def ordinary_tables(self) -> Dict[str, TableEntry]:
        return {k: v for k, v in self.tables.items() if not v.table_type.is_lab}

    @property
    def data_file_count(self) -> int:
        return sum(len(t.files) for t in self.tables.values())


def build_inventory(sources: List[SourceFile], table_types: TableTypeDictionary) -> TableInventory:
    """
    Classify every source file before any merge decision is made.

    Raises:
        ClassificationError: on the first data file whose table is unknown
    """
    inv = TableInventory()
    grouped: Dict[str, List[SourceFile]] = defaultdict(list)
    types: Dict[str, TableType] = {}
    sidecars = {
        FileKind.VARIABLES: inv.variables,
        FileKind.VALIDATION: inv.validation,
        FileKind.SENSOR_POSITIONS: inv.sensor_positions,
        FileKind.README: inv.readme,
    }

    for src in sources:
        if src.kind is not FileKind.DATA:
            sidecars[src.kind].append(src)
            continue
        name, ttype = classify_file(src, table_types)
        grouped[name].append(src)
        types[name] = ttype

    for name in sorted(grouped):
        files = sorted(grouped[name], key=lambda s: str(s.path))
        inv.tables[name] = TableEntry(name=name, table_type=types[name], files=files)

    logger.debug(
        f"Classified {len(sources)} files into {len(inv.tables)} tables "
        f"({len(inv.lab_tables)} lab tables)"
    )
    return inv


def discover_data_files(root: Path) -> list[Path]:
    """
    Recursively discover portal CSV files under a root directory.

    Args:
        root: Folder of unzipped data files

    Returns:
        Sorted list of Path objects

    Excluded:
        - Anything under a ``stackedFiles`` directory (previous output)
        - Hidden directories and macOS resource fork files (``._*``)
        - Files whose name does not start with ``NEON.``
    """
    files: list[Path] = []
    for p in Path(root).rglob("*.csv"):
        rel = p.relative_to(root).parts
        if STACKED_DIRNAME in rel or any(part.startswith(".") for part in rel[:-1]):
            continue
        if p.name.startswith("._") or not p.name.startswith("NEON."):
            continue
        files.append(p)
    files.sort()
    return files
