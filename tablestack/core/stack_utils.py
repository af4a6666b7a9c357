from __future__ import annotations
import logging
import re
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Sequence

import polars as pl

logger = logging.getLogger(__name__)

# ----------------------------- Config -----------------------------
STACKED_DIRNAME = "stackedFiles"
OUTPUT_EXT = "csv"
DEFAULT_WORKERS = 1
DEFAULT_POLARS_THREADS = 1
PARALLEL_THRESHOLD_BYTES = 25000

PACKAGE_CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
DEFAULT_TABLE_TYPES_YAML = PACKAGE_CONFIG_DIR / "table_types.yml"

PUB_TOKEN_RE = re.compile(r"(\d{8}T\d{6}Z)")
CSV_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def ensure_dir(p: Path) -> None:
    """
    Create a directory and all parent directories if they don't exist.

    Args:
        p: Path object representing the directory to create

    Example:
        >>> ensure_dir(Path("/data/NEON_temp/stackedFiles"))
    """
    p.mkdir(parents=True, exist_ok=True)


def extract_publication_token(name: str) -> Optional[str]:
    """
    Extract the publication token from a file name.

    Publication tokens are compact UTC timestamps (``YYYYMMDDTHHMMSSZ``)
    embedded by the data portal at release time. Because the format is
    fixed-width, lexicographic order equals chronological order.

    Args:
        name: File name or path

    Returns:
        The token string, or None when the name carries no token

    Example:
        >>> extract_publication_token("NEON.D01.HARV.DP1.10003.001.variables.20171106T134640Z.csv")
        '20171106T134640Z'
        >>> extract_publication_token("readme.txt")
        None
    """
    m = PUB_TOKEN_RE.search(Path(name).name)
    return m.group(1) if m else None


def most_recent(paths: Iterable[Path]) -> Optional[Path]:
    """
    Pick the most recently published file from a set of candidates.

    Ordering is by publication token first, then by full path, so two files
    sharing a token resolve deterministically to the lexicographically
    greatest path. Files without a token sort before any tokenised file.

    Args:
        paths: Candidate file paths

    Returns:
        The most recent path, or None for an empty input

    Example:
        >>> most_recent([Path("x.20190101T000000Z.csv"), Path("x.20200615T000000Z.csv")])
        PosixPath('x.20200615T000000Z.csv')
    """
    candidates: Sequence[Path] = list(paths)
    if not candidates:
        return None
    return max(candidates, key=lambda p: (extract_publication_token(p.name) or "", str(p)))


def read_raw_table(path: Path) -> pl.DataFrame:
    """
    Read a delimited data file with every column kept as a string.

    Leaving inference off keeps leading zeros (``"000"``, ``"060"``) and
    hands typing over to the schema coercer.

    Args:
        path: Path to CSV file

    Returns:
        Polars DataFrame whose columns are all ``pl.String``

    Note:
        - Empty fields and ``NA`` are read as null
        - truncate_ragged_lines=True tolerates trailing delimiters
        - A zero-byte file yields an empty frame (no columns, no rows)
    """
    try:
        return pl.read_csv(
            path,
            has_header=True,
            infer_schema_length=0,
            try_parse_dates=False,
            null_values=["NA"],
            truncate_ragged_lines=True,
            encoding="utf8-lossy",
        )
    except pl.exceptions.NoDataError:
        logger.warning(f"Empty data file, contributes no rows: {path}")
        return pl.DataFrame()


def atomic_write_csv(df: pl.DataFrame, out_file: Path) -> None:
    """
    Write DataFrame to CSV with atomic file creation.

    Uses a temporary file + rename strategy so a half-written stacked table
    is never visible under its final name.

    Args:
        df: Polars DataFrame to write
        out_file: Destination path

    Note:
        - Parent directory is created if it doesn't exist
        - Nulls are written as empty fields
        - Datetimes are written as ``YYYY-MM-DDTHH:MM:SSZ``
    """
    ensure_dir(out_file.parent)
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=out_file.parent, suffix=".tmp") as tmp:
        tmp_path = Path(tmp.name)
    try:
        df.write_csv(tmp_path, datetime_format=CSV_DATETIME_FORMAT)
        tmp_path.replace(out_file)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise
