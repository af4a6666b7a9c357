"""Shared fixtures: small portal-style download folders built on the fly."""

from pathlib import Path
from typing import Iterable, List

import pytest

from tablestack.core.table_types import load_table_types_yaml

TABLE_TYPES_YAML = """\
table_types:
  site-date:
    - brd_countdata
    - RH_30min
  site-all:
    - brd_perpoint
  lab-current:
    - sls_soilChemistry
"""

VARIABLES_HEADER = ["table", "fieldName", "description", "dataType", "units"]

VARIABLES_ROWS = [
    ["brd_countdata", "siteID", "Site", "string", ""],
    ["brd_countdata", "startDate", "Start of count", "dateTime", ""],
    ["brd_countdata", "clusterSize", "Birds in cluster", "integer", "number"],
    ["brd_perpoint", "siteID", "Site", "string", ""],
    ["brd_perpoint", "observedAirTemp", "Air temperature", "real", "celsius"],
    ["RH_30min", "startDateTime", "Start of interval", "dateTime", ""],
    ["RH_30min", "RHMean", "Mean relative humidity", "real", "percent"],
]


def write_csv(path: Path, header: List[str], rows: Iterable[List[str]]) -> Path:
    """Write a small CSV; values are written verbatim (no quoting)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [",".join(header)] + [",".join(r) for r in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def countdata_name(site: str, month: str, pub: str = "20171106T134640Z") -> str:
    return f"NEON.D01.{site}.DP1.10003.001.brd_countdata.{month}.basic.{pub}.csv"


def perpoint_name(site: str, pub: str = "20171106T134640Z") -> str:
    return f"NEON.D01.{site}.DP1.10003.001.brd_perpoint.basic.{pub}.csv"


def variables_name(site: str, pub: str) -> str:
    return f"NEON.D01.{site}.DP1.10003.001.variables.{pub}.csv"


@pytest.fixture
def table_types_file(tmp_path):
    path = tmp_path / "table_types.yml"
    path.write_text(TABLE_TYPES_YAML, encoding="utf-8")
    return path


@pytest.fixture
def table_types(table_types_file):
    return load_table_types_yaml(table_types_file)


@pytest.fixture
def bird_download(tmp_path):
    """
    Four brd_countdata files (two sites x two months), one brd_perpoint file
    per site, and three variables files with different publication dates.

    The July files carry an extra ``remarks`` column; one June value of
    clusterSize is not an integer.
    """
    root = tmp_path / "NEON_count-landbird"
    count_header = ["uid", "siteID", "startDate", "clusterSize"]

    for site in ("HARV", "BART"):
        june = root / f"NEON.D01.{site}.DP1.10003.001.2015-06.basic.20171106T134640Z"
        july = root / f"NEON.D01.{site}.DP1.10003.001.2015-07.basic.20171106T134640Z"
        size = "x" if site == "HARV" else "3"
        write_csv(
            june / countdata_name(site, "2015-06"),
            count_header,
            [[f"{site}-06", site, "2015-06-14T09:36Z", size]],
        )
        write_csv(
            july / countdata_name(site, "2015-07"),
            count_header + ["remarks"],
            [[f"{site}-07", site, "2015-07-02T10:00Z", "2", "windy"]],
        )
        write_csv(
            june / perpoint_name(site),
            ["uid", "siteID", "observedAirTemp"],
            [[f"{site}-pp", site, "18.5"]],
        )

    pubs = {"HARV": "20190101T000000Z", "BART": "20200615T000000Z"}
    for site, pub in pubs.items():
        folder = root / f"NEON.D01.{site}.DP1.10003.001.2015-06.basic.20171106T134640Z"
        write_csv(folder / variables_name(site, pub), VARIABLES_HEADER, VARIABLES_ROWS)
    write_csv(
        root / "NEON.D01.HARV.DP1.10003.001.2015-07.basic.20171106T134640Z" / variables_name("HARV", "20181231T000000Z"),
        VARIABLES_HEADER,
        VARIABLES_ROWS[:1],
    )
    return root


@pytest.fixture
def humidity_download(tmp_path):
    """Instrument (IS) download: two sensor locations plus their sensor positions file."""
    root = tmp_path / "NEON_rel-humidity"
    folder = root / "NEON.D01.HARV.DP1.00098.001.2017-03.basic.20170720T182547Z"
    header = ["startDateTime", "endDateTime", "RHMean"]
    for hor, ver in (("000", "060"), ("000", "040")):
        write_csv(
            folder / f"NEON.D01.HARV.DP1.00098.001.{hor}.{ver}.030.RH_30min.2017-03.basic.20170720T182547Z.csv",
            header,
            [
                ["2017-03-01T00:00:00Z", "2017-03-01T00:30:00Z", "55.1"],
                ["2017-03-01T00:30:00Z", "2017-03-01T01:00:00Z", "56.3"],
            ],
        )
    write_csv(
        folder / "NEON.D01.HARV.DP1.00098.001.sensor_positions.20170720T182547Z.csv",
        ["HOR.VER", "sensorLocationID", "positionStartDateTime", "zOffset"],
        [
            ["000.060", "CFGLOC101", "2010-01-01T00:00:00Z", "22.6"],
            ["000.040", "CFGLOC102", "2010-01-01T00:00:00Z", "12.3"],
        ],
    )
    write_csv(
        folder / "NEON.D01.HARV.DP1.00098.001.variables.20170720T182547Z.csv",
        VARIABLES_HEADER,
        VARIABLES_ROWS,
    )
    return root
