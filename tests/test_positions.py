"""
Tests for instrument position tagging and the sensor position join.
"""

from pathlib import Path

import polars as pl

from tablestack.core.positions import (
    POSITION_COLUMNS,
    consolidate_sensor_positions,
    join_sensor_positions,
    make_position_columns,
)
from tablestack.core.source_files import discover_data_files, parse_source_file


IS_NAME = "NEON.D01.HARV.DP1.00098.001.000.060.030.RH_30min.2017-03.basic.20170720T182547Z.csv"


def test_instrument_rows_get_position_columns_first():
    df = pl.DataFrame({"startDateTime": ["2017-03-01T00:00:00Z"], "RHMean": ["55.1"]})

    out = make_position_columns(df, parse_source_file(Path(IS_NAME)))

    assert out.columns[:5] == POSITION_COLUMNS
    row = out.row(0, named=True)
    assert row["horizontalPosition"] == "000"
    assert row["verticalPosition"] == "060"
    assert row["publicationDate"] == "20170720T182547Z"
    assert out.schema["horizontalPosition"] == pl.String


def test_observational_rows_unchanged():
    df = pl.DataFrame({"siteID": ["HARV"], "clusterSize": ["1"]})
    sf = parse_source_file(Path("NEON.D01.HARV.DP1.10003.001.brd_countdata.2015-06.basic.20171106T134640Z.csv"))
    assert make_position_columns(df, sf).equals(df)


def test_sensor_positions_tagged_with_site(humidity_download):
    sources = [
        parse_source_file(p) for p in discover_data_files(humidity_download)
        if "sensor_positions" in p.name
    ]
    positions = consolidate_sensor_positions(sources)

    assert positions.columns[0] == "siteID"
    assert positions["HOR.VER"].to_list() == ["000.060", "000.040"]


def test_join_adds_placement_without_changing_row_count(humidity_download):
    paths = discover_data_files(humidity_download)
    positions = consolidate_sensor_positions(
        [parse_source_file(p) for p in paths if "sensor_positions" in p.name]
    )
    df = pl.DataFrame({"RHMean": ["55.1", "56.3"]})
    tagged = make_position_columns(df, parse_source_file(Path(IS_NAME)))

    joined = join_sensor_positions(tagged, positions)

    assert joined.height == 2
    assert joined["sensorLocationID"].to_list() == ["CFGLOC101", "CFGLOC101"]
    assert joined["zOffset"].to_list() == ["22.6", "22.6"]
    assert "HOR.VER" not in joined.columns


def test_join_without_positions_is_noop():
    df = pl.DataFrame({"siteID": ["HARV"]})
    assert join_sensor_positions(df, None).equals(df)
