"""
Tests for the reference artifacts written next to stacked tables.
"""

from tablestack.core.sidecars import VARIABLES_NAME, copy_sidecars
from tablestack.core.source_files import build_inventory, discover_data_files, parse_source_file
from tablestack.core.summary import EventKind, RunSummary

from conftest import VARIABLES_HEADER, VARIABLES_ROWS, write_csv


def _inventory(root, table_types):
    return build_inventory([parse_source_file(p) for p in discover_data_files(root)], table_types)


def test_most_recent_variables_file_wins(bird_download, table_types):
    out_dir = bird_download / "stackedFiles"
    summary = RunSummary(folder=bird_download, output_dir=out_dir)

    res = copy_sidecars(_inventory(bird_download, table_types), out_dir, summary)

    assert res.variables_path.name.endswith("variables.20200615T000000Z.csv")
    assert (out_dir / VARIABLES_NAME).read_bytes() == res.variables_path.read_bytes()
    assert res.validation_path is None
    assert res.sensor_positions is None
    assert any("renamed as variables.csv" in m for m in summary.messages())


def test_lab_tables_copied_with_their_names(tmp_path, table_types):
    root = tmp_path / "NEON_soil"
    for lab, pub in (("BGC", "20190101T000000Z"), ("BGC", "20200210T204123Z"), ("CSU", "20180101T000000Z")):
        write_csv(
            root / f"NEON.{lab}.DP1.10086.001.sls_soilChemistry.{pub}.csv",
            ["laboratoryName", "analyte"],
            [[lab, "C"]],
        )
    write_csv(root / "NEON.D01.HARV.DP1.10086.001.variables.20200210T204123Z.csv", VARIABLES_HEADER, VARIABLES_ROWS)
    out_dir = root / "stackedFiles"
    summary = RunSummary(folder=root, output_dir=out_dir)

    res = copy_sidecars(_inventory(root, table_types), out_dir, summary)

    assert res.lab_files == 2
    assert (out_dir / "NEON.BGC.DP1.10086.001.sls_soilChemistry.20200210T204123Z.csv").exists()
    assert (out_dir / "NEON.CSU.DP1.10086.001.sls_soilChemistry.20180101T000000Z.csv").exists()
    assert not (out_dir / "NEON.BGC.DP1.10086.001.sls_soilChemistry.20190101T000000Z.csv").exists()
    assert len(summary.of_kind(EventKind.SIDECAR_COPIED)) == 3


def test_sensor_positions_consolidated(humidity_download, table_types):
    out_dir = humidity_download / "stackedFiles"
    summary = RunSummary(folder=humidity_download, output_dir=out_dir)

    res = copy_sidecars(_inventory(humidity_download, table_types), out_dir, summary)

    assert res.sensor_positions.height == 2
    assert (out_dir / "sensor_positions.csv").exists()
