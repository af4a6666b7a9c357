"""
Tests for per-table-type file selection and publication recency.
"""

from pathlib import Path

from tablestack.core.selection import SELECTION_STRATEGIES, describe_inventory, latest_per_lab, select_files
from tablestack.core.source_files import TableEntry, TableInventory, parse_source_file
from tablestack.core.stack_utils import extract_publication_token, most_recent
from tablestack.core.table_types import TableType


def _entry(names, table_type, table="brd_perpoint"):
    return TableEntry(name=table, table_type=table_type, files=[parse_source_file(Path(n)) for n in names])


class TestStrategies:

    def test_every_table_type_has_a_strategy(self):
        assert set(SELECTION_STRATEGIES) == set(TableType)

    def test_site_date_keeps_every_file(self):
        names = [
            "NEON.D01.HARV.DP1.10003.001.brd_countdata.2015-06.basic.20171106T134640Z.csv",
            "NEON.D01.HARV.DP1.10003.001.brd_countdata.2015-07.basic.20171106T134640Z.csv",
            "NEON.D01.BART.DP1.10003.001.brd_countdata.2015-06.basic.20171106T134640Z.csv",
        ]
        entry = _entry(names, TableType.SITE_DATE, table="brd_countdata")
        assert len(select_files(entry)) == 3

    def test_site_all_keeps_newest_per_site(self):
        names = [
            "NEON.D01.HARV.DP1.10003.001.brd_perpoint.basic.20171106T134640Z.csv",
            "NEON.D01.HARV.DP1.10003.001.brd_perpoint.basic.20200201T000000Z.csv",
            "NEON.D01.BART.DP1.10003.001.brd_perpoint.basic.20181231T000000Z.csv",
        ]
        chosen = select_files(_entry(names, TableType.SITE_ALL))

        assert [s.site for s in chosen] == ["BART", "HARV"]
        assert chosen[1].publication == "20200201T000000Z"

    def test_lab_tables_are_never_stacked(self):
        names = ["NEON.BGC.DP1.10086.001.sls_soilChemistry.20200210T204123Z.csv"]
        entry = _entry(names, TableType.LAB_CURRENT, table="sls_soilChemistry")
        assert select_files(entry) == []

    def test_latest_per_lab(self):
        names = [
            "NEON.BGC.DP1.10086.001.sls_soilChemistry.20190101T000000Z.csv",
            "NEON.BGC.DP1.10086.001.sls_soilChemistry.20200210T204123Z.csv",
            "NEON.CSU.DP1.10086.001.sls_soilChemistry.20180101T000000Z.csv",
        ]
        chosen = latest_per_lab(_entry(names, TableType.LAB_ALL, table="sls_soilChemistry"))
        assert [(s.site, s.publication) for s in chosen] == [
            ("BGC", "20200210T204123Z"),
            ("CSU", "20180101T000000Z"),
        ]


class TestRecency:

    def test_most_recent_by_token(self):
        paths = [
            Path("a/NEON.D01.HARV.DP1.10003.001.variables.20190101T000000Z.csv"),
            Path("b/NEON.D01.BART.DP1.10003.001.variables.20200615T000000Z.csv"),
            Path("c/NEON.D01.HARV.DP1.10003.001.variables.20181231T000000Z.csv"),
        ]
        assert most_recent(paths) == paths[1]

    def test_tie_breaks_on_path(self):
        paths = [
            Path("b/NEON.D01.HARV.DP1.10003.001.variables.20200615T000000Z.csv"),
            Path("a/NEON.D01.BART.DP1.10003.001.variables.20200615T000000Z.csv"),
        ]
        assert most_recent(paths) == paths[0]

    def test_empty(self):
        assert most_recent([]) is None

    def test_token_helpers(self):
        assert extract_publication_token("readme.txt") is None
        token = extract_publication_token("NEON.D01.HARV.DP1.10003.001.variables.20200615T120000Z.csv")
        assert token == "20200615T120000Z"


def test_describe_inventory():
    inv = TableInventory()
    inv.tables["brd_perpoint"] = _entry(
        [
            "NEON.D01.HARV.DP1.10003.001.brd_perpoint.basic.20171106T134640Z.csv",
            "NEON.D01.HARV.DP1.10003.001.brd_perpoint.basic.20200201T000000Z.csv",
        ],
        TableType.SITE_ALL,
    )

    df = describe_inventory(inv)

    row = df.row(0, named=True)
    assert row["type"] == "site-all"
    assert row["files"] == 2
    assert row["selected"] == 1
    assert row["latest_publication"] == "20200201T000000Z"
