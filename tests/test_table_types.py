"""
Tests for the table-type dictionary loader.
"""

import pytest

from tablestack.core.errors import ConfigurationError
from tablestack.core.table_types import (
    TableType,
    TableTypeDictionary,
    get_table_types_cached,
    load_table_types_yaml,
)


def test_grouped_layout(table_types):
    assert table_types.get("brd_countdata") is TableType.SITE_DATE
    assert table_types.get("brd_perpoint_pub") is TableType.SITE_ALL
    assert "sls_soilChemistry" in table_types
    assert table_types.get("sls_soilChemistry").is_lab


def test_record_layout(tmp_path):
    path = tmp_path / "records.yml"
    path.write_text(
        "table_types:\n"
        "  - {tableName: brd_countdata, tableType: site-date}\n"
        "  - {tableName: mam_voucher, tableType: site-all}\n"
    )
    ttypes = load_table_types_yaml(path)

    assert len(ttypes) == 2
    assert ttypes.get("mam_voucher") is TableType.SITE_ALL


def test_unknown_tag(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("table_types:\n  site-sometimes: [brd_countdata]\n")

    with pytest.raises(ConfigurationError, match="site-sometimes"):
        load_table_types_yaml(path)


def test_conflicting_entries():
    with pytest.raises(ConfigurationError, match="both"):
        TableTypeDictionary.from_records([("a", "site-date"), ("a", "site-all")])


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_table_types_yaml(tmp_path / "absent.yml")


def test_cached_loader_reloads_for_new_path(table_types_file, tmp_path):
    first = get_table_types_cached(table_types_file)
    assert get_table_types_cached(table_types_file) is first

    other = tmp_path / "other.yml"
    other.write_text("table_types:\n  other: [misc_table]\n")
    assert get_table_types_cached(other).get("misc_table") is TableType.OTHER


def test_shipped_dictionary_loads():
    from tablestack.core.stack_utils import DEFAULT_TABLE_TYPES_YAML

    assert DEFAULT_TABLE_TYPES_YAML.is_file()
    ttypes = load_table_types_yaml(DEFAULT_TABLE_TYPES_YAML)
    assert ttypes.get("RH_30min") is TableType.SITE_DATE
