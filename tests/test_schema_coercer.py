"""
Tests for declared-type coercion.
"""

from datetime import date, datetime, timezone

import polars as pl
import pytest

from tablestack.core.schema_coercer import DATETIME_DTYPE, coerce_frame, target_dtype
from tablestack.core.variables import VariableDictionary, normalize_data_type


@pytest.fixture
def raw_frame():
    return pl.DataFrame({
        "count": ["1", " 2 ", "x", None, ""],
        "temp": ["1.5", "-3.25", "abc", "2", None],
        "start": ["2015-06-14T09:36Z", "2015-06-14T09:36:10Z", "2015-06-14", "later", None],
        "day": ["2015-06-14", "2015-06-15", "junk", None, None],
        "note": ["a", "b", "c", "d", "e"],
    })


SPEC = {"count": "integer", "temp": "real", "start": "dateTime", "day": "date"}


class TestCoerceFrame:

    def test_types_follow_declarations(self, raw_frame):
        out, _ = coerce_frame(raw_frame, SPEC, table="t")

        assert out.schema["count"] == pl.Int64
        assert out.schema["temp"] == pl.Float64
        assert out.schema["start"] == DATETIME_DTYPE
        assert out.schema["day"] == pl.Date
        assert out.schema["note"] == pl.String

    def test_values(self, raw_frame):
        out, _ = coerce_frame(raw_frame, SPEC, table="t")

        assert out["count"].to_list() == [1, 2, None, None, None]
        assert out["start"][0] == datetime(2015, 6, 14, 9, 36, tzinfo=timezone.utc)
        assert out["start"][1] == datetime(2015, 6, 14, 9, 36, 10, tzinfo=timezone.utc)
        assert out["start"][2] == datetime(2015, 6, 14, tzinfo=timezone.utc)
        assert out["day"][0] == date(2015, 6, 14)

    def test_failures_are_counted_not_raised(self, raw_frame):
        _, warnings = coerce_frame(raw_frame, SPEC, table="t", source_file="f.csv")
        by_col = {w.column: w.count for w in warnings}

        # nulls and blanks are missing values, not failures
        assert by_col == {"count": 1, "temp": 1, "start": 1, "day": 1}
        assert all(w.source_file == "f.csv" for w in warnings)
        assert "could not be read as integer" in next(w for w in warnings if w.column == "count").format()

    def test_idempotent(self, raw_frame):
        once, _ = coerce_frame(raw_frame, SPEC, table="t")
        twice, warnings = coerce_frame(once, SPEC, table="t")

        assert warnings == []
        assert twice.equals(once)

    def test_undeclared_columns_pass_through(self, raw_frame):
        out, warnings = coerce_frame(raw_frame, {}, table="t")
        assert out.equals(raw_frame)
        assert warnings == []


class TestDeclaredTypes:

    @pytest.mark.parametrize("raw,expected", [
        ("real", "real"),
        ("unsigned integer", "integer"),
        ("signed integer", "integer"),
        ("dateTime", "dateTime"),
        ("uri", "string"),
        ("something else", "string"),
        (None, "string"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_data_type(raw) == expected

    def test_target_dtype_defaults_to_string(self):
        assert target_dtype("string") == pl.String
        assert target_dtype("bogus") == pl.String

    def test_variable_dictionary_per_table(self):
        df = pl.DataFrame({
            "table": ["brd_countdata_pub", "brd_countdata", "brd_perpoint"],
            "fieldName": ["clusterSize", "startDate", "observedAirTemp"],
            "dataType": ["integer", "dateTime", "real"],
        })
        vd = VariableDictionary.from_frame(df)

        assert vd.for_table("brd_countdata") == {"clusterSize": "integer", "startDate": "dateTime"}
        assert vd.for_table("brd_perpoint") == {"observedAirTemp": "real"}
        assert vd.for_table("missing") == {}
