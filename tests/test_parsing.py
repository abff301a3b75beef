"""
Tests for decoding provider CSV files.
"""

from datetime import date, datetime

import polars as pl
import pytest

from meteodb.exceptions import ParseError
from meteodb.models import Frequency
from meteodb.parsing import empty_frame, parse_frame

from .conftest import climate_csv, daily_csv, hourly_csv, monthly_csv


class TestParseFrame:
    """Test parse_frame for each frequency."""

    def test_daily(self):
        frame = parse_frame(daily_csv(), Frequency.DAILY)
        assert dict(frame.schema) == Frequency.DAILY.schema
        assert frame.height == 365 + 3
        row = frame.filter(pl.col("date") == date(2023, 10, 26)).row(0, named=True)
        assert row["tmax"] == 13.2
        assert row["wdir"] == 220
        assert row["snow"] is None
        assert row["tsun"] == 180

    def test_hourly_combines_date_and_hour(self):
        frame = parse_frame(hourly_csv(), Frequency.HOURLY)
        assert frame.columns[0] == "datetime"
        assert frame["datetime"][13] == datetime(2023, 10, 26, 13)
        assert frame["datetime"][-1] == datetime(2023, 10, 27, 0)
        assert frame["coco"][-1] == 8

    def test_monthly(self):
        frame = parse_frame(monthly_csv(), Frequency.MONTHLY)
        assert frame.height == 24
        assert frame.schema["year"] == pl.Int64
        assert frame["tsun"][0] == 9000

    def test_climate(self):
        frame = parse_frame(climate_csv(), Frequency.CLIMATE)
        assert frame.height == 12
        assert frame["start_year"].unique().to_list() == [1991]
        assert frame["tsun"].null_count() == 12

    def test_integer_columns_written_as_floats(self):
        raw = b"2023-01-01,1.0,0.0,2.0,0.0,10.0,90.0,5.0,,1010.0,60.0\n"
        frame = parse_frame(raw, Frequency.DAILY)
        assert frame["snow"][0] == 10
        assert frame.schema["snow"] == pl.Int64

    def test_empty_input(self):
        frame = parse_frame(b"", Frequency.DAILY)
        assert frame.height == 0
        assert frame.schema == empty_frame(Frequency.DAILY).schema

    def test_wrong_column_count(self):
        with pytest.raises(ParseError, match="columns, expected 11"):
            parse_frame(b"2023-01-01,1.0,2.0\n", Frequency.DAILY)

    def test_ragged_rows(self):
        raw = daily_csv() + b"2024-01-02,1,2,3,4,5,6,7,8,9,10,11,12\n"
        with pytest.raises(ParseError):
            parse_frame(raw, Frequency.DAILY)

    def test_short_row_after_valid_rows(self):
        raw = daily_csv() + b"2024-01-02,1.0,2.0\n"
        with pytest.raises(ParseError, match="row 369 has 3 columns, expected 11"):
            parse_frame(raw, Frequency.DAILY)

    def test_daily_file_cut_mid_row(self):
        raw = daily_csv()
        with pytest.raises(ParseError):
            parse_frame(raw[: raw.rindex(b",")], Frequency.DAILY)

    def test_hourly_short_row(self):
        raw = hourly_csv() + b"2023-10-26,1,11.0\n"
        with pytest.raises(ParseError, match="expected 13"):
            parse_frame(raw, Frequency.HOURLY)

    def test_hourly_file_cut_mid_row(self):
        raw = hourly_csv()
        with pytest.raises(ParseError):
            parse_frame(raw[: raw.rindex(b",")], Frequency.HOURLY)

    def test_blank_cells_become_nulls(self):
        raw = b"2023-01-01,,,,,,,,,,\n"
        row = parse_frame(raw, Frequency.DAILY).row(0, named=True)
        assert row["date"] == date(2023, 1, 1)
        assert all(value is None for name, value in row.items() if name != "date")

    def test_invalid_number(self):
        raw = b"2023-01-01,warm,0.0,2.0,0.0,,90,5.0,,1010.0,60\n"
        with pytest.raises(ParseError, match="invalid value"):
            parse_frame(raw, Frequency.DAILY)

    def test_invalid_date(self):
        raw = b"2023-13-45,1.0,0.0,2.0,0.0,,90,5.0,,1010.0,60\n"
        with pytest.raises(ParseError):
            parse_frame(raw, Frequency.DAILY)

    def test_missing_time_key(self):
        raw = b"2023,,1.0,0.0,2.0,50.0,10.0,1015.0,9000\n"
        with pytest.raises(ParseError, match="missing their time key"):
            parse_frame(raw, Frequency.MONTHLY)

    def test_binary_garbage(self):
        with pytest.raises(ParseError):
            parse_frame(b"\x00\xff\xfe garbage", Frequency.DAILY)
