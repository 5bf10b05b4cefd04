"""Tests for date parsing and formatting helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from callboard_calendar.dates import (
    date_key_in_timezone,
    epoch_millis,
    format_date_heading,
    format_us_date_long,
    format_us_time,
    get_date_range,
    parse_date_data,
    parse_local_date,
    parse_timestamp,
)


class TestParseDateData:
    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty(self, value):
        assert parse_date_data(value) == []

    def test_single_string(self):
        assert parse_date_data("2024-05-01") == [datetime(2024, 5, 1)]

    def test_comma_separated_sorted(self):
        result = parse_date_data("2024-05-03, 2024-05-01,2024-05-02")
        assert result == [datetime(2024, 5, 1), datetime(2024, 5, 2), datetime(2024, 5, 3)]

    def test_array(self):
        result = parse_date_data(["2024-06-10", "2024-06-01"])
        assert result == [datetime(2024, 6, 1), datetime(2024, 6, 10)]

    def test_bad_tokens_dropped(self):
        result = parse_date_data("2024-05-01, tbd, 2024-13-45, , 2024-05-02")
        assert result == [datetime(2024, 5, 1), datetime(2024, 5, 2)]

    def test_non_string_items_dropped(self):
        assert parse_date_data(["2024-05-01", None, 42]) == [datetime(2024, 5, 1)]

    def test_iso_timestamps(self):
        result = parse_date_data(["2024-05-01T18:00:00Z", "2024-05-01T09:00:00"])
        assert result[0] == datetime(2024, 5, 1, 9, 0)
        assert result[1] == datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)


class TestGetDateRange:
    def test_range(self):
        assert get_date_range("2024-05-03,2024-05-01") == (datetime(2024, 5, 1), datetime(2024, 5, 3))

    def test_no_valid_dates(self):
        assert get_date_range("soon, later") == (None, None)


class TestParsing:
    def test_parse_local_date(self):
        assert parse_local_date("2024-02-29") == datetime(2024, 2, 29)

    def test_parse_local_date_invalid(self):
        with pytest.raises(ValueError):
            parse_local_date("2024-02")

    def test_parse_timestamp(self):
        assert parse_timestamp("2024-01-01T10:00:00+00:00") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_epoch_millis_naive_as_utc(self):
        naive = datetime(2024, 1, 1, 10, 0)
        assert epoch_millis(naive) == epoch_millis(naive.replace(tzinfo=timezone.utc)) == 1704103200000

    def test_epoch_millis_offset(self):
        plus_two = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert epoch_millis(plus_two) == 1704103200000


class TestFormatting:
    def test_date_key_in_timezone(self):
        value = datetime(2024, 7, 4, 2, 30, tzinfo=timezone.utc)
        assert date_key_in_timezone(value, "UTC") == "2024-07-04"
        assert date_key_in_timezone(value, "America/Los_Angeles") == "2024-07-03"

    def test_naive_key_not_shifted(self):
        assert date_key_in_timezone(datetime(2024, 7, 4, 23, 0), "Asia/Tokyo") == "2024-07-04"

    def test_us_time(self):
        assert format_us_time(datetime(2024, 1, 1, 0, 5)) == "12:05 AM"
        assert format_us_time(datetime(2024, 1, 1, 12, 0)) == "12:00 PM"
        assert format_us_time(datetime(2024, 1, 1, 19, 45)) == "7:45 PM"

    def test_us_date_long(self):
        assert format_us_date_long(datetime(2024, 3, 5, 9, 0)) == "Tuesday, March 5, 2024"

    def test_heading_falls_back_to_key(self):
        assert format_date_heading("2024-03-05") == "Tuesday, March 5, 2024"
        assert format_date_heading("someday") == "someday"
