"""Tests for plain-text and CSV exports."""

import csv
import io
from datetime import datetime

import pytest

from callboard_calendar.conflicts import detect_conflicts
from callboard_calendar.export import (
    CSV_HEADER,
    NO_EVENTS_MESSAGE,
    ExportOptions,
    export_filename,
    to_csv,
    to_plain_text,
)
from callboard_calendar.models import CalendarEvent


def _make_event(id: str, title: str, start: datetime, end: datetime, type: str = "callback") -> CalendarEvent:
    return CalendarEvent(id=id, type=type, title=title, start=start, end=end)


def _days():
    events = [
        _make_event("a", "Into the Woods - Callback", datetime(2024, 1, 8, 10, 0), datetime(2024, 1, 8, 11, 0)),
        _make_event("b", "Smith, Jane — callback", datetime(2024, 1, 8, 10, 30), datetime(2024, 1, 8, 11, 30)),
        _make_event("c", 'The "Big" Rehearsal', datetime(2024, 1, 9, 18, 0), datetime(2024, 1, 9, 21, 0),
                    type="rehearsal_event"),
    ]
    return detect_conflicts(events, lambda d: d.strftime("%Y-%m-%d"))


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


# ---------------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------------

class TestPlainText:
    def test_header_and_days(self):
        text = to_plain_text(_days(), ExportOptions(user_name="Jane Smith", timezone="America/Chicago"))
        lines = text.split("\n")
        assert lines[0] == "Jane Smith — Conflicts"
        assert lines[1] == "Time Zone: America/Chicago"
        assert lines[2] == ""
        assert lines[3] == "Monday, January 8, 2024"
        assert lines[4] == "- 10:00 AM - 11:00 AM  Into the Woods - Callback (conflict)"
        assert lines[5] == "- 10:30 AM - 11:30 AM  Smith, Jane — callback (conflict)"
        assert lines[7] == "Tuesday, January 9, 2024"
        assert lines[8] == '- 6:00 PM - 9:00 PM  The "Big" Rehearsal'

    def test_redacted(self):
        text = to_plain_text(_days(), ExportOptions(include_names=False))
        assert "Into the Woods" not in text
        assert "Smith" not in text
        assert "- Busy from 10:00 AM to 11:00 AM (conflict)" in text
        assert "- Busy from 6:00 PM to 9:00 PM" in text

    def test_empty(self):
        text = to_plain_text([], ExportOptions(user_name="Jane"))
        assert text.endswith(NO_EVENTS_MESSAGE)
        assert text.startswith("Jane — Conflicts")

    def test_custom_formatters(self):
        options = ExportOptions(
            format_date_heading=lambda key: f"Day {key}",
            format_time=lambda d: d.strftime("%H:%M"),
        )
        text = to_plain_text(_days(), options)
        assert "Day 2024-01-08" in text
        assert "- 18:00 - 21:00  The \"Big\" Rehearsal" in text


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

class TestCsv:
    def test_header(self):
        rows = _rows(to_csv(_days()))
        assert rows[0] == CSV_HEADER
        assert len(rows) == 4

    def test_comma_title_is_quoted(self):
        text = to_csv(_days())
        assert '"Smith, Jane — callback"' in text
        rows = _rows(text)
        assert rows[2][3] == "Smith, Jane — callback"

    def test_quotes_doubled(self):
        text = to_csv(_days())
        assert '"The ""Big"" Rehearsal"' in text
        assert _rows(text)[3][3] == 'The "Big" Rehearsal'

    def test_newline_title_round_trips(self):
        event = _make_event("n", "Line one\nLine two", datetime(2024, 1, 8, 9, 0), datetime(2024, 1, 8, 10, 0))
        days = detect_conflicts([event], lambda d: d.strftime("%Y-%m-%d"))
        assert _rows(to_csv(days))[1][3] == "Line one\nLine two"

    def test_row_values(self):
        rows = _rows(to_csv(_days()))
        assert rows[1] == ["Monday, January 8, 2024", "10:00 AM", "11:00 AM",
                           "Into the Woods - Callback", "callback", "1"]
        assert rows[3][4] == "rehearsal_event"
        assert rows[3][5] == "0"

    def test_redacted(self):
        rows = _rows(to_csv(_days(), ExportOptions(include_names=False)))
        assert [row[3] for row in rows[1:]] == ["Busy", "Busy", "Busy"]

    def test_empty_has_header_only(self):
        assert _rows(to_csv([])) == [CSV_HEADER]


class TestExportFilename:
    def test_slug(self):
        assert export_filename("csv", "Jane Smith") == "jane-smith-conflicts.csv"
        assert export_filename("text", "") == "user-conflicts.txt"

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown export format"):
            export_filename("pdf")
