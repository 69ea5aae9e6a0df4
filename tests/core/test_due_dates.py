"""Tests for action due-date parsing."""

from datetime import datetime, timedelta

import pytest

from quorum.core.due_dates import format_due_label, is_due_soon_date, is_due_soon_label, parse_due_at

NOW = datetime(2026, 3, 10, 14, 30)


class TestParseDueAt:
    """Tests for parse_due_at."""

    def test_today_defaults_to_nine(self):
        assert parse_due_at("Today", NOW) == datetime(2026, 3, 10, 9, 0)

    def test_tomorrow_with_time(self):
        assert parse_due_at("Tomorrow 3 PM", NOW) == datetime(2026, 3, 11, 15, 0)

    def test_time_with_minutes(self):
        assert parse_due_at("today 11:45am", NOW) == datetime(2026, 3, 10, 11, 45)

    def test_twelve_am_is_midnight(self):
        assert parse_due_at("Tomorrow 12 AM", NOW) == datetime(2026, 3, 11, 0, 0)

    def test_iso_date(self):
        assert parse_due_at("2026-04-01", NOW) == datetime(2026, 4, 1)

    def test_iso_with_offset_is_converted_to_utc(self):
        assert parse_due_at("2026-04-01T10:00:00+02:00", NOW) == datetime(2026, 4, 1, 8, 0)

    def test_written_date(self):
        assert parse_due_at("Apr 2, 2026", NOW) == datetime(2026, 4, 2)

    @pytest.mark.parametrize("label", ["", "No due date", "next sprint", "Q3"])
    def test_unparseable_labels(self, label):
        assert parse_due_at(label, NOW) is None


def test_due_soon_window():
    window = timedelta(hours=48)
    assert is_due_soon_date(NOW + timedelta(hours=5), NOW, window)
    assert is_due_soon_date(NOW + timedelta(hours=48), NOW, window)
    assert not is_due_soon_date(NOW + timedelta(hours=49), NOW, window)
    assert not is_due_soon_date(NOW - timedelta(minutes=1), NOW, window)
    assert not is_due_soon_date(None, NOW, window)


def test_due_soon_label():
    assert is_due_soon_label("Tomorrow EOD")
    assert not is_due_soon_label("Next week")


def test_format_due_label():
    assert format_due_label(datetime(2030, 1, 5)) == "Jan 5"
    assert format_due_label(datetime(2030, 1, 5, 15, 30)) == "Jan 5, 3:30 PM"
    assert format_due_label(datetime(2030, 11, 2, 0, 15)) == "Nov 2, 12:15 AM"
