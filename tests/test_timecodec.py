"""
Tests for compact date/time decoding and display formatting.
"""

from datetime import datetime

import pytest
import pytz

from untis_watch.storage.models import TimegridDay, TimeUnit
from untis_watch.utils.timecodec import (
    Edge, decode_date, decode_time, format_for_display, get_timezone,
    to_timestamp, untis_weekday
)


FRIDAY_GRID = [
    TimegridDay(day=6, time_units=(
        TimeUnit(name="1", start_time=800, end_time=845),
        TimeUnit(name="2", start_time=850, end_time=935),
    )),
]


class TestDecoding:
    """Test cases for decode_date and decode_time."""

    def test_decode_date(self):
        assert decode_date(20240315) == (2024, 3, 15)

    def test_decode_three_digit_time(self):
        assert decode_time(800) == (8, 0)

    def test_decode_four_digit_time(self):
        assert decode_time(1345) == (13, 45)

    @pytest.mark.parametrize("value", [2024031, 202403150, 20241315])
    def test_invalid_dates(self, value):
        with pytest.raises(ValueError):
            decode_date(value)

    @pytest.mark.parametrize("value", [5, 12345, 2460, 975])
    def test_invalid_times(self, value):
        with pytest.raises(ValueError):
            decode_time(value)


class TestToTimestamp:
    """Test cases for to_timestamp."""

    def test_local_time_is_aware(self):
        ts = to_timestamp(20240315, 1345)

        assert ts.tzinfo is not None
        assert (ts.year, ts.month, ts.day, ts.hour, ts.minute, ts.second) == (2024, 3, 15, 13, 45, 0)

    def test_explicit_timezone(self):
        ts = to_timestamp(20240315, 800, get_timezone("Europe/Berlin"))

        assert ts.hour == 8
        assert ts.astimezone(pytz.UTC).hour == 7

    def test_no_timezone_name(self):
        assert get_timezone(None) is None
        assert get_timezone("") is None


class TestFormatForDisplay:
    """Test cases for format_for_display."""

    def test_weekday_numbering_starts_on_sunday(self):
        assert untis_weekday(datetime(2024, 3, 17)) == 1  # Sunday
        assert untis_weekday(datetime(2024, 3, 18)) == 2  # Monday
        assert untis_weekday(datetime(2024, 3, 16)) == 7  # Saturday

    def test_start_matches_unit_start(self):
        ts = datetime(2024, 3, 15, 8, 50)
        assert format_for_display(ts, Edge.START, FRIDAY_GRID) == "lesson 2"

    def test_end_matches_unit_end(self):
        ts = datetime(2024, 3, 15, 8, 45)
        assert format_for_display(ts, Edge.END, FRIDAY_GRID) == "lesson 1"

    def test_edge_selects_boundary(self):
        # 08:45 is only an end time
        ts = datetime(2024, 3, 15, 8, 45)
        expected = f"<t:{int(ts.timestamp())}:t>"
        assert format_for_display(ts, Edge.START, FRIDAY_GRID) == expected

    def test_other_weekday_does_not_match(self):
        ts = datetime(2024, 3, 14, 8, 0)  # Thursday
        assert format_for_display(ts, Edge.START, FRIDAY_GRID) == f"<t:{int(ts.timestamp())}:t>"

    def test_missing_timegrid_falls_back_like_no_match(self):
        ts = datetime(2024, 3, 15, 10, 0)
        assert format_for_display(ts, Edge.START, None) == format_for_display(ts, Edge.START, FRIDAY_GRID)
