"""
Tests for time utilities.

Covers HH:MM parsing used by the CLI, config shorthand and environment
overrides, plus timezone conversion of tick times.
"""

import pytest
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from spreadguard.lib.constants import UTC_TIMEZONE
from spreadguard.lib.time_utils import (
    combine,
    format_time,
    get_now,
    get_zone,
    parse_time,
    to_zone,
)


class TestParseTime:
    """Tests for parse_time."""

    @pytest.mark.parametrize("value, expected", [
        ("21:00", time(21, 0)),
        ("00:00", time(0, 0)),
        ("23:59", time(23, 59)),
        ("9:30", time(9, 30)),
        ("09:05", time(9, 5)),
    ])
    def test_valid_times(self, value, expected):
        assert parse_time(value) == expected

    @pytest.mark.parametrize("value", ["", "2100", "21:0", "21:00:00", "21-00", "ab:cd", "  21:00"])
    def test_invalid_format(self, value):
        with pytest.raises(ValueError, match="Invalid time format"):
            parse_time(value)

    def test_hour_out_of_range(self):
        with pytest.raises(ValueError, match="Invalid hour"):
            parse_time("24:00")

    def test_minute_out_of_range(self):
        with pytest.raises(ValueError, match="Invalid minute"):
            parse_time("21:60")

    def test_none_rejected(self):
        with pytest.raises(ValueError, match="Invalid time format"):
            parse_time(None)

    def test_format_round_trip(self):
        assert format_time(parse_time("7:05")) == "07:05"


class TestZones:
    """Tests for timezone helpers."""

    def test_default_zone_is_utc(self):
        assert get_zone() == UTC_TIMEZONE

    def test_unknown_zone(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            get_zone("Atlantis/Capital")

    def test_get_now_is_aware(self):
        assert get_now().tzinfo is not None

    def test_naive_is_tagged(self):
        """Naive datetimes are taken as already being in the target zone."""
        result = to_zone(datetime(2025, 1, 15, 21, 0), UTC_TIMEZONE)
        assert result == datetime(2025, 1, 15, 21, 0, tzinfo=UTC_TIMEZONE)

    def test_aware_is_converted(self):
        """Aware datetimes are converted."""
        ny = ZoneInfo("America/New_York")
        result = to_zone(datetime(2025, 1, 15, 21, 0, tzinfo=UTC_TIMEZONE), ny)
        assert result.hour == 16
        assert result.tzinfo == ny

    def test_combine(self):
        tz = get_zone("Europe/London")
        result = combine(date(2025, 7, 1), time(21, 0), tz)
        assert result.hour == 21
        assert result.utcoffset().total_seconds() == 3600
