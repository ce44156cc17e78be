"""Tests for duration, pace, heart-rate and ISO week helpers.

Tests cover:
- Duration parsing bounds (seconds and minutes below 60)
- Duration formatting with and without the hour field
- Free-form step durations normalized to MM:SS
- Pace validation, normalization and ranges
- Pace from distance and duration, including zero distance
- Heart-rate values, ranges and step fallback
- ISO week keys across a year boundary
"""

from datetime import date, datetime, timezone

import pytest

from runlog.utils.dates import ensure_utc
from runlog.utils.duration import (
    duration_to_minutes,
    format_duration,
    format_duration_hhmmss,
    normalize_clock_duration,
    normalize_duration_to_mmss,
    parse_duration,
)
from runlog.utils.heart_rate import parse_hr_value, step_heart_rate
from runlog.utils.pace import (
    format_pace,
    leading_pace_seconds,
    normalize_pace,
    normalize_pace_or_range,
    pace_from_duration_and_distance,
    pace_to_seconds,
    seconds_to_pace,
    validate_pace,
)
from runlog.utils.weeks import iso_week_key, week_key_range, week_start


class TestDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("05:30", 330),
            ("75:00", 4500),
            ("01:02:03", 3723),
            ("00:00", 0),
        ],
    )
    def test_parse_duration_valid(self, value, expected):
        """MM:SS and HH:MM:SS are read as seconds; minutes may pass 59 in MM:SS."""
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["05:60", "01:60:00", "abc", "", None, "1:2:3:4", "5"])
    def test_parse_duration_invalid(self, value):
        """Out-of-range fields and unreadable strings give None."""
        assert parse_duration(value) is None

    def test_format_duration_switches_to_hours(self):
        """Below one hour is MM:SS, above is HH:MM:SS."""
        assert format_duration(330) == "05:30"
        assert format_duration(3723) == "01:02:03"
        assert format_duration(None) == "00:00"
        assert format_duration(-5) == "00:00"

    def test_format_duration_hhmmss_always_has_hours(self):
        assert format_duration_hhmmss(330) == "00:05:30"
        assert format_duration_hhmmss(3600) == "01:00:00"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("5'00", "05:00"),
            ("5'30\"", "05:30"),
            ("4:30.2", "04:30"),
            ("12", "12:00"),
            ("", None),
            ("4:75", None),
        ],
    )
    def test_normalize_duration_to_mmss(self, value, expected):
        """Apostrophe, colon and plain-minute notations normalize to MM:SS."""
        assert normalize_duration_to_mmss(value) == expected

    def test_normalize_duration_converts_hours_only_when_asked(self):
        """A three-part duration is rejected unless hours are folded into minutes."""
        assert normalize_duration_to_mmss("1:05:00") is None
        assert normalize_duration_to_mmss("1:05:00", convert_hours_to_minutes=True) == "65:00"

    def test_normalize_clock_duration(self):
        assert normalize_clock_duration("45:00") == "00:45:00"
        assert normalize_clock_duration("01:10:00") == "01:10:00"
        assert normalize_clock_duration("75:00") == "01:15:00"
        assert normalize_clock_duration("1:75:00") == "00:00:00"
        assert normalize_clock_duration("") == "00:00:00"

    def test_duration_to_minutes(self):
        assert duration_to_minutes("12:30") == 12
        assert duration_to_minutes("1:05:00") == 65
        assert duration_to_minutes("bad") == 0


class TestPace:
    def test_validate_pace(self):
        assert validate_pace("4:30") is True
        assert validate_pace("04:59") is True
        assert validate_pace("4:60") is False
        assert validate_pace("fast") is False
        assert validate_pace(None) is False

    def test_normalize_pace_pads(self):
        assert normalize_pace("4:5") == "04:05"
        assert normalize_pace("4:61") is None

    def test_normalize_pace_keeps_ranges(self):
        """A pace range stays as written; a single pace is zero-padded."""
        assert normalize_pace_or_range("5:30-5:40") == "5:30-5:40"
        assert normalize_pace_or_range("5:3") == "05:03"

    def test_pace_to_seconds_and_back(self):
        assert pace_to_seconds("04:30") == 270
        assert seconds_to_pace(270) == "04:30"

    def test_seconds_to_pace_rounds_before_splitting(self):
        """299.6 s/km rounds to 05:00, never 04:60."""
        assert seconds_to_pace(299.6) == "05:00"

    def test_seconds_to_pace_non_positive(self):
        assert seconds_to_pace(0) is None
        assert seconds_to_pace(None) is None

    def test_format_pace(self):
        """10 km in 50 minutes is 5:00/km; zero distance gives 00:00."""
        assert format_pace(10, 3000) == "05:00"
        assert format_pace(0, 3000) == "00:00"

    def test_pace_from_duration_and_distance(self):
        assert pace_from_duration_and_distance("00:50:00", 10) == "05:00"
        assert pace_from_duration_and_distance("00:50:00", 0) is None
        assert pace_from_duration_and_distance(None, 10) is None

    def test_leading_pace_seconds_uses_first_bound(self):
        assert leading_pace_seconds("5:30-5:40") == 330
        assert leading_pace_seconds("04:00") == 240
        assert leading_pace_seconds(None) is None


class TestHeartRate:
    def test_parse_hr_value(self):
        """Numbers pass through, ranges give their midpoint, strings are read."""
        assert parse_hr_value(150) == 150.0
        assert parse_hr_value("160-170") == 165.0
        assert parse_hr_value("155 bpm") == 155.0
        assert parse_hr_value("") is None
        assert parse_hr_value(0) is None

    def test_step_heart_rate_prefers_explicit_value(self):
        assert step_heart_rate(158, "160-170") == 158.0
        assert step_heart_rate(None, "160-170") == 165.0
        assert step_heart_rate(None, None) is None


class TestWeeks:
    def test_iso_week_key_across_year_boundary(self):
        """Jan 1st 2021 belongs to ISO week 53 of 2020."""
        assert iso_week_key(date(2021, 1, 1)) == "2020-W53"
        assert iso_week_key(date(2024, 1, 15)) == "2024-W03"

    def test_week_start_is_monday(self):
        assert week_start("2024-W03") == date(2024, 1, 15)

    def test_week_key_range_inclusive(self):
        assert week_key_range("2020-W52", "2021-W02") == ["2020-W52", "2020-W53", "2021-W01", "2021-W02"]

    def test_ensure_utc(self):
        """Naive datetimes are read as UTC."""
        naive = datetime(2024, 5, 1, 8, 0)
        assert ensure_utc(naive).tzinfo == timezone.utc
        assert ensure_utc(None) is None
