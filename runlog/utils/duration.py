"""Duration parsing and formatting.

Durations travel as strings: "MM:SS" for laps and steps (minutes may run
past 59), "HH:MM:SS" for whole sessions.
"""

from __future__ import annotations

import math
import re

_APOSTROPHE_PATTERN = re.compile(r"^(\d+)'(\d{1,2})\"?$")


def parse_duration(value: str | None) -> int | None:
    """Parse "MM:SS" or "HH:MM:SS" into seconds.

    Seconds must be below 60; in the three-part form minutes must be too.
    Returns None for anything else.
    """
    if not value or not isinstance(value, str):
        return None

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        return None

    numbers = [int(p) for p in parts]
    if len(numbers) == 2:
        minutes, seconds = numbers
        if seconds >= 60:
            return None
        return minutes * 60 + seconds

    hours, minutes, seconds = numbers
    if minutes >= 60 or seconds >= 60:
        return None
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: float | None) -> str:
    """Format seconds as "MM:SS" below one hour, "HH:MM:SS" above."""
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return "00:00"

    total = round(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_duration_hhmmss(seconds: float | None) -> str:
    """Format seconds as "HH:MM:SS", always with the hour field."""
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return "00:00:00"

    total = round(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_minutes_seconds(seconds: float) -> str:
    """Format seconds as "MM:SS" with minutes allowed past 59."""
    total = round(seconds)
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def normalize_duration_to_mmss(value: str | None, convert_hours_to_minutes: bool = False) -> str | None:
    """Normalize a free-form step duration to "MM:SS".

    Accepts:
    - "5'00" / 5'00"   -> "05:00"
    - "4:30.2"         -> "04:30" (fractional seconds dropped)
    - "1:05:00"        -> "65:00" when convert_hours_to_minutes is set
    - "12"             -> "12:00" (plain minutes)
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    match = _APOSTROPHE_PATTERN.match(text)
    if match:
        minutes, seconds = int(match.group(1)), int(match.group(2))
        if seconds >= 60:
            return None
        return f"{minutes:02d}:{seconds:02d}"

    if ":" in text:
        parts = text.split(".")[0].split(":")
        if not all(p.isdigit() for p in parts):
            return None
        numbers = [int(p) for p in parts]
        if len(numbers) == 2:
            minutes, seconds = numbers
        elif len(numbers) == 3 and convert_hours_to_minutes:
            minutes, seconds = numbers[0] * 60 + numbers[1], numbers[2]
        else:
            return None
        if seconds >= 60:
            return None
        return f"{minutes:02d}:{seconds:02d}"

    if text.isdigit():
        return f"{int(text):02d}:00"

    return None


def normalize_clock_duration(value: str | None) -> str:
    """Normalize a session duration to "HH:MM:SS".

    "MM:SS" gets an hour field ("75:00" -> "01:15:00"); unreadable values
    become "00:00:00".
    """
    return format_duration_hhmmss(parse_duration(value) or 0)


def duration_to_minutes(value: str | None) -> int:
    """Whole minutes of a "MM:SS" or "H:MM:SS" duration (0 when unreadable)."""
    if not value:
        return 0
    parts = value.strip().split(".")[0].split(":")
    if not all(p.isdigit() for p in parts):
        return 0
    if len(parts) == 2:
        return int(parts[0])
    if len(parts) == 3:
        return int(parts[0]) * 60 + int(parts[1])
    return 0
