"""Pace helpers. Paces are "MM:SS" per kilometer."""

from __future__ import annotations

import math
import re

from runlog.utils.duration import parse_duration

_PACE_PATTERN = re.compile(r"^(\d{1,3}):(\d{1,2})(?::(\d{1,2}))?$")
_RANGE_PATTERN = re.compile(r"^\s*(\d{1,2}:\d{2})\s*-\s*(\d{1,2}:\d{2})\s*$")


def validate_pace(value: str | None) -> bool:
    """Whether value is a "M:SS", "MM:SS" or "H:MM:SS" pace with seconds below 60."""
    if not value:
        return False
    match = _PACE_PATTERN.match(value.strip())
    if not match:
        return False
    last = match.group(3) if match.group(3) is not None else match.group(2)
    return int(last) < 60


def normalize_pace(value: str | None) -> str | None:
    """Zero-pad a pace ("4:5" -> "04:05"). Returns None when invalid."""
    if not validate_pace(value):
        return None
    parts = [int(p) for p in value.strip().split(":")]
    return ":".join(f"{p:02d}" for p in parts)


def normalize_pace_or_range(value: str | None) -> str | None:
    """Normalize a single pace, keeping ranges like "5:30-5:40" as given."""
    if not value:
        return None
    if _RANGE_PATTERN.match(value):
        return value.strip()
    return normalize_pace(value)


def pace_to_seconds(value: str | None) -> int | None:
    """Seconds per km of a "MM:SS" pace."""
    if not validate_pace(value):
        return None
    parts = [int(p) for p in value.strip().split(":")]
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    return parts[0] * 3600 + parts[1] * 60 + parts[2]


def seconds_to_pace(seconds_per_km: float | None) -> str | None:
    """Format seconds per km as "MM:SS" (None for non-positive input)."""
    if seconds_per_km is None or not math.isfinite(seconds_per_km) or seconds_per_km <= 0:
        return None
    total = round(seconds_per_km)
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_pace(distance_km: float, duration_seconds: float) -> str:
    """Average pace for a distance covered in a duration; "00:00" without distance."""
    if not distance_km or distance_km <= 0:
        return "00:00"
    return seconds_to_pace(duration_seconds / distance_km) or "00:00"


def pace_from_duration_and_distance(duration: str | None, distance_km: float | None) -> str | None:
    seconds = parse_duration(duration)
    if not seconds or not distance_km or distance_km <= 0:
        return None
    return seconds_to_pace(seconds / distance_km)


def leading_pace_seconds(value: str | None) -> int | None:
    """Seconds per km of a pace, or of the first bound of a pace range."""
    if not value:
        return None
    return pace_to_seconds(value.split("-")[0].strip())
