"""Heart-rate value parsing."""

from __future__ import annotations

import re

_RANGE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*$")


def parse_hr_value(value: int | float | str | None) -> float | None:
    """Parse a heart-rate value.

    Numbers pass through; "160-170" gives the midpoint; numeric strings are
    read as integers. Returns None for missing or non-positive values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None

    text = str(value).strip()
    match = _RANGE_PATTERN.match(text)
    if match:
        low, high = float(match.group(1)), float(match.group(2))
        return (low + high) / 2

    digits = re.match(r"^\d+", text)
    if not digits:
        return None
    parsed = int(digits.group(0))
    return float(parsed) if parsed > 0 else None


def step_heart_rate(hr: int | None, hr_range: str | None) -> float | None:
    """Heart rate of an interval step: explicit value first, then its range."""
    if hr:
        return float(hr)
    return parse_hr_value(hr_range)
