"""ISO week helpers used by numbering and weekly analytics."""

from __future__ import annotations

from datetime import date, datetime, timedelta


def iso_week_key(value: date | datetime) -> str:
    """ISO week key, e.g. "2024-W03"."""
    year, week, _ = value.isocalendar()
    return f"{year}-W{week:02d}"


def week_start(key: str) -> date:
    """Monday of the week identified by an ISO week key."""
    year_part, week_part = key.split("-W")
    return date.fromisocalendar(int(year_part), int(week_part), 1)


def week_key_range(first_key: str, last_key: str) -> list[str]:
    """All ISO week keys from first_key to last_key, inclusive."""
    current = week_start(first_key)
    end = week_start(last_key)
    keys = []
    while current <= end:
        keys.append(iso_week_key(current))
        current += timedelta(days=7)
    return keys
