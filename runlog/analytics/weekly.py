"""Weekly distance analytics.

Sessions are bucketed by ISO week. The chart covers every week from the
first to the last week holding a session, including empty weeks, so gaps in
training stay visible.
"""

from __future__ import annotations

from datetime import date, timedelta

from pydantic import BaseModel

from runlog.sessions.schemas import CompletedSession, PlannedSession
from runlog.utils.dates import ensure_utc
from runlog.utils.weeks import iso_week_key, week_key_range, week_start

MONTH_LABELS = ("jan", "fév", "mar", "avr", "mai", "juin", "juil", "août", "sep", "oct", "nov", "déc")


class WeeklyDataPoint(BaseModel):
    label: str
    week_key: str
    training_week: int | None
    km: float
    planned_km: float
    total_with_planned: float
    completed_count: int
    planned_count: int
    change_percent: float | None = None
    change_percent_with_planned: float | None = None
    gap_weeks: int
    is_active: bool
    week_start: date
    week_end: date


class WeeklyStats(BaseModel):
    total_km: float = 0.0
    total_sessions: int = 0
    average_km_per_week: float = 0.0
    average_km_per_active_week: float = 0.0
    active_weeks_count: int = 0
    total_weeks_span: int = 0
    chart_data: list[WeeklyDataPoint] = []


def format_week_label(start: date, end: date, include_year: bool) -> str:
    """Week label like "3-9 juin", or "27 mai - 2 juin" across months."""
    suffix = f" {end.year}" if include_year else ""
    if start.month == end.month:
        return f"{start.day}-{end.day} {MONTH_LABELS[start.month - 1]}{suffix}"
    return f"{start.day} {MONTH_LABELS[start.month - 1]} - {end.day} {MONTH_LABELS[end.month - 1]}{suffix}"


def _bucket(sessions, date_of) -> tuple[dict[str, float], dict[str, int]]:
    km: dict[str, float] = {}
    counts: dict[str, int] = {}
    for session in sessions:
        when = date_of(session)
        if when is None:
            continue
        key = iso_week_key(ensure_utc(when))
        km[key] = km.get(key, 0.0) + session.effective_distance_km()
        counts[key] = counts.get(key, 0) + 1
    return km, counts


def _change_percent(current: float, previous: float) -> float:
    return round((current - previous) / previous * 100, 1)


def calculate_weekly_stats(
    completed: list[CompletedSession],
    planned: list[PlannedSession] | None = None,
) -> WeeklyStats:
    """Weekly distance totals of completed sessions, with planned distance alongside.

    Planned sessions are placed by their planned date and count their target
    distance. Without completed sessions the result is empty.

    Args:
        completed: Completed sessions
        planned: Planned sessions (optional)

    Returns:
        WeeklyStats with one chart point per week in the covered range
    """
    if not completed:
        return WeeklyStats()

    weekly_km, weekly_count = _bucket(completed, lambda s: s.date)
    planned_km, planned_count = _bucket(planned or [], lambda s: s.planned_date or s.date)

    active_keys = sorted(set(weekly_km) | set(planned_km))
    if not active_keys:
        return WeeklyStats()

    all_keys = week_key_range(active_keys[0], active_keys[-1])
    include_year = week_start(active_keys[0]).year != week_start(active_keys[-1]).year

    chart: list[WeeklyDataPoint] = []
    training_week = 0
    last_active_index = -1
    for index, key in enumerate(all_keys):
        km = weekly_km.get(key, 0.0)
        plan_km = planned_km.get(key, 0.0)
        is_active = km > 0 or plan_km > 0
        gap_weeks = index - last_active_index - 1 if last_active_index >= 0 else 0
        if is_active:
            training_week += 1
            last_active_index = index

        start = week_start(key)
        end = start + timedelta(days=6)
        chart.append(
            WeeklyDataPoint(
                label=format_week_label(start, end, include_year),
                week_key=key,
                training_week=training_week if is_active else None,
                km=round(km, 1),
                planned_km=round(plan_km, 1),
                total_with_planned=round(km + plan_km, 1),
                completed_count=weekly_count.get(key, 0),
                planned_count=planned_count.get(key, 0),
                gap_weeks=gap_weeks,
                is_active=is_active,
                week_start=start,
                week_end=end,
            )
        )

    # Change is measured against the last active week that had completed distance
    previous_km: float | None = None
    for point in chart:
        if not point.is_active:
            continue
        if previous_km:
            if point.km > 0:
                point.change_percent = _change_percent(point.km, previous_km)
            if point.total_with_planned > 0:
                point.change_percent_with_planned = _change_percent(point.total_with_planned, previous_km)
        if point.km > 0:
            previous_km = point.km

    total_km = sum(weekly_km.values())
    active_weeks = sum(1 for key in active_keys if weekly_km.get(key, 0) > 0)
    return WeeklyStats(
        total_km=total_km,
        total_sessions=len(completed),
        average_km_per_week=total_km / len(all_keys) if all_keys else 0.0,
        average_km_per_active_week=total_km / active_weeks if active_weeks else 0.0,
        active_weeks_count=active_weeks,
        total_weeks_span=len(all_keys),
        chart_data=chart,
    )
