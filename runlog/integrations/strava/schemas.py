from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from runlog.intervals.detector import detect_interval_structure
from runlog.intervals.types import Lap
from runlog.sessions.schemas import CompletedSessionCreate, ExternalSource
from runlog.utils.duration import format_duration_hhmmss
from runlog.utils.pace import format_pace

STRAVA_SOURCE = "strava"


class StravaActivity(BaseModel):
    id: int
    name: str | None = None
    type: str = "Run"
    start_date: datetime
    start_date_local: datetime | None = None
    moving_time: int
    elapsed_time: int
    distance: float
    total_elevation_gain: float | None = None
    average_heartrate: float | None = None
    max_heartrate: float | None = None
    average_cadence: float | None = None
    calories: float | None = None

    raw: dict | None = None  # Raw API response


class StravaLap(BaseModel):
    id: int | None = None
    lap_index: int | None = None
    start_date: datetime | None = None
    elapsed_time: int
    moving_time: int | None = None
    distance: float
    average_heartrate: float | None = None
    max_heartrate: float | None = None


def strava_laps_to_laps(laps: list[StravaLap]) -> list[Lap]:
    """Strava laps as detector input, in lap_index order when Strava provides it."""
    ordered = sorted(laps, key=lambda lap: lap.lap_index if lap.lap_index is not None else 0)
    return [
        Lap(
            start_time=lap.start_date.isoformat() if lap.start_date else None,
            total_time_seconds=float(lap.elapsed_time),
            distance_meters=lap.distance,
            average_heart_rate=round(lap.average_heartrate) if lap.average_heartrate else None,
            maximum_heart_rate=round(lap.max_heartrate) if lap.max_heartrate else None,
        )
        for lap in ordered
    ]


def strava_activity_to_session(activity: StravaActivity, laps: list[StravaLap]) -> CompletedSessionCreate:
    """Map a Strava activity and its laps to a completed session.

    The session date is the activity's local start so it lands on the day the
    athlete ran. Interval details are attached only when the laps show an
    effort/recovery structure.
    """
    distance_km = round(activity.distance / 1000, 2)
    structure = detect_interval_structure(strava_laps_to_laps(laps))

    return CompletedSessionCreate(
        date=activity.start_date_local or activity.start_date,
        session_type=activity.type or "Run",
        duration=format_duration_hhmmss(activity.moving_time),
        distance=distance_km,
        avg_pace=format_pace(distance_km, activity.moving_time) if distance_km > 0 else None,
        avg_heart_rate=round(activity.average_heartrate) if activity.average_heartrate else None,
        comments=activity.name or "",
        interval_details=structure.to_interval_details() if structure.is_interval else None,
        elevation_gain=activity.total_elevation_gain,
        average_cadence=activity.average_cadence,
        calories=round(activity.calories) if activity.calories else None,
        external=ExternalSource(
            source=STRAVA_SOURCE,
            external_id=str(activity.id),
            started_at=activity.start_date,
            payload=activity.raw,
        ),
    )
