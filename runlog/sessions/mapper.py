"""ORM rows to TrainingSession models."""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from runlog.db.models import ExternalActivity, PlanSession, WeatherObservation, Workout
from runlog.intervals.types import IntervalDetails
from runlog.sessions.schemas import CompletedSession, PlannedSession, SessionView, WeatherData
from runlog.utils.dates import ensure_utc
from runlog.utils.duration import format_duration_hhmmss

PREFERRED_SOURCE = "strava"


def _interval_details(plan: PlanSession | None) -> IntervalDetails | None:
    if plan is None or not plan.interval_details:
        return None
    try:
        return IntervalDetails.model_validate(plan.interval_details)
    except ValidationError as e:
        logger.warning(f"[SESSIONS] Plan {plan.id} has invalid interval details ({e.error_count()} errors), ignoring")
        return None


def _primary_external(activities: list[ExternalActivity]) -> ExternalActivity | None:
    if not activities:
        return None
    return next((a for a in activities if a.source == PREFERRED_SOURCE), activities[0])


def _weather(observation: WeatherObservation | None) -> WeatherData | None:
    if observation is None:
        return None
    return WeatherData(
        observed_at=ensure_utc(observation.observed_at),
        temperature=observation.temperature,
        apparent_temperature=observation.apparent_temperature,
        humidity=observation.humidity,
        wind_speed=observation.wind_speed,
        precipitation=observation.precipitation,
        condition_code=observation.condition_code,
        payload=observation.payload,
    )


def _plan_targets(plan: PlanSession | None) -> dict:
    if plan is None:
        return {}
    return {
        "planned_date": ensure_utc(plan.planned_date),
        "target_duration": plan.target_duration,
        "target_distance": plan.target_distance,
        "target_pace": plan.target_pace,
        "target_heart_rate_bpm": plan.target_heart_rate_bpm,
        "target_rpe": plan.target_rpe,
        "recommendation_id": plan.recommendation_id,
    }


def map_workout_to_session(workout: Workout, view: SessionView = SessionView.TABLE) -> CompletedSession:
    """Completed session from a workout, its metrics and its linked plan.

    Session type and comments fall back to the linked plan; interval details
    and targets always come from it.
    """
    plan = workout.plan_session
    metrics = workout.metrics
    external = _primary_external(workout.external_activities)

    duration = None
    distance = None
    if metrics is not None:
        if metrics.duration_seconds is not None:
            duration = format_duration_hhmmss(metrics.duration_seconds)
        if metrics.distance_meters is not None:
            distance = metrics.distance_meters / 1000

    return CompletedSession(
        id=workout.id,
        user_id=workout.user_id,
        session_number=workout.session_number or 0,
        week=workout.week,
        date=ensure_utc(workout.date),
        session_type=workout.session_type or (plan.session_type if plan else None),
        duration=duration,
        distance=distance,
        avg_pace=metrics.avg_pace if metrics else None,
        avg_heart_rate=metrics.avg_heart_rate if metrics else None,
        perceived_exertion=workout.perceived_exertion,
        elevation_gain=metrics.elevation_gain if metrics else None,
        average_cadence=metrics.average_cadence if metrics else None,
        calories=metrics.calories if metrics else None,
        comments=workout.comments or (plan.comments if plan else "") or "",
        interval_details=_interval_details(plan),
        external_id=external.external_id if external else None,
        source=external.source if external else None,
        external_payload=external.payload if external and view == SessionView.FULL else None,
        weather=_weather(workout.weather) if view in (SessionView.EXPORT, SessionView.FULL) else None,
        **_plan_targets(plan),
    )


def map_plan_to_session(plan: PlanSession, include_planned_date_as_date: bool = False) -> PlannedSession:
    planned_date = ensure_utc(plan.planned_date)
    return PlannedSession(
        id=plan.id,
        user_id=plan.user_id,
        session_number=plan.session_number or 0,
        week=plan.week,
        date=planned_date if include_planned_date_as_date else None,
        session_type=plan.session_type,
        comments=plan.comments or "",
        interval_details=_interval_details(plan),
        **_plan_targets(plan),
    )
