"""Session mutations.

Every mutation locks the user row, applies its changes and renumbers the
user's sessions before returning, all inside the caller's transaction.
Commit and rollback belong to the caller (see runlog.db.session.get_session).
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from runlog.core.errors import InvalidSessionStateError, SessionNotFoundError
from runlog.db.models import ExternalActivity, PlanSession, WeatherObservation, Workout, WorkoutMetricsRaw
from runlog.intervals.types import IntervalDetails
from runlog.sessions.mapper import map_plan_to_session, map_workout_to_session
from runlog.sessions.numbering import lock_user, recalculate_session_numbers
from runlog.sessions.schemas import (
    CompletedSession,
    CompletedSessionCreate,
    CompleteSessionRequest,
    ExternalSource,
    PlannedSession,
    PlannedSessionCreate,
    SessionUpdate,
    SessionView,
    TrainingSession,
    WeatherData,
)
from runlog.utils.dates import ensure_utc
from runlog.utils.duration import parse_duration
from runlog.utils.heart_rate import parse_hr_value
from runlog.utils.pace import leading_pace_seconds, pace_to_seconds, seconds_to_pace

COMPLETED_ONLY_FIELDS = ("date", "duration", "distance", "avg_pace", "avg_heart_rate", "perceived_exertion")
PLAN_FIELDS = (
    "planned_date",
    "target_duration",
    "target_distance",
    "target_pace",
    "target_heart_rate_bpm",
    "target_rpe",
)


def _get_workout(session: Session, user_id: str, session_id: str) -> Workout | None:
    return session.execute(
        select(Workout).where(Workout.id == session_id, Workout.user_id == user_id)
    ).unique().scalar_one_or_none()


def _get_plan(session: Session, user_id: str, session_id: str) -> PlanSession | None:
    return session.execute(
        select(PlanSession).where(PlanSession.id == session_id, PlanSession.user_id == user_id)
    ).scalar_one_or_none()


def _refresh_plan_sort_keys(plan: PlanSession) -> None:
    plan.target_pace_seconds = leading_pace_seconds(plan.target_pace)
    plan.target_heart_rate_value = parse_hr_value(plan.target_heart_rate_bpm)


def _dump_interval_details(details: IntervalDetails | None) -> dict | None:
    return details.model_dump(mode="json") if details is not None else None


def _set_metrics(metrics: WorkoutMetricsRaw, values: dict) -> None:
    """Apply duration/distance/pace/HR values, keeping the pace sort key in sync."""
    if "duration" in values:
        metrics.duration_seconds = parse_duration(values["duration"])
    if "distance" in values:
        distance = values["distance"]
        metrics.distance_meters = distance * 1000 if distance is not None else None
    if "avg_pace" in values:
        metrics.avg_pace = values["avg_pace"]
    if not metrics.avg_pace and metrics.duration_seconds and metrics.distance_meters:
        metrics.avg_pace = seconds_to_pace(metrics.duration_seconds / (metrics.distance_meters / 1000))
    metrics.avg_pace_seconds = pace_to_seconds(metrics.avg_pace)
    for name in ("avg_heart_rate", "elevation_gain", "average_cadence", "calories"):
        if name in values:
            setattr(metrics, name, values[name])


def _upsert_weather(workout: Workout, weather: WeatherData) -> None:
    values = weather.model_dump()
    values["observed_at"] = ensure_utc(values["observed_at"])
    if workout.weather is None:
        workout.weather = WeatherObservation(**values)
        return
    for name, value in values.items():
        setattr(workout.weather, name, value)


def _upsert_external(session: Session, workout: Workout, external: ExternalSource) -> None:
    existing = session.execute(
        select(ExternalActivity).where(
            ExternalActivity.source == external.source,
            ExternalActivity.external_id == external.external_id,
        )
    ).scalar_one_or_none()

    if existing is not None and existing.workout_id != workout.id:
        raise InvalidSessionStateError(
            f"{external.source} activity {external.external_id} is already linked to session {existing.workout_id}",
            {"source": external.source, "external_id": external.external_id, "session_id": existing.workout_id},
        )

    if existing is None:
        workout.external_activities.append(
            ExternalActivity(
                source=external.source,
                external_id=external.external_id,
                started_at=ensure_utc(external.started_at),
                payload=external.payload,
            )
        )
    else:
        existing.started_at = ensure_utc(external.started_at)
        existing.payload = external.payload


def _insert_planned(session: Session, user_id: str, payload: PlannedSessionCreate) -> PlanSession:
    plan = PlanSession(
        user_id=user_id,
        status="planned",
        planned_date=ensure_utc(payload.planned_date),
        session_type=payload.session_type,
        target_duration=payload.target_duration,
        target_distance=payload.target_distance,
        target_pace=payload.target_pace,
        target_heart_rate_bpm=payload.target_heart_rate_bpm,
        target_rpe=payload.target_rpe,
        interval_details=_dump_interval_details(payload.interval_details),
        recommendation_id=payload.recommendation_id,
        comments=payload.comments,
    )
    _refresh_plan_sort_keys(plan)
    session.add(plan)
    return plan


def _insert_completed(session: Session, user_id: str, payload: CompletedSessionCreate) -> Workout:
    workout = Workout(
        user_id=user_id,
        date=ensure_utc(payload.date),
        status="completed",
        session_type=payload.session_type,
        perceived_exertion=payload.perceived_exertion,
        comments=payload.comments,
    )

    if payload.interval_details is not None:
        # Interval structure of a completed session is held by a linked plan row
        workout.plan_session = PlanSession(
            user_id=user_id,
            status="completed",
            planned_date=ensure_utc(payload.date),
            session_type=payload.session_type,
            interval_details=_dump_interval_details(payload.interval_details),
            comments="",
        )

    metrics = WorkoutMetricsRaw()
    _set_metrics(metrics, payload.model_dump(include={
        "duration", "distance", "avg_pace", "avg_heart_rate", "elevation_gain", "average_cadence", "calories",
    }))
    workout.metrics = metrics
    session.add(workout)
    session.flush()

    if payload.external is not None:
        _upsert_external(session, workout, payload.external)
    if payload.weather is not None:
        _upsert_weather(workout, payload.weather)
    return workout


def create_planned_session(session: Session, user_id: str, payload: PlannedSessionCreate) -> PlannedSession:
    lock_user(session, user_id)
    plan = _insert_planned(session, user_id, payload)
    recalculate_session_numbers(session, user_id)
    logger.info(f"[SESSIONS] Created planned session {plan.id} for user_id={user_id}")
    return map_plan_to_session(plan)


def create_completed_session(session: Session, user_id: str, payload: CompletedSessionCreate) -> CompletedSession:
    lock_user(session, user_id)
    workout = _insert_completed(session, user_id, payload)
    recalculate_session_numbers(session, user_id)
    logger.info(f"[SESSIONS] Created completed session {workout.id} for user_id={user_id}")
    return map_workout_to_session(workout, SessionView.FULL)


def bulk_create_sessions(
    session: Session,
    user_id: str,
    payloads: list[CompletedSessionCreate | PlannedSessionCreate],
) -> list[TrainingSession]:
    """Insert many sessions under one lock and one renumbering pass."""
    lock_user(session, user_id)
    rows = []
    for payload in payloads:
        if isinstance(payload, CompletedSessionCreate):
            rows.append(_insert_completed(session, user_id, payload))
        else:
            rows.append(_insert_planned(session, user_id, payload))
    recalculate_session_numbers(session, user_id)
    logger.info(f"[SESSIONS] Bulk created {len(rows)} sessions for user_id={user_id}")
    return [
        map_workout_to_session(row, SessionView.TABLE) if isinstance(row, Workout) else map_plan_to_session(row)
        for row in rows
    ]


def complete_planned_session(
    session: Session,
    user_id: str,
    plan_id: str,
    payload: CompleteSessionRequest,
) -> CompletedSession:
    """Record a planned session as done.

    The workout reuses the plan id, so links to the session stay valid.

    Raises:
        SessionNotFoundError: If the plan does not exist for this user
        InvalidSessionStateError: If the plan is already completed
    """
    lock_user(session, user_id)
    plan = _get_plan(session, user_id, plan_id)
    if plan is None:
        raise SessionNotFoundError(plan_id)
    if plan.status != "planned" or session.get(Workout, plan_id) is not None:
        raise InvalidSessionStateError(f"Session {plan_id} is already completed", {"session_id": plan_id})

    workout = Workout(
        id=plan.id,
        user_id=user_id,
        date=ensure_utc(payload.date),
        status="completed",
        session_type=plan.session_type,
        perceived_exertion=payload.perceived_exertion,
        comments=payload.comments if payload.comments is not None else plan.comments,
    )
    workout.plan_session = plan
    metrics = WorkoutMetricsRaw()
    _set_metrics(metrics, payload.model_dump(include={
        "duration", "distance", "avg_pace", "avg_heart_rate", "elevation_gain", "average_cadence", "calories",
    }))
    workout.metrics = metrics
    plan.status = "completed"
    session.add(workout)
    session.flush()

    if payload.weather is not None:
        _upsert_weather(workout, payload.weather)

    recalculate_session_numbers(session, user_id)
    logger.info(f"[SESSIONS] Completed planned session {plan_id} for user_id={user_id}")
    return map_workout_to_session(workout, SessionView.FULL)


def _update_workout(workout: Workout, user_id: str, changes: dict) -> None:
    if "date" in changes and changes["date"] is not None:
        workout.date = ensure_utc(changes["date"])
    if "session_type" in changes and changes["session_type"]:
        workout.session_type = changes["session_type"]
    if "perceived_exertion" in changes:
        workout.perceived_exertion = changes["perceived_exertion"]
    if "comments" in changes and changes["comments"] is not None:
        workout.comments = changes["comments"]

    metric_changes = {k: v for k, v in changes.items() if k in ("duration", "distance", "avg_pace", "avg_heart_rate")}
    if metric_changes:
        if workout.metrics is None:
            workout.metrics = WorkoutMetricsRaw()
        _set_metrics(workout.metrics, metric_changes)

    plan_changes = {k: v for k, v in changes.items() if k in PLAN_FIELDS or k == "interval_details"}
    if plan_changes:
        if workout.plan_session is None:
            workout.plan_session = PlanSession(
                user_id=user_id,
                status="completed",
                planned_date=workout.date,
                session_type=workout.session_type,
                comments="",
            )
        _apply_plan_changes(workout.plan_session, plan_changes)


def _apply_plan_changes(plan: PlanSession, changes: dict) -> None:
    for name in PLAN_FIELDS:
        if name in changes:
            value = changes[name]
            setattr(plan, name, ensure_utc(value) if name == "planned_date" else value)
    if "interval_details" in changes:
        details = changes["interval_details"]
        plan.interval_details = IntervalDetails.model_validate(details).model_dump(mode="json") if details else None
    if "session_type" in changes and changes["session_type"]:
        plan.session_type = changes["session_type"]
    if "comments" in changes and changes["comments"] is not None:
        plan.comments = changes["comments"]
    _refresh_plan_sort_keys(plan)


def update_session(session: Session, user_id: str, session_id: str, updates: SessionUpdate) -> TrainingSession:
    """Apply a partial update to a completed or planned session.

    Raises:
        SessionNotFoundError: If no session has this id for the user
        InvalidSessionStateError: If recorded metrics are sent for a planned session
    """
    lock_user(session, user_id)
    changes = updates.model_dump(exclude_unset=True)

    workout = _get_workout(session, user_id, session_id)
    if workout is not None:
        _update_workout(workout, user_id, changes)
        recalculate_session_numbers(session, user_id)
        logger.info(f"[SESSIONS] Updated completed session {session_id}: {sorted(changes)}")
        return map_workout_to_session(workout, SessionView.FULL)

    plan = _get_plan(session, user_id, session_id)
    if plan is None:
        raise SessionNotFoundError(session_id)

    completed_only = sorted(set(changes) & set(COMPLETED_ONLY_FIELDS))
    if completed_only:
        raise InvalidSessionStateError(
            f"Fields {completed_only} only apply to completed sessions; complete the session instead",
            {"session_id": session_id, "fields": completed_only},
        )

    _apply_plan_changes(plan, changes)
    recalculate_session_numbers(session, user_id)
    logger.info(f"[SESSIONS] Updated planned session {session_id}: {sorted(changes)}")
    return map_plan_to_session(plan)


def _delete_one(session: Session, user_id: str, session_id: str) -> bool:
    workout = _get_workout(session, user_id, session_id)
    if workout is not None:
        linked_plan = workout.plan_session
        session.delete(workout)
        if linked_plan is not None:
            session.delete(linked_plan)
        session.flush()
        return True

    plan = _get_plan(session, user_id, session_id)
    if plan is not None:
        # A plan row holding a workout's interval details goes with its workout
        linked_workout = session.execute(
            select(Workout).where(Workout.plan_session_id == plan.id)
        ).unique().scalar_one_or_none()
        if linked_workout is not None:
            session.delete(linked_workout)
        session.delete(plan)
        session.flush()
        return True
    return False


def delete_session(session: Session, user_id: str, session_id: str) -> bool:
    """Delete a session (and, for a completed one, its linked plan row).

    Returns:
        False if nothing matched
    """
    lock_user(session, user_id)
    deleted = _delete_one(session, user_id, session_id)
    if deleted:
        recalculate_session_numbers(session, user_id)
        logger.info(f"[SESSIONS] Deleted session {session_id} for user_id={user_id}")
    return deleted


def delete_sessions(session: Session, user_id: str, session_ids: list[str]) -> int:
    """Delete many sessions under one lock and one renumbering pass."""
    lock_user(session, user_id)
    deleted = sum(1 for session_id in dict.fromkeys(session_ids) if _delete_one(session, user_id, session_id))
    if deleted:
        recalculate_session_numbers(session, user_id)
    logger.info(f"[SESSIONS] Deleted {deleted}/{len(session_ids)} sessions for user_id={user_id}")
    return deleted


def update_session_weather(session: Session, user_id: str, session_id: str, weather: WeatherData) -> CompletedSession:
    """Attach or replace the weather observation of a completed session."""
    workout = _get_workout(session, user_id, session_id)
    if workout is None:
        raise SessionNotFoundError(session_id)
    _upsert_weather(workout, weather)
    session.flush()
    logger.debug(f"[SESSIONS] Updated weather for session {session_id}")
    return map_workout_to_session(workout, SessionView.EXPORT)
