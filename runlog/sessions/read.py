"""Unified session reads.

Completed workouts and unlinked plan sessions are combined in one
UNION ALL so sorting and pagination happen in the database across both
kinds. The page query only returns (id, kind); rows are then loaded with
their relationships and mapped in page order.
"""

from __future__ import annotations

from typing import Literal

from loguru import logger
from sqlalchemy import DateTime, Float, String, cast, func, literal, null, select, union_all
from sqlalchemy.orm import Session, selectinload

from runlog.db.models import PlanSession, Workout, WorkoutMetricsRaw
from runlog.sessions.filters import SessionFilters, plan_conditions, workout_conditions
from runlog.sessions.mapper import map_plan_to_session, map_workout_to_session
from runlog.sessions.schemas import SessionView, TrainingSession
from runlog.sessions.sorting import build_order_by, parse_sort_param

SessionKind = Literal["workout", "plan"]


def _workout_rows(filters: SessionFilters):
    metrics = WorkoutMetricsRaw
    return (
        select(
            Workout.id.label("id"),
            literal("workout", type_=String).label("kind"),
            Workout.status.label("status"),
            Workout.session_number.label("session_number"),
            Workout.week.label("week"),
            Workout.date.label("date"),
            cast(null(), DateTime(timezone=True)).label("planned_date"),
            Workout.session_type.label("session_type"),
            cast(metrics.duration_seconds, Float).label("duration_key"),
            (metrics.distance_meters / 1000.0).label("distance_key"),
            cast(metrics.avg_pace_seconds, Float).label("pace_key"),
            cast(metrics.avg_heart_rate, Float).label("heart_rate_key"),
            cast(Workout.perceived_exertion, Float).label("rpe_key"),
        )
        .select_from(Workout)
        .outerjoin(metrics, metrics.workout_id == Workout.id)
        .where(*workout_conditions(filters))
    )


def _plan_rows(filters: SessionFilters):
    return select(
        PlanSession.id.label("id"),
        literal("plan", type_=String).label("kind"),
        PlanSession.status.label("status"),
        PlanSession.session_number.label("session_number"),
        PlanSession.week.label("week"),
        cast(null(), DateTime(timezone=True)).label("date"),
        PlanSession.planned_date.label("planned_date"),
        PlanSession.session_type.label("session_type"),
        (PlanSession.target_duration * 60).label("duration_key"),
        cast(PlanSession.target_distance, Float).label("distance_key"),
        cast(PlanSession.target_pace_seconds, Float).label("pace_key"),
        cast(PlanSession.target_heart_rate_value, Float).label("heart_rate_key"),
        cast(PlanSession.target_rpe, Float).label("rpe_key"),
    ).where(*plan_conditions(filters))


def fetch_session_page_ids(session: Session, filters: SessionFilters) -> list[tuple[str, SessionKind]]:
    """Ids and kinds of one page of sessions, in display order."""
    parts = []
    if filters.include_completed:
        parts.append(_workout_rows(filters))
    if filters.include_planned:
        parts.append(_plan_rows(filters))
    if not parts:
        return []

    union = (parts[0] if len(parts) == 1 else union_all(*parts)).subquery("session_union")
    order_by = build_order_by(union.c, parse_sort_param(filters.sort), filters.include_planned_date_as_date)

    query = select(union.c.id, union.c.kind).order_by(*order_by)
    if filters.paginated:
        query = query.limit(filters.limit).offset(max(filters.offset, 0))

    return [(row.id, row.kind) for row in session.execute(query)]


def _load_workouts(session: Session, ids: list[str], view: SessionView) -> dict[str, Workout]:
    if not ids:
        return {}
    options = [selectinload(Workout.external_activities)]
    if view in (SessionView.EXPORT, SessionView.FULL):
        options.append(selectinload(Workout.weather))
    rows = session.execute(select(Workout).where(Workout.id.in_(ids)).options(*options)).unique().scalars().all()
    return {w.id: w for w in rows}


def _load_plans(session: Session, ids: list[str]) -> dict[str, PlanSession]:
    if not ids:
        return {}
    rows = session.execute(select(PlanSession).where(PlanSession.id.in_(ids))).scalars().all()
    return {p.id: p for p in rows}


def fetch_sessions(
    session: Session,
    filters: SessionFilters,
    view: SessionView = SessionView.TABLE,
) -> list[TrainingSession]:
    """One page of unified sessions, mapped and in display order."""
    page = fetch_session_page_ids(session, filters)

    workouts = _load_workouts(session, [i for i, kind in page if kind == "workout"], view)
    plans = _load_plans(session, [i for i, kind in page if kind == "plan"])

    sessions: list[TrainingSession] = []
    for session_id, kind in page:
        if kind == "workout" and session_id in workouts:
            sessions.append(map_workout_to_session(workouts[session_id], view))
        elif kind == "plan" and session_id in plans:
            sessions.append(map_plan_to_session(plans[session_id], filters.include_planned_date_as_date))

    logger.debug(f"[SESSIONS] Fetched {len(sessions)} sessions for user_id={filters.user_id} view={view.value}")
    return sessions


def fetch_session_count(session: Session, filters: SessionFilters) -> int:
    total = 0
    if filters.include_completed:
        total += session.execute(select(func.count()).select_from(Workout).where(*workout_conditions(filters))).scalar_one()
    if filters.include_planned:
        total += session.execute(select(func.count()).select_from(PlanSession).where(*plan_conditions(filters))).scalar_one()
    return total


def fetch_session_types(session: Session, user_id: str) -> list[str]:
    """Distinct session types used by completed and planned sessions, sorted."""
    workout_types = session.execute(
        select(Workout.session_type).where(Workout.user_id == user_id, Workout.session_type.is_not(None)).distinct()
    ).scalars()
    plan_types = session.execute(
        select(PlanSession.session_type).where(PlanSession.user_id == user_id, PlanSession.session_type.is_not(None)).distinct()
    ).scalars()
    return sorted({t for t in [*workout_types, *plan_types] if t})


def fetch_session_by_id(
    session: Session,
    user_id: str,
    session_id: str,
    view: SessionView = SessionView.FULL,
    include_planned_date_as_date: bool = False,
) -> TrainingSession | None:
    """A completed session by id, else an unlinked planned session."""
    workout = _load_workouts(session, [session_id], view).get(session_id)
    if workout is not None and workout.user_id == user_id:
        return map_workout_to_session(workout, view)

    plan = session.execute(
        select(PlanSession).where(*plan_conditions(SessionFilters(user_id=user_id)), PlanSession.id == session_id)
    ).scalar_one_or_none()
    if plan is None:
        return None
    return map_plan_to_session(plan, include_planned_date_as_date)
