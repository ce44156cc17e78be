"""Filters shared by the session list, count and page queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import exists, or_
from sqlalchemy.sql import ColumnElement

from runlog.db.models import PlanSession, Workout
from runlog.utils.dates import ensure_utc

STATUS_FILTERS = ("all", "planned", "completed")


@dataclass
class SessionFilters:
    """Session list filters.

    Attributes:
        user_id: Owner of the sessions
        limit: Page size; no pagination when None or <= 0
        offset: Rows to skip when paginating
        status: "planned", "completed" or "all" (None means all)
        session_type: Exact session type; "all" disables the filter
        search: Case-insensitive substring of comments or session type
        date_from: Lower bound on completed session dates; planned sessions are not filtered
        sort: Sort parameter, e.g. "date:desc,distance:asc"
        include_planned_date_as_date: Expose and sort planned sessions by planned_date
    """

    user_id: str
    limit: int | None = None
    offset: int = 0
    status: str | None = None
    session_type: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    sort: str | None = None
    include_planned_date_as_date: bool = False

    @property
    def include_planned(self) -> bool:
        return self.status in (None, "all", "planned")

    @property
    def include_completed(self) -> bool:
        return self.status in (None, "all", "completed")

    @property
    def paginated(self) -> bool:
        return self.limit is not None and self.limit > 0


def _search_term(filters: SessionFilters) -> str | None:
    if not filters.search or not filters.search.strip():
        return None
    return f"%{filters.search.strip()}%"


def workout_conditions(filters: SessionFilters) -> list[ColumnElement]:
    conditions = [Workout.user_id == filters.user_id]
    if filters.session_type and filters.session_type != "all":
        conditions.append(Workout.session_type == filters.session_type)
    term = _search_term(filters)
    if term:
        conditions.append(or_(Workout.comments.ilike(term), Workout.session_type.ilike(term)))
    if filters.date_from is not None:
        conditions.append(Workout.date >= ensure_utc(filters.date_from))
    return conditions


def plan_conditions(filters: SessionFilters) -> list[ColumnElement]:
    """Conditions on unlinked plan sessions (linked plans are shown through their workout)."""
    conditions = [
        PlanSession.user_id == filters.user_id,
        ~exists().where(Workout.plan_session_id == PlanSession.id),
    ]
    if filters.session_type and filters.session_type != "all":
        conditions.append(PlanSession.session_type == filters.session_type)
    term = _search_term(filters)
    if term:
        conditions.append(or_(PlanSession.comments.ilike(term), PlanSession.session_type.ilike(term)))
    return conditions
