"""Training session endpoints.

Completed and planned sessions share one list, sorted and paginated in the
database. Every mutation renumbers the user's sessions before responding.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from loguru import logger
from pydantic import BaseModel, Field

from runlog.api.dependencies.auth import get_current_user_id
from runlog.api.errors import http_error
from runlog.config.settings import settings
from runlog.core.errors import RunlogError, SessionNotFoundError
from runlog.db.session import get_session
from runlog.sessions.filters import SessionFilters
from runlog.sessions.read import fetch_session_by_id, fetch_session_count, fetch_session_types, fetch_sessions
from runlog.sessions.schemas import (
    CompletedSessionCreate,
    CompleteSessionRequest,
    PlannedSessionCreate,
    SessionUpdate,
    SessionView,
    WeatherData,
)
from runlog.sessions.write import (
    bulk_create_sessions,
    complete_planned_session,
    create_completed_session,
    create_planned_session,
    delete_session,
    delete_sessions,
    update_session,
    update_session_weather,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class BulkCreateRequest(BaseModel):
    completed: list[CompletedSessionCreate] = Field(default_factory=list)
    planned: list[PlannedSessionCreate] = Field(default_factory=list)


class BulkDeleteRequest(BaseModel):
    ids: list[str] = Field(min_length=1)


def _filters(
    user_id: str,
    limit: int | None,
    offset: int,
    status_filter: str | None,
    session_type: str | None,
    search: str | None,
    date_from: datetime | None,
    sort: str | None,
    include_planned_date_as_date: bool,
) -> SessionFilters:
    return SessionFilters(
        user_id=user_id,
        limit=limit,
        offset=offset,
        status=status_filter,
        session_type=session_type,
        search=search,
        date_from=date_from,
        sort=sort,
        include_planned_date_as_date=include_planned_date_as_date,
    )


@router.get("")
def list_sessions(
    limit: int | None = Query(default=None, ge=0, le=1000, description="Page size (0 returns everything)"),
    offset: int = Query(default=0, ge=0),
    status_filter: str | None = Query(default=None, alias="status", pattern="^(all|planned|completed)$"),
    session_type: str | None = Query(default=None, alias="type"),
    search: str | None = None,
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    sort: str | None = Query(default=None, description='e.g. "date:desc,distance:asc"'),
    include_planned_date_as_date: bool = Query(default=False, alias="plannedDateAsDate"),
    view: SessionView = SessionView.TABLE,
    user_id: str = Depends(get_current_user_id),
):
    """List completed and planned sessions.

    Returns:
        Sessions of the requested page plus the total count for the filters
    """
    if limit is None:
        limit = settings.default_page_size
    filters = _filters(
        user_id, limit, offset, status_filter, session_type, search, date_from, sort, include_planned_date_as_date
    )
    logger.info(f"[API] GET /sessions user_id={user_id} limit={limit} offset={offset} status={status_filter} sort={sort}")

    with get_session() as session:
        sessions = fetch_sessions(session, filters, view)
        total = fetch_session_count(session, filters)
        return {
            "sessions": [s.model_dump(mode="json") for s in sessions],
            "total": total,
            "limit": limit,
            "offset": offset,
        }


@router.get("/count")
def count_sessions(
    status_filter: str | None = Query(default=None, alias="status", pattern="^(all|planned|completed)$"),
    session_type: str | None = Query(default=None, alias="type"),
    search: str | None = None,
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    user_id: str = Depends(get_current_user_id),
):
    filters = _filters(user_id, None, 0, status_filter, session_type, search, date_from, None, False)
    with get_session() as session:
        return {"count": fetch_session_count(session, filters)}


@router.get("/types")
def list_session_types(user_id: str = Depends(get_current_user_id)):
    with get_session() as session:
        return {"types": fetch_session_types(session, user_id)}


@router.get("/{session_id}")
def get_training_session(
    session_id: str,
    view: SessionView = SessionView.FULL,
    include_planned_date_as_date: bool = Query(default=False, alias="plannedDateAsDate"),
    user_id: str = Depends(get_current_user_id),
):
    with get_session() as session:
        found = fetch_session_by_id(session, user_id, session_id, view, include_planned_date_as_date)
        if found is None:
            raise http_error(SessionNotFoundError(session_id))
        return found.model_dump(mode="json")


@router.post("/planned", status_code=status.HTTP_201_CREATED)
def post_planned_session(payload: PlannedSessionCreate, user_id: str = Depends(get_current_user_id)):
    try:
        with get_session() as session:
            created = create_planned_session(session, user_id, payload)
            return created.model_dump(mode="json")
    except (RunlogError, ValueError) as e:
        raise http_error(e) from e


@router.post("/completed", status_code=status.HTTP_201_CREATED)
def post_completed_session(payload: CompletedSessionCreate, user_id: str = Depends(get_current_user_id)):
    try:
        with get_session() as session:
            created = create_completed_session(session, user_id, payload)
            return created.model_dump(mode="json")
    except (RunlogError, ValueError) as e:
        raise http_error(e) from e


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
def post_bulk_sessions(payload: BulkCreateRequest, user_id: str = Depends(get_current_user_id)):
    """Create many sessions at once (training log import)."""
    items = [*payload.completed, *payload.planned]
    if not items:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="No sessions to create")
    try:
        with get_session() as session:
            created = bulk_create_sessions(session, user_id, items)
            return {"sessions": [s.model_dump(mode="json") for s in created], "count": len(created)}
    except (RunlogError, ValueError) as e:
        raise http_error(e) from e


@router.post("/bulk-delete")
def post_bulk_delete(payload: BulkDeleteRequest, user_id: str = Depends(get_current_user_id)):
    with get_session() as session:
        return {"deleted": delete_sessions(session, user_id, payload.ids)}


@router.post("/{session_id}/complete")
def post_complete_session(
    session_id: str,
    payload: CompleteSessionRequest,
    user_id: str = Depends(get_current_user_id),
):
    """Record a planned session as done; the completed session keeps its id."""
    try:
        with get_session() as session:
            completed = complete_planned_session(session, user_id, session_id, payload)
            return completed.model_dump(mode="json")
    except (RunlogError, ValueError) as e:
        raise http_error(e) from e


@router.patch("/{session_id}")
def patch_session(session_id: str, payload: SessionUpdate, user_id: str = Depends(get_current_user_id)):
    try:
        with get_session() as session:
            updated = update_session(session, user_id, session_id, payload)
            return updated.model_dump(mode="json")
    except (RunlogError, ValueError) as e:
        raise http_error(e) from e


@router.put("/{session_id}/weather")
def put_session_weather(session_id: str, payload: WeatherData, user_id: str = Depends(get_current_user_id)):
    try:
        with get_session() as session:
            updated = update_session_weather(session, user_id, session_id, payload)
            return updated.model_dump(mode="json")
    except RunlogError as e:
        raise http_error(e) from e


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_session(session_id: str, user_id: str = Depends(get_current_user_id)) -> Response:
    with get_session() as session:
        if not delete_session(session, user_id, session_id):
            raise http_error(SessionNotFoundError(session_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
