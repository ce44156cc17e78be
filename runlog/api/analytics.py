from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger

from runlog.analytics.weekly import calculate_weekly_stats
from runlog.api.dependencies.auth import get_current_user_id
from runlog.db.session import get_session
from runlog.sessions.filters import SessionFilters
from runlog.sessions.read import fetch_sessions

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/weekly")
def weekly(user_id: str = Depends(get_current_user_id)):
    """Weekly distance of completed sessions with planned distance alongside."""
    with get_session() as session:
        completed = fetch_sessions(session, SessionFilters(user_id=user_id, status="completed"))
        planned = fetch_sessions(session, SessionFilters(user_id=user_id, status="planned"))

    stats = calculate_weekly_stats(completed, planned)
    logger.info(
        f"[API] Weekly analytics for user_id={user_id}: {stats.total_weeks_span} weeks, "
        f"{stats.active_weeks_count} active"
    )
    return stats.model_dump(mode="json")
