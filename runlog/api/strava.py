from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from runlog.api.dependencies.auth import get_current_user_id
from runlog.api.errors import http_error
from runlog.core.errors import RunlogError
from runlog.db.session import get_session
from runlog.integrations.strava.service import import_strava_activity

router = APIRouter(prefix="/strava", tags=["strava"])


@router.post("/activities/{activity_id}/import")
def import_activity(activity_id: int, user_id: str = Depends(get_current_user_id)):
    """Import a Strava activity as a completed session (idempotent)."""
    logger.info(f"[API] Strava import of activity {activity_id} for user_id={user_id}")
    try:
        with get_session() as session:
            created = import_strava_activity(session, user_id, activity_id)
            return created.model_dump(mode="json")
    except RunlogError as e:
        raise http_error(e) from e
    except httpx.HTTPStatusError as e:
        logger.error(f"[STRAVA] Activity {activity_id} fetch failed: {e.response.status_code}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Strava API error: {e.response.status_code}",
        ) from e
    except httpx.HTTPError as e:
        logger.error(f"[STRAVA] Activity {activity_id} fetch failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Strava API unreachable") from e
