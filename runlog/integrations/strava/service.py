from __future__ import annotations

import time

import httpx
from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from runlog.core.errors import StravaAccountError
from runlog.db.models import ExternalActivity, StravaAccount
from runlog.integrations.strava.client import StravaClient
from runlog.integrations.strava.schemas import STRAVA_SOURCE, strava_activity_to_session
from runlog.sessions.read import fetch_session_by_id
from runlog.sessions.schemas import CompletedSession
from runlog.sessions.write import create_completed_session


def get_strava_client(session: Session, user_id: str) -> StravaClient:
    """Client for the user's stored Strava access token.

    Raises:
        StravaAccountError: If the user has no Strava account or its token expired
    """
    account = session.get(StravaAccount, user_id)
    if account is None:
        raise StravaAccountError("Strava account not connected", {"user_id": user_id})
    if account.expires_at and account.expires_at <= int(time.time()):
        raise StravaAccountError("Strava access token expired", {"user_id": user_id, "expires_at": account.expires_at})
    return StravaClient(access_token=account.access_token)


def import_strava_activity(
    session: Session,
    user_id: str,
    activity_id: int,
    client: StravaClient | None = None,
) -> CompletedSession:
    """Import one Strava activity as a completed session.

    Importing an activity twice returns the session created the first time.

    Raises:
        StravaAccountError: If no usable token exists or Strava rejects it
        httpx.HTTPStatusError: For other Strava API failures
    """
    existing = session.execute(
        select(ExternalActivity).where(
            ExternalActivity.source == STRAVA_SOURCE,
            ExternalActivity.external_id == str(activity_id),
        )
    ).scalar_one_or_none()
    if existing is not None:
        found = fetch_session_by_id(session, user_id, existing.workout_id)
        if found is not None:
            logger.info(f"[STRAVA] Activity {activity_id} already imported as session {existing.workout_id}")
            return found

    if client is None:
        client = get_strava_client(session, user_id)

    try:
        activity = client.fetch_activity(activity_id)
        laps = client.fetch_activity_laps(activity_id)
    except httpx.HTTPStatusError as e:
        if e.response is not None and e.response.status_code == 401:
            raise StravaAccountError("Strava rejected the access token", {"user_id": user_id}) from e
        raise

    payload = strava_activity_to_session(activity, laps)
    created = create_completed_session(session, user_id, payload)
    logger.info(
        f"[STRAVA] Imported activity {activity_id} as session {created.id} "
        f"(laps={len(laps)}, intervals={created.interval_details is not None})"
    )
    return created
