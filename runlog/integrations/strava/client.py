from __future__ import annotations

import httpx
from loguru import logger

from runlog.config.settings import settings
from runlog.integrations.strava.schemas import StravaActivity, StravaLap


class StravaClient:
    """Thin Strava API client.

    - One request per call, no pagination
    - No token refresh; the caller supplies a valid access token
    - HTTP errors surface as httpx.HTTPStatusError
    """

    def __init__(self, access_token: str, base_url: str | None = None, timeout: float | None = None):
        self._access_token = access_token
        self._base_url = (base_url or settings.strava_api_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.strava_timeout_seconds

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}"}

    def _get(self, path: str):
        resp = httpx.get(f"{self._base_url}{path}", headers=self._headers(), timeout=self._timeout)
        if resp.status_code >= 400:
            logger.error(f"[STRAVA] GET {path} failed: {resp.status_code}")
        resp.raise_for_status()
        return resp.json()

    def fetch_activity(self, activity_id: int) -> StravaActivity:
        raw = self._get(f"/activities/{activity_id}")
        return StravaActivity(**raw, raw=raw)

    def fetch_activity_laps(self, activity_id: int) -> list[StravaLap]:
        payload = self._get(f"/activities/{activity_id}/laps")
        if not payload:
            return []
        return [StravaLap(**raw) for raw in payload]
