"""Domain errors raised by the session and import layers.

API routes translate these into HTTP responses; services never raise
HTTPException directly.
"""

from __future__ import annotations


class RunlogError(RuntimeError):
    """Base class for domain errors.

    Attributes:
        code: Stable machine-readable error code
        details: Extra context for logs and API responses
    """

    code = "RUNLOG_ERROR"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class SessionNotFoundError(RunlogError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found", {"session_id": session_id})
        self.session_id = session_id


class InvalidSessionStateError(RunlogError):
    """Operation does not apply to the session in its current status."""

    code = "INVALID_SESSION_STATE"


class StravaAccountError(RunlogError):
    """No usable Strava credentials for the user."""

    code = "STRAVA_ACCOUNT_ERROR"
