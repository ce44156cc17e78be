"""Translation of domain and parser errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status
from loguru import logger

from runlog.core.errors import InvalidSessionStateError, RunlogError, SessionNotFoundError, StravaAccountError

_STATUS_BY_ERROR: list[tuple[type[RunlogError], int]] = [
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidSessionStateError, status.HTTP_409_CONFLICT),
    (StravaAccountError, status.HTTP_400_BAD_REQUEST),
]


def http_error(error: Exception) -> HTTPException:
    """HTTPException for a domain error or a parser ValueError.

    Anything else maps to 500 and is logged.
    """
    if isinstance(error, RunlogError):
        code = next((c for cls, c in _STATUS_BY_ERROR if isinstance(error, cls)), status.HTTP_400_BAD_REQUEST)
        return HTTPException(
            status_code=code,
            detail={"code": error.code, "message": str(error), "details": error.details},
        )
    if isinstance(error, ValueError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))

    logger.opt(exception=error).error(f"[API] Unexpected error: {error}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
