"""FastAPI authentication dependency.

Provides get_current_user_id, which reads a bearer JWT from the
Authorization header and returns its "sub" claim. Supports a dev mode
override via DEV_USER_ID.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import NoReturn

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger

from runlog.config.settings import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _raise_unauthorized(detail: str = "Authentication required") -> NoReturn:
    logger.warning(f"[AUTH] Unauthorized request: {detail}")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user_id: str, expires_in: timedelta = timedelta(days=30)) -> str:
    """Issue a signed token for a user (used by tooling and tests)."""
    if not user_id:
        raise ValueError("user_id cannot be empty")
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> str:
    """Verify a token and return its user id.

    Raises:
        ValueError: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.auth_secret_key, algorithms=[settings.auth_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise ValueError("Token expired") from e
    except jwt.InvalidTokenError as e:
        logger.warning(f"[AUTH] JWT decode failed: {e}")
        raise ValueError("Invalid token") from e

    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Token missing user ID")
    return str(user_id)


def get_current_user_id(request: Request, token: str | None = Depends(oauth2_scheme)) -> str:
    """Current user id from the bearer token, or DEV_USER_ID when set.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if settings.dev_user_id:
        logger.debug(f"[AUTH] Using dev mode user override: {settings.dev_user_id}")
        return settings.dev_user_id

    if not token:
        _raise_unauthorized(f"Missing bearer token for {request.method} {request.url.path}")

    if not settings.auth_secret_key:
        logger.error("[AUTH] AUTH_SECRET_KEY is not set, rejecting token")
        _raise_unauthorized("Authentication is not configured")

    try:
        return decode_access_token(token)
    except ValueError as e:
        _raise_unauthorized(str(e))
