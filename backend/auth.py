"""
Authentication and authorization for Supacortex.

Session JWT verification (browser) and API key verification (CLI).
Sessions are issued by the identity provider that shares JWT_SECRET.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, status

from backend.config import settings
from backend.deps import get_clock, get_storage
from backend.models.user import User
from backend.repos.base import Storage
from backend.services.api_keys import KEY_PREFIX, hash_api_key
from backend.services.device_auth import Clock


def create_jwt(user_id: UUID) -> str:
    """
    Create a JWT for a user session.

    Args:
        user_id: User UUID to encode in the token

    Returns:
        Signed JWT string
    """
    expires_at = datetime.now(UTC) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "exp": expires_at,
        "iat": datetime.now(UTC),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Decode and verify a JWT.

    Args:
        token: JWT string to decode

    Returns:
        Decoded payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please sign in again.",
        ) from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


async def get_current_user_from_cookie(storage: Storage, session: str) -> User:
    """
    Authenticate user via session cookie.

    Raises:
        HTTPException: If session is invalid or user not found
    """
    payload = decode_jwt(session)

    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e

    user = await storage.users.get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found. Please sign in again.",
        )

    return user


async def get_current_user_from_api_key(storage: Storage, authorization: str, now: datetime) -> User:
    """
    Authenticate user via API key (CLI).

    Args:
        authorization: Bearer header value

    Raises:
        HTTPException: If the key is unknown or expired
    """
    if not authorization.startswith(f"Bearer {KEY_PREFIX}"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key format.",
        )

    raw_key = authorization.removeprefix("Bearer ").strip()
    key = await storage.api_keys.get_by_hash(hash_api_key(raw_key))

    if not key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
        )

    if key.expires_at is not None and key.expires_at <= now:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key expired.",
        )

    await storage.api_keys.touch_last_used(key.id)

    user = await storage.users.get(key.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found.",
        )

    return user


async def get_current_user(
    storage: Annotated[Storage, Depends(get_storage)],
    clock: Annotated[Clock, Depends(get_clock)],
    session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Tries the API key first (CLI), then the session cookie (browser).
    """
    if authorization:
        return await get_current_user_from_api_key(storage, authorization, clock())

    if session:
        return await get_current_user_from_cookie(storage, session)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated. Please sign in.",
    )


async def get_session_user(
    storage: Annotated[Storage, Depends(get_storage)],
    session: Annotated[str | None, Cookie()] = None,
) -> User:
    """
    FastAPI dependency for browser-only actions.

    API keys are not accepted: approving a device must come from a person
    signed in to the web app.
    """
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return await get_current_user_from_cookie(storage, session)
