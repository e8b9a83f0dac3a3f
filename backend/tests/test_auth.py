"""
Tests for session authentication (JWT cookies).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt
import pytest
from fastapi import HTTPException
from httpx import AsyncClient

from backend.auth import create_jwt, decode_jwt
from backend.config import settings

pytestmark = pytest.mark.asyncio


class TestJWT:
    """Test JWT creation and validation."""

    async def test_decode_jwt(self):
        user_id = uuid4()
        token = create_jwt(user_id)

        payload = decode_jwt(token)

        assert payload["sub"] == str(user_id)
        assert "exp" in payload
        assert "iat" in payload

    async def test_decode_expired_jwt(self):
        payload = {
            "sub": str(uuid4()),
            "exp": datetime.now(UTC) - timedelta(hours=1),
            "iat": datetime.now(UTC) - timedelta(hours=2),
        }
        token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(token)

        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.detail.lower()

    async def test_decode_wrong_secret(self):
        token = jwt.encode({"sub": str(uuid4())}, "some-other-secret", algorithm="HS256")

        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(token)

        assert exc_info.value.status_code == 401

    async def test_decode_invalid_jwt(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_jwt("invalid.token.here")

        assert exc_info.value.status_code == 401


class TestSessionRoutes:
    async def test_me_with_session(self, async_client: AsyncClient, test_user, session_cookie):
        res = await async_client.get("/auth/me", cookies=session_cookie)

        assert res.status_code == 200
        data = res.json()
        assert data["email"] == test_user.email
        assert data["name"] == "Test User"

    async def test_me_unauthenticated(self, async_client: AsyncClient):
        res = await async_client.get("/auth/me")

        assert res.status_code == 401
        assert res.json() == {"error": "Not authenticated. Please sign in."}

    async def test_me_session_without_subject(self, async_client: AsyncClient):
        token = jwt.encode(
            {"exp": datetime.now(UTC) + timedelta(hours=1)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )

        res = await async_client.get("/auth/me", cookies={"session": token})

        assert res.status_code == 401

    async def test_logout_clears_cookie(self, async_client: AsyncClient):
        res = await async_client.post("/auth/logout")

        assert res.status_code == 200
        assert "session=" in res.headers["set-cookie"]
        assert "Max-Age=0" in res.headers["set-cookie"]
