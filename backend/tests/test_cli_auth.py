"""Tests for CLI device authorization routes."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
from httpx import AsyncClient

from backend.auth import create_jwt
from backend.config import settings
from backend.errors import StorageError

pytestmark = pytest.mark.asyncio


async def start(async_client: AsyncClient) -> dict:
    res = await async_client.post("/api/cli/device")
    assert res.status_code == 200
    return res.json()


async def test_device_auth_flow_success(async_client: AsyncClient, test_user, session_cookie):
    """Test successful device authorization flow."""
    # 1. Start auth flow
    data = await start(async_client)
    assert set(data) == {"deviceCode", "userCode", "expiresAt", "verifyUrl", "interval"}
    assert data["verifyUrl"].endswith("/auth/verify")
    assert data["interval"] == 5
    device_code = data["deviceCode"]
    user_code = data["userCode"]

    # 2. Poll - should be pending
    res = await async_client.post("/api/cli/token", json={"deviceCode": device_code})
    assert res.status_code == 200
    assert res.json() == {"status": "pending"}

    # 3. Approve (browser, with session cookie)
    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": user_code},
        cookies=session_cookie,
    )
    assert res.status_code == 200
    assert res.json() == {"success": True}

    # 4. Poll - should now be approved with key
    res = await async_client.post("/api/cli/token", json={"deviceCode": device_code})
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "approved"
    assert data["apiKey"].startswith("scx_")

    # 5. Verify key works for API calls
    res = await async_client.get("/auth/me", headers={"Authorization": f"Bearer {data['apiKey']}"})
    assert res.status_code == 200
    assert res.json()["email"] == test_user.email

    # 6. Second approval is a conflict
    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": user_code},
        cookies=session_cookie,
    )
    assert res.status_code == 409
    assert res.json()["code"] == "already_approved"


async def test_expires_at_is_iso8601(async_client: AsyncClient, clock):
    from datetime import datetime, timedelta

    data = await start(async_client)

    expires_at = datetime.fromisoformat(data["expiresAt"])
    assert expires_at == clock.now + timedelta(minutes=15)


async def test_poll_unknown_code(async_client: AsyncClient):
    res = await async_client.post("/api/cli/token", json={"deviceCode": "UNKNOWN"})
    assert res.status_code == 404
    assert res.json()["code"] == "invalid_code"


async def test_poll_missing_device_code(async_client: AsyncClient):
    res = await async_client.post("/api/cli/token", json={})
    assert res.status_code == 400
    assert res.json() == {"error": "deviceCode is required"}


async def test_poll_expired_code(async_client: AsyncClient, clock):
    data = await start(async_client)
    clock.advance(minutes=15, milliseconds=1)

    res = await async_client.post("/api/cli/token", json={"deviceCode": data["deviceCode"]})

    assert res.status_code == 200
    assert res.json() == {"status": "expired"}


async def test_approve_requires_session(async_client: AsyncClient):
    data = await start(async_client)

    res = await async_client.post("/api/cli/approve", json={"userCode": data["userCode"]})

    assert res.status_code == 401
    assert "error" in res.json()


async def test_approve_rejects_api_key(async_client: AsyncClient, storage, test_user):
    """A CLI key cannot be used to approve another device."""
    from backend.services.api_keys import mint_api_key

    raw_key, new_key = mint_api_key(test_user.id, "cli")
    await storage.api_keys.create(new_key)
    data = await start(async_client)

    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": data["userCode"]},
        headers={"Authorization": f"Bearer {raw_key}"},
    )

    assert res.status_code == 401


async def test_approve_invalid_session(async_client: AsyncClient):
    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": "ABCD-EFGH"},
        cookies={"session": "not-a-jwt"},
    )
    assert res.status_code == 401


async def test_approve_unknown_user(async_client: AsyncClient):
    from uuid import uuid4

    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": "ABCD-EFGH"},
        cookies={"session": create_jwt(uuid4())},
    )
    assert res.status_code == 401


async def test_approve_missing_code(async_client: AsyncClient, session_cookie):
    res = await async_client.post("/api/cli/approve", json={}, cookies=session_cookie)
    assert res.status_code == 400
    assert res.json() == {"error": "userCode is required"}


async def test_approve_unknown_code(async_client: AsyncClient, session_cookie):
    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": "ZZZZ-ZZZZ"},
        cookies=session_cookie,
    )
    assert res.status_code == 404
    assert res.json() == {"error": "Invalid code", "code": "invalid_code"}


async def test_approve_expired_code(async_client: AsyncClient, clock, session_cookie):
    data = await start(async_client)
    clock.advance(minutes=20)

    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": data["userCode"]},
        cookies=session_cookie,
    )
    assert res.status_code == 409
    assert res.json()["code"] == "expired"

    res = await async_client.post("/api/cli/token", json={"deviceCode": data["deviceCode"]})
    assert res.json() == {"status": "expired"}


async def test_device_creation_failure(async_client: AsyncClient, storage):
    storage.device_codes.create = AsyncMock(side_effect=StorageError("connection refused"))

    res = await async_client.post("/api/cli/device")

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to create device code"}


async def test_poll_storage_failure(async_client: AsyncClient, storage):
    storage.device_codes.get_by_device_code = AsyncMock(side_effect=StorageError("timeout"))

    res = await async_client.post("/api/cli/token", json={"deviceCode": "abc"})

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to poll device code"}


async def test_device_rate_limited_per_ip(async_client: AsyncClient):
    for _ in range(10):
        await start(async_client)

    res = await async_client.post("/api/cli/device")

    assert res.status_code == 429
    assert int(res.headers["Retry-After"]) > 0


async def test_poll_rate_limited_per_code(async_client: AsyncClient):
    data = await start(async_client)
    body = {"deviceCode": data["deviceCode"]}
    for _ in range(30):
        res = await async_client.post("/api/cli/token", json=body)
        assert res.status_code == 200

    res = await async_client.post("/api/cli/token", json=body)

    assert res.status_code == 429


async def test_approve_blank_code_is_rejected_before_storage(async_client: AsyncClient, storage, session_cookie):
    storage.device_codes.approve = AsyncMock()
    storage.device_codes.get_by_user_code = AsyncMock()

    res = await async_client.post("/api/cli/approve", json={"userCode": "   "}, cookies=session_cookie)

    assert res.status_code == 400
    assert res.json() == {"error": "userCode is required"}
    storage.device_codes.approve.assert_not_awaited()
    storage.device_codes.get_by_user_code.assert_not_awaited()


async def test_poll_blank_device_code(async_client: AsyncClient, storage):
    storage.device_codes.get_by_device_code = AsyncMock()

    res = await async_client.post("/api/cli/token", json={"deviceCode": " \t "})

    assert res.status_code == 400
    assert res.json() == {"error": "deviceCode is required"}
    storage.device_codes.get_by_device_code.assert_not_awaited()


async def test_approve_storage_failure(async_client: AsyncClient, storage, test_user, session_cookie):
    data = await start(async_client)
    storage.device_codes.approve = AsyncMock(side_effect=StorageError("connection reset"))

    res = await async_client.post(
        "/api/cli/approve",
        json={"userCode": data["userCode"]},
        cookies=session_cookie,
    )

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to approve device code"}
    assert await storage.api_keys.list_for_user(test_user.id) == []


async def test_approve_rate_limited_per_user(async_client: AsyncClient, session_cookie):
    for _ in range(10):
        res = await async_client.post("/api/cli/approve", json={"userCode": "ZZZZ-ZZZZ"}, cookies=session_cookie)
        assert res.status_code == 404

    res = await async_client.post("/api/cli/approve", json={"userCode": "ZZZZ-ZZZZ"}, cookies=session_cookie)

    assert res.status_code == 429
    assert "error" in res.json()
    assert int(res.headers["Retry-After"]) > 0


async def test_unknown_device_codes_are_not_tracked_per_code(async_client: AsyncClient, app):
    for i in range(5):
        res = await async_client.post("/api/cli/token", json={"deviceCode": f"guess-{i}"})
        assert res.status_code == 404

    keys = app.state.rate_limiter._requests.keys()
    assert not any(key.startswith("token:") for key in keys)


async def test_poll_rate_limited_per_ip(async_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "TOKEN_POLL_RATE_LIMIT_PER_IP", 2)
    for i in range(2):
        res = await async_client.post("/api/cli/token", json={"deviceCode": f"guess-{i}"})
        assert res.status_code == 404

    res = await async_client.post("/api/cli/token", json={"deviceCode": "guess-2"})

    assert res.status_code == 429


async def test_unexpected_error_uses_error_shape(app, storage):
    storage.device_codes.get_by_device_code = AsyncMock(side_effect=RuntimeError("boom"))

    async with AsyncClient(
        transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        res = await client.post("/api/cli/token", json={"deviceCode": "abc"})

    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error"}
