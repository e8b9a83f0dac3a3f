from __future__ import annotations

import asyncio

import httpx
import pytest

from backend import main
from backend.config import settings
from backend.main import cleanup_task, create_app, run_cleanup_once

pytestmark = pytest.mark.asyncio


async def test_health_endpoint(async_client: httpx.AsyncClient):
    """Test that the /health endpoint returns {"status": "ok"}."""
    res = await async_client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


async def test_unknown_route_uses_error_shape(async_client: httpx.AsyncClient):
    res = await async_client.get("/nope")
    assert res.status_code == 404
    assert "error" in res.json()


async def test_cleanup_purges_old_pairings(app, device_auth, storage, clock):
    grant = await device_auth.initiate()
    clock.advance(hours=settings.DEVICE_CODE_RETENTION_HOURS + 1)

    deleted = await run_cleanup_once(app)

    assert deleted == 1
    assert await storage.device_codes.get_by_device_code(grant.device_code) is None


async def test_cleanup_keeps_live_pairings(app, device_auth, storage):
    grant = await device_auth.initiate()

    assert await run_cleanup_once(app) == 0
    assert await storage.device_codes.get_by_device_code(grant.device_code) is not None


async def test_lifespan_builds_memory_storage():
    """With STORAGE_BACKEND=memory and nothing injected, startup builds in-memory storage."""
    app = create_app()
    assert app.state.storage is None

    async with app.router.lifespan_context(app):
        assert app.state.storage is not None
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            res = await client.post("/api/cli/device")
            assert res.status_code == 200


async def test_cleanup_task_survives_unexpected_errors(app, storage, monkeypatch):
    monkeypatch.setattr(main, "CLEANUP_INTERVAL_SECONDS", 0)
    calls = []

    async def flaky_purge(cutoff):
        calls.append(cutoff)
        if len(calls) == 1:
            raise RuntimeError("unexpected")
        return 0

    storage.device_codes.purge_expired = flaky_purge

    task = asyncio.create_task(cleanup_task(app))
    for _ in range(100):
        if len(calls) >= 2:
            break
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(calls) >= 2
