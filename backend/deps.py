"""FastAPI dependencies that hand request handlers their collaborators."""

from __future__ import annotations

from datetime import timedelta

from fastapi import Request

from backend.config import settings
from backend.repos.base import Storage
from backend.services.device_auth import Clock, DeviceAuthService


def get_storage(request: Request) -> Storage:
    """The Storage this application instance was built with."""
    return request.app.state.storage


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def build_device_auth(storage: Storage, clock: Clock) -> DeviceAuthService:
    return DeviceAuthService(
        storage.device_codes,
        code_ttl=timedelta(minutes=settings.DEVICE_CODE_EXPIRY_MINUTES),
        key_name=settings.CLI_KEY_NAME,
        key_ttl=timedelta(days=settings.CLI_KEY_EXPIRY_DAYS),
        clock=clock,
    )


def get_device_auth(request: Request) -> DeviceAuthService:
    return build_device_auth(get_storage(request), get_clock(request))
