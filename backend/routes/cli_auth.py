"""CLI device authorization routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from backend.auth import get_session_user
from backend.config import settings
from backend.deps import get_device_auth
from backend.errors import StorageError
from backend.middleware.rate_limit import client_ip, enforce_rate_limit
from backend.models.device_code import (
    ApproveRequest,
    ApproveResponse,
    DeviceCodeResponse,
    TokenRequest,
    TokenResponse,
)
from backend.models.user import User
from backend.services.device_auth import DeviceAuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cli", tags=["cli_auth"])


@router.post("/device")
async def start_device_flow(
    request: Request,
    service: DeviceAuthService = Depends(get_device_auth),
) -> DeviceCodeResponse:
    """
    Start a device authorization flow. Unauthenticated: the CLI has no credential yet.

    Rate limited per IP per hour.
    """
    enforce_rate_limit(
        request,
        f"device:{client_ip(request)}",
        max_requests=settings.DEVICE_CODE_RATE_LIMIT_PER_IP,
        window_minutes=60,
        message="Too many login attempts from this IP. Try again later.",
    )

    try:
        grant = await service.initiate()
    except StorageError as e:
        logger.exception("Device code creation failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create device code",
        ) from e

    return DeviceCodeResponse(
        device_code=grant.device_code,
        user_code=grant.user_code,
        expires_at=grant.expires_at,
        verify_url=settings.VERIFY_URL,
        interval=settings.DEVICE_CODE_POLL_INTERVAL_SECONDS,
    )


@router.post("/approve")
async def approve_device(
    body: ApproveRequest,
    request: Request,
    user: User = Depends(get_session_user),
    service: DeviceAuthService = Depends(get_device_auth),
) -> ApproveResponse:
    """
    Approve a user code (browser, requires session cookie).

    Mints an API key for the signed-in user and hands it to the waiting CLI.
    """
    enforce_rate_limit(
        request,
        f"approve:{user.id}",
        max_requests=settings.APPROVE_RATE_LIMIT_PER_USER,
        window_minutes=1,
    )

    try:
        await service.approve(body.user_code, user.id)
    except StorageError as e:
        logger.exception("Device code approval failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve device code",
        ) from e

    return ApproveResponse()


@router.post("/token", response_model_exclude_none=True)
async def poll_device_token(
    body: TokenRequest,
    request: Request,
    service: DeviceAuthService = Depends(get_device_auth),
) -> TokenResponse:
    """
    Poll for device authorization status.

    Rate limited per IP, then per device code. Only codes that exist are
    counted per code, so guessed codes never accumulate limiter entries.
    """
    enforce_rate_limit(
        request,
        f"token-ip:{client_ip(request)}",
        max_requests=settings.TOKEN_POLL_RATE_LIMIT_PER_IP,
        window_minutes=1,
    )

    try:
        result = await service.poll(body.device_code)
    except StorageError as e:
        logger.exception("Device code poll failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to poll device code",
        ) from e

    enforce_rate_limit(
        request,
        f"token:{body.device_code}",
        max_requests=settings.TOKEN_POLL_RATE_LIMIT_PER_CODE,
        window_minutes=1,
    )
    return result
