"""CLI device authorization models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

DeviceCodeStatus = Literal["pending", "approved"]
PollStatus = Literal["pending", "approved", "expired"]


class DeviceCode(BaseModel):
    """Device code pairing stored in database."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    device_code: str
    user_code: str
    status: DeviceCodeStatus
    api_key: str | None
    user_id: UUID | None
    expires_at: datetime
    approved_at: datetime | None
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Expiry is derived from the timestamp, never stored."""
        return now >= self.expires_at


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceCodeResponse(_WireModel):
    """Response from starting the device flow."""

    device_code: str
    user_code: str
    expires_at: datetime
    verify_url: str
    interval: int


class ApproveRequest(_WireModel):
    """Request to approve a user code (browser, requires session cookie)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    user_code: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)]


class ApproveResponse(BaseModel):
    """Response from approving a user code."""

    success: bool = True


class TokenRequest(_WireModel):
    """Request to poll device authorization status."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    device_code: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128)]


class TokenResponse(_WireModel):
    """Response from polling. api_key is only present once approved."""

    status: PollStatus
    api_key: str | None = None
