"""
CLI device authorization handshake.

A CLI with no credentials asks for a pairing (initiate), the signed-in user
confirms the short user code in the browser (approve), and the CLI polls
with its secret device code until the pairing is approved or expires (poll).

    PENDING --approve--> APPROVED      (terminal)
    PENDING --time >= expires_at--> EXPIRED   (terminal, derived at read time)

Approval is a single conditional write in the store, so concurrent approvals
of the same code mint exactly one key.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from backend.errors import (
    AlreadyApprovedError,
    CodeExpiredError,
    DeviceCodeConflictError,
    DuplicateKeyError,
    InvalidCodeError,
)
from backend.models.device_code import DeviceCode, TokenResponse
from backend.repos.base import DeviceCodeStore
from backend.services.api_keys import mint_api_key

logger = logging.getLogger(__name__)

USER_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no I, O, 0, 1
USER_CODE_LENGTH = 8
_MAX_CREATE_ATTEMPTS = 5

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def generate_device_code() -> str:
    """64 hex chars. The CLI's bearer secret for polling."""
    return secrets.token_hex(32)


def generate_user_code() -> str:
    """Short code for manual entry, formatted XXXX-XXXX."""
    code = "".join(secrets.choice(USER_CODE_ALPHABET) for _ in range(USER_CODE_LENGTH))
    return f"{code[:4]}-{code[4:]}"


def normalize_user_code(user_code: str) -> str:
    """Accept what people type: lowercase, stray spaces, missing dash."""
    code = "".join(user_code.split()).upper()
    if len(code) == USER_CODE_LENGTH and "-" not in code:
        code = f"{code[:4]}-{code[4:]}"
    return code


@dataclass(frozen=True)
class DeviceGrant:
    """Result of initiate(), before it is shaped for the wire."""

    device_code: str
    user_code: str
    expires_at: datetime


class DeviceAuthService:
    """Initiate, approve and poll device pairings against a DeviceCodeStore."""

    def __init__(
        self,
        store: DeviceCodeStore,
        code_ttl: timedelta,
        key_name: str,
        key_ttl: timedelta | None = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.code_ttl = code_ttl
        self.key_name = key_name
        self.key_ttl = key_ttl
        self.clock = clock

    async def initiate(self) -> DeviceGrant:
        """
        Create a pending pairing.

        Regenerates both codes on a unique collision. Any other storage
        failure propagates as StorageError.
        """
        expires_at = self.clock() + self.code_ttl

        for _ in range(_MAX_CREATE_ATTEMPTS):
            try:
                record = await self.store.create(
                    generate_device_code(),
                    generate_user_code(),
                    expires_at,
                )
            except DuplicateKeyError:
                logger.warning("Device code collision, regenerating")
                continue

            logger.info("Device pairing %s started, expires %s", record.user_code, record.expires_at.isoformat())
            return DeviceGrant(
                device_code=record.device_code,
                user_code=record.user_code,
                expires_at=record.expires_at,
            )

        raise DuplicateKeyError(f"Failed to generate a unique device code after {_MAX_CREATE_ATTEMPTS} attempts")

    async def approve(self, user_code: str, user_id: UUID) -> DeviceCode:
        """
        Approve a pending pairing on behalf of a signed-in user and mint its key.

        Raises:
            InvalidCodeError: no pairing has this user code
            AlreadyApprovedError: the pairing was already approved
            CodeExpiredError: the pairing expired before approval
        """
        user_code = normalize_user_code(user_code)
        now = self.clock()
        key_expires_at = now + self.key_ttl if self.key_ttl is not None else None
        raw_key, new_key = mint_api_key(user_id, self.key_name, key_expires_at)

        approved = await self.store.approve(user_code, raw_key, new_key, now)
        if approved is not None:
            logger.info("Device pairing %s approved by user %s", user_code, user_id)
            return approved

        # The guarded write matched nothing; read back only to say why.
        record = await self.store.get_by_user_code(user_code)
        if record is None:
            raise InvalidCodeError("Invalid code")
        if record.status == "approved":
            raise AlreadyApprovedError("Code already approved")
        if record.is_expired(now):
            raise CodeExpiredError("Code expired")
        raise DeviceCodeConflictError("Code can no longer be approved")

    async def poll(self, device_code: str) -> TokenResponse:
        """
        Report the effective state of a pairing. Read-only.

        Raises:
            InvalidCodeError: unknown device code
        """
        record = await self.store.get_by_device_code(device_code)
        if record is None:
            raise InvalidCodeError("Invalid device code")

        if record.is_expired(self.clock()):
            return TokenResponse(status="expired")

        if record.status == "approved" and record.api_key:
            return TokenResponse(status="approved", api_key=record.api_key)

        return TokenResponse(status="pending")

    async def purge_expired(self, retention: timedelta) -> int:
        """Delete pairings that expired more than `retention` ago."""
        return await self.store.purge_expired(self.clock() - retention)
