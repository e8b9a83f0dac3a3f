"""
Storage interfaces shared by the PostgreSQL and in-memory repositories.

Routes and services depend on these protocols, never on a concrete backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from backend.models.api_key import ApiKey, ApiKeyListItem, NewApiKey
from backend.models.device_code import DeviceCode
from backend.models.user import User


class UserStore(Protocol):
    async def get(self, user_id: UUID) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def create(self, email: str, name: str | None = None) -> User: ...


class ApiKeyStore(Protocol):
    async def create(self, new_key: NewApiKey) -> ApiKey: ...

    async def get_by_hash(self, key_hash: str) -> ApiKey | None: ...

    async def touch_last_used(self, key_id: UUID) -> None: ...

    async def list_for_user(self, user_id: UUID) -> list[ApiKeyListItem]: ...

    async def delete(self, key_id: UUID, user_id: UUID) -> bool: ...


class DeviceCodeStore(Protocol):
    async def create(self, device_code: str, user_code: str, expires_at: datetime) -> DeviceCode:
        """Insert a pending pairing. Raises DuplicateKeyError on a code collision."""
        ...

    async def get_by_device_code(self, device_code: str) -> DeviceCode | None: ...

    async def get_by_user_code(self, user_code: str) -> DeviceCode | None: ...

    async def approve(
        self,
        user_code: str,
        raw_key: str,
        new_key: NewApiKey,
        now: datetime,
    ) -> DeviceCode | None:
        """
        Atomically move a pending, unexpired pairing to approved and store the
        minted key in the same transaction.

        Returns the approved record, or None if the guard did not match
        (unknown, already approved, or expired). Nothing is written on None.
        """
        ...

    async def purge_expired(self, cutoff: datetime) -> int: ...


@dataclass
class Storage:
    """The set of stores one application instance works against."""

    users: UserStore
    api_keys: ApiKeyStore
    device_codes: DeviceCodeStore
