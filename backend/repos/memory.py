"""
In-process repositories.

Used by the test suite and by STORAGE_BACKEND=memory for local development.
State lives for the lifetime of the process. Each store serializes its
writes with an asyncio.Lock so the approve guard behaves like the
conditional UPDATE in the PostgreSQL repository.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import UUID, uuid4

from backend.errors import DuplicateKeyError
from backend.models.api_key import ApiKey, ApiKeyListItem, NewApiKey
from backend.models.device_code import DeviceCode
from backend.models.user import User
from backend.repos.base import Storage


def _now() -> datetime:
    return datetime.now(UTC)


class MemoryUserRepo:
    def __init__(self):
        self._users: dict[UUID, User] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: UUID) -> User | None:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        email = email.lower()
        return next((u for u in self._users.values() if u.email == email), None)

    async def create(self, email: str, name: str | None = None) -> User:
        email = email.lower()
        async with self._lock:
            if any(u.email == email for u in self._users.values()):
                raise DuplicateKeyError(f"users.email {email}")
            user = User(id=uuid4(), email=email, name=name, created_at=_now())
            self._users[user.id] = user
            return user


class MemoryApiKeyRepo:
    def __init__(self):
        self._keys: dict[UUID, ApiKey] = {}
        self._lock = asyncio.Lock()

    def _insert(self, new_key: NewApiKey) -> ApiKey:
        if any(k.key_hash == new_key.key_hash for k in self._keys.values()):
            raise DuplicateKeyError("api_keys.key_hash")
        key = ApiKey(
            id=uuid4(),
            user_id=new_key.user_id,
            name=new_key.name,
            key_hash=new_key.key_hash,
            key_prefix=new_key.key_prefix,
            last_used_at=None,
            expires_at=new_key.expires_at,
            created_at=_now(),
        )
        self._keys[key.id] = key
        return key

    async def create(self, new_key: NewApiKey) -> ApiKey:
        async with self._lock:
            return self._insert(new_key)

    async def get_by_hash(self, key_hash: str) -> ApiKey | None:
        return next((k for k in self._keys.values() if k.key_hash == key_hash), None)

    async def touch_last_used(self, key_id: UUID) -> None:
        async with self._lock:
            key = self._keys.get(key_id)
            if key is not None:
                self._keys[key_id] = key.model_copy(update={"last_used_at": _now()})

    async def list_for_user(self, user_id: UUID) -> list[ApiKeyListItem]:
        keys = sorted(
            (k for k in self._keys.values() if k.user_id == user_id),
            key=lambda k: k.created_at,
            reverse=True,
        )
        return [
            ApiKeyListItem(
                id=k.id,
                name=k.name,
                key_prefix=k.key_prefix,
                last_used_at=k.last_used_at,
                expires_at=k.expires_at,
                created_at=k.created_at,
            )
            for k in keys
        ]

    async def delete(self, key_id: UUID, user_id: UUID) -> bool:
        async with self._lock:
            key = self._keys.get(key_id)
            if key is None or key.user_id != user_id:
                return False
            del self._keys[key_id]
            return True


class MemoryDeviceCodeRepo:
    def __init__(self, api_keys: MemoryApiKeyRepo):
        self._api_keys = api_keys
        self._rows: dict[str, DeviceCode] = {}  # device_code -> record
        self._by_user_code: dict[str, str] = {}  # user_code -> device_code
        self._lock = asyncio.Lock()

    async def create(self, device_code: str, user_code: str, expires_at: datetime) -> DeviceCode:
        async with self._lock:
            if device_code in self._rows or user_code in self._by_user_code:
                raise DuplicateKeyError("device_codes")
            record = DeviceCode(
                id=uuid4(),
                device_code=device_code,
                user_code=user_code,
                status="pending",
                api_key=None,
                user_id=None,
                expires_at=expires_at,
                approved_at=None,
                created_at=_now(),
            )
            self._rows[device_code] = record
            self._by_user_code[user_code] = device_code
            return record

    async def get_by_device_code(self, device_code: str) -> DeviceCode | None:
        return self._rows.get(device_code)

    async def get_by_user_code(self, user_code: str) -> DeviceCode | None:
        device_code = self._by_user_code.get(user_code)
        return self._rows.get(device_code) if device_code else None

    async def approve(
        self,
        user_code: str,
        raw_key: str,
        new_key: NewApiKey,
        now: datetime,
    ) -> DeviceCode | None:
        async with self._lock:
            record = await self.get_by_user_code(user_code)
            if record is None or record.status != "pending" or record.is_expired(now):
                return None

            async with self._api_keys._lock:
                self._api_keys._insert(new_key)

            approved = record.model_copy(
                update={
                    "status": "approved",
                    "api_key": raw_key,
                    "user_id": new_key.user_id,
                    "approved_at": now,
                }
            )
            self._rows[record.device_code] = approved
            return approved

    async def purge_expired(self, cutoff: datetime) -> int:
        async with self._lock:
            stale = [r for r in self._rows.values() if r.expires_at < cutoff]
            for record in stale:
                del self._rows[record.device_code]
                del self._by_user_code[record.user_code]
            return len(stale)


def memory_storage() -> Storage:
    """Build a fresh, empty in-process Storage."""
    api_keys = MemoryApiKeyRepo()
    return Storage(
        users=MemoryUserRepo(),
        api_keys=api_keys,
        device_codes=MemoryDeviceCodeRepo(api_keys),
    )
