"""CLI device code repository (PostgreSQL)."""

from __future__ import annotations

from datetime import datetime

from backend.db import Database
from backend.models.api_key import NewApiKey
from backend.models.device_code import DeviceCode
from backend.repos.api_key_repo import insert_api_key

_COLUMNS = "id, device_code, user_code, status, api_key, user_id, expires_at, approved_at, created_at"


class PgDeviceCodeRepo:
    """All device code database operations. Always system-scoped: the CLI has no identity yet."""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, device_code: str, user_code: str, expires_at: datetime) -> DeviceCode:
        async with self.db.system_conn() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO device_codes (device_code, user_code, expires_at)
                VALUES ($1, $2, $3)
                RETURNING {_COLUMNS}
                """,
                device_code,
                user_code,
                expires_at,
            )
            return DeviceCode(**dict(row))

    async def get_by_device_code(self, device_code: str) -> DeviceCode | None:
        async with self.db.system_conn() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM device_codes WHERE device_code = $1",
                device_code,
            )
            return DeviceCode(**dict(row)) if row else None

    async def get_by_user_code(self, user_code: str) -> DeviceCode | None:
        async with self.db.system_conn() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM device_codes WHERE user_code = $1",
                user_code,
            )
            return DeviceCode(**dict(row)) if row else None

    async def approve(
        self,
        user_code: str,
        raw_key: str,
        new_key: NewApiKey,
        now: datetime,
    ) -> DeviceCode | None:
        """Approve a pending, unexpired code and insert its key in one transaction."""
        async with self.db.system_conn() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE device_codes
                SET status = 'approved', api_key = $2, user_id = $3, approved_at = $4
                WHERE user_code = $1 AND status = 'pending' AND expires_at > $4
                RETURNING {_COLUMNS}
                """,
                user_code,
                raw_key,
                new_key.user_id,
                now,
            )
            if not row:
                return None

            await insert_api_key(conn, new_key)
            return DeviceCode(**dict(row))

    async def purge_expired(self, cutoff: datetime) -> int:
        """Delete pairings that expired before cutoff. Returns count deleted."""
        async with self.db.system_conn() as conn:
            result = await conn.execute(
                "DELETE FROM device_codes WHERE expires_at < $1",
                cutoff,
            )
            # result is a string like "DELETE 5"
            return int(result.split()[-1])
