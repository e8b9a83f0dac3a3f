"""API key repository (PostgreSQL)."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from backend.db import Database
from backend.models.api_key import ApiKey, ApiKeyListItem, NewApiKey

_COLUMNS = "id, user_id, name, key_hash, key_prefix, last_used_at, expires_at, created_at"


async def insert_api_key(conn: asyncpg.Connection, new_key: NewApiKey) -> ApiKey:
    """Insert a key on an existing connection so callers can share a transaction."""
    row = await conn.fetchrow(
        f"""
        INSERT INTO api_keys (user_id, name, key_hash, key_prefix, expires_at)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING {_COLUMNS}
        """,
        new_key.user_id,
        new_key.name,
        new_key.key_hash,
        new_key.key_prefix,
        new_key.expires_at,
    )
    return ApiKey(**dict(row))


class PgApiKeyRepo:
    """All API key database operations."""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, new_key: NewApiKey) -> ApiKey:
        async with self.db.user_conn(new_key.user_id) as conn:
            return await insert_api_key(conn, new_key)

    async def get_by_hash(self, key_hash: str) -> ApiKey | None:
        """Look up a key by hash. System conn because the caller is not yet identified."""
        async with self.db.system_conn() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM api_keys WHERE key_hash = $1",
                key_hash,
            )
            return ApiKey(**dict(row)) if row else None

    async def touch_last_used(self, key_id: UUID) -> None:
        async with self.db.system_conn() as conn:
            await conn.execute(
                "UPDATE api_keys SET last_used_at = now() WHERE id = $1",
                key_id,
            )

    async def list_for_user(self, user_id: UUID) -> list[ApiKeyListItem]:
        """List all keys for a user (RLS enforced)."""
        async with self.db.user_conn(user_id) as conn:
            rows = await conn.fetch(
                """
                SELECT id, name, key_prefix, last_used_at, expires_at, created_at
                FROM api_keys
                WHERE user_id = $1
                ORDER BY created_at DESC
                """,
                user_id,
            )
            return [ApiKeyListItem(**dict(row)) for row in rows]

    async def delete(self, key_id: UUID, user_id: UUID) -> bool:
        """Delete a key. Returns True if deleted, False if not found."""
        async with self.db.user_conn(user_id) as conn:
            result = await conn.execute(
                "DELETE FROM api_keys WHERE id = $1 AND user_id = $2",
                key_id,
                user_id,
            )
            # result is a string like "DELETE 1" or "DELETE 0"
            return result.endswith(" 1")
