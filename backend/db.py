"""
Database connection pool and RLS-scoped connection managers.

All PostgreSQL access goes through Database.user_conn() or Database.system_conn().
Never use pool.acquire() directly outside this module.

A Database is constructed explicitly at startup and handed to the repositories
that need it; there is no module-level pool.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg

from backend.errors import DuplicateKeyError, StorageError

logger = logging.getLogger(__name__)


async def _init_connection(conn: asyncpg.Connection) -> None:
    """
    Initialize each new connection.
    Sets up type codecs for UUID and JSON handling.
    """
    await conn.set_type_codec(
        "uuid",
        encoder=str,
        decoder=lambda x: UUID(x),
        schema="pg_catalog",
    )
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class Database:
    """Owns the asyncpg pool for one application instance."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 20):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """
        Initialize the connection pool.
        Called once at application startup.
        """
        self.pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=60,
            init=_init_connection,
        )
        logger.info("Database pool initialized")

    async def close(self) -> None:
        """
        Close the connection pool.
        Called at application shutdown.
        """
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    @asynccontextmanager
    async def _transaction(self, user_id: str):
        if self.pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    # Set RLS context. Empty string bypasses user scoping.
                    await conn.execute("SELECT set_config('app.user_id', $1, true)", user_id)
                    yield conn
        except asyncpg.UniqueViolationError as e:
            raise DuplicateKeyError(str(e)) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise StorageError(str(e)) from e

    @asynccontextmanager
    async def user_conn(self, user_id: str | UUID):
        """
        Acquire a connection scoped to a specific user via RLS.

        Every query through this connection can only see/modify rows
        belonging to this user. Enforced by Postgres RLS policies.

        Usage:
            async with db.user_conn(user_id) as conn:
                rows = await conn.fetch("SELECT * FROM api_keys")

        Yields:
            asyncpg.Connection inside a transaction with RLS context set
        """
        async with self._transaction(str(user_id)) as conn:
            yield conn

    @asynccontextmanager
    async def system_conn(self):
        """
        Acquire a connection without user scoping.

        For system operations only:
        - Device authorization (the CLI has no identity yet)
        - API key verification
        - Background retention cleanup

        Yields:
            asyncpg.Connection inside a transaction without RLS scoping
        """
        async with self._transaction("") as conn:
            yield conn
