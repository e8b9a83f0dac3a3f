"""Repository for user operations (PostgreSQL)."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from backend.db import Database
from backend.models.user import User


def _row_to_user(row: asyncpg.Record) -> User:
    """Convert a database row to a User model."""
    return User(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        created_at=row["created_at"],
    )


class PgUserRepo:
    """All user-related database operations."""

    def __init__(self, db: Database):
        self.db = db

    async def get(self, user_id: UUID) -> User | None:
        """
        Get a user by ID.

        Args:
            user_id: User UUID

        Returns:
            User if found, None otherwise
        """
        async with self.db.user_conn(user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
            return _row_to_user(row) if row else None

    async def get_by_email(self, email: str) -> User | None:
        """
        Get a user by email address.
        System conn because no user context is established during lookup.

        Args:
            email: Email address to look up

        Returns:
            User if found, None otherwise
        """
        async with self.db.system_conn() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE email = $1", email.lower())
            return _row_to_user(row) if row else None

    async def create(self, email: str, name: str | None = None) -> User:
        """
        Create a new user.

        Args:
            email: Email address for the new user
            name: Optional display name

        Returns:
            Newly created User
        """
        async with self.db.system_conn() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO users (email, name)
                VALUES ($1, $2)
                RETURNING *
                """,
                email.lower(),
                name,
            )
            return _row_to_user(row)
