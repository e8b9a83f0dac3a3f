"""API key minting and verification."""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime
from uuid import UUID

from backend.models.api_key import NewApiKey

KEY_PREFIX = "scx_"


def generate_api_key() -> str:
    """Generate a new API key with scx_ prefix."""
    return f"{KEY_PREFIX}{secrets.token_hex(16)}"


def hash_api_key(key: str) -> str:
    """Hash a key using SHA-256."""
    return hashlib.sha256(key.encode()).hexdigest()


def mint_api_key(
    user_id: UUID,
    name: str,
    expires_at: datetime | None = None,
) -> tuple[str, NewApiKey]:
    """Create a raw key and the record to store for it. Returns (raw_key, new_key)."""
    raw_key = generate_api_key()
    new_key = NewApiKey(
        user_id=user_id,
        name=name,
        key_hash=hash_api_key(raw_key),
        key_prefix=raw_key[:8],
        expires_at=expires_at,
    )
    return raw_key, new_key

