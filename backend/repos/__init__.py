"""
Repository layer for Supacortex.

All SQL lives here and ONLY here. No database access outside this module.
"""

from backend.db import Database
from backend.repos.api_key_repo import PgApiKeyRepo
from backend.repos.base import ApiKeyStore, DeviceCodeStore, Storage, UserStore
from backend.repos.device_code_repo import PgDeviceCodeRepo
from backend.repos.memory import memory_storage
from backend.repos.user_repo import PgUserRepo


def postgres_storage(db: Database) -> Storage:
    """Build a Storage backed by the given PostgreSQL database."""
    return Storage(
        users=PgUserRepo(db),
        api_keys=PgApiKeyRepo(db),
        device_codes=PgDeviceCodeRepo(db),
    )


__all__ = [
    "Storage",
    "UserStore",
    "ApiKeyStore",
    "DeviceCodeStore",
    "PgUserRepo",
    "PgApiKeyRepo",
    "PgDeviceCodeRepo",
    "memory_storage",
    "postgres_storage",
]
