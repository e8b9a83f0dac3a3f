"""
Supacortex configuration: all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")
    STORAGE_BACKEND: str = os.environ.get("STORAGE_BACKEND", "postgres")  # postgres | memory

    # Auth
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = 24 * 7

    # CLI device authorization
    DEVICE_CODE_EXPIRY_MINUTES: int = int(os.environ.get("DEVICE_CODE_EXPIRY_MINUTES", "15"))
    DEVICE_CODE_POLL_INTERVAL_SECONDS: int = 5
    DEVICE_CODE_RETENTION_HOURS: int = int(os.environ.get("DEVICE_CODE_RETENTION_HOURS", "24"))
    CLI_KEY_NAME: str = "CLI (scx login)"
    CLI_KEY_EXPIRY_DAYS: int = int(os.environ.get("CLI_KEY_EXPIRY_DAYS", "90"))

    # Rate Limits
    DEVICE_CODE_RATE_LIMIT_PER_IP: int = 10  # per hour
    TOKEN_POLL_RATE_LIMIT_PER_IP: int = 120  # per minute
    TOKEN_POLL_RATE_LIMIT_PER_CODE: int = 30  # per minute
    APPROVE_RATE_LIMIT_PER_USER: int = 10  # per minute

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @property
    def APP_URL(self) -> str:
        url = os.environ.get("APP_URL")
        if url:
            return url.rstrip("/")
        return "http://localhost:3000" if self.ENVIRONMENT == "development" else "https://supacortex.ai"

    @property
    def VERIFY_URL(self) -> str:
        """Browser page where a signed-in user confirms a CLI user code."""
        return f"{self.APP_URL}/auth/verify"


# Singleton instance
settings = Settings()

if not settings.JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is required")
if settings.STORAGE_BACKEND not in ("postgres", "memory"):
    raise RuntimeError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
if settings.STORAGE_BACKEND == "postgres" and not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")
