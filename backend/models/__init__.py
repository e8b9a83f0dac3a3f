"""
Pydantic models for Supacortex.

All data shapes defined here. No imports from db, repos, or routes.
"""

from backend.models.api_key import (
    ApiKey,
    ApiKeyListItem,
    CreateApiKeyRequest,
    CreatedApiKey,
    NewApiKey,
)
from backend.models.device_code import (
    ApproveRequest,
    ApproveResponse,
    DeviceCode,
    DeviceCodeResponse,
    TokenRequest,
    TokenResponse,
)
from backend.models.user import User, UserPublic

__all__ = [
    # User models
    "User",
    "UserPublic",
    # API key models
    "ApiKey",
    "ApiKeyListItem",
    "CreateApiKeyRequest",
    "CreatedApiKey",
    "NewApiKey",
    # Device authorization models
    "DeviceCode",
    "DeviceCodeResponse",
    "ApproveRequest",
    "ApproveResponse",
    "TokenRequest",
    "TokenResponse",
]
