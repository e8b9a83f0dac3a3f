"""API key models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel


class ApiKey(BaseModel):
    """API key stored in database. Only the hash of the raw key is kept."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    key_hash: str
    key_prefix: str
    last_used_at: datetime | None
    expires_at: datetime | None
    created_at: datetime


class NewApiKey(BaseModel):
    """An API key about to be inserted."""

    user_id: UUID
    name: str
    key_hash: str
    key_prefix: str
    expires_at: datetime | None = None


class ApiKeyListItem(BaseModel):
    """API key info for listing (no hash)."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: UUID
    name: str
    key_prefix: str
    last_used_at: datetime | None
    expires_at: datetime | None
    created_at: datetime


class CreateApiKeyRequest(BaseModel):
    """Request to create a named API key."""

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class CreatedApiKey(BaseModel):
    """Response after creating a key. The raw key is shown exactly once."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    name: str
    key: str
    key_prefix: str
    created_at: datetime
