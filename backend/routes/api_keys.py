"""API key management routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from backend.auth import get_current_user
from backend.deps import get_storage
from backend.models.api_key import ApiKeyListItem, CreateApiKeyRequest, CreatedApiKey
from backend.models.user import User
from backend.repos.base import Storage
from backend.services.api_keys import mint_api_key

router = APIRouter(prefix="/api/api-keys", tags=["api_keys"])


@router.get("")
async def list_api_keys(
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> list[ApiKeyListItem]:
    """List all API keys for the current user. Hashes are never returned."""
    return await storage.api_keys.list_for_user(user.id)


@router.post("", status_code=201)
async def create_api_key(
    body: CreateApiKeyRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> CreatedApiKey:
    """Create a named, non-expiring API key. The raw key is only returned here."""
    raw_key, new_key = mint_api_key(user.id, body.name)
    key = await storage.api_keys.create(new_key)
    return CreatedApiKey(
        id=key.id,
        name=key.name,
        key=raw_key,
        key_prefix=key.key_prefix,
        created_at=key.created_at,
    )


@router.delete("/{key_id}")
async def delete_api_key(
    key_id: UUID,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> dict:
    """Delete one of the current user's API keys."""
    deleted = await storage.api_keys.delete(key_id, user.id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="API key not found.",
        )
    return {"message": "API key deleted"}
