"""Session routes. Sign-in itself happens at the identity provider."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from backend.auth import get_current_user
from backend.models.user import User, UserPublic

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", status_code=200)
async def get_current_user_endpoint(
    user: User = Depends(get_current_user),
) -> UserPublic:
    """
    Get the current authenticated user.

    Accepts a session cookie or an API key.
    """
    return UserPublic.from_user(user)


@router.post("/logout", status_code=200)
async def logout_endpoint(response: Response) -> dict:
    """
    Logout the current user.

    Clears the session cookie.
    """
    response.set_cookie(
        key="session",
        value="",
        httponly=True,
        secure=True,
        samesite="lax",
        max_age=0,  # Expire immediately
        path="/",
    )
    return {"message": "Logged out successfully"}
