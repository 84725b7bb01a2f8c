"""
api/routes/users.py -- The authenticated user's profile and the admin user list.

Routes:
  GET   /api/users/me   -- current user (requires auth)
  PATCH /api/users/me   -- rename current user (requires auth)
  GET   /api/users      -- every user (requires admin)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import UserPatch, UserResponse
from auth import service
from auth.dependencies import get_current_user, require_admin
from auth.models import User
from auth.store import UserStore

router = APIRouter()


@router.get("/users/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the public profile of the authenticated user."""
    return UserResponse(**current_user.public())


@router.patch("/users/me", response_model=UserResponse)
def update_me(
    request: Request,
    body: UserPatch,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Update the authenticated user's display name. Email and role are immutable here."""
    user_store: UserStore = request.app.state.user_store
    updated = service.update_name(user_store, current_user, body.name)
    return UserResponse(**updated.public())


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, current_user: User = Depends(require_admin)) -> list[UserResponse]:
    """List every account. Admin only."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse(**u.public()) for u in user_store.list_users()]
