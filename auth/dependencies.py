"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and roles.

get_current_user() reads "Authorization: Bearer <token>", verifies it as an
access token and loads the user. The resolved User is handed to route
handlers as a dependency value -- handlers receive it explicitly rather than
fishing it out of request state.

require_role(role) wraps get_current_user() and raises 403 unless the user's
role matches exactly. There is no role hierarchy.

Layer rule: no imports from cache/.
  auth/dependencies.py may import from fastapi (for Depends/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.errors import ForbiddenError, UnauthorizedError
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import InvalidTokenError, decode_access_token


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user(request: Request) -> User:
    """Require a valid access token. Raises 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise UnauthorizedError("You are not logged in! Please log in to get access.")

    try:
        user_id = decode_access_token(token)
    except InvalidTokenError as exc:
        raise UnauthorizedError("Invalid token. Please log in again!") from exc

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(user_id)
    if user is None:
        raise UnauthorizedError("The user belonging to this token no longer does exist.")
    return user


def require_role(role: Role) -> Callable[..., User]:
    """Build a dependency that admits only users holding exactly `role`."""

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role != role.value:
            raise ForbiddenError("You do not have permission to perform this action")
        return user

    return _dependency


require_admin = require_role(Role.admin)
