"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; api/models.py owns the HTTP transport shape.

Layer rule: no imports from api/, core/, or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. There is no hierarchy: checks are exact-match."""

    user = "user"
    admin = "admin"


@dataclass
class User:
    """A local identity.

    password_hash is None for provider-only accounts; such users cannot
    complete a credential login. email is normalized to lower case before
    it reaches the store and never changes afterwards.
    """

    name: str
    email: str
    role: str = Role.user.value
    id: str | None = None
    password_hash: str | None = None  # None = provider-only user
    created_at: str | None = None

    def public(self) -> dict:
        """Projection safe to return to API clients."""
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}


@dataclass
class ProviderLink:
    """Binds an external identity (provider, provider_user_id) to a local user."""

    user_id: str
    provider: str  # "google", "github"
    provider_user_id: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class ProviderProfile:
    """Profile fields delivered to a provider callback."""

    provider: str
    subject: str
    email: str
    name: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
