"""
auth/tokens.py -- JWT access and refresh token issuance and verification.

Security design decisions:
  python-jose with HS256. Two token classes, each bound to a user id:

    access   signed with JWT_SECRET,         lifetime JWT_EXPIRATION_SECONDS (15 min)
    refresh  signed with JWT_REFRESH_SECRET, lifetime JWT_REFRESH_EXPIRATION_SECONDS (7 days)

  Every token also carries a "type" claim. Verification checks the secret AND
  the type, so a refresh token never passes the access check even if an
  operator configures the same secret twice (Settings refuses that anyway).

  Tokens are stateless: there is no revocation list. A token stays valid for
  its full lifetime; the access gate still rejects it once the user row is gone.

  Verification raises InvalidTokenError on any failure -- bad signature,
  malformed structure, missing claims, wrong type, or expiry. The exception
  deliberately does not say which check failed.

Layer rule: no imports from api/ or cache/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import TokenPair
from core.config import get_settings

logger = logging.getLogger("authservice.auth.tokens")

_settings = get_settings()

_ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"


class InvalidTokenError(Exception):
    """Raised when a token fails verification for any reason."""


def _encode(user_id: str, token_type: str, secret: str, duration: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": token_type,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def _decode(token: str, token_type: str, secret: str) -> str:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as exc:
        raise InvalidTokenError("invalid token") from exc
    if payload.get("type") != token_type or not payload.get("sub"):
        raise InvalidTokenError("invalid token")
    return payload["sub"]


def create_access_token(user_id: str, expire_seconds: int = 0) -> str:
    """Sign a short-lived access token for user_id.

    expire_seconds <= 0 uses Settings.jwt_expiration_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.jwt_expiration_seconds
    return _encode(user_id, ACCESS, _settings.jwt_secret, duration)


def create_refresh_token(user_id: str, expire_seconds: int = 0) -> str:
    """Sign a long-lived refresh token for user_id.

    expire_seconds <= 0 uses Settings.jwt_refresh_expiration_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.jwt_refresh_expiration_seconds
    return _encode(user_id, REFRESH, _settings.jwt_refresh_secret, duration)


def decode_access_token(token: str) -> str:
    """Verify an access token and return its subject (user id)."""
    return _decode(token, ACCESS, _settings.jwt_secret)


def decode_refresh_token(token: str) -> str:
    """Verify a refresh token and return its subject (user id)."""
    return _decode(token, REFRESH, _settings.jwt_refresh_secret)


def issue_token_pair(user_id: str) -> TokenPair:
    return TokenPair(access_token=create_access_token(user_id), refresh_token=create_refresh_token(user_id))
