"""
auth/service.py -- Session and identity orchestration.

Decides whether a session may be established and for whom:

  register()        credential sign-up -> new "user" account
  login()           email + password   -> access + refresh token pair
  refresh()         refresh token      -> new access token (no rotation)
  provider_login()  provider profile   -> existing link, email match, or new account
  update_name()     profile rename
  ensure_admin()    startup bootstrap of the first admin account

Every function takes the UserStore explicitly and raises AuthServiceError
subclasses for client-visible failures. Unexpected faults (database down,
hashing failure) propagate untouched to the top-level 500 handler.

Race handling: the duplicate-email check and the link-or-create decision are
read-then-write. The store's unique constraints catch the loser of a
concurrent race; register() reports it as 409, provider_login() re-reads the
winner's row so a duplicate callback still succeeds.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError, UnauthorizedError, ValidationError
from auth.models import ProviderProfile, Role, TokenPair, User
from auth.passwords import DUMMY_HASH, hash_password, verify_password
from auth.store import UserStore
from auth.tokens import InvalidTokenError, create_access_token, decode_refresh_token, issue_token_pair

logger = logging.getLogger("authservice.auth.service")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
MAX_NAME_LENGTH = 255

_INVALID_CREDENTIALS = "Invalid credentials"


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Credential flows
# ---------------------------------------------------------------------------


def register(store: UserStore, name: str | None, email: str | None, password: str | None) -> User:
    """Create a credential-based account with role "user".

    Raises:
        ValidationError: a field is missing, the password is too short, or the
            email is malformed.
        ConflictError: the email is already registered.
    """
    name = (name or "").strip()
    email = normalize_email(email or "")
    if not name or not email or not password:
        raise ValidationError("Please provide name, email and password")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")

    if store.get_by_email(email) is not None:
        raise ConflictError("Email already in use")

    try:
        user = store.create_user(User(name=name, email=email, password_hash=hash_password(password)))
    except IntegrityError as exc:
        # A concurrent registration won the race past the existence check.
        raise ConflictError("Email already in use") from exc
    logger.info("Registered user %s", user.id)
    return user


def login(store: UserStore, email: str | None, password: str | None) -> TokenPair:
    """Exchange email + password for a token pair.

    bcrypt runs on every attempt: against the stored hash, or against
    DUMMY_HASH when the account is missing or provider-only. Every failure
    raises the same message.
    """
    if not email or not password:
        raise ValidationError("Please provide email and password")

    user = store.get_by_email(normalize_email(email))
    if user is None or user.password_hash is None:
        verify_password(password, DUMMY_HASH)
        raise UnauthorizedError(_INVALID_CREDENTIALS)
    if not verify_password(password, user.password_hash):
        raise UnauthorizedError(_INVALID_CREDENTIALS)
    return issue_token_pair(user.id)


def refresh(refresh_token: object) -> str:
    """Mint a new access token from a valid refresh token.

    The refresh token is not rotated; it remains usable until it expires.
    """
    if not refresh_token:
        raise UnauthorizedError("Refresh token required")
    if not isinstance(refresh_token, str):
        raise UnauthorizedError("Invalid or expired refresh token")
    try:
        user_id = decode_refresh_token(refresh_token)
    except InvalidTokenError as exc:
        raise UnauthorizedError("Invalid or expired refresh token") from exc
    return create_access_token(user_id)


# ---------------------------------------------------------------------------
# Provider flow
# ---------------------------------------------------------------------------


def provider_login(store: UserStore, profile: ProviderProfile) -> TokenPair:
    """Resolve a provider identity to a local user and issue a token pair.

    Resolution order:
      1. existing link (provider, subject) -> its owner
      2. user with the same email -> link the identity to that account
      3. otherwise -> new password-less "user" account, then link it
    """
    user = store.get_by_provider(profile.provider, profile.subject)
    if user is None:
        email = normalize_email(profile.email)
        user = store.get_by_email(email)
        if user is None:
            user = _create_provider_user(store, profile.name, email)
        user = _link_provider(store, user, profile)
    return issue_token_pair(user.id)


def _create_provider_user(store: UserStore, name: str, email: str) -> User:
    try:
        user = store.create_user(User(name=name, email=email))
    except IntegrityError:
        existing = store.get_by_email(email)
        if existing is None:
            raise
        return existing
    logger.info("Created provider-only user %s", user.id)
    return user


def _link_provider(store: UserStore, user: User, profile: ProviderProfile) -> User:
    try:
        store.create_provider_link(user.id, profile.provider, profile.subject)
    except IntegrityError:
        # A concurrent callback linked this identity first; its owner wins.
        owner = store.get_by_provider(profile.provider, profile.subject)
        if owner is None:
            raise
        return owner
    logger.info("Linked %s identity to user %s", profile.provider, user.id)
    return user


# ---------------------------------------------------------------------------
# Profile and bootstrap
# ---------------------------------------------------------------------------


def update_name(store: UserStore, user: User, name: str | None) -> User:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please provide a name to update")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")
    updated = store.update_name(user.id, name)
    if updated is None:
        raise UnauthorizedError("The user belonging to this token no longer does exist.")
    return updated


def ensure_admin(store: UserStore, name: str, email: str, password: str) -> User:
    """Create the bootstrap admin if no account uses that email yet.

    An existing account is returned unchanged, whatever its role.
    """
    email = normalize_email(email)
    existing = store.get_by_email(email)
    if existing is not None:
        if existing.role != Role.admin.value:
            logger.warning("Bootstrap admin email %s belongs to a non-admin account; left unchanged", email)
        return existing
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"ADMIN_PASSWORD must be at least {MIN_PASSWORD_LENGTH} characters")
    user = store.create_user(
        User(name=name, email=email, password_hash=hash_password(password), role=Role.admin.value)
    )
    logger.info("Bootstrap admin %s created", user.id)
    return user
