"""Unit tests for auth/tokens.py -- access/refresh issuance and verification.

Covers:
- both token classes round-trip to the same subject
- access and refresh secrets are isolated in both directions
- expired, tampered and structurally wrong tokens raise InvalidTokenError
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import (
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    issue_token_pair,
)
from core.config import get_settings

USER_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


def _forge(secret: str, **claims) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


class TestRoundTrip:
    def test_access_token_subject(self) -> None:
        assert decode_access_token(create_access_token(USER_ID)) == USER_ID

    def test_refresh_token_subject(self) -> None:
        assert decode_refresh_token(create_refresh_token(USER_ID)) == USER_ID

    def test_pair_tokens_share_subject(self) -> None:
        pair = issue_token_pair(USER_ID)
        assert decode_access_token(pair.access_token) == decode_refresh_token(pair.refresh_token) == USER_ID

    def test_default_lifetimes(self) -> None:
        settings = get_settings()
        access = jwt.get_unverified_claims(create_access_token(USER_ID))
        refresh = jwt.get_unverified_claims(create_refresh_token(USER_ID))
        assert access["exp"] - access["iat"] == settings.jwt_expiration_seconds
        assert refresh["exp"] - refresh["iat"] == settings.jwt_refresh_expiration_seconds

    def test_custom_lifetime(self) -> None:
        claims = jwt.get_unverified_claims(create_access_token(USER_ID, expire_seconds=30))
        assert claims["exp"] - claims["iat"] == 30


class TestSecretIsolation:
    def test_refresh_token_rejected_as_access(self) -> None:
        with pytest.raises(InvalidTokenError):
            decode_access_token(create_refresh_token(USER_ID))

    def test_access_token_rejected_as_refresh(self) -> None:
        with pytest.raises(InvalidTokenError):
            decode_refresh_token(create_access_token(USER_ID))

    def test_type_claim_checked_even_with_right_secret(self) -> None:
        """An access-typed token signed with the refresh secret is still not a refresh token."""
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = _forge(get_settings().jwt_refresh_secret, sub=USER_ID, type="access", exp=exp)
        with pytest.raises(InvalidTokenError):
            decode_refresh_token(token)


class TestRejection:
    def test_expired_access_token(self) -> None:
        exp = datetime.now(timezone.utc) - timedelta(seconds=5)
        token = _forge(get_settings().jwt_secret, sub=USER_ID, type="access", exp=exp)
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

    def test_expired_refresh_token(self) -> None:
        exp = datetime.now(timezone.utc) - timedelta(seconds=5)
        token = _forge(get_settings().jwt_refresh_secret, sub=USER_ID, type="refresh", exp=exp)
        with pytest.raises(InvalidTokenError):
            decode_refresh_token(token)

    def test_missing_expiry(self) -> None:
        token = _forge(get_settings().jwt_secret, sub=USER_ID, type="access")
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

    def test_missing_subject(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = _forge(get_settings().jwt_secret, type="access", exp=exp)
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

    def test_foreign_secret(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = _forge("x" * 40, sub=USER_ID, type="access", exp=exp)
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

    def test_tampered_signature(self) -> None:
        token = create_access_token(USER_ID)
        head, payload, sig = token.split(".")
        tampered = f"{head}.{payload}.{'A' if sig[0] != 'A' else 'B'}{sig[1:]}"
        with pytest.raises(InvalidTokenError):
            decode_access_token(tampered)

    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
    def test_malformed(self, garbage: str) -> None:
        with pytest.raises(InvalidTokenError):
            decode_access_token(garbage)
