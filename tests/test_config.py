"""Tests for core/config.py -- signing secret policy and defaults."""

import pytest
from pydantic import ValidationError

from core.config import Settings

ACCESS = "a" * 40
REFRESH = "r" * 40


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_defaults():
    s = _settings(debug=False, jwt_secret=ACCESS, jwt_refresh_secret=REFRESH)
    assert s.jwt_expiration_seconds == 900
    assert s.jwt_refresh_expiration_seconds == 7 * 24 * 60 * 60
    assert s.auth_rate_limit == 10
    assert s.auth_rate_window_seconds == 60
    assert s.rate_limit_storage_uri == "memory://"
    assert s.admin_bootstrap_enabled is False


def test_production_requires_secrets():
    with pytest.raises(ValidationError, match="JWT_SECRET is required"):
        _settings(debug=False, jwt_secret="", jwt_refresh_secret=REFRESH)


def test_debug_generates_distinct_secrets():
    s = _settings(debug=True, jwt_secret="", jwt_refresh_secret="")
    assert len(s.jwt_secret) >= 32
    assert s.jwt_secret != s.jwt_refresh_secret


def test_short_secret_rejected():
    with pytest.raises(ValidationError, match="at least 32"):
        _settings(debug=True, jwt_secret="short", jwt_refresh_secret=REFRESH)


def test_identical_secrets_rejected():
    with pytest.raises(ValidationError, match="must differ"):
        _settings(debug=True, jwt_secret=ACCESS, jwt_refresh_secret=ACCESS)


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_bounds(rounds):
    with pytest.raises(ValidationError):
        _settings(debug=True, bcrypt_rounds=rounds)


def test_admin_bootstrap_needs_email_and_password():
    s = _settings(debug=True, admin_email="root@example.com", admin_password="AdminPass123!")
    assert s.admin_bootstrap_enabled
    assert not _settings(debug=True, admin_email="root@example.com").admin_bootstrap_enabled
