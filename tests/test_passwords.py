"""Unit tests for auth/passwords.py -- bcrypt hashing."""

from auth.passwords import DUMMY_HASH, hash_password, verify_password
from core.config import get_settings


def test_hash_verifies() -> None:
    digest = hash_password("Password123!")
    assert digest != "Password123!"
    assert verify_password("Password123!", digest)


def test_wrong_password_is_false_not_error() -> None:
    assert verify_password("wrong-password", hash_password("Password123!")) is False


def test_hash_is_salted() -> None:
    assert hash_password("same-password") != hash_password("same-password")


def test_cost_factor_from_settings() -> None:
    rounds = get_settings().bcrypt_rounds
    assert hash_password("Password123!").startswith(f"$2b${rounds:02d}$")


def test_malformed_digest_is_false() -> None:
    assert verify_password("Password123!", "not-a-bcrypt-hash") is False


def test_dummy_hash_is_a_real_hash() -> None:
    assert DUMMY_HASH.startswith("$2b$")
    assert verify_password("anything", DUMMY_HASH) is False
