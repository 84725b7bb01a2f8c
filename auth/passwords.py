"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection hashes a password longer than 72 bytes, which bcrypt 4.x rejects.

The cost factor comes from Settings.bcrypt_rounds (default 12). Tests drop it
to 4 through BCRYPT_ROUNDS so the suite stays fast.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings

_settings = get_settings()


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are truncated by bcrypt. The API layer caps
    password length at 255 characters; anything past byte 72 simply does not
    contribute to the hash.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8")[:72], salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A mismatch or an unparseable stored hash is a negative result, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization: login verifies against this hash when the account does
# not exist or has no password, so response time does not reveal which.
DUMMY_HASH: str = hash_password("authservice_timing_dummy")
