# backend/app/security/hashing.py
"""
Password hashing with bcrypt.

bcrypt only looks at the first 72 bytes of its input; the password policy
rejects longer passwords so nothing is silently truncated.
"""
from functools import lru_cache

import bcrypt

from backend.app.core.config import settings

BCRYPT_MAX_BYTES = 72


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a password against its bcrypt hash"""
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


@lru_cache()
def _dummy_hash() -> str:
    return get_password_hash("not-a-real-password")


def burn_password_check(password: str) -> bool:
    """
    Run a bcrypt comparison that always fails.

    Used when the email is unknown, so a login for a missing account costs
    the same time as one with a wrong password.
    """
    verify_password(password, _dummy_hash())
    return False
