# backend/app/security/passwords.py
"""
Password strength policy.

Rules:
- at least PASSWORD_MIN_LENGTH characters
- at most 72 UTF-8 bytes (bcrypt input limit)
- not a known breached password, when PASSWORD_BREACH_CHECK is on

The breach corpus is a built-in list of the most common leaked passwords,
optionally extended by a newline-separated file (PASSWORD_BREACH_CORPUS_PATH).
"""
import logging
from functools import lru_cache
from pathlib import Path
from typing import FrozenSet, List, Optional

from backend.app.core.config import settings
from backend.app.core.exceptions import WeakPassword
from backend.app.security.hashing import BCRYPT_MAX_BYTES

logger = logging.getLogger(__name__)

COMMON_BREACHED_PASSWORDS = frozenset({
    "123456", "123456789", "12345678", "password", "qwerty123", "qwerty1",
    "111111", "12345", "1234567", "1234567890", "123123", "000000",
    "iloveyou", "1q2w3e4r", "qwertyuiop", "abc123", "password1",
    "password123", "welcome", "welcome1", "admin", "admin123", "letmein",
    "monkey", "dragon", "sunshine", "princess", "football", "baseball",
    "master", "shadow", "superman", "trustno1", "passw0rd", "p@ssw0rd",
    "qwerty", "asdfghjkl", "zaq12wsx", "1qaz2wsx", "q1w2e3r4t5",
    "changeme", "secret", "starwars", "whatever", "michael", "charlie",
    "jennifer", "computer", "freedom", "internet", "hello123", "login",
    "987654321", "11111111", "00000000", "12341234", "88888888",
    "aa123456", "a1b2c3d4", "pa55word", "mustang", "batman", "access",
    "flower", "hottie", "loveme", "zxcvbnm", "zxcvbnm1", "summer2024",
})


@lru_cache()
def _load_corpus(path: Optional[str]) -> FrozenSet[str]:
    if not path:
        return COMMON_BREACHED_PASSWORDS

    corpus_file = Path(path)
    if not corpus_file.is_file():
        logger.warning("Breach corpus file %s not found, using built-in list only", path)
        return COMMON_BREACHED_PASSWORDS

    with corpus_file.open(encoding="utf-8", errors="ignore") as fh:
        extra = {line.strip().lower() for line in fh if line.strip()}
    logger.info("Loaded %d passwords from breach corpus", len(extra))
    return COMMON_BREACHED_PASSWORDS | extra


def is_breached(password: str) -> bool:
    return password.lower() in _load_corpus(settings.PASSWORD_BREACH_CORPUS_PATH)


def password_policy_violations(password: str) -> List[str]:
    reasons = []
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        reasons.append(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        reasons.append(f"Password must be at most {BCRYPT_MAX_BYTES} bytes long")
    if settings.PASSWORD_BREACH_CHECK and is_breached(password):
        reasons.append("Password appears in a list of breached passwords")
    return reasons


def validate_password_strength(password: str, field: str = "password") -> None:
    """Raise WeakPassword listing every rule the password breaks."""
    reasons = password_policy_violations(password)
    if reasons:
        raise WeakPassword(reasons, field=field)
