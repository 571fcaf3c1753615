# backend/app/security/lockout.py
"""
Login lockout bookkeeping.

After MAX_FAILED_LOGIN_ATTEMPTS consecutive failures the account is locked
for LOCKOUT_DURATION_MINUTES. While locked, every attempt is rejected, even
with the right password. The counter restarts once a lock is set so that a
new lock needs another full run of failures.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from backend.app.core.config import settings
from backend.app.models.user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_locked(user: User, now: Optional[datetime] = None) -> bool:
    lockout_until = as_aware(user.lockout_until)
    if lockout_until is None:
        return False
    return (now or utcnow()) < lockout_until


def register_failure(user: User, now: Optional[datetime] = None) -> bool:
    """
    Count a failed attempt.

    Returns True when this failure put the account into lockout.
    """
    now = now or utcnow()
    user.failed_login_count = (user.failed_login_count or 0) + 1

    if user.failed_login_count >= settings.MAX_FAILED_LOGIN_ATTEMPTS:
        user.lockout_until = now + timedelta(minutes=settings.LOCKOUT_DURATION_MINUTES)
        user.failed_login_count = 0
        return True
    return False


def clear(user: User) -> None:
    user.failed_login_count = 0
    user.lockout_until = None
