# backend/app/services/identity.py
"""
Identity provider: registration, login, sessions and password lifecycle.

Sessions are an access token (JWT) plus an opaque refresh token whose hash
is stored. Both carry the same session id; an access token is honoured only
while its session still has an unrevoked refresh token, so revoking the
refresh side also ends the access side. Refresh tokens rotate: each one can
be redeemed once, and presenting an already-rotated token revokes every
session of the user.

Confirmation and reset tokens are single-use and time-boxed. A token is
spent as soon as it is looked up, even when the request then fails.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AccountLocked,
    DuplicateEmail,
    EmailUnconfirmed,
    InvalidActionToken,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidTwoFactorCode,
    ValidationFailed,
)
from backend.app.models.auth_token import RefreshToken, UserToken
from backend.app.models.user import User
from backend.app.security import hashing, jwt, lockout, totp
from backend.app.security.lockout import as_aware, utcnow
from backend.app.security.passwords import validate_password_strength
from backend.app.security.tokens import generate_token, hash_token
from backend.app.services import partnerships
from backend.app.services.mailer import Mailer, confirmation_email, password_reset_email

logger = logging.getLogger(__name__)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_at: datetime
    token_type: str = "bearer"


@dataclass
class PendingTwoFactor:
    pending_token: str
    expires_at: datetime


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalars().first()


async def _check_password(password: str, hashed_password: str) -> bool:
    # bcrypt is CPU bound, keep it off the event loop
    return await run_in_threadpool(hashing.verify_password, password, hashed_password)


async def _hash_password(password: str) -> str:
    return await run_in_threadpool(hashing.get_password_hash, password)


# ─────────────────────────────────────────────────────────────────────────────
# Registration & email confirmation
# ─────────────────────────────────────────────────────────────────────────────
async def register(
    db: AsyncSession,
    email: str,
    password: str,
    mailer: Mailer,
    display_name: Optional[str] = None,
) -> User:
    email = normalize_email(email)
    validate_password_strength(password)

    if await get_user_by_email(db, email) is not None:
        raise DuplicateEmail()

    user = User(
        email=email,
        hashed_password=await _hash_password(password),
        display_name=display_name,
        email_confirmed=False,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same email
        await db.rollback()
        raise DuplicateEmail()

    token = await _issue_action_token(
        db, user.id, UserToken.CONFIRM_EMAIL,
        timedelta(hours=settings.EMAIL_CONFIRMATION_EXPIRE_HOURS),
    )
    await db.commit()
    await db.refresh(user)

    await mailer.send(confirmation_email(user.email, user.id, token))
    logger.info("Registered user %s", user.id)
    return user


async def confirm_email(db: AsyncSession, user_id: int, token: str) -> User:
    stored = await _consume_action_token(db, token, UserToken.CONFIRM_EMAIL)
    if stored.user_id != user_id:
        await db.commit()
        raise InvalidActionToken()

    user = await db.get(User, user_id)
    if user is None:
        await db.commit()
        raise InvalidActionToken()

    if not user.email_confirmed:
        user.email_confirmed = True
        user.email_confirmed_at = utcnow()
    await db.commit()
    logger.info("User %s confirmed their email", user_id)
    return user


async def resend_confirmation(db: AsyncSession, email: str, mailer: Mailer) -> None:
    """Silently does nothing for unknown or already-confirmed addresses."""
    user = await get_user_by_email(db, email)
    if user is None or not user.is_active or user.email_confirmed:
        return

    token = await _issue_action_token(
        db, user.id, UserToken.CONFIRM_EMAIL,
        timedelta(hours=settings.EMAIL_CONFIRMATION_EXPIRE_HOURS),
    )
    await db.commit()
    await mailer.send(confirmation_email(user.email, user.id, token))


# ─────────────────────────────────────────────────────────────────────────────
# Login
# ─────────────────────────────────────────────────────────────────────────────
async def authenticate(
    db: AsyncSession, email: str, password: str
) -> Union[TokenPair, PendingTwoFactor]:
    """
    Check credentials and open a session.

    Returns a PendingTwoFactor instead of a session when the account has
    two-factor enabled. Failed passwords count toward the lockout.
    """
    user = await get_user_by_email(db, email)
    if user is None or not user.is_active:
        await run_in_threadpool(hashing.burn_password_check, password)
        raise InvalidCredentials()

    if lockout.is_locked(user):
        raise AccountLocked(as_aware(user.lockout_until))

    if not await _check_password(password, user.hashed_password):
        await _record_failed_attempt(db, user)
        raise InvalidCredentials()

    if not user.email_confirmed:
        raise EmailUnconfirmed()

    if user.two_factor_enabled:
        # The failure counter is only cleared once the second factor passes
        expires_delta = timedelta(minutes=settings.TWO_FACTOR_PENDING_EXPIRE_MINUTES)
        pending = jwt.create_access_token(
            data={"sub": str(user.id)},
            expires_delta=expires_delta,
            token_type=jwt.TWO_FACTOR_PENDING_TYPE,
        )
        return PendingTwoFactor(pending_token=pending, expires_at=utcnow() + expires_delta)

    lockout.clear(user)
    pair = await _issue_session(db, user)
    await db.commit()
    logger.info("User %s logged in", user.id)
    return pair


async def verify_two_factor(db: AsyncSession, pending_token: str, code: str) -> TokenPair:
    payload = jwt.decode_token(pending_token, expected_type=jwt.TWO_FACTOR_PENDING_TYPE)
    user = await db.get(User, _user_id_from_subject(payload.sub))
    if user is None or not user.is_active or not user.two_factor_enabled:
        raise InvalidOrExpiredToken()

    if lockout.is_locked(user):
        raise AccountLocked(as_aware(user.lockout_until))

    if not (totp.looks_like_totp(code) and totp.verify_totp(user.two_factor_secret, code)):
        remaining = totp.consume_backup_code(code, user.backup_codes)
        if remaining is None:
            await _record_failed_attempt(db, user)
            raise InvalidCredentials("Invalid verification code")
        user.backup_codes = remaining
        logger.info("User %s signed in with a backup code, %d left", user.id, len(remaining))

    lockout.clear(user)
    pair = await _issue_session(db, user)
    await db.commit()
    logger.info("User %s completed two-factor login", user.id)
    return pair


async def _record_failed_attempt(db: AsyncSession, user: User) -> None:
    locked = lockout.register_failure(user)
    await db.commit()
    if locked:
        logger.warning("User %s locked out until %s", user.id, user.lockout_until)


def _user_id_from_subject(subject: str) -> int:
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise InvalidOrExpiredToken()


# ─────────────────────────────────────────────────────────────────────────────
# Sessions
# ─────────────────────────────────────────────────────────────────────────────
async def _issue_session(db: AsyncSession, user: User, session_id: Optional[str] = None) -> TokenPair:
    """Mint an access token and a persisted refresh token. Caller commits."""
    now = utcnow()
    session_id = session_id or uuid.uuid4().hex
    access_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = jwt.create_access_token(
        data={"sub": str(user.id), "sid": session_id}, expires_delta=access_delta
    )

    refresh_token = generate_token()
    db.add(RefreshToken(
        user_id=user.id,
        session_id=session_id,
        token_hash=hash_token(refresh_token),
        expires_at=now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    ))
    await db.flush()

    return TokenPair(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=now + access_delta,
    )


async def refresh_session(db: AsyncSession, refresh_token: str) -> TokenPair:
    now = utcnow()
    result = await db.execute(
        select(RefreshToken).where(RefreshToken.token_hash == hash_token(refresh_token))
    )
    stored = result.scalars().first()
    if stored is None:
        raise InvalidOrExpiredToken()

    stored_id, user_id, session_id = stored.id, stored.user_id, stored.session_id

    if stored.revoked_at is not None:
        if stored.replaced_by_id is not None:
            # A rotated token came back: someone holds a copy
            await revoke_all_sessions(db, user_id)
            await db.commit()
            logger.warning("Refresh token reuse for user %s, all sessions revoked", user_id)
        raise InvalidOrExpiredToken()

    if as_aware(stored.expires_at) <= now:
        raise InvalidOrExpiredToken()

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise InvalidOrExpiredToken()

    # Redeem atomically, a concurrent refresh with the same token gets rowcount 0
    redeemed = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.id == stored_id, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=now)
        .execution_options(synchronize_session=False)
    )
    if redeemed.rowcount != 1:
        await db.rollback()
        raise InvalidOrExpiredToken()

    pair = await _issue_session(db, user, session_id)
    new_row = await db.execute(
        select(RefreshToken.id).where(RefreshToken.token_hash == hash_token(pair.refresh_token))
    )
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.id == stored_id)
        .values(replaced_by_id=new_row.scalar_one())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return pair


async def logout(db: AsyncSession, refresh_token: str) -> None:
    """
    End the session the refresh token belongs to, access token included.
    Unknown or already revoked tokens are ignored.
    """
    session_id = await db.scalar(
        select(RefreshToken.session_id).where(RefreshToken.token_hash == hash_token(refresh_token))
    )
    if session_id is None:
        return

    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.session_id == session_id, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def is_session_active(db: AsyncSession, user_id: int, session_id: str) -> bool:
    """True while the session still holds a refresh token that was not revoked."""
    found = await db.scalar(
        select(RefreshToken.id)
        .where(
            RefreshToken.user_id == user_id,
            RefreshToken.session_id == session_id,
            RefreshToken.revoked_at.is_(None),
        )
        .limit(1)
    )
    return found is not None


async def revoke_all_sessions(db: AsyncSession, user_id: int) -> None:
    """Revoke every outstanding refresh token of a user. Caller commits."""
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )


# ─────────────────────────────────────────────────────────────────────────────
# Password lifecycle
# ─────────────────────────────────────────────────────────────────────────────
async def request_password_reset(db: AsyncSession, email: str, mailer: Mailer) -> None:
    """Same outcome for known and unknown emails."""
    user = await get_user_by_email(db, email)
    if user is None or not user.is_active:
        logger.info("Password reset requested for an unknown or disabled account")
        return

    token = await _issue_action_token(
        db, user.id, UserToken.RESET_PASSWORD,
        timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS),
    )
    await db.commit()
    await mailer.send(password_reset_email(user.email, token))
    logger.info("Password reset issued for user %s", user.id)


async def reset_password(db: AsyncSession, token: str, new_password: str) -> None:
    validate_password_strength(new_password, field="new_password")

    stored = await _consume_action_token(db, token, UserToken.RESET_PASSWORD)
    user = await db.get(User, stored.user_id)
    if user is None or not user.is_active:
        await db.commit()
        raise InvalidActionToken()

    user.hashed_password = await _hash_password(new_password)
    lockout.clear(user)
    await revoke_all_sessions(db, user.id)
    await db.commit()
    logger.info("User %s reset their password", user.id)


async def change_password(
    db: AsyncSession, user: User, current_password: str, new_password: str
) -> None:
    if not await _check_password(current_password, user.hashed_password):
        raise InvalidCredentials("Current password is incorrect")

    validate_password_strength(new_password, field="new_password")

    user.hashed_password = await _hash_password(new_password)
    await revoke_all_sessions(db, user.id)
    await db.commit()
    logger.info("User %s changed their password", user.id)


async def deactivate(db: AsyncSession, user: User, password: str) -> None:
    """Soft-disable the account; its records stay but nobody can sign in."""
    if not await _check_password(password, user.hashed_password):
        raise InvalidCredentials()

    user_id = user.id
    user.is_active = False
    await revoke_all_sessions(db, user_id)
    if await partnerships.get_active_partnership(db, user_id) is not None:
        await partnerships.disconnect(db, user_id, commit=False)
    await db.commit()
    logger.info("User %s deactivated their account", user_id)


# ─────────────────────────────────────────────────────────────────────────────
# Two-factor management
# ─────────────────────────────────────────────────────────────────────────────
async def begin_two_factor_setup(db: AsyncSession, user: User) -> Tuple[str, str, str]:
    """Returns (secret, otpauth uri, QR PNG base64). Not active until enabled."""
    if user.two_factor_enabled:
        raise ValidationFailed("Two-factor authentication is already enabled")

    secret = totp.generate_totp_secret()
    user.two_factor_secret = secret
    await db.commit()

    uri = totp.get_totp_uri(secret, user.email)
    qr_code = await run_in_threadpool(totp.generate_qr_code_base64, secret, user.email)
    return secret, uri, qr_code


async def enable_two_factor(db: AsyncSession, user: User, code: str) -> List[str]:
    if user.two_factor_enabled:
        raise ValidationFailed("Two-factor authentication is already enabled")
    if not user.two_factor_secret:
        raise ValidationFailed("Start two-factor setup first")
    if not totp.verify_totp(user.two_factor_secret, code):
        raise InvalidTwoFactorCode()

    codes, hashed = totp.generate_backup_codes()
    user.two_factor_enabled = True
    user.backup_codes = hashed
    await db.commit()
    logger.info("User %s enabled two-factor authentication", user.id)
    return codes


async def disable_two_factor(db: AsyncSession, user: User, password: str) -> None:
    if not await _check_password(password, user.hashed_password):
        raise InvalidCredentials()

    user.two_factor_enabled = False
    user.two_factor_secret = None
    user.backup_codes = None
    await db.commit()
    logger.info("User %s disabled two-factor authentication", user.id)


async def regenerate_backup_codes(db: AsyncSession, user: User, code: str) -> List[str]:
    if not user.two_factor_enabled:
        raise ValidationFailed("Two-factor authentication is not enabled")
    if not totp.verify_totp(user.two_factor_secret, code):
        raise InvalidTwoFactorCode()

    codes, hashed = totp.generate_backup_codes()
    user.backup_codes = hashed
    await db.commit()
    logger.info("User %s regenerated backup codes", user.id)
    return codes


# ─────────────────────────────────────────────────────────────────────────────
# Single-use action tokens
# ─────────────────────────────────────────────────────────────────────────────
async def _issue_action_token(
    db: AsyncSession, user_id: int, purpose: str, lifetime: timedelta
) -> str:
    """New token for purpose; earlier unused tokens of the same purpose stop working."""
    now = utcnow()
    await db.execute(
        update(UserToken)
        .where(
            UserToken.user_id == user_id,
            UserToken.purpose == purpose,
            UserToken.used_at.is_(None),
        )
        .values(used_at=now)
        .execution_options(synchronize_session=False)
    )

    token = generate_token()
    db.add(UserToken(
        user_id=user_id,
        purpose=purpose,
        token_hash=hash_token(token),
        expires_at=now + lifetime,
    ))
    await db.flush()
    return token


async def _consume_action_token(db: AsyncSession, token: str, purpose: str) -> UserToken:
    """
    Spend a token. Expired tokens are spent too before failing.

    The caller must commit, on success and on its own failure paths.
    """
    now = utcnow()
    result = await db.execute(
        select(UserToken).where(
            UserToken.token_hash == hash_token(token),
            UserToken.purpose == purpose,
        )
    )
    stored = result.scalars().first()
    if stored is None or stored.used_at is not None:
        raise InvalidActionToken()

    spent = await db.execute(
        update(UserToken)
        .where(UserToken.id == stored.id, UserToken.used_at.is_(None))
        .values(used_at=now)
        .execution_options(synchronize_session=False)
    )
    if spent.rowcount != 1:
        await db.rollback()
        raise InvalidActionToken()

    if as_aware(stored.expires_at) <= now:
        await db.commit()
        raise InvalidActionToken()

    return stored
