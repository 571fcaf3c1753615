# backend/app/api/v1/endpoints/auth.py
from typing import Union

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.user import (
    BackupCodesResponse,
    ChangePasswordRequest,
    ConfirmEmailRequest,
    EmailRequest,
    LoginRequest,
    MessageResponse,
    PasswordConfirmRequest,
    RefreshRequest,
    ResetPasswordRequest,
    Token,
    TwoFactorCodeRequest,
    TwoFactorRequired,
    TwoFactorSetupResponse,
    TwoFactorVerifyRequest,
    UserCreate,
    UserResponse,
)
from backend.app.services import identity
from backend.app.services.mailer import Mailer, get_mailer

router = APIRouter()


def _token_response(pair: identity.TokenPair) -> Token:
    return Token(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_at=pair.expires_at,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
        user_in: UserCreate,
        db: AsyncSession = Depends(get_db),
        mailer: Mailer = Depends(get_mailer)
):
    return await identity.register(
        db, user_in.email, user_in.password, mailer, display_name=user_in.display_name
    )


@router.post("/login", response_model=Union[Token, TwoFactorRequired])
async def login(credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await identity.authenticate(db, credentials.email, credentials.password)

    if isinstance(result, identity.PendingTwoFactor):
        return TwoFactorRequired(pending_token=result.pending_token, expires_at=result.expires_at)

    return _token_response(result)


@router.post("/refresh", response_model=Token)
async def refresh(request: RefreshRequest, db: AsyncSession = Depends(get_db)):
    return _token_response(await identity.refresh_session(db, request.refresh_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(request: RefreshRequest, db: AsyncSession = Depends(get_db)):
    await identity.logout(db, request.refresh_token)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(deps.get_current_user)):
    return current_user


# ─────────────────────────────────────────────────────────────────────────────
# Email confirmation & password lifecycle
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/confirm-email", response_model=MessageResponse)
async def confirm_email(request: ConfirmEmailRequest, db: AsyncSession = Depends(get_db)):
    await identity.confirm_email(db, request.user_id, request.token)
    return MessageResponse(message="Email confirmed. You can now log in.")


@router.post("/resend-confirmation", response_model=MessageResponse)
async def resend_confirmation(
        request: EmailRequest,
        db: AsyncSession = Depends(get_db),
        mailer: Mailer = Depends(get_mailer)
):
    await identity.resend_confirmation(db, request.email, mailer)
    return MessageResponse(
        message="If the account exists and is not yet confirmed, a new confirmation email has been sent."
    )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
        request: EmailRequest,
        db: AsyncSession = Depends(get_db),
        mailer: Mailer = Depends(get_mailer)
):
    await identity.request_password_reset(db, request.email, mailer)
    return MessageResponse(message="If the account exists, a password reset email has been sent.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await identity.reset_password(db, request.token, request.new_password)
    return MessageResponse(message="Password has been reset. Please log in again.")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
        request: ChangePasswordRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    await identity.change_password(db, current_user, request.current_password, request.new_password)
    return MessageResponse(message="Password changed. Every session has been signed out, please log in again.")


@router.post("/deactivate", response_model=MessageResponse)
async def deactivate_account(
        request: PasswordConfirmRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    await identity.deactivate(db, current_user, request.password)
    return MessageResponse(message="Account deactivated")


# ─────────────────────────────────────────────────────────────────────────────
# Two-factor authentication
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/2fa/verify", response_model=Token)
async def verify_two_factor(request: TwoFactorVerifyRequest, db: AsyncSession = Depends(get_db)):
    return _token_response(await identity.verify_two_factor(db, request.pending_token, request.code))


@router.post("/2fa/setup", response_model=TwoFactorSetupResponse)
async def setup_two_factor(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    secret, uri, qr_code = await identity.begin_two_factor_setup(db, current_user)
    return TwoFactorSetupResponse(secret=secret, otpauth_uri=uri, qr_code_base64=qr_code)


@router.post("/2fa/enable", response_model=BackupCodesResponse)
async def enable_two_factor(
        request: TwoFactorCodeRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    codes = await identity.enable_two_factor(db, current_user, request.code)
    return BackupCodesResponse(codes=codes)


@router.post("/2fa/disable", response_model=MessageResponse)
async def disable_two_factor(
        request: PasswordConfirmRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    await identity.disable_two_factor(db, current_user, request.password)
    return MessageResponse(message="Two-factor authentication disabled")


@router.post("/2fa/backup-codes", response_model=BackupCodesResponse)
async def regenerate_backup_codes(
        request: TwoFactorCodeRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    codes = await identity.regenerate_backup_codes(db, current_user, request.code)
    return BackupCodesResponse(codes=codes)
