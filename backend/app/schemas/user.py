# backend/app/schemas/user.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class UserCreate(BaseModel):
    email: EmailStr
    # Strength is checked by the password policy, not here, so every rule is reported
    password: str = Field(..., min_length=1, max_length=256)
    display_name: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    email_confirmed: bool
    two_factor_enabled: bool
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PartnerProfile(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime


class TwoFactorRequired(BaseModel):
    requires_two_factor: bool = True
    pending_token: str
    expires_at: datetime
    message: str = "Two-factor authentication required"


class TokenPayload(BaseModel):
    sub: str
    typ: str
    exp: int
    iat: Optional[int] = None
    jti: Optional[str] = None
    sid: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class TwoFactorVerifyRequest(BaseModel):
    pending_token: str = Field(..., min_length=1)
    # 6-digit TOTP or XXXXXXXX-XXXXXXXX backup code
    code: str = Field(..., min_length=6, max_length=32)


class TwoFactorSetupResponse(BaseModel):
    secret: str
    otpauth_uri: str
    qr_code_base64: str


class TwoFactorCodeRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=32)


class PasswordConfirmRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=256)


class BackupCodesResponse(BaseModel):
    codes: List[str]
    message: str = "Store these codes somewhere safe. Each code can be used once."


class ConfirmEmailRequest(BaseModel):
    user_id: int
    token: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=256)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=256)
    new_password: str = Field(..., min_length=1, max_length=256)


class MessageResponse(BaseModel):
    message: str
