# backend/app/models/auth_token.py
"""
Server-side state for opaque tokens.

Only SHA-256 hashes are stored. Access tokens are JWTs and have no table;
they stay valid only while their session still holds an unrevoked
refresh token. Refresh tokens and single-use action tokens live here.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func

from backend.app.db.base import Base


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    # Shared by every token of one login; access tokens carry it as "sid"
    session_id = Column(String(32), index=True, nullable=False)

    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Set on rotation, logout or revocation. A revoked token is never redeemable again.
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    replaced_by_id = Column(Integer, ForeignKey("refresh_tokens.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserToken(Base):
    """Single-use, time-boxed token for email confirmation or password reset."""

    __tablename__ = "user_tokens"

    CONFIRM_EMAIL = "confirm_email"
    RESET_PASSWORD = "reset_password"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    purpose = Column(String(32), nullable=False)
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
