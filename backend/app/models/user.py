# backend/app/models/user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Always stored lower-cased and stripped, so the unique index is case-insensitive
    email = Column(String(255), unique=True, index=True, nullable=False)

    # bcrypt hash only, the plaintext password is never persisted or logged
    hashed_password = Column(String(255), nullable=False)

    display_name = Column(String(100), nullable=True)

    # Soft-disable flag, accounts are never hard-deleted
    is_active = Column(Boolean, nullable=False, default=True)

    # Unconfirmed -> Confirmed, one-way
    email_confirmed = Column(Boolean, nullable=False, default=False)
    email_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    # Active <-> Locked
    failed_login_count = Column(Integer, nullable=False, default=0)
    lockout_until = Column(DateTime(timezone=True), nullable=True)

    # TOTP secret is set during setup, two_factor_enabled flips once a code is verified
    two_factor_secret = Column(String(64), nullable=True)
    two_factor_enabled = Column(Boolean, nullable=False, default=False)
    # SHA-256 hashes of the unused backup codes
    backup_codes = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
