# backend/app/core/exceptions.py
"""
Application error hierarchy.

Every error carries the HTTP status it maps to and a stable machine code.
The handler registered in main.py renders them as {"detail", "code"}.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional


class ExpensesError(Exception):
    """Base exception for the expenses API"""

    status_code: int = 400
    code: str = "error"
    detail: str = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.detail = detail or self.detail
        self.headers = headers
        super().__init__(self.detail)


# ─────────────────────────────────────────────────────────────────────────────
# Authentication (401) - generic wording to avoid account enumeration
# ─────────────────────────────────────────────────────────────────────────────
class AuthenticationError(ExpensesError):
    status_code = 401
    code = "authentication_failed"
    detail = "Could not validate credentials"

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        headers = {"WWW-Authenticate": "Bearer", **(headers or {})}
        super().__init__(detail, headers)


class InvalidCredentials(AuthenticationError):
    code = "invalid_credentials"
    detail = "Incorrect email or password"


class AccountLocked(AuthenticationError):
    """Lockout in effect. Tells when it clears, never how many attempts were made."""

    code = "account_locked"

    def __init__(self, locked_until: datetime):
        self.locked_until = locked_until
        seconds = max(0, int((locked_until - datetime.now(timezone.utc)).total_seconds()))
        minutes = max(1, -(-seconds // 60))
        super().__init__(
            f"Account is temporarily locked. Try again in {minutes} minutes.",
            headers={"Retry-After": str(seconds)},
        )


class EmailUnconfirmed(AuthenticationError):
    code = "email_unconfirmed"
    detail = "Email address has not been confirmed"


class InvalidOrExpiredToken(AuthenticationError):
    code = "invalid_token"
    detail = "Invalid or expired token"


# ─────────────────────────────────────────────────────────────────────────────
# Authorization
# ─────────────────────────────────────────────────────────────────────────────
class PermissionDenied(ExpensesError):
    status_code = 403
    code = "forbidden"
    detail = "You do not have permission to modify this record"


class RecordNotFound(ExpensesError):
    status_code = 404
    code = "not_found"
    detail = "Record not found"


# ─────────────────────────────────────────────────────────────────────────────
# Conflicts (409) - user-actionable, not security sensitive
# ─────────────────────────────────────────────────────────────────────────────
class ConflictError(ExpensesError):
    status_code = 409
    code = "conflict"


class DuplicateEmail(ConflictError):
    code = "duplicate_email"
    detail = "An account with this email already exists"


class AlreadyPartnered(ConflictError):
    code = "already_partnered"
    detail = "One of the users already has an active partnership. Disconnect it first."


# ─────────────────────────────────────────────────────────────────────────────
# Validation (400)
# ─────────────────────────────────────────────────────────────────────────────
class ValidationFailed(ExpensesError):
    status_code = 400
    code = "validation_error"
    detail = "Invalid request"

    def __init__(self, detail: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        self.errors = errors
        super().__init__(detail)


class WeakPassword(ValidationFailed):
    code = "weak_password"
    detail = "Password does not meet the password policy"

    def __init__(self, reasons: List[str], field: str = "password"):
        self.reasons = reasons
        super().__init__(
            "; ".join(reasons) or self.detail,
            errors=[{"field": field, "message": reason} for reason in reasons],
        )


class InvalidActionToken(ValidationFailed):
    code = "invalid_or_expired_token"
    detail = "Invalid or expired token"


class InvalidInvitation(ValidationFailed):
    code = "invalid_invitation"
    detail = "Invitation not found or no longer valid"


class InvalidTwoFactorCode(ValidationFailed):
    code = "invalid_two_factor_code"
    detail = "Invalid verification code"
