# backend/app/services/mailer.py
"""
Outgoing email.

Delivery itself belongs to an external mail service. The API only builds
the message and hands it over; LoggingMailer records that a message was
queued (recipient and subject only, the body carries tokens).
"""
import logging
from dataclasses import dataclass
from typing import Protocol

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to_email: str
    subject: str
    body: str
    # Machine-readable kind, e.g. "confirm_email"; lets callers route templates
    kind: str
    # Raw token carried by the message, if any
    token: str = ""


class Mailer(Protocol):
    async def send(self, message: EmailMessage) -> None:
        ...


class LoggingMailer:
    async def send(self, message: EmailMessage) -> None:
        logger.info("Queued %s email to %s: %s", message.kind, message.to_email, message.subject)


_default_mailer = LoggingMailer()


def get_mailer() -> Mailer:
    """FastAPI dependency, overridden in tests to capture outgoing tokens."""
    return _default_mailer


# ─────────────────────────────────────────────────────────────────────────────
# Message builders
# ─────────────────────────────────────────────────────────────────────────────
def confirmation_email(to_email: str, user_id: int, token: str) -> EmailMessage:
    link = f"{settings.FRONTEND_URL}/confirm-email?userId={user_id}&token={token}"
    return EmailMessage(
        to_email=to_email,
        subject=f"Confirm your {settings.PROJECT_NAME} account",
        body=(
            "Welcome! Confirm your email address to finish setting up your account:\n"
            f"{link}\n\n"
            f"This link expires in {settings.EMAIL_CONFIRMATION_EXPIRE_HOURS} hours."
        ),
        kind="confirm_email",
        token=token,
    )


def password_reset_email(to_email: str, token: str) -> EmailMessage:
    link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    return EmailMessage(
        to_email=to_email,
        subject=f"Reset your {settings.PROJECT_NAME} password",
        body=(
            "We received a request to reset your password:\n"
            f"{link}\n\n"
            f"This link expires in {settings.PASSWORD_RESET_EXPIRE_HOURS} hours. "
            "If you did not ask for it, you can ignore this email."
        ),
        kind="reset_password",
        token=token,
    )


def partnership_invitation_email(to_email: str, inviter_name: str, token: str) -> EmailMessage:
    link = f"{settings.FRONTEND_URL}/partnership/accept?token={token}"
    return EmailMessage(
        to_email=to_email,
        subject=f"{inviter_name} invited you to be their financial partner",
        body=(
            f"{inviter_name} has invited you to share expenses on {settings.PROJECT_NAME}.\n"
            "Partners can see each other's transactions, budgets and goals; "
            "each of you can only change your own records.\n"
            f"{link}\n\n"
            f"This invitation expires in {settings.PARTNERSHIP_INVITATION_EXPIRE_DAYS} days."
        ),
        kind="partnership_invitation",
        token=token,
    )
