# backend/app/services/partnerships.py
"""
Partnership registry.

A user belongs to at most one ACTIVE partnership. The application checks
this before linking, but the authority is the unique user_id column of
partnership_members: when two accepts race, one insert fails and is
reported as AlreadyPartnered.

Partner lookups always hit the database; nothing here is cached, so a
disconnect is visible to the very next request.
"""
import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AlreadyPartnered,
    InvalidInvitation,
    RecordNotFound,
    ValidationFailed,
)
from backend.app.models.partnership import (
    InvitationStatus,
    Partnership,
    PartnershipInvitation,
    PartnershipMember,
    PartnershipStatus,
)
from backend.app.models.user import User
from backend.app.security.lockout import as_aware, utcnow
from backend.app.security.tokens import generate_token, hash_token
from backend.app.services.mailer import Mailer, partnership_invitation_email

logger = logging.getLogger(__name__)


async def get_active_partnership(db: AsyncSession, user_id: int) -> Optional[Partnership]:
    result = await db.execute(
        select(Partnership)
        .join(PartnershipMember, PartnershipMember.partnership_id == Partnership.id)
        .where(
            PartnershipMember.user_id == user_id,
            Partnership.status == PartnershipStatus.ACTIVE,
        )
    )
    return result.scalars().first()


async def get_active_partner_id(db: AsyncSession, user_id: int) -> Optional[int]:
    """The other member of the user's active partnership, or None."""
    partnership = await get_active_partnership(db, user_id)
    if partnership is None:
        return None
    return partnership.other_member(user_id)


async def get_active_partner(db: AsyncSession, user_id: int) -> Optional[Tuple[Partnership, User]]:
    partnership = await get_active_partnership(db, user_id)
    if partnership is None:
        return None
    partner = await db.get(User, partnership.other_member(user_id))
    return partnership, partner


# ─────────────────────────────────────────────────────────────────────────────
# Invitations
# ─────────────────────────────────────────────────────────────────────────────
async def invite(
    db: AsyncSession,
    inviter: User,
    invitee_email: str,
    mailer: Mailer,
) -> PartnershipInvitation:
    """
    Create a pending invitation and mail its token.

    Works the same whether or not the invitee has an account, so the
    response never reveals which emails are registered.
    """
    invitee_email = invitee_email.strip().lower()
    inviter_id = inviter.id

    if invitee_email == inviter.email:
        raise ValidationFailed("You cannot invite yourself")

    if await get_active_partnership(db, inviter_id) is not None:
        raise AlreadyPartnered("You already have an active partnership. Disconnect it first.")

    # A new invitation to the same address replaces the previous one
    await db.execute(
        update(PartnershipInvitation)
        .where(
            PartnershipInvitation.inviter_id == inviter_id,
            PartnershipInvitation.invitee_email == invitee_email,
            PartnershipInvitation.status == InvitationStatus.PENDING,
        )
        .values(status=InvitationStatus.CANCELLED)
        .execution_options(synchronize_session=False)
    )

    token = generate_token()
    invitation = PartnershipInvitation(
        inviter_id=inviter_id,
        invitee_email=invitee_email,
        token_hash=hash_token(token),
        status=InvitationStatus.PENDING,
        expires_at=utcnow() + timedelta(days=settings.PARTNERSHIP_INVITATION_EXPIRE_DAYS),
    )
    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)

    inviter_name = inviter.display_name or inviter.email
    await mailer.send(partnership_invitation_email(invitee_email, inviter_name, token))
    logger.info("User %s sent partnership invitation %s", inviter_id, invitation.id)
    return invitation


async def list_incoming_invitations(
    db: AsyncSession, user: User
) -> List[Tuple[PartnershipInvitation, User]]:
    result = await db.execute(
        select(PartnershipInvitation, User)
        .join(User, User.id == PartnershipInvitation.inviter_id)
        .where(
            PartnershipInvitation.invitee_email == user.email,
            PartnershipInvitation.status == InvitationStatus.PENDING,
            PartnershipInvitation.expires_at > utcnow(),
        )
        .order_by(PartnershipInvitation.created_at.desc())
    )
    return [(invitation, inviter) for invitation, inviter in result.all()]


def is_invitation_expired(invitation: PartnershipInvitation) -> bool:
    return invitation.status == InvitationStatus.EXPIRED or as_aware(invitation.expires_at) <= utcnow()


async def get_invitation_by_token(db: AsyncSession, token: str) -> Tuple[PartnershipInvitation, User]:
    """
    What the holder of an invitation link sees before accepting.

    Knowing the token is the only credential; an unknown token is a 404.
    """
    result = await db.execute(
        select(PartnershipInvitation, User)
        .join(User, User.id == PartnershipInvitation.inviter_id)
        .where(PartnershipInvitation.token_hash == hash_token(token))
    )
    row = result.first()
    if row is None:
        raise RecordNotFound("Invitation not found")

    invitation, inviter = row
    return invitation, inviter


async def accept_invitation(db: AsyncSession, user: User, token: str) -> Partnership:
    """
    Turn a pending invitation into an active partnership.

    Always creates a new partnership row; ended partnerships are never
    flipped back to active.
    """
    user_id = user.id
    result = await db.execute(
        select(PartnershipInvitation).where(PartnershipInvitation.token_hash == hash_token(token))
    )
    invitation = result.scalars().first()

    if invitation is None or invitation.status != InvitationStatus.PENDING:
        raise InvalidInvitation()

    if invitation.invitee_email != user.email:
        raise InvalidInvitation("This invitation is for a different email address")

    if as_aware(invitation.expires_at) <= utcnow():
        invitation.status = InvitationStatus.EXPIRED
        await db.commit()
        raise InvalidInvitation("This invitation has expired")

    inviter_id = invitation.inviter_id
    if inviter_id == user_id:
        raise InvalidInvitation()

    inviter = await db.get(User, inviter_id)
    if inviter is None or not inviter.is_active:
        raise InvalidInvitation()

    for member_id in (inviter_id, user_id):
        if await get_active_partnership(db, member_id) is not None:
            raise AlreadyPartnered()

    partnership = Partnership(
        user_a_id=inviter_id,
        user_b_id=user_id,
        status=PartnershipStatus.ACTIVE,
    )
    db.add(partnership)
    try:
        await db.flush()
        db.add_all([
            PartnershipMember(user_id=inviter_id, partnership_id=partnership.id),
            PartnershipMember(user_id=user_id, partnership_id=partnership.id),
        ])
        invitation.status = InvitationStatus.ACCEPTED
        invitation.accepted_at = utcnow()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(
            "Concurrent partnership link rejected for users %s and %s", inviter_id, user_id
        )
        raise AlreadyPartnered()

    await db.refresh(partnership)
    logger.info(
        "Partnership %s created between users %s and %s", partnership.id, inviter_id, user_id
    )
    return partnership


async def disconnect(db: AsyncSession, user_id: int, commit: bool = True) -> Partnership:
    """
    End the user's active partnership.

    The row stays for history (status inactive); the member rows go away,
    which frees both users to partner again through a new invitation.
    """
    partnership = await get_active_partnership(db, user_id)
    if partnership is None:
        raise RecordNotFound("No active partnership")

    partnership.status = PartnershipStatus.INACTIVE
    partnership.ended_at = utcnow()
    await db.execute(
        delete(PartnershipMember).where(PartnershipMember.partnership_id == partnership.id)
    )

    if commit:
        await db.commit()
    logger.info("Partnership %s ended by user %s", partnership.id, user_id)
    return partnership
