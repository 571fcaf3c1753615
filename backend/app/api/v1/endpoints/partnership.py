# backend/app/api/v1/endpoints/partnership.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.core.exceptions import RecordNotFound
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.partnership import (
    InvitationAccept,
    InvitationCreate,
    InvitationDetails,
    InvitationResponse,
    PartnershipResponse,
)
from backend.app.schemas.user import MessageResponse, PartnerProfile
from backend.app.services import partnerships
from backend.app.services.mailer import Mailer, get_mailer

router = APIRouter()


def _partnership_response(partnership, partner: User) -> PartnershipResponse:
    return PartnershipResponse(
        id=partnership.id,
        status=partnership.status,
        partner=PartnerProfile.model_validate(partner),
        created_at=partnership.created_at,
        ended_at=partnership.ended_at,
    )


@router.get("/", response_model=PartnershipResponse)
async def read_partnership(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    found = await partnerships.get_active_partner(db, current_user.id)
    if found is None:
        raise RecordNotFound("No active partnership")

    partnership, partner = found
    return _partnership_response(partnership, partner)


@router.delete("/", response_model=MessageResponse)
async def disconnect_partnership(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    await partnerships.disconnect(db, current_user.id)
    return MessageResponse(message="Partnership ended. Your records are no longer shared.")


@router.post("/invitations", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def send_invitation(
        invitation_in: InvitationCreate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        mailer: Mailer = Depends(get_mailer)
):
    await partnerships.invite(db, current_user, invitation_in.email, mailer)
    return MessageResponse(message="If the address can receive invitations, it will get one shortly.")


@router.get("/invitations", response_model=List[InvitationResponse])
async def list_invitations(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    pending = await partnerships.list_incoming_invitations(db, current_user)
    return [
        InvitationResponse(
            id=invitation.id,
            inviter=PartnerProfile.model_validate(inviter),
            invitee_email=invitation.invitee_email,
            status=invitation.status,
            expires_at=invitation.expires_at,
            created_at=invitation.created_at,
        )
        for invitation, inviter in pending
    ]


@router.post("/invitations/accept", response_model=PartnershipResponse, status_code=status.HTTP_201_CREATED)
async def accept_invitation(
        request: InvitationAccept,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    partnership = await partnerships.accept_invitation(db, current_user, request.token)
    partner = await db.get(User, partnership.other_member(current_user.id))
    return _partnership_response(partnership, partner)


@router.get("/invitations/{token}", response_model=InvitationDetails)
async def read_invitation(
        token: str,
        db: AsyncSession = Depends(get_db)
):
    """Public: lets the invitee see who is inviting them before signing in to accept."""
    invitation, inviter = await partnerships.get_invitation_by_token(db, token)
    return InvitationDetails(
        id=invitation.id,
        inviter=PartnerProfile.model_validate(inviter),
        invitee_email=invitation.invitee_email,
        status=invitation.status,
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
        is_expired=partnerships.is_invitation_expired(invitation),
    )
