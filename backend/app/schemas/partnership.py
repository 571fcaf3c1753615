# backend/app/schemas/partnership.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from backend.app.schemas.user import PartnerProfile


class InvitationCreate(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class InvitationAccept(BaseModel):
    token: str = Field(..., min_length=1)


class InvitationResponse(BaseModel):
    id: int
    inviter: PartnerProfile
    invitee_email: str
    status: str
    expires_at: datetime
    created_at: Optional[datetime] = None


class PartnershipResponse(BaseModel):
    id: int
    status: str
    partner: PartnerProfile
    created_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None


class InvitationDetails(InvitationResponse):
    is_expired: bool
