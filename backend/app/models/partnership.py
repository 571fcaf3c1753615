# backend/app/models/partnership.py
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.sql import func

from backend.app.db.base import Base


class PartnershipStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"


class InvitationStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Partnership(Base):
    """
    Symmetric link between two users.

    Rows are never reactivated: ending a partnership marks it inactive and a
    new invitation creates a new row.
    """
    __tablename__ = "partnerships"
    __table_args__ = (
        CheckConstraint("user_a_id <> user_b_id", name="ck_partnerships_distinct_users"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_a_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    user_b_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    status = Column(String(16), nullable=False, default=PartnershipStatus.ACTIVE)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    ended_at = Column(DateTime(timezone=True), nullable=True)

    def other_member(self, user_id: int) -> int:
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id


class PartnershipMember(Base):
    """
    One row per member of an ACTIVE partnership.

    The unique user_id is what guarantees a user is in at most one active
    partnership, including when two accepts race each other.
    """
    __tablename__ = "partnership_members"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    partnership_id = Column(Integer, ForeignKey("partnerships.id"), index=True, nullable=False)


class PartnershipInvitation(Base):
    __tablename__ = "partnership_invitations"

    id = Column(Integer, primary_key=True, index=True)
    inviter_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    # Normalized lower-case, the invitee may not have an account yet
    invitee_email = Column(String(255), index=True, nullable=False)

    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    status = Column(String(16), nullable=False, default=InvitationStatus.PENDING)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    accepted_at = Column(DateTime(timezone=True), nullable=True)
