import uuid
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.base import Base, UUIDType


class CastingStatus(StrEnum):
    DRAFT = "draft"
    INVITING = "inviting"
    CHECK_INTERN = "check_intern"
    SEND_CLIENT_FEEDBACK = "send_client_feedback"
    APPROVED_BY_CLIENT = "approved_by_client"
    SHOOTING = "shooting"
    DONE = "done"


CLIENT_VISIBLE_STATUSES = (
    CastingStatus.SEND_CLIENT_FEEDBACK.value,
    CastingStatus.APPROVED_BY_CLIENT.value,
    CastingStatus.SHOOTING.value,
    CastingStatus.DONE.value,
)


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SelectionRole(StrEnum):
    SOCIAL_BUBBLE = "social_bubble"
    CLIENT = "client"


class Casting(Base):
    __tablename__ = "castings"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'inviting', 'check_intern', 'send_client_feedback', "
            "'approved_by_client', 'shooting', 'done')",
            name="ck_castings_status_values",
        ),
        CheckConstraint("max_creators > 0", name="ck_castings_max_creators_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=CastingStatus.DRAFT.value, index=True)
    max_creators: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    compensation: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class CastingInvitation(Base):
    __tablename__ = "casting_invitations"
    __table_args__ = (
        UniqueConstraint("casting_id", "creator_id", name="uq_casting_invitations_casting_creator"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="ck_casting_invitations_status_values",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    casting_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("castings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=InvitationStatus.PENDING.value)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    invited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class CastingSelection(Base):
    __tablename__ = "casting_selections"
    __table_args__ = (
        CheckConstraint(
            "selected_by_role IN ('social_bubble', 'client')",
            name="ck_casting_selections_role_values",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    casting_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("castings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True
    )
    selected_by: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    selected_by_role: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
