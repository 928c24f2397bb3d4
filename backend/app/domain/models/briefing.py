import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.base import Base, JSONType, UUIDType


class BriefingStatus(StrEnum):
    DRAFT = "draft"
    WAITING_INTERNAL_FEEDBACK = "waiting_internal_feedback"
    INTERNAL_FEEDBACK_GIVEN = "internal_feedback_given"
    SENT_CLIENT_FEEDBACK = "sent_client_feedback"
    CLIENT_FEEDBACK_GIVEN = "client_feedback_given"
    APPROVED = "approved"


class Briefing(Base):
    __tablename__ = "briefings"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'waiting_internal_feedback', 'internal_feedback_given', "
            "'sent_client_feedback', 'client_feedback_given', 'approved')",
            name="ck_briefings_status_values",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=BriefingStatus.DRAFT.value)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class CastingBriefingLink(Base):
    __tablename__ = "casting_briefing_links"
    __table_args__ = (
        UniqueConstraint("casting_id", "briefing_id", name="uq_casting_briefing_links_pair"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    casting_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("castings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    briefing_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("briefings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    linked_by: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    linked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
