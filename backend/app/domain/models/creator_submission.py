import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.base import Base, UUIDType


class SubmissionStatus(StrEnum):
    PENDING = "pending"
    PENDING_REVIEW = "pending_review"
    REVISION_REQUESTED = "revision_requested"
    APPROVED = "approved"


class CreatorSubmission(Base):
    __tablename__ = "creator_submissions"
    __table_args__ = (
        UniqueConstraint("casting_id", "creator_id", name="uq_creator_submissions_casting_creator"),
        CheckConstraint(
            "submission_status IN ('pending', 'pending_review', 'revision_requested', 'approved')",
            name="ck_creator_submissions_status_values",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    casting_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("castings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True
    )
    submission_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=SubmissionStatus.PENDING.value
    )
    content_upload_link: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback_by: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    feedback_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    drive_folder_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    drive_folder_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    drive_folder_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
