import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.base import Base, UUIDType


class UserRole(StrEnum):
    SOCIAL_BUBBLE = "social_bubble"
    CLIENT = "client"
    CREATOR = "creator"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('social_bubble', 'client', 'creator')",
            name="ck_users_role_values",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True
    )
    creator_id: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("creators.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
