import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.base import Base, JSONType, UUIDType


class AutomationLogStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    TEST = "test"
    SKIPPED = "skipped"


class AutomationLog(Base):
    __tablename__ = "automation_logs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('success', 'failed', 'test', 'skipped')",
            name="ck_automation_logs_status_values",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    trigger_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rule_id: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("automation_rules.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action_id: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("automation_actions.id", ondelete="SET NULL"), nullable=True
    )
    parameters_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    executed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    executed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
