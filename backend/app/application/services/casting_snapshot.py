from dataclasses import dataclass
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from app.domain.models.briefing import Briefing, BriefingStatus, CastingBriefingLink
from app.domain.models.casting import Casting, CastingInvitation, CastingSelection, InvitationStatus, SelectionRole
from app.domain.models.client import Client


@dataclass(frozen=True)
class CastingSnapshot:
    casting: Casting
    client_name: str
    total_invited: int
    total_accepted: int
    social_bubble_selected_count: int
    client_selected_count: int
    briefing_count: int
    approved_briefing_count: int

    @property
    def briefing_status(self) -> str:
        return "ready" if self.approved_briefing_count > 0 else "not_ready"

    def trigger_parameters(self) -> dict[str, Any]:
        compensation = self.casting.compensation
        return {
            "castingId": str(self.casting.id),
            "castingTitle": self.casting.title,
            "clientName": self.client_name,
            "compensation": float(compensation) if compensation is not None else None,
            "totalInvited": self.total_invited,
            "totalAccepted": self.total_accepted,
            "chosenCreatorsCount": self.client_selected_count,
            "briefingStatus": self.briefing_status,
            "briefingCount": self.briefing_count,
        }


def _count(db: Session, statement) -> int:
    return int(db.execute(statement).scalar_one() or 0)


def count_selected_creators(db: Session, casting_id, role: SelectionRole) -> int:
    return _count(
        db,
        select(func.count(distinct(CastingSelection.creator_id))).where(
            CastingSelection.casting_id == casting_id,
            CastingSelection.selected_by_role == role.value,
        ),
    )


def count_approved_briefings(db: Session, casting_id) -> int:
    return _count(
        db,
        select(func.count(CastingBriefingLink.id))
        .join(Briefing, Briefing.id == CastingBriefingLink.briefing_id)
        .where(
            CastingBriefingLink.casting_id == casting_id,
            Briefing.status == BriefingStatus.APPROVED.value,
        ),
    )


def load_casting_snapshot(db: Session, casting: Casting) -> CastingSnapshot:
    client_name = db.execute(select(Client.company_name).where(Client.id == casting.client_id)).scalar_one_or_none()
    total_invited = _count(
        db, select(func.count(CastingInvitation.id)).where(CastingInvitation.casting_id == casting.id)
    )
    total_accepted = _count(
        db,
        select(func.count(CastingInvitation.id)).where(
            CastingInvitation.casting_id == casting.id,
            CastingInvitation.status == InvitationStatus.ACCEPTED.value,
        ),
    )
    briefing_count = _count(
        db, select(func.count(CastingBriefingLink.id)).where(CastingBriefingLink.casting_id == casting.id)
    )
    return CastingSnapshot(
        casting=casting,
        client_name=client_name or "",
        total_invited=total_invited,
        total_accepted=total_accepted,
        social_bubble_selected_count=count_selected_creators(db, casting.id, SelectionRole.SOCIAL_BUBBLE),
        client_selected_count=count_selected_creators(db, casting.id, SelectionRole.CLIENT),
        briefing_count=briefing_count,
        approved_briefing_count=count_approved_briefings(db, casting.id),
    )
