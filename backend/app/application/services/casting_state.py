import logging
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.domain.models.casting import Casting, CastingStatus
from app.infrastructure.observability.metrics import record_casting_transition

logger = logging.getLogger(__name__)

# Status moves the internal team may apply by hand; the rest are driven by workflow events.
MANUAL_TRANSITIONS: dict[str, frozenset[str]] = {
    CastingStatus.DRAFT.value: frozenset({CastingStatus.INVITING.value}),
    CastingStatus.INVITING.value: frozenset({CastingStatus.CHECK_INTERN.value}),
    CastingStatus.CHECK_INTERN.value: frozenset({CastingStatus.SEND_CLIENT_FEEDBACK.value}),
    CastingStatus.SEND_CLIENT_FEEDBACK.value: frozenset({CastingStatus.APPROVED_BY_CLIENT.value}),
    CastingStatus.SHOOTING.value: frozenset({CastingStatus.DONE.value}),
}

CLIENT_TRANSITIONS: dict[str, frozenset[str]] = {
    CastingStatus.SEND_CLIENT_FEEDBACK.value: frozenset({CastingStatus.APPROVED_BY_CLIENT.value}),
}


def is_manual_transition_allowed(current: str, new: str, *, client: bool = False) -> bool:
    table = CLIENT_TRANSITIONS if client else MANUAL_TRANSITIONS
    return new in table.get(current, frozenset())


def transition_casting_status(db: Session, casting_id: UUID, expected: str, new: str) -> bool:
    """Conditional update ``expected -> new``; returns False when another writer got there first."""
    result = db.execute(
        update(Casting)
        .where(Casting.id == casting_id, Casting.status == expected)
        .values(status=new, updated_at=func.now())
    )
    if result.rowcount != 1:
        logger.info(
            "casting_transition_skipped casting_id=%s expected=%s new=%s",
            casting_id,
            expected,
            new,
        )
        return False
    record_casting_transition(expected, new)
    logger.info("casting_transition_applied casting_id=%s from=%s to=%s", casting_id, expected, new)
    return True
