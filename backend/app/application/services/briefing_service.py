import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.application.services.operation_result import (
    NotFoundError,
    UnauthorizedError,
    WorkflowValidationError,
    workflow_operation,
)
from app.application.services.shooting_service import activate_shooting
from app.core.actor import Actor, ClientActor, CreatorActor, SocialBubbleActor
from app.domain.models.briefing import Briefing, BriefingStatus, CastingBriefingLink
from app.domain.models.casting import Casting, CastingStatus
from app.domain.models.client import Client
from app.infrastructure.cache.view_invalidation import casting_view_paths, invalidate_views

logger = logging.getLogger(__name__)

_BRIEFING_FIELDS = {"title", "content", "status", "client_id"}


def _require_social_bubble(actor: Actor, action: str) -> SocialBubbleActor:
    if not isinstance(actor, SocialBubbleActor):
        raise UnauthorizedError(f"Only the internal team can {action}")
    return actor


def _get_briefing(db: Session, briefing_id: UUID) -> Briefing:
    briefing = db.get(Briefing, briefing_id)
    if briefing is None:
        raise NotFoundError("Briefing not found")
    return briefing


def _get_casting(db: Session, casting_id: UUID) -> Casting:
    casting = db.get(Casting, casting_id)
    if casting is None:
        raise NotFoundError("Casting not found")
    return casting


def _briefing_paths(briefing_id: UUID) -> tuple[str, ...]:
    return ("/dashboard/briefings", f"/dashboard/briefings/{briefing_id}")


def handle_briefing_linked(db: Session, casting: Casting, briefing: Briefing) -> bool:
    if briefing.status != BriefingStatus.APPROVED.value:
        return False
    if casting.status != CastingStatus.APPROVED_BY_CLIENT.value:
        return False
    return activate_shooting(db, casting, source="briefing_linked")


def handle_briefing_approved(db: Session, briefing_id: UUID) -> int:
    """Start shooting for every approved casting linked to a newly approved briefing.

    Each casting is handled on its own; a failure is logged and the rest still run.
    """
    castings = db.execute(
        select(Casting)
        .join(CastingBriefingLink, CastingBriefingLink.casting_id == Casting.id)
        .where(
            CastingBriefingLink.briefing_id == briefing_id,
            Casting.status == CastingStatus.APPROVED_BY_CLIENT.value,
        )
    ).scalars().all()

    activated = 0
    for casting in castings:
        casting_id = casting.id
        try:
            if activate_shooting(db, casting, source="briefing_approved"):
                activated += 1
        except Exception:
            db.rollback()
            logger.exception("briefing_approval_propagation_failed briefing_id=%s casting_id=%s", briefing_id, casting_id)
    logger.info(
        "briefing_approval_propagated briefing_id=%s linked_castings=%s activated=%s",
        briefing_id,
        len(castings),
        activated,
    )
    return activated


@workflow_operation("create_briefing")
def create_briefing(
    db: Session,
    actor: Actor,
    *,
    client_id: UUID,
    title: str,
    content: dict[str, Any] | None = None,
) -> Briefing:
    social_bubble = _require_social_bubble(actor, "create briefings")
    if db.get(Client, client_id) is None:
        raise NotFoundError("Client not found")
    if not title.strip():
        raise WorkflowValidationError("Title cannot be empty")
    briefing = Briefing(
        client_id=client_id,
        title=title.strip(),
        content=content or {},
        status=BriefingStatus.DRAFT.value,
        created_by=social_bubble.user_id,
    )
    db.add(briefing)
    db.commit()
    db.refresh(briefing)
    invalidate_views(*_briefing_paths(briefing.id))
    return briefing


@workflow_operation("update_briefing")
def update_briefing(db: Session, actor: Actor, briefing_id: UUID, patch: dict[str, Any]) -> Briefing:
    _require_social_bubble(actor, "update briefings")
    briefing = _get_briefing(db, briefing_id)
    unknown = set(patch) - _BRIEFING_FIELDS
    if unknown:
        raise WorkflowValidationError(f"Unsupported briefing fields: {', '.join(sorted(unknown))}")

    previous_status = briefing.status
    new_status = patch.get("status")
    if new_status is not None and new_status not in {status.value for status in BriefingStatus}:
        raise WorkflowValidationError(f"Unknown briefing status: {new_status}")

    new_client_id = patch.get("client_id")
    if new_client_id is not None and new_client_id != briefing.client_id:
        has_links = db.execute(
            select(CastingBriefingLink.id).where(CastingBriefingLink.briefing_id == briefing_id)
        ).first()
        if has_links is not None:
            raise WorkflowValidationError("Unlink the briefing from its castings before changing its client")
        if db.get(Client, new_client_id) is None:
            raise NotFoundError("Client not found")
        briefing.client_id = new_client_id

    if patch.get("title") is not None:
        briefing.title = str(patch["title"]).strip()
    if patch.get("content") is not None:
        briefing.content = patch["content"]
    if new_status is not None:
        briefing.status = new_status
    db.commit()
    db.refresh(briefing)

    if new_status == BriefingStatus.APPROVED.value and previous_status != BriefingStatus.APPROVED.value:
        handle_briefing_approved(db, briefing.id)
    invalidate_views(*_briefing_paths(briefing.id))
    return briefing


@workflow_operation("link_briefing")
def link_briefing(db: Session, actor: Actor, casting_id: UUID, briefing_id: UUID) -> CastingBriefingLink:
    social_bubble = _require_social_bubble(actor, "link briefings")
    casting = _get_casting(db, casting_id)
    briefing = _get_briefing(db, briefing_id)
    if casting.client_id != briefing.client_id:
        raise WorkflowValidationError("Briefing and casting belong to different clients")

    existing = db.execute(
        select(CastingBriefingLink.id).where(
            CastingBriefingLink.casting_id == casting_id,
            CastingBriefingLink.briefing_id == briefing_id,
        )
    ).first()
    if existing is not None:
        raise WorkflowValidationError("Briefing is already linked to this casting")

    link = CastingBriefingLink(casting_id=casting_id, briefing_id=briefing_id, linked_by=social_bubble.user_id)
    db.add(link)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise WorkflowValidationError("Briefing is already linked to this casting") from exc
    db.refresh(link)
    logger.info("briefing_linked casting_id=%s briefing_id=%s", casting_id, briefing_id)

    handle_briefing_linked(db, casting, briefing)
    invalidate_views(*casting_view_paths(casting_id), *_briefing_paths(briefing_id))
    return link


@workflow_operation("unlink_briefing")
def unlink_briefing(db: Session, actor: Actor, casting_id: UUID, briefing_id: UUID) -> dict[str, str]:
    _require_social_bubble(actor, "unlink briefings")
    result = db.execute(
        delete(CastingBriefingLink).where(
            CastingBriefingLink.casting_id == casting_id,
            CastingBriefingLink.briefing_id == briefing_id,
        )
    )
    if result.rowcount == 0:
        raise NotFoundError("Briefing is not linked to this casting")
    db.commit()
    logger.info("briefing_unlinked casting_id=%s briefing_id=%s", casting_id, briefing_id)
    invalidate_views(*casting_view_paths(casting_id), *_briefing_paths(briefing_id))
    return {"casting_id": str(casting_id), "briefing_id": str(briefing_id)}


def _ensure_client_scope(actor: Actor, client_id: UUID) -> None:
    match actor:
        case SocialBubbleActor():
            return
        case ClientActor(client_id=actor_client_id) if actor_client_id == client_id:
            return
    raise UnauthorizedError("You do not have access to these briefings")


@workflow_operation("get_available_briefings_for_casting")
def get_available_briefings_for_casting(db: Session, actor: Actor, casting_id: UUID) -> list[Briefing]:
    casting = _get_casting(db, casting_id)
    _ensure_client_scope(actor, casting.client_id)

    linked_to_client_castings = (
        select(CastingBriefingLink.briefing_id)
        .join(Casting, Casting.id == CastingBriefingLink.casting_id)
        .where(Casting.client_id == casting.client_id)
    )
    statement = (
        select(Briefing)
        .where(Briefing.client_id == casting.client_id, Briefing.id.not_in(linked_to_client_castings))
        .order_by(Briefing.created_at.desc())
    )
    if not isinstance(actor, SocialBubbleActor):
        statement = statement.where(Briefing.status == BriefingStatus.APPROVED.value)
    return list(db.execute(statement).scalars().all())


@workflow_operation("get_available_castings_for_briefing")
def get_available_castings_for_briefing(db: Session, actor: Actor, briefing_id: UUID) -> list[Casting]:
    _require_social_bubble(actor, "link briefings")
    briefing = _get_briefing(db, briefing_id)
    already_linked = select(CastingBriefingLink.casting_id).where(CastingBriefingLink.briefing_id == briefing_id)
    return list(
        db.execute(
            select(Casting)
            .where(
                Casting.client_id == briefing.client_id,
                Casting.status != CastingStatus.DONE.value,
                Casting.id.not_in(already_linked),
            )
            .order_by(Casting.created_at.desc())
        )
        .scalars()
        .all()
    )


@workflow_operation("get_casting_briefings")
def get_casting_briefings(db: Session, actor: Actor, casting_id: UUID) -> list[Briefing]:
    casting = _get_casting(db, casting_id)
    match actor:
        case CreatorActor():
            raise UnauthorizedError("Creators see briefings through their assignments")
    _ensure_client_scope(actor, casting.client_id)
    return list(
        db.execute(
            select(Briefing)
            .join(CastingBriefingLink, CastingBriefingLink.briefing_id == Briefing.id)
            .where(CastingBriefingLink.casting_id == casting_id)
            .order_by(CastingBriefingLink.linked_at.asc())
        )
        .scalars()
        .all()
    )


@workflow_operation("get_briefing_castings")
def get_briefing_castings(db: Session, actor: Actor, briefing_id: UUID) -> list[Casting]:
    briefing = _get_briefing(db, briefing_id)
    _ensure_client_scope(actor, briefing.client_id)
    return list(
        db.execute(
            select(Casting)
            .join(CastingBriefingLink, CastingBriefingLink.casting_id == Casting.id)
            .where(CastingBriefingLink.briefing_id == briefing_id)
            .order_by(Casting.created_at.desc())
        )
        .scalars()
        .all()
    )
