import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.services import automation_service, notification_queue
from app.application.services.automation_triggers import TriggerName
from app.application.services.casting_snapshot import (
    CastingSnapshot,
    count_approved_briefings,
    count_selected_creators,
    load_casting_snapshot,
)
from app.application.services.casting_state import is_manual_transition_allowed, transition_casting_status
from app.application.services.notification_queue import EmailJob
from app.application.services.operation_result import (
    InvalidStateError,
    LimitExceededError,
    NotFoundError,
    UnauthorizedError,
    WorkflowValidationError,
    workflow_operation,
)
from app.application.services.shooting_service import creator_briefings_url, provision_creator_folders
from app.core.actor import Actor, ClientActor, CreatorActor, SocialBubbleActor
from app.core.config import settings
from app.domain.models.casting import (
    CLIENT_VISIBLE_STATUSES,
    Casting,
    CastingInvitation,
    CastingSelection,
    CastingStatus,
    InvitationStatus,
    SelectionRole,
)
from app.domain.models.client import Client
from app.domain.models.creator import Creator
from app.domain.models.creator_submission import CreatorSubmission
from app.domain.models.user import User, UserRole
from app.infrastructure.cache.view_invalidation import casting_view_paths, invalidate_views
from app.integrations.email_sender import EmailTemplate

logger = logging.getLogger(__name__)

_SOCIAL_BUBBLE_FIELDS = {"title", "compensation", "max_creators", "status"}


@dataclass(frozen=True)
class NotificationPartition:
    chosen: list[Creator]
    accepted_not_chosen: list[Creator]
    never_responded: list[Creator]


def partition_notification_recipients(
    invitations: list[tuple[CastingInvitation, Creator]],
    chosen: list[Creator],
) -> NotificationPartition:
    """Split invited creators into the three disjoint final-selection audiences.

    Rejected invitations belong to no audience.
    """
    chosen_ids = {creator.id for creator in chosen}
    accepted_not_chosen: list[Creator] = []
    never_responded: list[Creator] = []
    for invitation, creator in invitations:
        if creator.id in chosen_ids:
            continue
        if invitation.status == InvitationStatus.ACCEPTED.value:
            accepted_not_chosen.append(creator)
        elif invitation.status == InvitationStatus.PENDING.value:
            never_responded.append(creator)
    return NotificationPartition(
        chosen=list(chosen),
        accepted_not_chosen=accepted_not_chosen,
        never_responded=never_responded,
    )


def _require_social_bubble(actor: Actor, action: str) -> SocialBubbleActor:
    match actor:
        case SocialBubbleActor():
            return actor
    raise UnauthorizedError(f"Only the internal team can {action}")


def _get_casting(db: Session, casting_id: UUID) -> Casting:
    casting = db.get(Casting, casting_id)
    if casting is None:
        raise NotFoundError("Casting not found")
    return casting


def _ensure_can_view(db: Session, actor: Actor, casting: Casting) -> None:
    match actor:
        case SocialBubbleActor():
            return
        case ClientActor(client_id=client_id):
            if casting.client_id == client_id and casting.status in CLIENT_VISIBLE_STATUSES:
                return
        case CreatorActor(creator_id=creator_id):
            invited = db.execute(
                select(CastingInvitation.id).where(
                    CastingInvitation.casting_id == casting.id,
                    CastingInvitation.creator_id == creator_id,
                )
            ).first()
            if invited is not None:
                return
    raise UnauthorizedError("You do not have access to this casting")


def _load_creators(db: Session, creator_ids: list[UUID]) -> list[Creator]:
    unique_ids = list(dict.fromkeys(creator_ids))
    if not unique_ids:
        raise WorkflowValidationError("At least one creator is required")
    by_id = {
        creator.id: creator
        for creator in db.execute(select(Creator).where(Creator.id.in_(unique_ids))).scalars().all()
    }
    missing = [str(creator_id) for creator_id in unique_ids if creator_id not in by_id]
    if missing:
        raise NotFoundError(f"Creators not found: {', '.join(missing)}")
    return [by_id[creator_id] for creator_id in unique_ids]


def _casting_url(casting_id: UUID) -> str:
    return f"{settings.app_url.rstrip('/')}/dashboard/castings/{casting_id}"


def _fire_casting_trigger(
    db: Session,
    trigger_name: TriggerName,
    casting: Casting,
    actor: Actor,
    **extra: Any,
) -> None:
    try:
        parameters = {**load_casting_snapshot(db, casting).trigger_parameters(), **extra}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("automation_parameters_failed trigger=%s casting_id=%s", trigger_name, casting.id)
        return
    automation_service.dispatch_automation(db, trigger_name.value, parameters, executed_by=actor.user_id)


@workflow_operation("create_casting")
def create_casting(
    db: Session,
    actor: Actor,
    *,
    client_id: UUID,
    max_creators: int,
    compensation: Decimal | None = None,
    title: str | None = None,
) -> Casting:
    social_bubble = _require_social_bubble(actor, "create castings")
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    if max_creators < 1:
        raise WorkflowValidationError("max_creators must be at least 1")

    if not (title or "").strip():
        existing = db.execute(select(func.count(Casting.id)).where(Casting.client_id == client_id)).scalar_one()
        title = f"{client.company_name} casting #{int(existing) + 1}"

    casting = Casting(
        client_id=client_id,
        title=title.strip(),
        status=CastingStatus.DRAFT.value,
        max_creators=max_creators,
        compensation=compensation,
        created_by=social_bubble.user_id,
    )
    db.add(casting)
    db.commit()
    db.refresh(casting)
    invalidate_views(*casting_view_paths(casting.id))
    logger.info("casting_created casting_id=%s client_id=%s", casting.id, client_id)
    return casting


@workflow_operation("list_castings")
def list_castings(db: Session, actor: Actor) -> list[CastingSnapshot]:
    statement = select(Casting).order_by(Casting.created_at.desc())
    match actor:
        case SocialBubbleActor():
            pass
        case ClientActor(client_id=client_id):
            statement = statement.where(
                Casting.client_id == client_id,
                Casting.status.in_(CLIENT_VISIBLE_STATUSES),
            )
        case CreatorActor(creator_id=creator_id):
            statement = statement.join(CastingInvitation, CastingInvitation.casting_id == Casting.id).where(
                CastingInvitation.creator_id == creator_id
            )
    return [load_casting_snapshot(db, casting) for casting in db.execute(statement).scalars().all()]


@workflow_operation("get_casting")
def get_casting(db: Session, actor: Actor, casting_id: UUID) -> CastingSnapshot:
    casting = _get_casting(db, casting_id)
    _ensure_can_view(db, actor, casting)
    return load_casting_snapshot(db, casting)


@workflow_operation("get_casting_invitations")
def get_casting_invitations(db: Session, actor: Actor, casting_id: UUID) -> list[dict[str, Any]]:
    _require_social_bubble(actor, "view invitations")
    _get_casting(db, casting_id)
    rows = db.execute(
        select(CastingInvitation, Creator)
        .join(Creator, Creator.id == CastingInvitation.creator_id)
        .where(CastingInvitation.casting_id == casting_id)
        .order_by(CastingInvitation.invited_at.asc())
    ).all()
    return [{"invitation": invitation, "creator": creator} for invitation, creator in rows]


@workflow_operation("get_casting_selections")
def get_casting_selections(db: Session, actor: Actor, casting_id: UUID) -> list[dict[str, Any]]:
    casting = _get_casting(db, casting_id)
    _ensure_can_view(db, actor, casting)
    if isinstance(actor, CreatorActor):
        raise UnauthorizedError("Creators cannot view selections")
    rows = db.execute(
        select(CastingSelection, Creator)
        .join(Creator, Creator.id == CastingSelection.creator_id)
        .where(CastingSelection.casting_id == casting_id)
        .order_by(CastingSelection.created_at.asc())
    ).all()
    return [{"selection": selection, "creator": creator} for selection, creator in rows]


@workflow_operation("get_creator_opportunities")
def get_creator_opportunities(db: Session, actor: Actor) -> list[dict[str, Any]]:
    match actor:
        case CreatorActor(creator_id=creator_id):
            rows = db.execute(
                select(CastingInvitation, Casting)
                .join(Casting, Casting.id == CastingInvitation.casting_id)
                .where(CastingInvitation.creator_id == creator_id)
                .order_by(CastingInvitation.invited_at.desc())
            ).all()
            return [{"invitation": invitation, "casting": casting} for invitation, casting in rows]
    raise UnauthorizedError("Only creators have opportunities")


@workflow_operation("get_creators_for_casting")
def get_creators_for_casting(db: Session, actor: Actor) -> list[Creator]:
    if not isinstance(actor, SocialBubbleActor):
        return []
    return list(
        db.execute(select(Creator).order_by(Creator.first_name.asc(), Creator.last_name.asc())).scalars().all()
    )


@workflow_operation("send_invitations")
def send_invitations(db: Session, actor: Actor, casting_id: UUID, creator_ids: list[UUID]) -> list[CastingInvitation]:
    _require_social_bubble(actor, "send invitations")
    casting = _get_casting(db, casting_id)
    creators = _load_creators(db, creator_ids)
    if casting.status != CastingStatus.DRAFT.value:
        raise InvalidStateError(f"Invitations can only be sent for draft castings (status={casting.status})")
    if not transition_casting_status(db, casting.id, CastingStatus.DRAFT.value, CastingStatus.INVITING.value):
        raise InvalidStateError("Casting was updated concurrently")

    invitations = [
        CastingInvitation(
            casting_id=casting.id,
            creator_id=creator.id,
            status=InvitationStatus.PENDING.value,
        )
        for creator in creators
    ]
    db.add_all(invitations)
    db.commit()

    opportunities_url = f"{settings.app_url.rstrip('/')}/dashboard/creator/opportunities"
    compensation = float(casting.compensation) if casting.compensation is not None else None
    notification_queue.queue_emails(
        [
            EmailJob(
                recipient=creator.email,
                template=EmailTemplate.CASTING_INVITE.value,
                params={
                    "creator_name": creator.first_name,
                    "casting_title": casting.title,
                    "compensation": compensation,
                    "opportunities_url": opportunities_url,
                },
            )
            for creator in creators
        ]
    )
    invalidate_views(*casting_view_paths(casting.id))
    logger.info("casting_invitations_sent casting_id=%s count=%s", casting.id, len(invitations))
    return invitations


@workflow_operation("respond_to_invitation")
def respond_to_invitation(
    db: Session,
    actor: Actor,
    invitation_id: UUID,
    *,
    accept: bool,
    reason: str | None = None,
) -> CastingInvitation:
    if not isinstance(actor, CreatorActor):
        raise UnauthorizedError("Only the invited creator can respond")
    invitation = db.get(CastingInvitation, invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.creator_id != actor.creator_id:
        raise UnauthorizedError("Only the invited creator can respond")
    if invitation.status != InvitationStatus.PENDING.value:
        raise InvalidStateError(f"Invitation already answered (status={invitation.status})")

    new_status = InvitationStatus.ACCEPTED.value if accept else InvitationStatus.REJECTED.value
    result = db.execute(
        update(CastingInvitation)
        .where(CastingInvitation.id == invitation_id, CastingInvitation.status == InvitationStatus.PENDING.value)
        .values(
            status=new_status,
            responded_at=datetime.now(UTC),
            rejection_reason=None if accept else (reason or None),
        )
    )
    if result.rowcount != 1:
        raise InvalidStateError("Invitation already answered")
    db.commit()
    db.refresh(invitation)
    logger.info("casting_invitation_answered invitation_id=%s status=%s", invitation_id, new_status)

    casting = db.get(Casting, invitation.casting_id)
    if accept and casting is not None:
        creator = db.get(Creator, invitation.creator_id)
        _fire_casting_trigger(
            db,
            TriggerName.CASTING_INVITATION_ACCEPTED,
            casting,
            actor,
            creatorId=str(invitation.creator_id),
            creatorName=creator.full_name if creator else "",
            creatorEmail=creator.email if creator else actor.email,
        )
    if casting is not None:
        invalidate_views(*casting_view_paths(casting.id), "/dashboard/creator/opportunities")
    return invitation


@workflow_operation("select_creators_for_client")
def select_creators_for_client(
    db: Session,
    actor: Actor,
    casting_id: UUID,
    creator_ids: list[UUID],
) -> list[CastingSelection]:
    social_bubble = _require_social_bubble(actor, "shortlist creators")
    casting = _get_casting(db, casting_id)
    creators = _load_creators(db, creator_ids)

    # Shortlists append; an earlier shortlist for the same creators is kept.
    selections = [
        CastingSelection(
            casting_id=casting.id,
            creator_id=creator.id,
            selected_by=social_bubble.user_id,
            selected_by_role=SelectionRole.SOCIAL_BUBBLE.value,
        )
        for creator in creators
    ]
    db.add_all(selections)
    db.commit()
    invalidate_views(*casting_view_paths(casting.id))
    logger.info("casting_shortlist_saved casting_id=%s count=%s", casting.id, len(selections))
    return selections


def _final_selection_jobs(
    casting: Casting,
    partition: NotificationPartition,
    *,
    has_approved_briefing: bool,
) -> list[EmailJob]:
    chosen_template = (
        EmailTemplate.CASTING_APPROVED_WITH_BRIEFING if has_approved_briefing else EmailTemplate.CASTING_APPROVED_NO_BRIEFING
    )
    audiences = (
        (partition.chosen, chosen_template),
        (partition.accepted_not_chosen, EmailTemplate.CASTING_NOT_SELECTED),
        (partition.never_responded, EmailTemplate.CASTING_CLOSED_NO_RESPONSE),
    )
    return [
        EmailJob(
            recipient=creator.email,
            template=template.value,
            params={
                "creator_name": creator.first_name,
                "casting_title": casting.title,
                "briefings_url": creator_briefings_url(),
            },
        )
        for creators, template in audiences
        for creator in creators
    ]


@workflow_operation("select_final_creators")
def select_final_creators(
    db: Session,
    actor: Actor,
    casting_id: UUID,
    creator_ids: list[UUID],
) -> dict[str, Any]:
    casting = _get_casting(db, casting_id)
    match actor:
        case SocialBubbleActor():
            pass
        case ClientActor(client_id=client_id) if client_id == casting.client_id:
            pass
        case _:
            raise UnauthorizedError("Only the casting's client or the internal team can approve creators")

    if casting.status != CastingStatus.SEND_CLIENT_FEEDBACK.value:
        raise InvalidStateError(f"Casting is not awaiting client feedback (status={casting.status})")
    unique_ids = list(dict.fromkeys(creator_ids))
    if len(unique_ids) > casting.max_creators:
        raise LimitExceededError(
            f"Cannot select {len(unique_ids)} creators; this casting allows at most {casting.max_creators}"
        )
    chosen = _load_creators(db, unique_ids)

    db.add_all(
        [
            CastingSelection(
                casting_id=casting.id,
                creator_id=creator.id,
                selected_by=actor.user_id,
                selected_by_role=SelectionRole.CLIENT.value,
            )
            for creator in chosen
        ]
    )
    existing_submissions = set(
        db.execute(
            select(CreatorSubmission.creator_id).where(
                CreatorSubmission.casting_id == casting.id,
                CreatorSubmission.creator_id.in_([creator.id for creator in chosen]),
            )
        ).scalars()
    )
    db.add_all(
        [
            CreatorSubmission(casting_id=casting.id, creator_id=creator.id)
            for creator in chosen
            if creator.id not in existing_submissions
        ]
    )

    has_approved_briefing = count_approved_briefings(db, casting.id) > 0
    new_status = CastingStatus.SHOOTING.value if has_approved_briefing else CastingStatus.APPROVED_BY_CLIENT.value
    if not transition_casting_status(db, casting.id, CastingStatus.SEND_CLIENT_FEEDBACK.value, new_status):
        raise InvalidStateError("Casting was updated concurrently")
    db.commit()
    logger.info(
        "casting_final_selection_saved casting_id=%s chosen=%s status=%s",
        casting.id,
        len(chosen),
        new_status,
    )

    if new_status == CastingStatus.SHOOTING.value:
        provision_creator_folders(db, casting, chosen)

    invitations = db.execute(
        select(CastingInvitation, Creator)
        .join(Creator, Creator.id == CastingInvitation.creator_id)
        .where(CastingInvitation.casting_id == casting.id)
    ).all()
    partition = partition_notification_recipients([tuple(row) for row in invitations], chosen)
    notification_queue.queue_emails(
        _final_selection_jobs(casting, partition, has_approved_briefing=has_approved_briefing)
    )

    _fire_casting_trigger(db, TriggerName.CASTING_APPROVED, casting, actor, approvedBy=actor.email)
    invalidate_views(*casting_view_paths(casting.id), "/dashboard/client/castings")
    return {
        "casting_id": str(casting.id),
        "status": new_status,
        "chosen_count": len(partition.chosen),
        "not_selected_count": len(partition.accepted_not_chosen),
        "no_response_count": len(partition.never_responded),
    }


def _ready_for_review_jobs(db: Session, casting: Casting) -> list[EmailJob]:
    client = db.get(Client, casting.client_id)
    client_users = db.execute(
        select(User).where(User.role == UserRole.CLIENT.value, User.client_id == casting.client_id)
    ).scalars().all()
    selected_count = count_selected_creators(db, casting.id, SelectionRole.SOCIAL_BUBBLE)
    return [
        EmailJob(
            recipient=user.email,
            template=EmailTemplate.CASTING_READY_FOR_REVIEW.value,
            params={
                "client_name": client.company_name if client else "",
                "casting_title": casting.title,
                "selected_creators_count": selected_count,
                "casting_url": _casting_url(casting.id),
            },
        )
        for user in client_users
    ]


def _apply_social_bubble_fields(casting: Casting, patch: dict[str, Any]) -> None:
    unknown = set(patch) - _SOCIAL_BUBBLE_FIELDS
    if unknown:
        raise WorkflowValidationError(f"Unsupported casting fields: {', '.join(sorted(unknown))}")
    if patch.get("title") is not None:
        if not str(patch["title"]).strip():
            raise WorkflowValidationError("Title cannot be empty")
        casting.title = str(patch["title"]).strip()
    if "compensation" in patch:
        casting.compensation = patch["compensation"]
    if patch.get("max_creators") is not None:
        if int(patch["max_creators"]) < 1:
            raise WorkflowValidationError("max_creators must be at least 1")
        casting.max_creators = int(patch["max_creators"])


@workflow_operation("update_casting")
def update_casting(db: Session, actor: Actor, casting_id: UUID, patch: dict[str, Any]) -> Casting:
    casting = _get_casting(db, casting_id)
    requested_status = patch.get("status")

    match actor:
        case SocialBubbleActor():
            _apply_social_bubble_fields(casting, patch)
            is_client = False
        case ClientActor(client_id=client_id) if client_id == casting.client_id:
            # Clients can only approve; other fields in the patch are ignored.
            is_client = True
        case _:
            raise UnauthorizedError("You cannot update this casting")

    previous_status = casting.status
    status_changed = requested_status is not None and requested_status != previous_status
    if status_changed:
        if requested_status not in {status.value for status in CastingStatus}:
            raise WorkflowValidationError(f"Unknown casting status: {requested_status}")
        if not is_manual_transition_allowed(previous_status, requested_status, client=is_client):
            raise InvalidStateError(f"Transition {previous_status} -> {requested_status} is not allowed")
        if not transition_casting_status(db, casting.id, previous_status, requested_status):
            raise InvalidStateError("Casting was updated concurrently")
    db.commit()
    db.refresh(casting)

    if status_changed:
        if requested_status == CastingStatus.SEND_CLIENT_FEEDBACK.value:
            notification_queue.queue_emails(_ready_for_review_jobs(db, casting))
        _fire_casting_trigger(
            db,
            TriggerName.CASTING_STATUS_CHANGED,
            casting,
            actor,
            previousStatus=previous_status,
            newStatus=requested_status,
            changedBy=actor.email,
        )
    invalidate_views(*casting_view_paths(casting.id))
    return casting
