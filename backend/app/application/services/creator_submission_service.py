import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.application.services.casting_state import transition_casting_status
from app.application.services.operation_result import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    WorkflowValidationError,
    workflow_operation,
)
from app.core.actor import Actor, ClientActor, CreatorActor, SocialBubbleActor
from app.domain.models.briefing import Briefing, CastingBriefingLink
from app.domain.models.casting import Casting, CastingStatus
from app.domain.models.creator import Creator
from app.domain.models.creator_submission import CreatorSubmission, SubmissionStatus
from app.infrastructure.cache.view_invalidation import casting_view_paths, invalidate_views

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = (SubmissionStatus.PENDING.value, SubmissionStatus.REVISION_REQUESTED.value)


def _get_submission(db: Session, casting_id: UUID, creator_id: UUID) -> CreatorSubmission:
    submission = db.execute(
        select(CreatorSubmission).where(
            CreatorSubmission.casting_id == casting_id,
            CreatorSubmission.creator_id == creator_id,
        )
    ).scalar_one_or_none()
    if submission is None:
        raise NotFoundError("Submission not found")
    return submission


def _guarded_submission_update(
    db: Session,
    submission_id: UUID,
    expected: tuple[str, ...],
    values: dict[str, Any],
) -> bool:
    result = db.execute(
        update(CreatorSubmission)
        .where(CreatorSubmission.id == submission_id, CreatorSubmission.submission_status.in_(expected))
        .values(**values)
    )
    return result.rowcount == 1


def _resolve_submitting_creator(actor: Actor, creator_id: UUID | None) -> UUID:
    match actor:
        case CreatorActor(creator_id=own_creator_id):
            if creator_id is not None and creator_id != own_creator_id:
                raise UnauthorizedError("Creators can only submit their own work")
            return own_creator_id
        case SocialBubbleActor():
            if creator_id is None:
                raise WorkflowValidationError("creator_id is required when submitting on behalf of a creator")
            return creator_id
    raise UnauthorizedError("Clients cannot submit creator work")


@workflow_operation("submit_creator_work")
def submit_creator_work(
    db: Session,
    actor: Actor,
    casting_id: UUID,
    creator_id: UUID | None = None,
) -> CreatorSubmission:
    target_creator_id = _resolve_submitting_creator(actor, creator_id)
    submission = _get_submission(db, casting_id, target_creator_id)
    if submission.submission_status not in SUBMITTABLE_STATUSES:
        raise InvalidStateError(f"Submission cannot be submitted from status {submission.submission_status}")

    if not _guarded_submission_update(
        db,
        submission.id,
        SUBMITTABLE_STATUSES,
        {"submission_status": SubmissionStatus.PENDING_REVIEW.value, "submitted_at": datetime.now(UTC)},
    ):
        db.rollback()
        raise InvalidStateError("Submission was changed concurrently")
    db.commit()
    db.refresh(submission)
    logger.info(
        "creator_work_submitted casting_id=%s creator_id=%s actor_id=%s",
        casting_id,
        target_creator_id,
        actor.user_id,
    )
    invalidate_views(*casting_view_paths(casting_id))
    return submission


@workflow_operation("review_creator_submission")
def review_creator_submission(
    db: Session,
    actor: Actor,
    casting_id: UUID,
    creator_id: UUID,
    *,
    approved: bool,
    feedback: str | None = None,
) -> CreatorSubmission:
    if not isinstance(actor, SocialBubbleActor):
        raise UnauthorizedError("Only the internal team can review submissions")
    feedback = (feedback or "").strip() or None
    if not approved and feedback is None:
        raise WorkflowValidationError("Feedback is required when requesting a revision")

    submission = _get_submission(db, casting_id, creator_id)
    if submission.submission_status != SubmissionStatus.PENDING_REVIEW.value:
        raise InvalidStateError(f"Submission is not awaiting review (status {submission.submission_status})")

    now = datetime.now(UTC)
    values: dict[str, Any] = {"feedback": feedback, "feedback_by": actor.user_id, "feedback_at": now}
    if approved:
        values.update(
            submission_status=SubmissionStatus.APPROVED.value,
            approved_by=actor.user_id,
            approved_at=now,
        )
    else:
        values["submission_status"] = SubmissionStatus.REVISION_REQUESTED.value

    if not _guarded_submission_update(db, submission.id, (SubmissionStatus.PENDING_REVIEW.value,), values):
        db.rollback()
        raise InvalidStateError("Submission was reviewed concurrently")

    if approved:
        # No-op unless the casting is still waiting in approved_by_client.
        transition_casting_status(
            db,
            casting_id,
            CastingStatus.APPROVED_BY_CLIENT.value,
            CastingStatus.SHOOTING.value,
        )
    db.commit()
    db.refresh(submission)
    logger.info(
        "creator_submission_reviewed casting_id=%s creator_id=%s approved=%s",
        casting_id,
        creator_id,
        approved,
    )
    invalidate_views(*casting_view_paths(casting_id))
    return submission


@workflow_operation("update_content_link")
def update_content_link(
    db: Session,
    actor: Actor,
    casting_id: UUID,
    creator_id: UUID,
    content_upload_link: str | None,
) -> CreatorSubmission:
    if not isinstance(actor, SocialBubbleActor):
        raise UnauthorizedError("Only the internal team can update content links")
    submission = _get_submission(db, casting_id, creator_id)
    link = (content_upload_link or "").strip() or None
    if link is not None and not link.startswith(("http://", "https://")):
        raise WorkflowValidationError("Content link must be an http(s) URL")
    submission.content_upload_link = link
    db.commit()
    db.refresh(submission)
    invalidate_views(*casting_view_paths(casting_id))
    return submission


@workflow_operation("get_creator_submissions")
def get_creator_submissions(db: Session, actor: Actor, casting_id: UUID) -> list[dict[str, Any]]:
    if not isinstance(actor, SocialBubbleActor):
        raise UnauthorizedError("Only the internal team can list submissions")
    if db.get(Casting, casting_id) is None:
        raise NotFoundError("Casting not found")
    rows = db.execute(
        select(CreatorSubmission, Creator)
        .join(Creator, Creator.id == CreatorSubmission.creator_id)
        .where(CreatorSubmission.casting_id == casting_id)
        .order_by(Creator.first_name.asc(), Creator.last_name.asc())
    ).all()
    return [{"submission": submission, "creator": creator} for submission, creator in rows]


@workflow_operation("get_creator_briefings")
def get_creator_briefings(db: Session, actor: Actor) -> list[dict[str, Any]]:
    """Assignments of the calling creator: each submission with its casting and linked briefings."""
    match actor:
        case CreatorActor(creator_id=creator_id):
            pass
        case ClientActor() | SocialBubbleActor():
            raise UnauthorizedError("Only creators have briefing assignments")

    rows = db.execute(
        select(CreatorSubmission, Casting)
        .join(Casting, Casting.id == CreatorSubmission.casting_id)
        .where(CreatorSubmission.creator_id == creator_id)
        .order_by(CreatorSubmission.created_at.desc())
    ).all()
    casting_ids = [casting.id for _, casting in rows]
    briefings_by_casting: dict[UUID, list[Briefing]] = {casting_id: [] for casting_id in casting_ids}
    if casting_ids:
        linked = db.execute(
            select(CastingBriefingLink.casting_id, Briefing)
            .join(Briefing, Briefing.id == CastingBriefingLink.briefing_id)
            .where(CastingBriefingLink.casting_id.in_(casting_ids))
            .order_by(CastingBriefingLink.linked_at.asc())
        ).all()
        for linked_casting_id, briefing in linked:
            briefings_by_casting[linked_casting_id].append(briefing)

    return [
        {"submission": submission, "casting": casting, "briefings": briefings_by_casting[casting.id]}
        for submission, casting in rows
    ]
