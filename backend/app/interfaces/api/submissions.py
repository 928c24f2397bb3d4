from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.application.services import creator_submission_service
from app.core.actor import Actor
from app.infrastructure.db.session import get_db
from app.interfaces.api.deps import get_current_actor, unwrap_result
from app.interfaces.api.serializers import (
    serialize_briefing,
    serialize_casting,
    serialize_creator,
    serialize_submission,
)

router = APIRouter(tags=["submissions"])


class SubmitWorkRequest(BaseModel):
    creator_id: UUID | None = None


class ReviewSubmissionRequest(BaseModel):
    approved: bool
    feedback: str | None = Field(default=None, max_length=5000)


class ContentLinkRequest(BaseModel):
    content_upload_link: str | None = Field(default=None, max_length=1024)


@router.get("/castings/{casting_id}/submissions")
def list_submissions(
    casting_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    rows = unwrap_result(creator_submission_service.get_creator_submissions(db, actor, casting_id))
    return [
        {**serialize_submission(row["submission"]), "creator": serialize_creator(row["creator"])}
        for row in rows
    ]


@router.post("/castings/{casting_id}/submissions/submit")
def submit_work(
    casting_id: UUID,
    payload: SubmitWorkRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    submission = unwrap_result(
        creator_submission_service.submit_creator_work(db, actor, casting_id, payload.creator_id)
    )
    return serialize_submission(submission)


@router.post("/castings/{casting_id}/submissions/{creator_id}/review")
def review_submission(
    casting_id: UUID,
    creator_id: UUID,
    payload: ReviewSubmissionRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    submission = unwrap_result(
        creator_submission_service.review_creator_submission(
            db,
            actor,
            casting_id,
            creator_id,
            approved=payload.approved,
            feedback=payload.feedback,
        )
    )
    return serialize_submission(submission)


@router.put("/castings/{casting_id}/submissions/{creator_id}/content-link")
def update_content_link(
    casting_id: UUID,
    creator_id: UUID,
    payload: ContentLinkRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    submission = unwrap_result(
        creator_submission_service.update_content_link(
            db,
            actor,
            casting_id,
            creator_id,
            payload.content_upload_link,
        )
    )
    return serialize_submission(submission)


@router.get("/creator/briefings")
def list_creator_briefings(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    rows = unwrap_result(creator_submission_service.get_creator_briefings(db, actor))
    return [
        {
            **serialize_submission(row["submission"]),
            "casting": serialize_casting(row["casting"]),
            "briefings": [serialize_briefing(item) for item in row["briefings"]],
        }
        for row in rows
    ]
