from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.application.services import briefing_service
from app.core.actor import Actor
from app.infrastructure.db.session import get_db
from app.interfaces.api.deps import get_current_actor, unwrap_result
from app.interfaces.api.serializers import serialize_briefing, serialize_briefing_link, serialize_casting

router = APIRouter(tags=["briefings"])


class BriefingCreateRequest(BaseModel):
    client_id: UUID
    title: str = Field(min_length=1, max_length=255)
    content: dict[str, Any] = Field(default_factory=dict)


class BriefingUpdateRequest(BaseModel):
    client_id: UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: dict[str, Any] | None = None
    status: str | None = None


@router.post("/briefings", status_code=status.HTTP_201_CREATED)
def create_briefing(
    payload: BriefingCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    briefing = unwrap_result(
        briefing_service.create_briefing(
            db,
            actor,
            client_id=payload.client_id,
            title=payload.title,
            content=payload.content,
        )
    )
    return serialize_briefing(briefing)


@router.patch("/briefings/{briefing_id}")
def update_briefing(
    briefing_id: UUID,
    payload: BriefingUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    patch = payload.model_dump(exclude_unset=True)
    return serialize_briefing(unwrap_result(briefing_service.update_briefing(db, actor, briefing_id, patch)))


@router.get("/briefings/{briefing_id}/castings")
def list_briefing_castings(
    briefing_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    castings = unwrap_result(briefing_service.get_briefing_castings(db, actor, briefing_id))
    return [serialize_casting(item) for item in castings]


@router.get("/briefings/{briefing_id}/available-castings")
def list_available_castings(
    briefing_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    castings = unwrap_result(briefing_service.get_available_castings_for_briefing(db, actor, briefing_id))
    return [serialize_casting(item) for item in castings]


@router.get("/castings/{casting_id}/briefings")
def list_casting_briefings(
    casting_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    briefings = unwrap_result(briefing_service.get_casting_briefings(db, actor, casting_id))
    return [serialize_briefing(item) for item in briefings]


@router.get("/castings/{casting_id}/available-briefings")
def list_available_briefings(
    casting_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    briefings = unwrap_result(briefing_service.get_available_briefings_for_casting(db, actor, casting_id))
    return [serialize_briefing(item) for item in briefings]


@router.put("/castings/{casting_id}/briefings/{briefing_id}", status_code=status.HTTP_201_CREATED)
def link_briefing(
    casting_id: UUID,
    briefing_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    link = unwrap_result(briefing_service.link_briefing(db, actor, casting_id, briefing_id))
    return serialize_briefing_link(link)


@router.delete("/castings/{casting_id}/briefings/{briefing_id}")
def unlink_briefing(
    casting_id: UUID,
    briefing_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    return unwrap_result(briefing_service.unlink_briefing(db, actor, casting_id, briefing_id))
