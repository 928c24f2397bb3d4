from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.application.services import casting_workflow_service
from app.core.actor import Actor
from app.infrastructure.db.session import get_db
from app.interfaces.api.deps import get_current_actor, unwrap_result
from app.interfaces.api.serializers import (
    serialize_casting,
    serialize_casting_snapshot,
    serialize_creator,
    serialize_invitation,
    serialize_selection,
)

router = APIRouter(tags=["castings"])


class CastingCreateRequest(BaseModel):
    client_id: UUID
    max_creators: int = Field(ge=1)
    compensation: Decimal | None = Field(default=None, ge=0)
    title: str | None = Field(default=None, max_length=255)


class CastingUpdateRequest(BaseModel):
    title: str | None = Field(default=None, max_length=255)
    compensation: Decimal | None = Field(default=None, ge=0)
    max_creators: int | None = Field(default=None, ge=1)
    status: str | None = None


class CreatorIdsRequest(BaseModel):
    creator_ids: list[UUID] = Field(min_length=1)


class InvitationResponseRequest(BaseModel):
    accept: bool
    reason: str | None = Field(default=None, max_length=2000)


@router.get("/castings")
def list_castings(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    snapshots = unwrap_result(casting_workflow_service.list_castings(db, actor))
    return [serialize_casting_snapshot(snapshot) for snapshot in snapshots]


@router.post("/castings", status_code=status.HTTP_201_CREATED)
def create_casting(
    payload: CastingCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    casting = unwrap_result(
        casting_workflow_service.create_casting(
            db,
            actor,
            client_id=payload.client_id,
            max_creators=payload.max_creators,
            compensation=payload.compensation,
            title=payload.title,
        )
    )
    return serialize_casting(casting)


@router.get("/castings/{casting_id}")
def get_casting(
    casting_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return serialize_casting_snapshot(unwrap_result(casting_workflow_service.get_casting(db, actor, casting_id)))


@router.patch("/castings/{casting_id}")
def update_casting(
    casting_id: UUID,
    payload: CastingUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    patch = payload.model_dump(exclude_unset=True)
    casting = unwrap_result(casting_workflow_service.update_casting(db, actor, casting_id, patch))
    return serialize_casting(casting)


@router.get("/castings/{casting_id}/invitations")
def list_invitations(
    casting_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    rows = unwrap_result(casting_workflow_service.get_casting_invitations(db, actor, casting_id))
    return [
        {**serialize_invitation(row["invitation"]), "creator": serialize_creator(row["creator"])}
        for row in rows
    ]


@router.post("/castings/{casting_id}/invitations", status_code=status.HTTP_201_CREATED)
def send_invitations(
    casting_id: UUID,
    payload: CreatorIdsRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    invitations = unwrap_result(
        casting_workflow_service.send_invitations(db, actor, casting_id, payload.creator_ids)
    )
    return {"invited": len(invitations), "items": [serialize_invitation(item) for item in invitations]}


@router.post("/invitations/{invitation_id}/respond")
def respond_to_invitation(
    invitation_id: UUID,
    payload: InvitationResponseRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    invitation = unwrap_result(
        casting_workflow_service.respond_to_invitation(
            db,
            actor,
            invitation_id,
            accept=payload.accept,
            reason=payload.reason,
        )
    )
    return serialize_invitation(invitation)


@router.get("/castings/{casting_id}/selections")
def list_selections(
    casting_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    rows = unwrap_result(casting_workflow_service.get_casting_selections(db, actor, casting_id))
    return [
        {**serialize_selection(row["selection"]), "creator": serialize_creator(row["creator"])}
        for row in rows
    ]


@router.post("/castings/{casting_id}/shortlist", status_code=status.HTTP_201_CREATED)
def shortlist_creators(
    casting_id: UUID,
    payload: CreatorIdsRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    selections = unwrap_result(
        casting_workflow_service.select_creators_for_client(db, actor, casting_id, payload.creator_ids)
    )
    return {"selected": len(selections), "items": [serialize_selection(item) for item in selections]}


@router.post("/castings/{casting_id}/final-selection")
def select_final_creators(
    casting_id: UUID,
    payload: CreatorIdsRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return unwrap_result(
        casting_workflow_service.select_final_creators(db, actor, casting_id, payload.creator_ids)
    )


@router.get("/creators")
def list_creators_for_casting(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    creators = unwrap_result(casting_workflow_service.get_creators_for_casting(db, actor))
    return [serialize_creator(creator) for creator in creators]


@router.get("/creator/opportunities")
def list_creator_opportunities(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    rows = unwrap_result(casting_workflow_service.get_creator_opportunities(db, actor))
    return [
        {**serialize_invitation(row["invitation"]), "casting": serialize_casting(row["casting"])}
        for row in rows
    ]
