from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.application.services import automation_service
from app.core.actor import Actor
from app.infrastructure.db.session import get_db
from app.interfaces.api.deps import get_current_actor, unwrap_result
from app.interfaces.api.serializers import serialize_action, serialize_automation_log, serialize_rule

router = APIRouter(prefix="/automation", tags=["automation"])


class RuleCreateRequest(BaseModel):
    trigger_name: str
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    conditions: dict[str, Any] | None = None
    is_enabled: bool = True
    execution_order: int | None = Field(default=None, ge=0)


class RuleUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    conditions: dict[str, Any] | None = None
    is_enabled: bool | None = None
    execution_order: int | None = Field(default=None, ge=0)


class RuleOrderRequest(BaseModel):
    rule_ids: list[UUID]


class ActionCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    action_type: str
    configuration: dict[str, Any] = Field(default_factory=dict)
    is_enabled: bool = True
    execution_order: int | None = Field(default=None, ge=0)


class ActionUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    configuration: dict[str, Any] | None = None
    is_enabled: bool | None = None
    execution_order: int | None = Field(default=None, ge=0)


class TestTriggerRequest(BaseModel):
    casting_id: UUID | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


@router.get("/triggers")
def list_triggers(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    return unwrap_result(automation_service.get_triggers(db, actor))


@router.get("/triggers/{trigger_name}/rules")
def list_rules(
    trigger_name: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    rules = unwrap_result(automation_service.get_rules_for_trigger(db, actor, trigger_name))
    return [serialize_rule(item) for item in rules]


@router.put("/triggers/{trigger_name}/rules/order")
def reorder_rules(
    trigger_name: str,
    payload: RuleOrderRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    rules = unwrap_result(automation_service.update_rule_order(db, actor, trigger_name, payload.rule_ids))
    return [serialize_rule(item) for item in rules]


@router.post("/triggers/{trigger_name}/test")
def test_trigger(
    trigger_name: str,
    payload: TestTriggerRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return unwrap_result(
        automation_service.run_test_automation(
            db,
            actor,
            trigger_name,
            casting_id=payload.casting_id,
            overrides=payload.parameters,
        )
    )


@router.post("/rules", status_code=status.HTTP_201_CREATED)
def create_rule(
    payload: RuleCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rule = unwrap_result(
        automation_service.create_rule(
            db,
            actor,
            trigger_name=payload.trigger_name,
            name=payload.name,
            description=payload.description,
            conditions=payload.conditions,
            is_enabled=payload.is_enabled,
            execution_order=payload.execution_order,
        )
    )
    return serialize_rule(rule)


@router.patch("/rules/{rule_id}")
def update_rule(
    rule_id: UUID,
    payload: RuleUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rule = unwrap_result(
        automation_service.update_rule(db, actor, rule_id, payload.model_dump(exclude_unset=True))
    )
    return serialize_rule(rule)


@router.delete("/rules/{rule_id}")
def delete_rule(
    rule_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    return unwrap_result(automation_service.delete_rule(db, actor, rule_id))


@router.get("/rules/{rule_id}/actions")
def list_actions(
    rule_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    actions = unwrap_result(automation_service.get_rule_actions(db, actor, rule_id))
    return [serialize_action(item) for item in actions]


@router.post("/rules/{rule_id}/actions", status_code=status.HTTP_201_CREATED)
def create_action(
    rule_id: UUID,
    payload: ActionCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    action = unwrap_result(
        automation_service.create_action(
            db,
            actor,
            rule_id,
            name=payload.name,
            action_type=payload.action_type,
            configuration=payload.configuration,
            is_enabled=payload.is_enabled,
            execution_order=payload.execution_order,
        )
    )
    return serialize_action(action)


@router.patch("/actions/{action_id}")
def update_action(
    action_id: UUID,
    payload: ActionUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    action = unwrap_result(
        automation_service.update_action(db, actor, action_id, payload.model_dump(exclude_unset=True))
    )
    return serialize_action(action)


@router.delete("/actions/{action_id}")
def delete_action(
    action_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    return unwrap_result(automation_service.delete_action(db, actor, action_id))


@router.get("/logs")
def list_logs(
    trigger_name: str | None = Query(default=None),
    rule_id: UUID | None = Query(default=None),
    log_status: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    logs = unwrap_result(
        automation_service.get_logs(
            db,
            actor,
            trigger_name=trigger_name,
            rule_id=rule_id,
            status=log_status,
            limit=limit,
        )
    )
    return [serialize_automation_log(item) for item in logs]
