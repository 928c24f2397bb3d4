import logging
from dataclasses import asdict, dataclass
from typing import Any
from uuid import UUID

from kombu.exceptions import OperationalError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.services.automation_triggers import (
    TriggerName,
    get_trigger_definition,
    list_triggers,
    require_trigger_definition,
    validate_condition_group,
    validate_trigger_parameters,
)
from app.application.services.casting_snapshot import load_casting_snapshot
from app.application.services.condition_evaluator import evaluate_conditions
from app.application.services.operation_result import (
    NotFoundError,
    UnauthorizedError,
    WorkflowValidationError,
    workflow_operation,
)
from app.core.actor import Actor, SocialBubbleActor
from app.core.config import settings
from app.domain.models.automation_log import AutomationLog, AutomationLogStatus
from app.domain.models.automation_rule import AutomationAction, AutomationActionType, AutomationRule
from app.domain.models.casting import Casting
from app.infrastructure.observability.metrics import record_automation_action
from app.integrations.action_executors import (
    ActionConfigurationError,
    ActionContext,
    ActionExecutionResult,
    get_action_executor,
)

logger = logging.getLogger(__name__)

CONDITIONS_NOT_MET = "Conditions not met"
MAX_LOG_LIMIT = 500

_RULE_FIELDS = {"name", "description", "conditions", "is_enabled", "execution_order"}
_ACTION_FIELDS = {"name", "configuration", "is_enabled", "execution_order"}


@dataclass
class AutomationDispatchSummary:
    trigger_name: str
    is_test: bool = False
    rules_checked: int = 0
    rules_matched: int = 0
    actions_executed: int = 0
    actions_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _write_log(
    db: Session,
    *,
    trigger_name: str,
    parameters: dict[str, Any],
    status: AutomationLogStatus,
    rule_id: UUID | None = None,
    action_id: UUID | None = None,
    error_message: str | None = None,
    executed_by: UUID | None = None,
) -> None:
    db.add(
        AutomationLog(
            trigger_name=trigger_name,
            rule_id=rule_id,
            action_id=action_id,
            parameters_json=parameters,
            status=status.value,
            error_message=error_message,
            executed_by=executed_by,
        )
    )


def _load_enabled_actions(db: Session, rule_id: UUID) -> list[AutomationAction]:
    return list(
        db.execute(
            select(AutomationAction)
            .where(AutomationAction.rule_id == rule_id, AutomationAction.is_enabled.is_(True))
            .order_by(AutomationAction.execution_order.asc(), AutomationAction.created_at.asc())
        )
        .scalars()
        .all()
    )


def _execute_action(action: AutomationAction, context: ActionContext) -> ActionExecutionResult:
    executor = get_action_executor(action.action_type)
    try:
        return executor.execute(action.configuration_json or {}, context)
    except Exception as exc:
        logger.exception(
            "automation_action_crashed trigger=%s action_id=%s action_type=%s",
            context.trigger_name,
            action.id,
            action.action_type,
        )
        return ActionExecutionResult.failed(f"Unexpected action error: {exc}")


def _run_rule(
    db: Session,
    rule: AutomationRule,
    context: ActionContext,
    summary: AutomationDispatchSummary,
) -> None:
    if not evaluate_conditions(rule.conditions_json, context.parameters):
        _write_log(
            db,
            trigger_name=context.trigger_name,
            parameters=context.parameters,
            status=AutomationLogStatus.SKIPPED,
            rule_id=rule.id,
            error_message=CONDITIONS_NOT_MET,
            executed_by=context.executed_by,
        )
        return

    summary.rules_matched += 1
    for action in _load_enabled_actions(db, rule.id):
        result = _execute_action(action, context)
        summary.actions_executed += 1
        if not result.success:
            summary.actions_failed += 1
        if context.is_test:
            status = AutomationLogStatus.TEST
        else:
            status = AutomationLogStatus.SUCCESS if result.success else AutomationLogStatus.FAILED
        record_automation_action(context.trigger_name, status.value)
        _write_log(
            db,
            trigger_name=context.trigger_name,
            parameters=context.parameters,
            status=status,
            rule_id=rule.id,
            action_id=action.id,
            error_message=result.error,
            executed_by=context.executed_by,
        )


def trigger_automation(
    db: Session,
    trigger_name: str,
    parameters: dict[str, Any],
    *,
    is_test: bool = False,
    executed_by: UUID | None = None,
) -> AutomationDispatchSummary:
    """Evaluate every enabled rule of a trigger and run the actions of matching rules.

    Outcomes are written to ``automation_logs``; the caller owns the commit.
    """
    context_parameters = {**parameters, "appUrl": settings.app_url}
    summary = AutomationDispatchSummary(trigger_name=trigger_name, is_test=is_test)

    definition = get_trigger_definition(trigger_name)
    if definition is None:
        logger.warning("automation_trigger_unknown trigger=%s", trigger_name)
        _write_log(
            db,
            trigger_name=trigger_name,
            parameters=context_parameters,
            status=AutomationLogStatus.FAILED,
            error_message=f"Unknown trigger: {trigger_name}",
            executed_by=executed_by,
        )
        return summary

    schema_error = validate_trigger_parameters(definition, context_parameters)
    if schema_error:
        logger.warning("automation_trigger_parameters_invalid trigger=%s reason=%s", trigger_name, schema_error)

    rules = (
        db.execute(
            select(AutomationRule)
            .where(AutomationRule.trigger_name == trigger_name, AutomationRule.is_enabled.is_(True))
            .order_by(AutomationRule.execution_order.asc(), AutomationRule.created_at.asc())
        )
        .scalars()
        .all()
    )
    context = ActionContext(
        trigger_name=trigger_name,
        parameters=context_parameters,
        is_test=is_test,
        executed_by=executed_by,
    )
    for rule in rules:
        summary.rules_checked += 1
        try:
            _run_rule(db, rule, context, summary)
        except Exception as exc:
            logger.exception("automation_rule_failed trigger=%s rule_id=%s", trigger_name, rule.id)
            _write_log(
                db,
                trigger_name=trigger_name,
                parameters=context_parameters,
                status=AutomationLogStatus.FAILED,
                rule_id=rule.id,
                error_message=f"Rule evaluation failed: {exc}",
                executed_by=executed_by,
            )

    logger.info(
        "automation_trigger_completed trigger=%s test=%s rules_checked=%s rules_matched=%s actions_failed=%s",
        trigger_name,
        is_test,
        summary.rules_checked,
        summary.rules_matched,
        summary.actions_failed,
    )
    return summary


def dispatch_automation(
    db: Session,
    trigger_name: str,
    parameters: dict[str, Any],
    *,
    executed_by: UUID | None = None,
) -> None:
    """Fire a trigger from a workflow side effect; failures are logged and never raised."""
    if settings.automation_dispatch_mode == "celery":
        from workers.tasks import run_automation_trigger  # local import to avoid circular imports at module load

        try:
            run_automation_trigger.apply_async(
                kwargs={
                    "trigger_name": trigger_name,
                    "parameters": parameters,
                    "executed_by": str(executed_by) if executed_by else None,
                }
            )
        except OperationalError as exc:
            logger.error("automation_dispatch_enqueue_failed trigger=%s reason=%s", trigger_name, exc)
        return

    try:
        trigger_automation(db, trigger_name, parameters, executed_by=executed_by)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("automation_dispatch_failed trigger=%s", trigger_name)


def _require_automation_admin(actor: Actor) -> SocialBubbleActor:
    match actor:
        case SocialBubbleActor(email=email):
            allowed = settings.automation_admin_email_list
            if allowed and email.lower() not in allowed:
                raise UnauthorizedError("Only automation administrators can manage automations")
            return actor
    raise UnauthorizedError("Only the internal team can manage automations")


def _get_rule(db: Session, rule_id: UUID) -> AutomationRule:
    rule = db.get(AutomationRule, rule_id)
    if rule is None:
        raise NotFoundError("Automation rule not found")
    return rule


def _get_action(db: Session, action_id: UUID) -> AutomationAction:
    action = db.get(AutomationAction, action_id)
    if action is None:
        raise NotFoundError("Automation action not found")
    return action


def _validate_action_configuration(action_type: str, configuration: dict[str, Any]) -> None:
    if action_type not in {value.value for value in AutomationActionType}:
        raise WorkflowValidationError(f"Unsupported action type: {action_type}")
    try:
        get_action_executor(action_type).validate_configuration(configuration)
    except ActionConfigurationError as exc:
        raise WorkflowValidationError(str(exc)) from exc


@workflow_operation("automation_list_triggers")
def get_triggers(db: Session, actor: Actor) -> list[dict[str, Any]]:
    _require_automation_admin(actor)
    counts = dict(
        db.execute(
            select(AutomationRule.trigger_name, func.count(AutomationRule.id)).group_by(AutomationRule.trigger_name)
        ).all()
    )
    return [{**definition.to_dict(), "rule_count": int(counts.get(definition.name, 0))} for definition in list_triggers()]


@workflow_operation("automation_list_rules")
def get_rules_for_trigger(db: Session, actor: Actor, trigger_name: str) -> list[AutomationRule]:
    _require_automation_admin(actor)
    require_trigger_definition(trigger_name)
    return list(
        db.execute(
            select(AutomationRule)
            .where(AutomationRule.trigger_name == trigger_name)
            .order_by(AutomationRule.execution_order.asc(), AutomationRule.created_at.asc())
        )
        .scalars()
        .all()
    )


@workflow_operation("automation_list_actions")
def get_rule_actions(db: Session, actor: Actor, rule_id: UUID) -> list[AutomationAction]:
    _require_automation_admin(actor)
    _get_rule(db, rule_id)
    return list(
        db.execute(
            select(AutomationAction)
            .where(AutomationAction.rule_id == rule_id)
            .order_by(AutomationAction.execution_order.asc(), AutomationAction.created_at.asc())
        )
        .scalars()
        .all()
    )


@workflow_operation("automation_create_rule")
def create_rule(
    db: Session,
    actor: Actor,
    *,
    trigger_name: str,
    name: str,
    description: str | None = None,
    conditions: dict[str, Any] | None = None,
    is_enabled: bool = True,
    execution_order: int | None = None,
) -> AutomationRule:
    admin = _require_automation_admin(actor)
    definition = require_trigger_definition(trigger_name)
    normalized_conditions = validate_condition_group(definition, conditions)
    if execution_order is None:
        current_max = db.execute(
            select(func.max(AutomationRule.execution_order)).where(AutomationRule.trigger_name == trigger_name)
        ).scalar_one_or_none()
        execution_order = (current_max + 1) if current_max is not None else 0

    rule = AutomationRule(
        trigger_name=trigger_name,
        name=name,
        description=description,
        conditions_json=normalized_conditions,
        is_enabled=is_enabled,
        execution_order=execution_order,
        created_by=admin.user_id,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info("automation_rule_created rule_id=%s trigger=%s", rule.id, trigger_name)
    return rule


@workflow_operation("automation_update_rule")
def update_rule(db: Session, actor: Actor, rule_id: UUID, patch: dict[str, Any]) -> AutomationRule:
    _require_automation_admin(actor)
    rule = _get_rule(db, rule_id)
    unknown = set(patch) - _RULE_FIELDS
    if unknown:
        raise WorkflowValidationError(f"Unsupported rule fields: {', '.join(sorted(unknown))}")

    if "conditions" in patch:
        definition = require_trigger_definition(rule.trigger_name)
        rule.conditions_json = validate_condition_group(definition, patch["conditions"])
    for field_name in ("name", "description", "is_enabled", "execution_order"):
        if field_name in patch and patch[field_name] is not None:
            setattr(rule, field_name, patch[field_name])
    db.commit()
    db.refresh(rule)
    return rule


@workflow_operation("automation_delete_rule")
def delete_rule(db: Session, actor: Actor, rule_id: UUID) -> dict[str, str]:
    _require_automation_admin(actor)
    rule = _get_rule(db, rule_id)
    db.delete(rule)
    db.commit()
    logger.info("automation_rule_deleted rule_id=%s", rule_id)
    return {"id": str(rule_id)}


@workflow_operation("automation_update_rule_order")
def update_rule_order(db: Session, actor: Actor, trigger_name: str, rule_ids: list[UUID]) -> list[AutomationRule]:
    _require_automation_admin(actor)
    require_trigger_definition(trigger_name)
    rules = {
        rule.id: rule
        for rule in db.execute(select(AutomationRule).where(AutomationRule.trigger_name == trigger_name)).scalars()
    }
    missing = [str(rule_id) for rule_id in rule_ids if rule_id not in rules]
    if missing:
        raise NotFoundError(f"Rules not found for trigger {trigger_name}: {', '.join(missing)}")
    for index, rule_id in enumerate(rule_ids):
        rules[rule_id].execution_order = index
    db.commit()
    return sorted(rules.values(), key=lambda item: item.execution_order)


@workflow_operation("automation_create_action")
def create_action(
    db: Session,
    actor: Actor,
    rule_id: UUID,
    *,
    name: str,
    action_type: str,
    configuration: dict[str, Any],
    is_enabled: bool = True,
    execution_order: int | None = None,
) -> AutomationAction:
    _require_automation_admin(actor)
    _get_rule(db, rule_id)
    _validate_action_configuration(action_type, configuration)
    if execution_order is None:
        current_max = db.execute(
            select(func.max(AutomationAction.execution_order)).where(AutomationAction.rule_id == rule_id)
        ).scalar_one_or_none()
        execution_order = (current_max + 1) if current_max is not None else 0

    action = AutomationAction(
        rule_id=rule_id,
        name=name,
        action_type=action_type,
        configuration_json=configuration,
        is_enabled=is_enabled,
        execution_order=execution_order,
    )
    db.add(action)
    db.commit()
    db.refresh(action)
    logger.info("automation_action_created action_id=%s rule_id=%s type=%s", action.id, rule_id, action_type)
    return action


@workflow_operation("automation_update_action")
def update_action(db: Session, actor: Actor, action_id: UUID, patch: dict[str, Any]) -> AutomationAction:
    _require_automation_admin(actor)
    action = _get_action(db, action_id)
    unknown = set(patch) - _ACTION_FIELDS
    if unknown:
        raise WorkflowValidationError(f"Unsupported action fields: {', '.join(sorted(unknown))}")

    if patch.get("configuration") is not None:
        _validate_action_configuration(action.action_type, patch["configuration"])
        action.configuration_json = patch["configuration"]
    for field_name in ("name", "is_enabled", "execution_order"):
        if field_name in patch and patch[field_name] is not None:
            setattr(action, field_name, patch[field_name])
    db.commit()
    db.refresh(action)
    return action


@workflow_operation("automation_delete_action")
def delete_action(db: Session, actor: Actor, action_id: UUID) -> dict[str, str]:
    _require_automation_admin(actor)
    action = _get_action(db, action_id)
    db.delete(action)
    db.commit()
    return {"id": str(action_id)}


@workflow_operation("automation_get_logs")
def get_logs(
    db: Session,
    actor: Actor,
    *,
    trigger_name: str | None = None,
    rule_id: UUID | None = None,
    status: str | None = None,
    limit: int = 100,
) -> list[AutomationLog]:
    _require_automation_admin(actor)
    if status is not None and status not in {value.value for value in AutomationLogStatus}:
        raise WorkflowValidationError(f"Unsupported log status: {status}")

    statement = select(AutomationLog)
    if trigger_name:
        statement = statement.where(AutomationLog.trigger_name == trigger_name)
    if rule_id:
        statement = statement.where(AutomationLog.rule_id == rule_id)
    if status:
        statement = statement.where(AutomationLog.status == status)
    statement = statement.order_by(AutomationLog.executed_at.desc()).limit(max(1, min(limit, MAX_LOG_LIMIT)))
    return list(db.execute(statement).scalars().all())


def _test_parameters(db: Session, trigger_name: str, casting_id: UUID | None) -> dict[str, Any]:
    definition = require_trigger_definition(trigger_name)
    parameters = dict(definition.example_values)
    if casting_id is None or trigger_name == TriggerName.CREATOR_SIGNED_UP:
        return parameters

    casting = db.get(Casting, casting_id)
    if casting is None:
        raise NotFoundError("Casting not found")
    parameters.update(load_casting_snapshot(db, casting).trigger_parameters())
    if trigger_name == TriggerName.CASTING_STATUS_CHANGED:
        parameters["newStatus"] = casting.status
    return parameters


@workflow_operation("automation_test_trigger")
def run_test_automation(
    db: Session,
    actor: Actor,
    trigger_name: str,
    *,
    casting_id: UUID | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    admin = _require_automation_admin(actor)
    parameters = {**_test_parameters(db, trigger_name, casting_id), **(overrides or {})}
    summary = trigger_automation(db, trigger_name, parameters, is_test=True, executed_by=admin.user_id)
    db.commit()
    return {**summary.to_dict(), "parameters": {**parameters, "appUrl": settings.app_url}}
