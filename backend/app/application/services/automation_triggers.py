from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate

from app.application.services.condition_evaluator import ConditionOperator, operators_for_type
from app.application.services.operation_result import NotFoundError, WorkflowValidationError
from app.domain.models.casting import CastingStatus


class TriggerName(StrEnum):
    CASTING_APPROVED = "casting_approved"
    CASTING_INVITATION_ACCEPTED = "casting_invitation_accepted"
    CASTING_STATUS_CHANGED = "casting_status_changed"
    CREATOR_SIGNED_UP = "creator_signed_up"


BRIEFING_READINESS_VALUES = ("ready", "not_ready")
CASTING_STATUS_VALUES = tuple(status.value for status in CastingStatus)

_JSON_TYPES = {"string": "string", "number": "number", "boolean": "boolean"}


@dataclass(frozen=True)
class TriggerParameter:
    name: str
    type: str
    description: str
    possible_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class TriggerDefinition:
    name: str
    description: str
    parameters: tuple[TriggerParameter, ...]
    example_values: dict[str, Any] = field(default_factory=dict)

    def parameter(self, name: str) -> TriggerParameter | None:
        for item in self.parameters:
            if item.name == name:
                return item
        return None

    def json_schema(self) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        for item in self.parameters:
            spec: dict[str, Any] = {"type": [_JSON_TYPES[item.type], "null"]}
            if item.possible_values:
                spec["enum"] = [*item.possible_values, None]
            properties[item.name] = spec
        return {"type": "object", "properties": properties}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {
                    "name": item.name,
                    "type": item.type,
                    "description": item.description,
                    "possible_values": list(item.possible_values),
                    "operators": [operator.value for operator in operators_for_type(item.type)],
                }
                for item in self.parameters
            ],
            "example_values": dict(self.example_values),
        }


_CASTING_ID = TriggerParameter("castingId", "string", "Unique identifier for the casting")
_CASTING_TITLE = TriggerParameter("castingTitle", "string", "Title of the casting")
_CLIENT_NAME = TriggerParameter("clientName", "string", "Name of the client company")
_COMPENSATION = TriggerParameter("compensation", "number", "Compensation amount for the casting")
_TOTAL_INVITED = TriggerParameter("totalInvited", "number", "Total number of creators invited")
_TOTAL_ACCEPTED = TriggerParameter("totalAccepted", "number", "Total number of creators who accepted")
_CHOSEN_COUNT = TriggerParameter("chosenCreatorsCount", "number", "Number of creators selected by the client")
_BRIEFING_STATUS = TriggerParameter(
    "briefingStatus", "string", "Briefing readiness: ready or not_ready", BRIEFING_READINESS_VALUES
)
_BRIEFING_COUNT = TriggerParameter("briefingCount", "number", "Number of briefings linked to the casting")
_APP_URL = TriggerParameter("appUrl", "string", "Base URL of the platform for building links")

_EXAMPLE_CASTING = {
    "castingId": "123e4567-e89b-12d3-a456-426614174000",
    "castingTitle": "Summer Fashion Campaign",
    "clientName": "Fashion Brand XYZ",
    "compensation": 500,
    "briefingCount": 2,
    "appUrl": "https://app.example.com",
}

AUTOMATION_TRIGGERS: dict[str, TriggerDefinition] = {
    definition.name: definition
    for definition in (
        TriggerDefinition(
            name=TriggerName.CASTING_APPROVED.value,
            description="A client approved a casting and selected its final creators",
            parameters=(
                _CASTING_ID,
                _CASTING_TITLE,
                _CLIENT_NAME,
                _CHOSEN_COUNT,
                _BRIEFING_STATUS,
                _BRIEFING_COUNT,
                TriggerParameter("approvedBy", "string", "Email of the user who approved the casting"),
                _APP_URL,
            ),
            example_values={
                **_EXAMPLE_CASTING,
                "chosenCreatorsCount": 3,
                "briefingStatus": "ready",
                "approvedBy": "client@example.com",
            },
        ),
        TriggerDefinition(
            name=TriggerName.CASTING_INVITATION_ACCEPTED.value,
            description="A creator accepted an invitation to a casting",
            parameters=(
                _CASTING_ID,
                _CASTING_TITLE,
                _CLIENT_NAME,
                TriggerParameter("creatorId", "string", "Unique identifier for the creator"),
                TriggerParameter("creatorName", "string", "Name of the creator who accepted"),
                TriggerParameter("creatorEmail", "string", "Email of the creator who accepted"),
                _TOTAL_INVITED,
                _TOTAL_ACCEPTED,
                _COMPENSATION,
                _BRIEFING_STATUS,
                _BRIEFING_COUNT,
                _APP_URL,
            ),
            example_values={
                **_EXAMPLE_CASTING,
                "creatorId": "456e7890-a12b-34c5-d678-901234567890",
                "creatorName": "Jane Doe",
                "creatorEmail": "jane@example.com",
                "totalInvited": 20,
                "totalAccepted": 8,
                "briefingStatus": "not_ready",
            },
        ),
        TriggerDefinition(
            name=TriggerName.CASTING_STATUS_CHANGED.value,
            description="The status of a casting changed",
            parameters=(
                _CASTING_ID,
                _CASTING_TITLE,
                _CLIENT_NAME,
                TriggerParameter("previousStatus", "string", "Previous casting status", CASTING_STATUS_VALUES),
                TriggerParameter("newStatus", "string", "New casting status", CASTING_STATUS_VALUES),
                _CHOSEN_COUNT,
                _TOTAL_INVITED,
                _TOTAL_ACCEPTED,
                _COMPENSATION,
                _BRIEFING_STATUS,
                _BRIEFING_COUNT,
                TriggerParameter("changedBy", "string", "Email of the user who changed the status"),
                _APP_URL,
            ),
            example_values={
                **_EXAMPLE_CASTING,
                "previousStatus": "send_client_feedback",
                "newStatus": "approved_by_client",
                "chosenCreatorsCount": 3,
                "totalInvited": 20,
                "totalAccepted": 12,
                "briefingStatus": "ready",
                "changedBy": "team@example.com",
            },
        ),
        TriggerDefinition(
            name=TriggerName.CREATOR_SIGNED_UP.value,
            description="A new creator signed up and completed their profile",
            parameters=(
                TriggerParameter("creatorId", "string", "Unique identifier for the creator"),
                TriggerParameter("creatorName", "string", "Full name of the creator"),
                TriggerParameter("creatorEmail", "string", "Email address of the creator"),
                TriggerParameter("primaryLanguage", "string", "Primary language of the creator"),
                TriggerParameter("hasIntroductionVideo", "boolean", "Whether an introduction video was uploaded"),
                TriggerParameter(
                    "signupSource", "string", "Source of the signup", ("import_invitation", "organic")
                ),
                TriggerParameter("signupDate", "string", "ISO timestamp of the signup"),
                _APP_URL,
            ),
            example_values={
                "creatorId": "456e7890-a12b-34c5-d678-901234567890",
                "creatorName": "Jane Doe",
                "creatorEmail": "jane@example.com",
                "primaryLanguage": "en",
                "hasIntroductionVideo": False,
                "signupSource": "organic",
                "signupDate": "2024-01-15T14:30:00+00:00",
                "appUrl": "https://app.example.com",
            },
        ),
    )
}


def get_trigger_definition(trigger_name: str) -> TriggerDefinition | None:
    return AUTOMATION_TRIGGERS.get(trigger_name)


def require_trigger_definition(trigger_name: str) -> TriggerDefinition:
    definition = get_trigger_definition(trigger_name)
    if definition is None:
        raise NotFoundError(f"Unknown automation trigger: {trigger_name}")
    return definition


def list_triggers() -> list[TriggerDefinition]:
    return list(AUTOMATION_TRIGGERS.values())


def validate_trigger_parameters(definition: TriggerDefinition, parameters: dict[str, Any]) -> str | None:
    try:
        validate(instance=parameters, schema=definition.json_schema())
    except JsonSchemaValidationError as exc:
        return exc.message
    return None


def validate_condition_group(definition: TriggerDefinition, conditions: dict[str, Any] | None) -> dict[str, Any]:
    if not conditions:
        return {"all": [], "any": []}
    if not isinstance(conditions, dict):
        raise WorkflowValidationError("Conditions must be an object with 'all' and 'any' lists")

    unknown_keys = set(conditions) - {"all", "any"}
    if unknown_keys:
        raise WorkflowValidationError(f"Unsupported condition groups: {', '.join(sorted(unknown_keys))}")

    normalized: dict[str, Any] = {"all": [], "any": []}
    for group_name in ("all", "any"):
        items = conditions.get(group_name) or []
        if not isinstance(items, list):
            raise WorkflowValidationError(f"Condition group '{group_name}' must be a list")
        for item in items:
            field_name = item.get("field") if isinstance(item, dict) else None
            parameter = definition.parameter(field_name) if field_name else None
            if parameter is None:
                raise WorkflowValidationError(
                    f"Unknown field '{field_name}' for trigger {definition.name}"
                )
            operator = item.get("operator")
            allowed = operators_for_type(parameter.type)
            if operator not in {value.value for value in ConditionOperator}:
                raise WorkflowValidationError(f"Unknown operator '{operator}'")
            if operator not in allowed:
                raise WorkflowValidationError(
                    f"Operator '{operator}' is not allowed for {parameter.type} field '{field_name}'"
                )
            normalized[group_name].append(
                {"field": field_name, "operator": operator, "value": item.get("value")}
            )
    return normalized
