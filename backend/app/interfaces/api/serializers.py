from datetime import datetime
from typing import Any

from app.application.services.casting_snapshot import CastingSnapshot
from app.domain.models.automation_log import AutomationLog
from app.domain.models.automation_rule import AutomationAction, AutomationRule
from app.domain.models.briefing import Briefing, CastingBriefingLink
from app.domain.models.casting import Casting, CastingInvitation, CastingSelection
from app.domain.models.creator import Creator
from app.domain.models.creator_submission import CreatorSubmission


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _str_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


def serialize_casting(item: Casting) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "client_id": str(item.client_id),
        "title": item.title,
        "status": item.status,
        "max_creators": item.max_creators,
        "compensation": float(item.compensation) if item.compensation is not None else None,
        "created_by": _str_or_none(item.created_by),
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def serialize_casting_snapshot(snapshot: CastingSnapshot) -> dict[str, Any]:
    return {
        **serialize_casting(snapshot.casting),
        "client_name": snapshot.client_name,
        "total_invited": snapshot.total_invited,
        "total_accepted": snapshot.total_accepted,
        "social_bubble_selected_count": snapshot.social_bubble_selected_count,
        "client_selected_count": snapshot.client_selected_count,
        "briefing_count": snapshot.briefing_count,
        "briefing_status": snapshot.briefing_status,
    }


def serialize_creator(item: Creator) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "first_name": item.first_name,
        "last_name": item.last_name,
        "full_name": item.full_name,
        "email": item.email,
        "primary_language": item.primary_language,
    }


def serialize_invitation(item: CastingInvitation) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "casting_id": str(item.casting_id),
        "creator_id": str(item.creator_id),
        "status": item.status,
        "rejection_reason": item.rejection_reason,
        "invited_at": _iso(item.invited_at),
        "responded_at": _iso(item.responded_at),
    }


def serialize_selection(item: CastingSelection) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "casting_id": str(item.casting_id),
        "creator_id": str(item.creator_id),
        "selected_by": _str_or_none(item.selected_by),
        "selected_by_role": item.selected_by_role,
        "created_at": _iso(item.created_at),
    }


def serialize_briefing(item: Briefing) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "client_id": str(item.client_id),
        "title": item.title,
        "content": item.content or {},
        "status": item.status,
        "created_by": _str_or_none(item.created_by),
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def serialize_briefing_link(item: CastingBriefingLink) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "casting_id": str(item.casting_id),
        "briefing_id": str(item.briefing_id),
        "linked_by": _str_or_none(item.linked_by),
        "linked_at": _iso(item.linked_at),
    }


def serialize_submission(item: CreatorSubmission) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "casting_id": str(item.casting_id),
        "creator_id": str(item.creator_id),
        "submission_status": item.submission_status,
        "content_upload_link": item.content_upload_link,
        "submitted_at": _iso(item.submitted_at),
        "feedback": item.feedback,
        "feedback_by": _str_or_none(item.feedback_by),
        "feedback_at": _iso(item.feedback_at),
        "approved_by": _str_or_none(item.approved_by),
        "approved_at": _iso(item.approved_at),
        "drive_folder_id": item.drive_folder_id,
        "drive_folder_url": item.drive_folder_url,
        "drive_folder_created_at": _iso(item.drive_folder_created_at),
    }


def serialize_rule(item: AutomationRule) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "trigger_name": item.trigger_name,
        "name": item.name,
        "description": item.description,
        "conditions": item.conditions_json or {},
        "execution_order": item.execution_order,
        "is_enabled": item.is_enabled,
        "created_by": _str_or_none(item.created_by),
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def serialize_action(item: AutomationAction) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "rule_id": str(item.rule_id),
        "name": item.name,
        "action_type": item.action_type,
        "configuration": item.configuration_json or {},
        "execution_order": item.execution_order,
        "is_enabled": item.is_enabled,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def serialize_automation_log(item: AutomationLog) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "trigger_name": item.trigger_name,
        "rule_id": _str_or_none(item.rule_id),
        "action_id": _str_or_none(item.action_id),
        "status": item.status,
        "parameters": item.parameters_json or {},
        "error_message": item.error_message,
        "executed_by": _str_or_none(item.executed_by),
        "executed_at": _iso(item.executed_at),
    }
