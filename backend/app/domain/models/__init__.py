from app.domain.models.automation_log import AutomationLog
from app.domain.models.automation_rule import AutomationAction, AutomationRule
from app.domain.models.briefing import Briefing, CastingBriefingLink
from app.domain.models.casting import Casting, CastingInvitation, CastingSelection
from app.domain.models.client import Client
from app.domain.models.creator import Creator
from app.domain.models.creator_submission import CreatorSubmission
from app.domain.models.user import User

__all__ = [
    "AutomationAction",
    "AutomationLog",
    "AutomationRule",
    "Briefing",
    "Casting",
    "CastingBriefingLink",
    "CastingInvitation",
    "CastingSelection",
    "Client",
    "Creator",
    "CreatorSubmission",
    "User",
]
