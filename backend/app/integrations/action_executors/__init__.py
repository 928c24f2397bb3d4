from app.integrations.action_executors.base_executor import (
    ActionConfigurationError,
    ActionContext,
    ActionExecutionResult,
    ActionResolutionError,
    BaseActionExecutor,
)
from app.integrations.action_executors.factory import get_action_executor, list_registered_action_types

__all__ = [
    "ActionConfigurationError",
    "ActionContext",
    "ActionExecutionResult",
    "ActionResolutionError",
    "BaseActionExecutor",
    "get_action_executor",
    "list_registered_action_types",
]
