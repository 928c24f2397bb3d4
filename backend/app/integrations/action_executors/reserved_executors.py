from typing import Any

from app.integrations.action_executors.base_executor import (
    ActionContext,
    ActionExecutionResult,
    BaseActionExecutor,
)


class EmailActionExecutor(BaseActionExecutor):
    action_type = "email"

    def execute(self, configuration: dict[str, Any], context: ActionContext) -> ActionExecutionResult:
        return ActionExecutionResult.failed("Email actions are not yet implemented")


class WebhookActionExecutor(BaseActionExecutor):
    action_type = "webhook"

    def execute(self, configuration: dict[str, Any], context: ActionContext) -> ActionExecutionResult:
        return ActionExecutionResult.failed("Webhook actions are not yet implemented")
