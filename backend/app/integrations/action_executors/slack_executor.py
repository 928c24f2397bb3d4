import logging
from typing import Any

import httpx

from app.application.services.parameter_substitution import (
    TEST_PREFIX,
    substitute_parameters,
    substitute_parameters_in_json,
)
from app.integrations.action_executors.base_executor import (
    ActionConfigurationError,
    ActionContext,
    ActionExecutionResult,
    BaseActionExecutor,
)
from app.integrations.slack_client import SlackApiError, SlackClient, get_slack_client

logger = logging.getLogger(__name__)

NOT_IN_CHANNEL = "not_in_channel"


class SlackNotificationExecutor(BaseActionExecutor):
    action_type = "slack_notification"

    def validate_configuration(self, configuration: dict[str, Any]) -> None:
        if not str(configuration.get("channel_id") or "").strip():
            raise ActionConfigurationError("Slack channel_id is required")
        if configuration.get("use_blocks"):
            if not configuration.get("blocks_template"):
                raise ActionConfigurationError("blocks_template is required when use_blocks is set")
        elif not str(configuration.get("message_template") or "").strip():
            raise ActionConfigurationError("message_template is required")

    def _build_message(
        self, configuration: dict[str, Any], context: ActionContext
    ) -> tuple[str, list[dict[str, Any]] | None]:
        if configuration.get("use_blocks") and configuration.get("blocks_template"):
            blocks = substitute_parameters_in_json(configuration["blocks_template"], context.parameters)
            if isinstance(blocks, dict):
                blocks = blocks.get("blocks") or [blocks]
            fallback = f"Automation notification from {context.trigger_name}"
            text = f"{TEST_PREFIX}{fallback}" if context.is_test else fallback
            return text, blocks
        text = substitute_parameters(
            configuration.get("message_template") or "", context.parameters, is_test=context.is_test
        )
        return text, None

    def _post(self, client: SlackClient, channel_id: str, text: str, blocks: list[dict[str, Any]] | None) -> None:
        try:
            client.post_message(channel_id, text, blocks)
            return
        except SlackApiError as exc:
            if exc.error_code != NOT_IN_CHANNEL:
                raise
        logger.info("slack_not_in_channel_joining channel=%s", channel_id)
        client.join_channel(channel_id)
        client.post_message(channel_id, text, blocks)

    def execute(self, configuration: dict[str, Any], context: ActionContext) -> ActionExecutionResult:
        try:
            self.validate_configuration(configuration)
            channel_id = str(configuration["channel_id"]).strip()
            text, blocks = self._build_message(configuration, context)
            self._post(get_slack_client(), channel_id, text, blocks)
        except ActionConfigurationError as exc:
            return ActionExecutionResult.failed(str(exc))
        except SlackApiError as exc:
            logger.warning(
                "slack_action_failed trigger=%s method=%s error_code=%s",
                context.trigger_name,
                exc.method,
                exc.error_code,
            )
            return ActionExecutionResult.failed(str(exc))
        except httpx.HTTPError as exc:
            logger.warning("slack_action_transport_error trigger=%s reason=%s", context.trigger_name, exc)
            return ActionExecutionResult.failed(f"Slack transport error: {exc}")
        return ActionExecutionResult(success=True, metadata={"channel_id": channel_id})
