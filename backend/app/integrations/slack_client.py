import logging
from typing import Any

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class SlackApiError(RuntimeError):
    def __init__(self, error_code: str, method: str) -> None:
        super().__init__(f"Slack API {method} failed: {error_code}")
        self.error_code = error_code
        self.method = method


class SlackClient:
    def __init__(self, token: str | None = None, *, base_url: str | None = None, timeout: float | None = None) -> None:
        self.token = token if token is not None else settings.slack_bot_token
        self.base_url = (base_url or settings.slack_api_base_url).rstrip("/")
        self.timeout = timeout or settings.slack_timeout_seconds

    def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.token:
            raise SlackApiError("not_configured", method)
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                f"{self.base_url}/{method}",
                headers={"Authorization": f"Bearer {self.token}"},
                json=payload,
            )
        if response.status_code >= 400:
            raise SlackApiError(f"http_{response.status_code}", method)
        body = response.json()
        if not body.get("ok"):
            raise SlackApiError(str(body.get("error") or "unknown_error"), method)
        return body

    def post_message(self, channel: str, text: str, blocks: list[dict[str, Any]] | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            payload["blocks"] = blocks
        return self._call("chat.postMessage", payload)

    def join_channel(self, channel: str) -> None:
        try:
            self._call("conversations.join", {"channel": channel})
        except SlackApiError as exc:
            if exc.error_code == "already_in_channel":
                return
            raise
        logger.info("slack_channel_joined channel=%s", channel)


def get_slack_client() -> SlackClient:
    return SlackClient()
