"""Incoming-webhook notifier and Block Kit builders for upload events."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

import structlog
from slack_sdk.errors import SlackRequestError
from slack_sdk.webhook import WebhookClient

from ..errors import UpstreamUnavailable

_MISSING_VALUE = "-"
UNKNOWN_USER = "Unknown user"
UNKNOWN_COMPANY = "Unknown"


class SlackWebhookNotifier:
    """Encapsulate WebhookClient interactions for easier testing."""

    def __init__(
        self,
        *,
        url: str | None = None,
        client: WebhookClient | None = None,
        timeout_seconds: float = 15,
    ) -> None:
        if client is None and not url:
            raise ValueError("Either an instantiated client or a webhook URL must be provided.")

        # A resent webhook post shows up as a duplicate message, so never retry.
        self._client = client or WebhookClient(
            url, timeout=max(1, int(timeout_seconds)), retry_handlers=[]
        )

    @property
    def client(self) -> WebhookClient:
        return self._client

    def send(self, *, text: str, blocks: Sequence[Mapping[str, Any]] | None = None) -> None:
        """Post a message; raise UpstreamUnavailable unless Slack answers 200."""

        log = structlog.get_logger().bind(operation="slack_webhook")
        try:
            response = self._client.send(text=text, blocks=list(blocks) if blocks else None)
        except (SlackRequestError, OSError) as exc:
            log.error("slack_notify_failed", error=str(exc))
            raise UpstreamUnavailable(f"chat webhook request failed: {exc}") from exc

        if response.status_code != 200:
            log.error("slack_notify_failed", status_code=response.status_code, body=response.body)
            raise UpstreamUnavailable(
                f"chat webhook returned status {response.status_code}", details=response.body
            )
        log.info("slack_notified")


def _line(label: str, value: str | None) -> str:
    value = (value or "").strip()
    return f"*{label}*: {value or _MISSING_VALUE}"


def build_upload_message(
    *,
    file_name: str,
    user_name: str | None,
    company_name: str | None,
    planned_date: str | None,
    record_url: str,
) -> Dict[str, Any]:
    """Build the text and blocks announcing an invoice upload."""

    lines: List[str] = [
        ":paperclip: *Invoice uploaded*",
        _line("Sender", user_name or UNKNOWN_USER),
        _line("Company", company_name or UNKNOWN_COMPANY),
        _line("Planned date", planned_date),
        _line("File", file_name),
    ]
    blocks: List[Dict[str, Any]] = [
        {"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(lines)}},
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Open record", "emoji": True},
                    "url": record_url,
                }
            ],
        },
    ]
    return {"text": ":paperclip: Invoice uploaded", "blocks": blocks}
