"""Outbound notification channels."""

from .line import LINE_PUSH_URL, LinePushClient, build_cancel_message
from .slack import SlackWebhookNotifier, build_upload_message

__all__ = [
    "LINE_PUSH_URL",
    "LinePushClient",
    "build_cancel_message",
    "SlackWebhookNotifier",
    "build_upload_message",
]
