"""Tests for the Slack webhook notifier and the LINE push client."""

from __future__ import annotations

import json
from pathlib import Path
import sys
from types import SimpleNamespace

import httpx
import pytest
from slack_sdk.webhook import client as slack_webhook_client
from structlog.testing import capture_logs

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kintone_bridge.errors import UpstreamUnavailable  # noqa: E402
from kintone_bridge.notifications import (  # noqa: E402
    LINE_PUSH_URL,
    LinePushClient,
    SlackWebhookNotifier,
    build_cancel_message,
    build_upload_message,
)


class DummyWebhookClient:
    def __init__(self, status_code: int = 200, body: str = "ok", error: Exception | None = None):
        self.calls = []
        self.status_code = status_code
        self.body = body
        self.error = error

    def send(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(status_code=self.status_code, body=self.body)


def test_requires_url_or_client():
    with pytest.raises(ValueError):
        SlackWebhookNotifier()


def test_send_uses_underlying_client():
    dummy = DummyWebhookClient()
    notifier = SlackWebhookNotifier(client=dummy)

    notifier.send(text="hello", blocks=[{"type": "section"}])

    assert dummy.calls == [{"text": "hello", "blocks": [{"type": "section"}]}]
    assert notifier.client is dummy


def test_send_without_blocks_passes_none():
    dummy = DummyWebhookClient()

    SlackWebhookNotifier(client=dummy).send(text="hello")

    assert dummy.calls == [{"text": "hello", "blocks": None}]


def test_send_non_200_raises_with_body_and_logs():
    dummy = DummyWebhookClient(status_code=404, body="no_service")

    with capture_logs() as logs:
        with pytest.raises(UpstreamUnavailable) as err:
            SlackWebhookNotifier(client=dummy).send(text="hello")

    assert err.value.details == "no_service"
    failures = [entry for entry in logs if entry.get("event") == "slack_notify_failed"]
    assert failures and failures[0]["status_code"] == 404


def test_send_network_error_raises_upstream_unavailable():
    dummy = DummyWebhookClient(error=OSError("network unreachable"))

    with pytest.raises(UpstreamUnavailable):
        SlackWebhookNotifier(client=dummy).send(text="hello")


def test_send_from_url_makes_a_single_attempt_on_connection_reset(monkeypatch):
    for name in ("HTTPS_PROXY", "https_proxy", "HTTP_PROXY", "http_proxy"):
        monkeypatch.delenv(name, raising=False)
    attempts = []

    def refuse(*args, **kwargs):
        attempts.append(args)
        raise ConnectionResetError("connection reset by peer")

    monkeypatch.setattr(slack_webhook_client, "urlopen", refuse)
    notifier = SlackWebhookNotifier(url="https://hooks.slack.com/services/T000/B000/XXXX")

    with pytest.raises(UpstreamUnavailable):
        notifier.send(text="hello")

    assert len(attempts) == 1


def test_build_upload_message_links_record():
    message = build_upload_message(
        file_name="請求書.pdf",
        user_name=None,
        company_name="Acme",
        planned_date="2024-05-01",
        record_url="https://example.cybozu.com/k/20/show#record=42",
    )

    section, actions = message["blocks"]
    assert "Invoice uploaded" in message["text"]
    assert "*File*: 請求書.pdf" in section["text"]["text"]
    assert "*Sender*: Unknown user" in section["text"]["text"]
    assert "*Company*: Acme" in section["text"]["text"]
    assert "*Planned date*: 2024-05-01" in section["text"]["text"]
    assert actions["elements"][0]["url"] == "https://example.cybozu.com/k/20/show#record=42"


def test_build_upload_message_marks_missing_values():
    message = build_upload_message(
        file_name="a.pdf",
        user_name="Hanako",
        company_name=None,
        planned_date="",
        record_url="https://example.cybozu.com/k/20/show#record=1",
    )

    text = message["blocks"][0]["text"]["text"]
    assert "*Sender*: Hanako" in text
    assert "*Company*: Unknown" in text
    assert "*Planned date*: -" in text


def test_line_push_sends_text_message():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    client = LinePushClient(access_token="line-token", http=httpx.Client(transport=httpx.MockTransport(handler)))
    client.push_text(to="U-target", text="hi")

    request = seen[0]
    assert str(request.url) == LINE_PUSH_URL
    assert request.headers["Authorization"] == "Bearer line-token"
    assert json.loads(request.content) == {"to": "U-target", "messages": [{"type": "text", "text": "hi"}]}


def test_line_push_failure_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Authentication failed"})

    client = LinePushClient(access_token="bad", http=httpx.Client(transport=httpx.MockTransport(handler)))

    with pytest.raises(UpstreamUnavailable) as err:
        client.push_text(to="U-target", text="hi")

    assert "Authentication failed" in err.value.details


def test_build_cancel_message_lists_identifiers():
    text = build_cancel_message(company_id="C-1", record_id="42", uid="U-1")

    assert text.splitlines() == [
        "[Cancel request]",
        "companyId: C-1",
        "recordId: 42",
        "requested by: U-1",
    ]
