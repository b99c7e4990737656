"""LINE Messaging API push client."""

from __future__ import annotations

import httpx
import structlog

from ..errors import UpstreamUnavailable

LINE_PUSH_URL = "https://api.line.me/v2/bot/message/push"


class LinePushClient:
    def __init__(self, *, access_token: str, http: httpx.Client, endpoint: str = LINE_PUSH_URL) -> None:
        self._token = access_token.strip()
        self._http = http
        self._endpoint = endpoint

    def push_text(self, *, to: str, text: str) -> None:
        log = structlog.get_logger().bind(operation="line_push")
        payload = {"to": to, "messages": [{"type": "text", "text": text}]}
        headers = {"Authorization": f"Bearer {self._token}"}
        try:
            resp = self._http.post(self._endpoint, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            log.error("line_push_failed", error=str(exc))
            raise UpstreamUnavailable(f"push message request failed: {exc}") from exc
        if not resp.is_success:
            log.error("line_push_failed", status_code=resp.status_code)
            raise UpstreamUnavailable(
                f"push message failed with status {resp.status_code}", details=resp.text
            )
        log.info("line_pushed")


def build_cancel_message(*, company_id: str, record_id: str, uid: str) -> str:
    return f"[Cancel request]\ncompanyId: {company_id}\nrecordId: {record_id}\nrequested by: {uid}"
