"""Delegate file attachment to a no-code automation webhook.

Selected with ``ATTACH_BACKEND=automation``. The scenario behind the webhook
owns the upload and the record update; this module only forwards the file
and relays the scenario's answer.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from .errors import UpstreamUnavailable
from .uploads.filenames import sanitize_filename
from .uploads.multipart import DEFAULT_MIME_TYPE, MultipartPart


class AutomationWebhookClient:
    def __init__(self, *, url: str, token: str, http: httpx.Client) -> None:
        self._url = url
        self._token = token.strip()
        self._http = http

    def _headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def forward_attachment(self, record_id: str, part: MultipartPart) -> dict[str, Any]:
        filename = sanitize_filename(part.filename)
        log = structlog.get_logger().bind(operation="automation_attach", record_id=record_id)
        files = {"file": (filename, part.payload, part.mime_type or DEFAULT_MIME_TYPE)}
        data = {"recordId": record_id, "fileName": filename}
        try:
            resp = self._http.post(self._url, headers=self._headers(), data=data, files=files)
        except httpx.HTTPError as exc:
            log.error("automation_attach_failed", error=str(exc))
            raise UpstreamUnavailable(f"automation webhook request failed: {exc}") from exc

        try:
            result: Any = resp.json()
        except ValueError:
            result = resp.text
        if not resp.is_success:
            log.error("automation_attach_failed", status_code=resp.status_code)
            raise UpstreamUnavailable(
                f"automation webhook failed with status {resp.status_code}", details=result
            )
        log.info("automation_attach_forwarded", status_code=resp.status_code)
        return {"ok": True, "recordId": record_id, "backend": "automation", "result": result}
