"""POST a file to the record store's staging endpoint and return its key."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx
import structlog

from ..errors import UploadFailed
from .multipart import MultipartPart, build_multipart

API_TOKEN_HEADER = "X-Cybozu-API-Token"


@dataclass(frozen=True)
class FileReference:
    """Opaque file key issued by the record store."""

    file_key: str

    def to_payload(self) -> dict[str, str]:
        return {"fileKey": self.file_key}

    @classmethod
    def from_payload(cls, entry: Mapping[str, Any]) -> "FileReference | None":
        key = entry.get("fileKey")
        if isinstance(key, str) and key:
            return cls(file_key=key)
        return None


def upload_file(
    http: httpx.Client,
    *,
    url: str,
    api_token: str,
    filename: str | None,
    mime_type: str | None,
    payload: bytes,
) -> FileReference:
    """Upload *payload* once; failures are raised, never retried."""

    log = structlog.get_logger().bind(operation="upload_file", size=len(payload))
    multipart = build_multipart(MultipartPart(payload=payload, filename=filename, mime_type=mime_type))
    headers = {API_TOKEN_HEADER: api_token, "Content-Type": multipart.content_type}

    try:
        resp = http.post(url, headers=headers, content=multipart.body)
    except httpx.HTTPError as exc:
        log.error("upload_transport_failed", error=str(exc))
        raise UploadFailed(f"record store file upload failed: {exc}") from exc

    try:
        data = resp.json()
    except ValueError:
        data = None

    ref = FileReference.from_payload(data) if isinstance(data, dict) else None
    if not resp.is_success or ref is None:
        log.error("upload_rejected", status_code=resp.status_code)
        raise UploadFailed(
            f"record store file upload failed with status {resp.status_code}",
            details=data if data is not None else resp.text,
        )
    return ref
