"""Thin wrapper around the record-store (kintone) REST API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx
import structlog
from pydantic import ValidationError

from ..errors import NotFound, UpstreamUnavailable
from ..uploads.uploader import API_TOKEN_HEADER, FileReference, upload_file
from .models import Record, RecordEnvelope, RecordList

RECORDS_PATH = "/k/v1/records.json"
RECORD_PATH = "/k/v1/record.json"
FILE_PATH = "/k/v1/file.json"


@dataclass(frozen=True)
class AppCredentials:
    """An app id and the API token scoped to it."""

    app_id: str
    api_token: str


def _error_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class RecordStoreClient:
    """Encapsulate record-store calls so handlers can be tested with a fake transport."""

    def __init__(self, *, base_url: str, http: httpx.Client) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def record_url(self, app: AppCredentials, record_id: str) -> str:
        """Browser URL of a record, used in notifications."""

        return f"{self._base_url}/k/{app.app_id}/show#record={record_id}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        app: AppCredentials,
        params: Mapping[str, str] | None = None,
        json: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        headers = {API_TOKEN_HEADER: app.api_token, "Accept": "application/json"}
        try:
            return self._http.request(method, self._url(path), headers=headers, params=params, json=json)
        except httpx.HTTPError as exc:
            structlog.get_logger().error(
                "record_store_unreachable", method=method, path=path, error=str(exc)
            )
            raise UpstreamUnavailable(f"record store request failed: {exc}") from exc

    def get_records(self, app: AppCredentials, query: str) -> RecordList:
        """Run *query* against an app and decode the matching records."""

        resp = self._request("GET", RECORDS_PATH, app=app, params={"app": app.app_id, "query": query})
        if not resp.is_success:
            raise UpstreamUnavailable(
                f"record query failed with status {resp.status_code}", details=_error_body(resp)
            )
        try:
            return RecordList.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamUnavailable("record query returned a malformed body", details=resp.text) from exc

    def get_record(self, app: AppCredentials, record_id: str) -> Record:
        resp = self._request("GET", RECORD_PATH, app=app, params={"app": app.app_id, "id": record_id})
        if resp.status_code == 404:
            raise NotFound(f"record {record_id} not found", details=_error_body(resp))
        if not resp.is_success:
            raise UpstreamUnavailable(
                f"record fetch failed with status {resp.status_code}", details=_error_body(resp)
            )
        try:
            return RecordEnvelope.model_validate(resp.json()).record
        except (ValueError, ValidationError) as exc:
            raise UpstreamUnavailable("record fetch returned a malformed body", details=resp.text) from exc

    def update_record(
        self, app: AppCredentials, record_id: str, fields: Mapping[str, Any]
    ) -> str | None:
        """Write *fields* (code -> value) to a record and return the new revision."""

        body = {
            "app": app.app_id,
            "id": record_id,
            "record": {code: {"value": value} for code, value in fields.items()},
        }
        resp = self._request("PUT", RECORD_PATH, app=app, json=body)
        if not resp.is_success:
            structlog.get_logger().error(
                "record_update_failed", record_id=record_id, status_code=resp.status_code
            )
            raise UpstreamUnavailable(
                f"record update failed with status {resp.status_code}", details=_error_body(resp)
            )
        try:
            revision = resp.json().get("revision")
        except (ValueError, AttributeError):
            return None
        return revision if isinstance(revision, str) else None

    def upload_file(
        self,
        app: AppCredentials,
        *,
        filename: str | None,
        mime_type: str | None,
        payload: bytes,
    ) -> FileReference:
        return upload_file(
            self._http,
            url=self._url(FILE_PATH),
            api_token=app.api_token,
            filename=filename,
            mime_type=mime_type,
            payload=payload,
        )
