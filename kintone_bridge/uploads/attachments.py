"""Attach an uploaded file to a record's attachment field.

One request moves through ``RECEIVED -> UPLOADING -> UPLOADED -> RECONCILING
-> ATTACHED``; it ends in ``UPLOAD_FAILED`` or ``ATTACH_FAILED`` otherwise.
Neither failure is retried.

The record store has no way to discard a staged file, so a file whose
record update fails stays orphaned in staging: attaching is at-least-once,
not exactly-once. Two concurrent appends to the same record both read the
same existing list and the later update wins; callers that need stronger
guarantees must serialise uploads per record themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping

import structlog

from ..errors import RecordUpdateFailed, UploadFailed, UpstreamUnavailable
from .multipart import MultipartPart
from .uploader import FileReference

if TYPE_CHECKING:  # pragma: no cover
    from ..records.client import AppCredentials, RecordStoreClient


class AttachMode(str, Enum):
    APPEND = "append"
    REPLACE = "replace"

    @classmethod
    def from_flag(cls, append: bool) -> "AttachMode":
        return cls.APPEND if append else cls.REPLACE


class UploadState(str, Enum):
    RECEIVED = "RECEIVED"
    UPLOADING = "UPLOADING"
    UPLOADED = "UPLOADED"
    RECONCILING = "RECONCILING"
    ATTACHED = "ATTACHED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    ATTACH_FAILED = "ATTACH_FAILED"


def _as_reference(entry: FileReference | Mapping[str, Any]) -> FileReference | None:
    if isinstance(entry, FileReference):
        return entry if entry.file_key else None
    if isinstance(entry, Mapping):
        return FileReference.from_payload(entry)
    return None


def reconcile_files(
    existing: Iterable[FileReference | Mapping[str, Any]],
    new_ref: FileReference,
    mode: AttachMode,
) -> List[FileReference]:
    """Compute the attachment field value after adding *new_ref*.

    Append keeps every existing entry that still carries a file key, in order,
    without de-duplication. Replace discards them.
    """

    if mode is AttachMode.REPLACE:
        return [new_ref]
    kept = [ref for ref in (_as_reference(entry) for entry in existing) if ref is not None]
    return [*kept, new_ref]


class AttachmentReconciler:
    """Write a recomputed attachment field back to the record store."""

    def __init__(self, client: "RecordStoreClient", app: "AppCredentials") -> None:
        self._client = client
        self._app = app

    def reconcile(
        self,
        record_id: str,
        field_code: str,
        mode: AttachMode,
        existing: Iterable[FileReference | Mapping[str, Any]],
        new_ref: FileReference,
        extra_fields: Mapping[str, Any] | None = None,
    ) -> List[FileReference]:
        files = reconcile_files(existing, new_ref, mode)
        fields: dict[str, Any] = {field_code: [ref.to_payload() for ref in files]}
        if extra_fields:
            fields.update(extra_fields)
        try:
            self._client.update_record(self._app, record_id, fields)
        except UpstreamUnavailable as exc:
            raise RecordUpdateFailed(
                f"record {record_id} attachment update failed", details=exc.details
            ) from exc
        return files


@dataclass(frozen=True)
class AttachResult:
    record_id: str
    field_code: str
    mode: AttachMode
    file_ref: FileReference
    files: List[FileReference] = field(default_factory=list)
    state: UploadState = UploadState.ATTACHED

    def to_response(self) -> dict[str, Any]:
        return {
            "ok": True,
            "recordId": self.record_id,
            "fileField": self.field_code,
            "mode": self.mode.value,
            "fileKey": self.file_ref.file_key,
        }


class AttachmentService:
    """Upload a file and attach it to one record."""

    def __init__(
        self,
        *,
        client: "RecordStoreClient",
        app: "AppCredentials",
        field_code: str,
        mode: AttachMode,
        status_fields: Mapping[str, Any] | None = None,
    ) -> None:
        self._client = client
        self._app = app
        self._field_code = field_code
        self._mode = mode
        self._status_fields = dict(status_fields or {})
        self._reconciler = AttachmentReconciler(client, app)

    def attach(self, record_id: str, part: MultipartPart) -> AttachResult:
        log = structlog.get_logger().bind(
            record_id=record_id, field=self._field_code, mode=self._mode.value
        )
        log.info("upload_state", state=UploadState.RECEIVED.value)

        existing: list[Mapping[str, Any]] = []
        if self._mode is AttachMode.APPEND:
            # Read before uploading so a missing record fails before a file is staged.
            record = self._client.get_record(self._app, record_id)
            existing = record.files(self._field_code)

        log.info("upload_state", state=UploadState.UPLOADING.value, size=len(part.payload))
        try:
            new_ref = self._client.upload_file(
                self._app,
                filename=part.filename,
                mime_type=part.mime_type,
                payload=part.payload,
            )
        except UploadFailed:
            log.error("upload_state", state=UploadState.UPLOAD_FAILED.value)
            raise
        log = log.bind(file_key=new_ref.file_key)
        log.info("upload_state", state=UploadState.UPLOADED.value)

        log.info("upload_state", state=UploadState.RECONCILING.value, existing_count=len(existing))
        try:
            files = self._reconciler.reconcile(
                record_id,
                self._field_code,
                self._mode,
                existing,
                new_ref,
                extra_fields=self._status_fields,
            )
        except RecordUpdateFailed:
            log.error("upload_state", state=UploadState.ATTACH_FAILED.value, orphaned=True)
            raise
        log.info("upload_state", state=UploadState.ATTACHED.value, file_count=len(files))

        return AttachResult(
            record_id=record_id,
            field_code=self._field_code,
            mode=self._mode,
            file_ref=new_ref,
            files=files,
        )
