"""Error kinds surfaced by the bridge handlers."""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base class for failures that map onto a JSON error response."""

    status_code = 500
    error = "internal_server_error"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class BadRequest(BridgeError):
    """A required input is missing or invalid."""

    status_code = 400
    error = "bad_request"


class NotFound(BridgeError):
    """A lookup yielded no matching record."""

    status_code = 404
    error = "not_found"


class UpstreamUnavailable(BridgeError):
    """A downstream call returned a non-success status or a malformed body."""

    status_code = 500
    error = "upstream_error"


class UploadFailed(UpstreamUnavailable):
    """The record store rejected a file upload or returned no file key."""

    error = "upload_failed"


class RecordUpdateFailed(UpstreamUnavailable):
    """The record store rejected the attachment field update."""

    error = "attach_failed"


class ConfigurationMissing(BridgeError):
    """A required endpoint or credential is not configured."""

    status_code = 500
    error = "configuration_missing"
