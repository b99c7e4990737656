"""Single-part ``multipart/form-data`` encoder for record-store uploads.

The body is assembled by hand rather than through the HTTP client so the
part headers carry both ``filename=`` and ``filename*=`` parameters. Receivers
that predate RFC 8187 read the ASCII fallback; newer ones recover the
original UTF-8 name.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from .filenames import split_filename

DEFAULT_MIME_TYPE = "application/octet-stream"
FIELD_NAME = "file"
BOUNDARY_PREFIX = "----kintoneFormData"
CRLF = b"\r\n"


@dataclass(frozen=True)
class MultipartPart:
    """A file received from the client, held in memory for one request."""

    payload: bytes
    filename: str | None = None
    mime_type: str | None = None


@dataclass(frozen=True)
class MultipartBody:
    body: bytes
    boundary: str

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; charset=utf-8; boundary={self.boundary}"


def new_boundary() -> str:
    """Return a boundary token carrying 128 bits of randomness."""

    return BOUNDARY_PREFIX + secrets.token_hex(16)


def _clean_mime_type(mime_type: str | None) -> str:
    value = (mime_type or "").strip()
    # Header injection guard.
    if not value or "\r" in value or "\n" in value:
        return DEFAULT_MIME_TYPE
    return value


def build_multipart(part: MultipartPart, *, boundary: str | None = None) -> MultipartBody:
    """Encode *part* as a ``file`` form field framed by a random boundary."""

    boundary = boundary or new_boundary()
    names = split_filename(part.filename)
    disposition = (
        f'Content-Disposition: form-data; name="{FIELD_NAME}"; '
        f'filename="{names.ascii_fallback}"; filename*={names.extended}'
    )
    headers = (
        f"--{boundary}\r\n"
        f"{disposition}\r\n"
        f"Content-Type: {_clean_mime_type(part.mime_type)}\r\n"
        "\r\n"
    )
    closing = CRLF + f"--{boundary}--".encode("ascii") + CRLF
    body = b"".join([headers.encode("utf-8"), part.payload, closing])
    return MultipartBody(body=body, boundary=boundary)
