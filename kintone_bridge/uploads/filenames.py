"""Filename sanitising and RFC 8187 encoding for multipart uploads."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import quote

DEFAULT_FILENAME = "upload"
MAX_FILENAME_LENGTH = 255

_ILLEGAL_CHARS_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
_NON_PRINTABLE_ASCII_RE = re.compile(r"[^\x20-\x7e]")

# RFC 8187 attr-char minus ALPHA / DIGIT / "-" / "." / "_" / "~", which quote() never escapes.
_ATTR_CHAR_SAFE = "!#$&+^`|"


@dataclass(frozen=True)
class FilenameParts:
    """The three renderings of one user-supplied filename."""

    sanitized: str
    ascii_fallback: str
    extended: str


def sanitize_filename(name: str | None) -> str:
    """Drop path-illegal and control characters and cap the length."""

    value = _ILLEGAL_CHARS_RE.sub("", name or "")[:MAX_FILENAME_LENGTH]
    return value if value.strip() else DEFAULT_FILENAME


def ascii_fallback(name: str) -> str:
    """Replace everything outside printable ASCII so the name fits a quoted-string."""

    value = _NON_PRINTABLE_ASCII_RE.sub("_", name)
    return value.replace('"', "_").replace("\\", "_")


def encode_rfc8187(name: str) -> str:
    """Return an RFC 8187 ``ext-value`` (``UTF-8''...``) for *name*."""

    raw = name.encode("utf-8", errors="replace")
    return "UTF-8''" + quote(raw, safe=_ATTR_CHAR_SAFE)


def split_filename(name: str | None) -> FilenameParts:
    sanitized = sanitize_filename(name)
    return FilenameParts(
        sanitized=sanitized,
        ascii_fallback=ascii_fallback(sanitized),
        extended=encode_rfc8187(sanitized),
    )
