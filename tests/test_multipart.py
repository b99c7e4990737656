"""Tests for the single-part multipart encoder."""

from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from werkzeug.test import EnvironBuilder  # noqa: E402
from werkzeug.wrappers import Request  # noqa: E402

from kintone_bridge.uploads.multipart import (  # noqa: E402
    BOUNDARY_PREFIX,
    DEFAULT_MIME_TYPE,
    MultipartPart,
    build_multipart,
    new_boundary,
)


def _parse(multipart):
    builder = EnvironBuilder(
        method="POST",
        data=multipart.body,
        content_type=multipart.content_type,
    )
    return Request(builder.get_environ())


def test_parsed_body_yields_single_file_part_with_identical_bytes():
    payload = bytes(range(256)) * 4 + b"\r\n--" + b"\r\n\r\n--not-a-boundary--\r\n"
    multipart = build_multipart(
        MultipartPart(payload=payload, filename="請求書.pdf", mime_type="application/pdf")
    )

    parsed = _parse(multipart)

    assert list(parsed.files.keys()) == ["file"]
    assert len(parsed.form) == 0
    uploaded = parsed.files["file"]
    assert uploaded.read() == payload
    assert uploaded.mimetype == "application/pdf"


def test_empty_payload_round_trips():
    multipart = build_multipart(MultipartPart(payload=b"", filename="empty.txt", mime_type="text/plain"))

    parsed = _parse(multipart)

    assert parsed.files["file"].read() == b""


def test_content_disposition_carries_both_filename_forms():
    multipart = build_multipart(MultipartPart(payload=b"x", filename="請求書.pdf"))

    assert b'name="file"' in multipart.body
    assert b'filename="___.pdf"' in multipart.body
    assert b"filename*=UTF-8''%E8%AB%8B%E6%B1%82%E6%9B%B8.pdf" in multipart.body


def test_content_type_boundary_matches_body_delimiters():
    multipart = build_multipart(MultipartPart(payload=b"hello", filename="a.txt"))

    assert multipart.content_type == (
        f"multipart/form-data; charset=utf-8; boundary={multipart.boundary}"
    )
    assert multipart.body.startswith(f"--{multipart.boundary}\r\n".encode("ascii"))
    assert multipart.body.endswith(f"\r\n--{multipart.boundary}--\r\n".encode("ascii"))


def test_missing_mime_type_defaults_to_octet_stream():
    for mime_type in (None, "", "   ", "text/plain\r\nX-Injected: 1"):
        multipart = build_multipart(MultipartPart(payload=b"x", filename="a.bin", mime_type=mime_type))
        assert f"Content-Type: {DEFAULT_MIME_TYPE}\r\n".encode("ascii") in multipart.body
        assert b"X-Injected" not in multipart.body


def test_boundaries_are_random_and_long():
    first = new_boundary()
    second = new_boundary()

    assert first != second
    assert first.startswith(BOUNDARY_PREFIX)
    assert len(first) - len(BOUNDARY_PREFIX) == 32


def test_explicit_boundary_is_used():
    multipart = build_multipart(MultipartPart(payload=b"x"), boundary="fixed-boundary")

    assert multipart.boundary == "fixed-boundary"
    assert b'filename="upload"' in multipart.body
