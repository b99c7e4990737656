"""Multipart upload encoding and attachment reconciliation."""

from .attachments import (
    AttachMode,
    AttachmentReconciler,
    AttachmentService,
    AttachResult,
    UploadState,
    reconcile_files,
)
from .filenames import FilenameParts, ascii_fallback, encode_rfc8187, sanitize_filename, split_filename
from .multipart import MultipartBody, MultipartPart, build_multipart
from .uploader import FileReference, upload_file

__all__ = [
    "AttachMode",
    "AttachmentReconciler",
    "AttachmentService",
    "AttachResult",
    "UploadState",
    "reconcile_files",
    "FilenameParts",
    "ascii_fallback",
    "encode_rfc8187",
    "sanitize_filename",
    "split_filename",
    "MultipartBody",
    "MultipartPart",
    "build_multipart",
    "FileReference",
    "upload_file",
]
