"""kintone bridge package initialisation."""

from .config import AppSettings, get_settings  # noqa: F401
from .errors import (  # noqa: F401
    BadRequest,
    BridgeError,
    ConfigurationMissing,
    NotFound,
    RecordUpdateFailed,
    UploadFailed,
    UpstreamUnavailable,
)
from .logging_config import configure_logging  # noqa: F401

__all__ = [
    "AppSettings",
    "get_settings",
    "BadRequest",
    "BridgeError",
    "ConfigurationMissing",
    "NotFound",
    "RecordUpdateFailed",
    "UploadFailed",
    "UpstreamUnavailable",
    "configure_logging",
]
