"""Pydantic-based configuration helpers for the kintone bridge."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationMissing

ATTACH_BACKENDS = ("kintone", "automation")


class AppSettings(BaseModel):
    """Settings shared by every handler, loaded once per process."""

    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field("", alias="KINTONE_BASE_URL")

    # UID master app
    uid_app_id: str = Field(
        "",
        alias="KINTONE_UID_APP_ID",
        validation_alias=AliasChoices("KINTONE_UID_APP_ID", "KINTONE_APP_ID_UID_MASTER"),
    )
    uid_api_token: str = Field(
        "",
        alias="KINTONE_UID_API_TOKEN",
        validation_alias=AliasChoices("KINTONE_UID_API_TOKEN", "KINTONE_API_TOKEN_UID_MASTER"),
    )
    uid_field: str = Field("uId", alias="KINTONE_UID_FIELD")
    company_id_field: str = Field("companyId", alias="KINTONE_COMPANYID_FIELD")

    # Inbound records app
    inbound_app_id: str = Field(
        "",
        alias="KINTONE_INBOUND_APP_ID",
        validation_alias=AliasChoices("KINTONE_INBOUND_APP_ID", "KINTONE_APP_ID_NYUKA"),
    )
    inbound_api_token: str = Field(
        "",
        alias="KINTONE_INBOUND_API_TOKEN",
        validation_alias=AliasChoices("KINTONE_INBOUND_API_TOKEN", "KINTONE_API_TOKEN_NYUKA"),
    )
    inbound_company_id_field: str = Field("companyId", alias="KINTONE_INBOUND_COMPANYID_FIELD")

    # Attachment handling
    file_field: str = Field("invoiceFile", alias="KINTONE_FILE_FIELD")
    file_append: bool = Field(True, alias="KINTONE_FILE_APPEND")
    uploaded_field: str = Field("uploadFlag", alias="KINTONE_UPLOADED_FIELD")
    uploaded_value: str = Field("済", alias="KINTONE_UPLOADED_VALUE")
    unit_price_field: str = Field("unitPriceFlag", alias="KINTONE_UNIT_PRICE_FIELD")
    cancel_field: str = Field("cancelFlag", alias="KINTONE_CANCEL_FIELD")
    cancel_value: str = Field("0", alias="KINTONE_CANCEL_VALUE")

    # Notifications
    slack_webhook_url: str = Field("", alias="SLACK_WEBHOOK_URL")
    line_channel_access_token: str = Field("", alias="LINE_CHANNEL_ACCESS_TOKEN")
    line_target_id: str = Field("", alias="LINE_TARGET_ID")

    # Automation backend
    attach_backend: str = Field("kintone", alias="ATTACH_BACKEND")
    automation_webhook_url: str = Field("", alias="AUTOMATION_WEBHOOK_URL")
    automation_webhook_token: str = Field("", alias="AUTOMATION_WEBHOOK_TOKEN")

    request_timeout_seconds: float = Field(15.0, alias="REQUEST_TIMEOUT_SECONDS")
    max_upload_bytes: int = Field(10 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("file_append", mode="before")
    @classmethod
    def _parse_append_flag(cls, value: str | bool) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() == "true"

    @field_validator("attach_backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in ATTACH_BACKENDS:
            raise ValueError(f"ATTACH_BACKEND must be one of {', '.join(ATTACH_BACKENDS)}")
        return backend

    @field_validator("request_timeout_seconds", "max_upload_bytes")
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @property
    def attach_mode(self) -> str:
        return "append" if self.file_append else "replace"

    def env_name(self, field_name: str) -> str:
        """Return the environment variable backing *field_name*."""

        field = type(self).model_fields[field_name]
        return field.alias or field_name.upper()

    def require(self, *field_names: str) -> None:
        """Raise ConfigurationMissing unless every named setting is non-empty."""

        missing = [self.env_name(name) for name in field_names if not getattr(self, name)]
        if missing:
            raise ConfigurationMissing(
                f"Missing required environment variables: {_format_missing(missing)}"
            )


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(dict(os.environ))
    except ValidationError as exc:
        invalid = []
        for error in exc.errors():
            name = str(error["loc"][0])
            field = AppSettings.model_fields.get(name)
            invalid.append(field.alias if field is not None and field.alias else name)
        message = (
            "Invalid environment variables: "
            f"{_format_missing(invalid)}"
        )
        raise RuntimeError(message) from exc
