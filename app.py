"""Application entry point for the kintone bridge."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

import httpx
import structlog
from flask import Flask, current_app, g, jsonify, request
from slack_sdk.webhook import WebhookClient
from structlog.contextvars import bind_contextvars, unbind_contextvars
from werkzeug.exceptions import HTTPException

from kintone_bridge.automation import AutomationWebhookClient
from kintone_bridge.companies import (
    BASE_DATE_FIELD,
    COMPANY_NAME_FIELD,
    cancel_record,
    inbound_app,
    list_history,
    resolve_company_id,
    search_inbound_records,
    uid_master_app,
)
from kintone_bridge.config import AppSettings, get_settings
from kintone_bridge.errors import BadRequest, BridgeError, ConfigurationMissing
from kintone_bridge.logging_config import configure_logging
from kintone_bridge.notifications import (
    LinePushClient,
    SlackWebhookNotifier,
    build_cancel_message,
    build_upload_message,
)
from kintone_bridge.records import RecordStoreClient
from kintone_bridge.uploads import AttachMode, AttachmentService, MultipartPart

EXTENSION_KEY = "kintone_bridge"

_HTTP_ERROR_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
}


@dataclass
class BridgeContext:
    """Collaborators built once per app and shared by every request."""

    settings: AppSettings
    http: httpx.Client
    records: RecordStoreClient
    slack_client: WebhookClient | None = None

    def slack(self) -> SlackWebhookNotifier:
        if self.slack_client is not None:
            return SlackWebhookNotifier(client=self.slack_client)
        self.settings.require("slack_webhook_url")
        return SlackWebhookNotifier(
            url=self.settings.slack_webhook_url,
            timeout_seconds=self.settings.request_timeout_seconds,
        )

    def line(self) -> LinePushClient | None:
        if not self.settings.line_channel_access_token or not self.settings.line_target_id:
            return None
        return LinePushClient(access_token=self.settings.line_channel_access_token, http=self.http)

    def attachments(self) -> AttachmentService:
        settings = self.settings
        status_fields = {settings.uploaded_field: settings.uploaded_value} if settings.uploaded_field else {}
        return AttachmentService(
            client=self.records,
            app=inbound_app(settings),
            field_code=settings.file_field,
            mode=AttachMode.from_flag(settings.file_append),
            status_fields=status_fields,
        )

    def automation(self) -> AutomationWebhookClient:
        self.settings.require("automation_webhook_url")
        return AutomationWebhookClient(
            url=self.settings.automation_webhook_url,
            token=self.settings.automation_webhook_token,
            http=self.http,
        )


def _bridge() -> BridgeContext:
    return current_app.extensions[EXTENSION_KEY]


def _trace_id() -> str | None:
    return getattr(g, "trace_id", None)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _query_param(name: str) -> str:
    value = _text(request.args.get(name))
    if not value:
        raise BadRequest(f"{name} is required")
    return value


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise BadRequest("request body must be a JSON object")
    return body


def _handle_uid_resolve(bridge: BridgeContext) -> dict[str, Any]:
    uid = _query_param("uid")
    company_id = resolve_company_id(bridge.records, bridge.settings, uid)
    return {"companyId": company_id}


def _handle_search(bridge: BridgeContext) -> dict[str, Any]:
    uid = _query_param("uid")
    company_id = resolve_company_id(bridge.records, bridge.settings, uid)
    records = search_inbound_records(bridge.records, bridge.settings, company_id)
    structlog.get_logger().info("search_completed", company_id=company_id, record_count=len(records))
    return {"records": records, "companyId": company_id}


def _handle_history_list(bridge: BridgeContext) -> dict[str, Any]:
    company_id = _query_param("companyId")
    return {"items": list_history(bridge.records, bridge.settings, company_id)}


def _handle_history_cancel(bridge: BridgeContext) -> dict[str, Any]:
    body = _json_body()
    record_id = _text(body.get("recordId"))
    uid = _text(body.get("uid"))
    if not record_id or not uid:
        raise BadRequest("recordId & uid required")

    log = structlog.get_logger().bind(record_id=record_id)
    company_id = resolve_company_id(bridge.records, bridge.settings, uid)
    cancel_record(bridge.records, bridge.settings, record_id)

    line = bridge.line()
    if line is None:
        log.warning("line_push_skipped", reason="not_configured")
    else:
        line.push_text(
            to=bridge.settings.line_target_id,
            text=build_cancel_message(company_id=company_id, record_id=record_id, uid=uid),
        )
    return {"success": True}


def _handle_invoice_attach(bridge: BridgeContext) -> dict[str, Any]:
    record_id = _text(request.form.get("recordId"))
    if not record_id:
        raise BadRequest("recordId is required")
    upload = request.files.get("file")
    orig_name = _text(request.form.get("origName"))
    if upload is None or not (upload.filename or orig_name):
        raise BadRequest("file is required")

    part = MultipartPart(
        payload=upload.read(),
        filename=orig_name or upload.filename,
        mime_type=upload.mimetype,
    )
    if bridge.settings.attach_backend == "automation":
        return bridge.automation().forward_attachment(record_id, part)
    return bridge.attachments().attach(record_id, part).to_response()


def _handle_invoice_notify(bridge: BridgeContext) -> dict[str, Any]:
    body = _json_body()
    record_id = _text(body.get("recordId"))
    file_name = _text(body.get("fileName"))
    if not record_id or not file_name:
        raise BadRequest("recordId and fileName are required")

    app = inbound_app(bridge.settings)
    notifier = bridge.slack()
    record = bridge.records.get_record(app, record_id)
    message = build_upload_message(
        file_name=file_name,
        user_name=_text(body.get("userName")) or None,
        company_name=record.text(COMPANY_NAME_FIELD),
        planned_date=record.text(BASE_DATE_FIELD),
        record_url=bridge.records.record_url(app, record_id),
    )
    notifier.send(text=message["text"], blocks=message["blocks"])
    return {"ok": True}


def _register_error_handlers(flask_app: Flask) -> None:
    """Register JSON error handlers that attach the request's trace identifier."""

    @flask_app.errorhandler(BridgeError)
    def handle_bridge_error(error: BridgeError):  # type: ignore[override]
        log = structlog.get_logger()
        if error.status_code >= 500:
            log.error("request_failed", error=error.error, message=error.message)
        else:
            log.info("request_rejected", error=error.error, message=error.message)
        payload = error.to_dict()
        payload["trace_id"] = _trace_id()
        return jsonify(payload), error.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):  # type: ignore[override]
        code = error.code or 500
        payload = {
            "error": _HTTP_ERROR_CODES.get(code, f"http_{code}"),
            "message": error.description,
            "trace_id": _trace_id(),
        }
        return jsonify(payload), code

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        trace_id = _trace_id() or str(uuid4())
        flask_app.logger.exception(
            "Unhandled application error", extra={"trace_id": trace_id}, exc_info=error
        )
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def _register_trace_hooks(flask_app: Flask) -> None:
    @flask_app.before_request
    def bind_trace_id() -> None:
        g.trace_id = str(uuid4())
        bind_contextvars(trace_id=g.trace_id)
        structlog.get_logger().info("request_received", method=request.method, path=request.path)

    @flask_app.teardown_request
    def unbind_trace_id(_exc: BaseException | None) -> None:
        unbind_contextvars("trace_id")


def _check_ready(settings: AppSettings) -> None:
    """Raise ConfigurationMissing unless both record-store apps (and the automation hook, if selected) are set."""

    uid_master_app(settings)
    inbound_app(settings)
    if settings.attach_backend == "automation":
        settings.require("automation_webhook_url")


_LOGGING_CONFIGURED = False


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return "unknown"


def create_app(
    settings: AppSettings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
    slack_client: WebhookClient | None = None,
) -> Flask:
    """Create and configure the Flask application."""

    global _LOGGING_CONFIGURED
    settings = settings or get_settings()
    if not _LOGGING_CONFIGURED:
        configure_logging(settings.log_level)
        _LOGGING_CONFIGURED = True

    http = httpx.Client(timeout=settings.request_timeout_seconds, transport=transport)
    bridge = BridgeContext(
        settings=settings,
        http=http,
        records=RecordStoreClient(base_url=settings.base_url, http=http),
        slack_client=slack_client,
    )

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes
    flask_app.json.ensure_ascii = False
    flask_app.extensions[EXTENSION_KEY] = bridge
    flask_app.logger.setLevel("INFO")

    _register_error_handlers(flask_app)
    _register_trace_hooks(flask_app)

    @flask_app.route("/api/uid-resolve", methods=["GET"])
    def uid_resolve():
        return jsonify(_handle_uid_resolve(_bridge()))

    @flask_app.route("/api/search", methods=["GET"])
    def search():
        return jsonify(_handle_search(_bridge()))

    @flask_app.route("/api/history-list", methods=["GET"])
    def history_list():
        return jsonify(_handle_history_list(_bridge()))

    @flask_app.route("/api/history-cancel", methods=["POST"])
    def history_cancel():
        return jsonify(_handle_history_cancel(_bridge()))

    @flask_app.route("/api/invoice-attach", methods=["POST"])
    def invoice_attach():
        return jsonify(_handle_invoice_attach(_bridge()))

    @flask_app.route("/api/invoice-notify", methods=["POST"])
    def invoice_notify():
        return jsonify(_handle_invoice_notify(_bridge()))

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")
        try:
            _check_ready(bridge.settings)
            health["config"] = "valid"
        except ConfigurationMissing as exc:
            health["config"] = "invalid"
            health["config_error"] = exc.message
            health["ok"] = False
        health["attach_backend"] = bridge.settings.attach_backend
        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    application = create_app()
    application.run(host="0.0.0.0", port=3000, debug=True)
