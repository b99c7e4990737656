"""Company lookups and inbound-record reshaping."""

from __future__ import annotations

from typing import Any, Dict, List

import structlog

from .config import AppSettings
from .errors import NotFound
from .records import AppCredentials, Record, RecordStoreClient, any_of, build_query, equals, not_in
from .records.models import RECORD_ID_FIELD

SEARCH_LIMIT = 50
HISTORY_LIMIT = 100

BASE_DATE_FIELD = "baseDate"
COMPANY_NAME_FIELD = "companyName"
ITEM_TABLE_FIELD = "itemTable"
ITEM_NAME_FIELD = "itemName"
ITEM_QTY_FIELD = "qty"
DESIGN_LOT_FIELD = "designLot"
CREATED_AT_FIELD = "createdAt"
PLANNED_DATE_FIELD = "plannedDate"
SLIP_NO_FIELD = "slipNo"
STATUS_FIELD = "status"
QTY_SUM_FIELD = "qtySum"


def uid_master_app(settings: AppSettings) -> AppCredentials:
    settings.require("base_url", "uid_app_id", "uid_api_token")
    return AppCredentials(app_id=settings.uid_app_id, api_token=settings.uid_api_token)


def inbound_app(settings: AppSettings) -> AppCredentials:
    settings.require("base_url", "inbound_app_id", "inbound_api_token")
    return AppCredentials(app_id=settings.inbound_app_id, api_token=settings.inbound_api_token)


def _to_number(raw: Any) -> int | float:
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN
        return 0
    return int(number) if number.is_integer() else number


def resolve_company_id(records: RecordStoreClient, settings: AppSettings, uid: str) -> str:
    """Look up the company id registered for *uid* in the UID master."""

    query = build_query(equals(settings.uid_field, uid), limit=1)
    master = records.get_records(uid_master_app(settings), query).first()
    if master is None:
        raise NotFound("UID not found in master")
    company_id = master.text(settings.company_id_field)
    if not company_id:
        raise NotFound("companyId not found for this uid")
    structlog.get_logger().info("uid_resolved", company_id=company_id)
    return company_id


def _item_row(row: Record) -> Dict[str, Any]:
    design_lot = row.field(DESIGN_LOT_FIELD)
    if design_lot is not None and isinstance(design_lot.value, list):
        lots = list(design_lot.value)
    elif design_lot is not None and design_lot.value:
        lots = [design_lot.value]
    else:
        lots = []
    return {
        "itemName": row.text(ITEM_NAME_FIELD) or "",
        "qty": _to_number(row.text(ITEM_QTY_FIELD)),
        "designLot": lots,
    }


def search_inbound_records(
    records: RecordStoreClient, settings: AppSettings, company_id: str
) -> List[Dict[str, Any]]:
    """Return the company's records still awaiting or holding an upload.

    Matches records whose upload flag is the done value or empty and whose
    unit-price checkbox does not contain the done value.
    """

    query = build_query(
        equals(settings.inbound_company_id_field, company_id),
        any_of(
            equals(settings.uploaded_field, settings.uploaded_value),
            equals(settings.uploaded_field, ""),
        ),
        not_in(settings.unit_price_field, [settings.uploaded_value]),
        order_by=RECORD_ID_FIELD,
        limit=SEARCH_LIMIT,
    )
    result = records.get_records(inbound_app(settings), query)
    return [
        {
            "recordId": record.record_id,
            "baseDate": record.text(BASE_DATE_FIELD),
            "itemTable": [_item_row(row) for row in record.rows(ITEM_TABLE_FIELD)],
        }
        for record in result.records
    ]


def list_history(
    records: RecordStoreClient, settings: AppSettings, company_id: str
) -> List[Dict[str, Any]]:
    """Return the company's most recent records, newest first."""

    query = build_query(
        equals(settings.inbound_company_id_field, company_id),
        order_by=CREATED_AT_FIELD,
        limit=HISTORY_LIMIT,
    )
    result = records.get_records(inbound_app(settings), query)
    return [
        {
            "recordId": record.record_id,
            "createdAt": record.text(CREATED_AT_FIELD) or "",
            "plannedDate": record.text(PLANNED_DATE_FIELD) or "",
            "slipNo": record.text(SLIP_NO_FIELD) or "",
            "status": record.text(STATUS_FIELD) or "",
            "qtySum": _to_number(record.text(QTY_SUM_FIELD)),
            "isCanceled": bool(record.values(settings.cancel_field)),
        }
        for record in result.records
    ]


def cancel_record(records: RecordStoreClient, settings: AppSettings, record_id: str) -> None:
    """Tick the cancel checkbox on an inbound record."""

    records.update_record(
        inbound_app(settings),
        record_id,
        {settings.cancel_field: [settings.cancel_value]},
    )
    structlog.get_logger().info("record_canceled", record_id=record_id)
