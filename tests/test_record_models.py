"""Tests for record payload models and query helpers."""

from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kintone_bridge.records import (  # noqa: E402
    Record,
    RecordEnvelope,
    RecordList,
    any_of,
    build_query,
    equals,
    escape_value,
    not_in,
)


def _record():
    return Record.model_validate(
        {
            "$id": {"type": "__ID__", "value": "7"},
            "companyId": {"type": "SINGLE_LINE_TEXT", "value": "C-1"},
            "qty": {"type": "NUMBER", "value": "3"},
            "cancelFlag": {"type": "CHECK_BOX", "value": ["0"]},
            "invoiceFile": {
                "type": "FILE",
                "value": [
                    {"fileKey": "k1", "name": "a.pdf", "contentType": "application/pdf", "size": "10"},
                    "junk",
                ],
            },
            "itemTable": {
                "type": "SUBTABLE",
                "value": [
                    {"id": "1", "value": {"itemName": {"type": "SINGLE_LINE_TEXT", "value": "Bolt"}}},
                    {"id": "2"},
                ],
            },
        }
    )


def test_record_accessors_return_values_or_none():
    record = _record()

    assert record.record_id == "7"
    assert record.text("companyId") == "C-1"
    assert record.text("missing") is None
    assert record.field("missing") is None
    assert record.text("cancelFlag") is None
    assert record.values("cancelFlag") == ["0"]
    assert record.values("missing") == []


def test_record_files_skip_non_mapping_entries():
    record = _record()

    assert record.files("invoiceFile") == [
        {"fileKey": "k1", "name": "a.pdf", "contentType": "application/pdf", "size": "10"}
    ]
    assert record.files("companyId") == []


def test_record_rows_decode_subtable_values():
    rows = _record().rows("itemTable")

    assert len(rows) == 1
    assert rows[0].text("itemName") == "Bolt"


def test_record_list_first_is_optional():
    empty = RecordList.model_validate({"records": [], "totalCount": None})
    populated = RecordList.model_validate({"records": [{"$id": {"type": "__ID__", "value": "1"}}]})

    assert empty.first() is None
    assert populated.first().record_id == "1"


def test_record_envelope_ignores_extra_keys():
    envelope = RecordEnvelope.model_validate({"record": {"$id": {"value": "5"}}, "extra": True})

    assert envelope.record.record_id == "5"


def test_escape_value_escapes_quotes_and_backslashes():
    assert escape_value('a"b\\c') == 'a\\"b\\\\c'


def test_build_query_joins_conditions_and_clauses():
    query = build_query(
        equals("companyId", "C-1"),
        any_of(equals("uploadFlag", "済"), equals("uploadFlag", "")),
        not_in("unitPriceFlag", ["済"]),
        order_by="$id",
        limit=50,
    )

    assert query == (
        'companyId = "C-1" and ( uploadFlag = "済" or uploadFlag = "" ) '
        'and unitPriceFlag not in ("済") order by $id desc limit 50'
    )


def test_build_query_without_ordering():
    assert build_query(equals("uId", 'U"1'), limit=1) == 'uId = "U\\"1" limit 1'
