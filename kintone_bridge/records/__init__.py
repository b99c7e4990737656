"""Record-store client, payload models and query helpers."""

from .client import AppCredentials, RecordStoreClient
from .models import FieldValue, Record, RecordEnvelope, RecordList
from .query import any_of, build_query, equals, escape_value, not_in

__all__ = [
    "AppCredentials",
    "RecordStoreClient",
    "FieldValue",
    "Record",
    "RecordEnvelope",
    "RecordList",
    "any_of",
    "build_query",
    "equals",
    "escape_value",
    "not_in",
]
