"""Pydantic models describing record-store REST payloads.

Every accessor returns an explicit optional (or an empty collection) so
callers decide what absence means instead of chaining lookups.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, RootModel

RECORD_ID_FIELD = "$id"
REVISION_FIELD = "$revision"


class FieldValue(BaseModel):
    """The ``{"type": ..., "value": ...}`` wrapper around every field."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    value: Any = None


class Record(RootModel[Dict[str, FieldValue]]):
    """A record keyed by field code."""

    root: Dict[str, FieldValue] = Field(default_factory=dict)

    def field(self, code: str) -> FieldValue | None:
        return self.root.get(code)

    def text(self, code: str) -> str | None:
        field = self.field(code)
        if field is None or not isinstance(field.value, str):
            return None
        return field.value

    def values(self, code: str) -> List[str]:
        """Return a checkbox or multi-select value as a list of strings."""

        field = self.field(code)
        if field is None:
            return []
        if isinstance(field.value, list):
            return [item for item in field.value if isinstance(item, str)]
        if isinstance(field.value, str) and field.value:
            return [field.value]
        return []

    def files(self, code: str) -> List[Dict[str, Any]]:
        """Return the raw entries of an attachment field."""

        field = self.field(code)
        if field is None or not isinstance(field.value, list):
            return []
        return [item for item in field.value if isinstance(item, dict)]

    def rows(self, code: str) -> List["Record"]:
        """Return the rows of a subtable field as records."""

        field = self.field(code)
        if field is None or not isinstance(field.value, list):
            return []
        rows: List[Record] = []
        for row in field.value:
            if isinstance(row, dict) and isinstance(row.get("value"), dict):
                rows.append(Record.model_validate(row["value"]))
        return rows

    @property
    def record_id(self) -> str | None:
        return self.text(RECORD_ID_FIELD)


class RecordList(BaseModel):
    """Response of the multi-record query endpoint."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    records: List[Record] = Field(default_factory=list)
    total_count: str | None = Field(None, alias="totalCount")

    def first(self) -> Record | None:
        return self.records[0] if self.records else None


class RecordEnvelope(BaseModel):
    """Response of the single-record endpoint."""

    model_config = ConfigDict(extra="ignore")

    record: Record
