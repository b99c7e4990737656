"""Helpers for composing record-store query strings."""

from __future__ import annotations

from typing import Iterable


def escape_value(value: object) -> str:
    """Escape a literal for use inside a double-quoted query string."""

    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def equals(field_code: str, value: object) -> str:
    return f'{field_code} = "{escape_value(value)}"'


def not_in(field_code: str, values: Iterable[object]) -> str:
    literals = ", ".join(f'"{escape_value(value)}"' for value in values)
    return f"{field_code} not in ({literals})"


def any_of(*conditions: str) -> str:
    return "( " + " or ".join(conditions) + " )"


def build_query(
    *conditions: str,
    order_by: str | None = None,
    descending: bool = True,
    limit: int | None = None,
) -> str:
    """Join *conditions* with ``and`` and append ordering and limit clauses."""

    parts = [" and ".join(condition for condition in conditions if condition)]
    if order_by:
        parts.append(f"order by {order_by} {'desc' if descending else 'asc'}")
    if limit is not None:
        parts.append(f"limit {int(limit)}")
    return " ".join(part for part in parts if part)
