"""Helpers for building InfluxQL query text safely."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from influxdb_http.types import Database, Key


def quote_identifier(name: str) -> str:
    """Double-quote a measurement, tag, field or database name."""
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def quote_literal(value: str) -> str:
    """Single-quote a string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def format_rfc3339(time: datetime) -> str:
    """Render *time* as UTC RFC3339 text with microsecond precision."""
    if time.tzinfo is None:
        time = time.replace(tzinfo=timezone.utc)
    return time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def format_value(value: Any) -> str:
    """Render one query argument.

    ``Key`` and ``Database`` become identifiers, other strings and datetimes
    become literals, booleans and numbers are written bare.
    """
    if isinstance(value, (Key, Database)):
        return quote_identifier(value)
    if isinstance(value, str):
        return quote_literal(value)
    if isinstance(value, datetime):
        return quote_literal(format_rfc3339(value))
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    raise TypeError(f"cannot format {type(value).__name__} into a query")


def format_query(template: str, *args: Any, **kwargs: Any) -> str:
    """``str.format`` with every argument quoted by ``format_value``.

    >>> format_query("SELECT * FROM {} WHERE host = {host}", Key("cpu"), host="a")
    'SELECT * FROM "cpu" WHERE host = \\'a\\''
    """
    return template.format(
        *(format_value(arg) for arg in args),
        **{name: format_value(arg) for name, arg in kwargs.items()},
    )
