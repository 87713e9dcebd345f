"""Unit tests for InfluxQL query text helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from influxdb_http.format import format_query, format_rfc3339, quote_identifier, quote_literal
from influxdb_http.types import Database, Key


def test_quote_identifier_escapes_quotes_and_backslashes() -> None:
    assert quote_identifier("cpu") == '"cpu"'
    assert quote_identifier('we"ird\\') == '"we\\"ird\\\\"'


def test_quote_literal_escapes_quotes_and_backslashes() -> None:
    assert quote_literal("server01") == "'server01'"
    assert quote_literal("o'clock") == "'o\\'clock'"


def test_format_rfc3339_normalises_to_utc() -> None:
    aware = datetime(2017, 7, 14, 4, 40, tzinfo=timezone.utc).astimezone()
    assert format_rfc3339(aware) == "2017-07-14T04:40:00.000000Z"
    assert format_rfc3339(datetime(2017, 7, 14, 2, 40, 0, 5)) == "2017-07-14T02:40:00.000005Z"


def test_format_query_quotes_each_argument() -> None:
    text = format_query(
        "SELECT {} FROM {}.{m} WHERE host = {host} AND time > {since} LIMIT {n}",
        Key("value"),
        Database("telemetry"),
        m=Key("cpu load"),
        host="server01",
        since=datetime(2017, 7, 14, 2, 40, tzinfo=timezone.utc),
        n=10,
    )
    assert text == (
        'SELECT "value" FROM "telemetry"."cpu load" '
        "WHERE host = 'server01' AND time > '2017-07-14T02:40:00.000000Z' LIMIT 10"
    )


def test_format_query_renders_booleans_and_floats() -> None:
    assert format_query("{} {}", True, 0.5) == "true 0.5"


def test_format_query_rejects_unknown_types() -> None:
    with pytest.raises(TypeError, match="cannot format list"):
        format_query("{}", [1, 2])
