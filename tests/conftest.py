"""Shared pytest fixtures and helpers.

The InfluxDB server is replaced by ``httpx.MockTransport`` so tests run
without a live database.  Handlers record every request they receive.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from influxdb_http.deps import get_settings
from influxdb_http.models import QueryParams, WriteParams
from influxdb_http.types import Precision

# ── Constants ─────────────────────────────────────────────────────────────────

SERIES_RESPONSE: dict[str, Any] = {
    "results": [
        {
            "statement_id": 0,
            "series": [
                {
                    "name": "cpu",
                    "tags": {"host": "server01"},
                    "columns": ["time", "value", "region"],
                    "values": [
                        [1500000000, 0.64, "us-west"],
                        [1500000060, 0.5, "us-west"],
                    ],
                },
                {
                    "name": "cpu",
                    "tags": {"host": "server02"},
                    "columns": ["time", "value", "region"],
                    "values": [[1500000000, 0.25, "eu-central"]],
                },
            ],
        },
        {
            "statement_id": 1,
            "series": [
                {
                    "name": "mem",
                    "columns": ["time", "free", "region"],
                    "values": [[1500000000, 1024, None]],
                }
            ],
        },
    ]
}

SERIES_BODY = json.dumps(SERIES_RESPONSE).encode()

Handler = Callable[[httpx.Request], httpx.Response]

# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def series_response() -> dict[str, Any]:
    """A two-statement, three-series query response."""
    return copy.deepcopy(SERIES_RESPONSE)


@pytest.fixture()
def series_body() -> bytes:
    return SERIES_BODY


@pytest.fixture()
def requests_seen() -> list[httpx.Request]:
    return []


@pytest.fixture()
def make_client(
    requests_seen: list[httpx.Request],
) -> Iterator[Callable[[Handler], httpx.Client]]:
    """Return a factory building an ``httpx.Client`` backed by *handler*."""
    clients: list[httpx.Client] = []

    def factory(handler: Handler) -> httpx.Client:
        def recording(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(recording))
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture()
def query_params() -> QueryParams:
    return QueryParams(database="telemetry", precision=Precision.SECOND)


@pytest.fixture()
def write_params() -> WriteParams:
    return WriteParams(database="telemetry")
