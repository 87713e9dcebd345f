"""Dependency providers: cached settings, params factories and HTTP clients.

Tests clear the settings cache with ``get_settings.cache_clear()``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

import httpx

from influxdb_http.config import Settings
from influxdb_http.models import Credentials, QueryParams, Server, WriteParams
from influxdb_http.types import Database, Key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def _server(settings: Settings) -> Server:
    return Server(host=settings.host, port=settings.port, ssl=settings.ssl)


def _database(settings: Settings) -> Database:
    if not settings.database:
        raise ValueError("INFLUXDB_DATABASE is not set")
    return Database(settings.database)


def _credentials(settings: Settings) -> Credentials | None:
    if not settings.user:
        return None
    return Credentials(user=settings.user, password=settings.password)


def get_query_params(settings: Settings | None = None) -> QueryParams:
    settings = settings or get_settings()
    return QueryParams(
        database=_database(settings),
        server=_server(settings),
        precision=settings.query_precision,
        authentication=_credentials(settings),
        timeout=settings.timeout,
    )


def get_write_params(settings: Settings | None = None) -> WriteParams:
    settings = settings or get_settings()
    return WriteParams(
        database=_database(settings),
        server=_server(settings),
        retention_policy=Key(settings.retention_policy) if settings.retention_policy else None,
        precision=settings.write_precision,
        authentication=_credentials(settings),
        timeout=settings.timeout,
        escape_strings=settings.escape_strings,
    )


@contextmanager
def open_client(params: QueryParams | WriteParams) -> Iterator[httpx.Client]:
    """Yield the caller's shared client, or a per-call one closed on exit."""
    if params.client is not None:
        yield params.client
        return
    with httpx.Client(timeout=params.timeout) as client:
        yield client
