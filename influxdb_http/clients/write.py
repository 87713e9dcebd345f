"""``POST /write`` client for line-protocol payloads.

Every request carries ``precision=<code>`` so the server reads timestamps in
the unit they were scaled to.  Clients that omitted it relied on the server
default of nanoseconds; payloads encoded at that precision are unaffected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import partial

import httpx

from influxdb_http.deps import open_client
from influxdb_http.errors import classify_error, error_message, load_json
from influxdb_http.line import Line, encode_line, encode_lines
from influxdb_http.models import WriteParams
from influxdb_http.types import require_writable, scale_to

logger = logging.getLogger(__name__)


def build_write_request(params: WriteParams, payload: bytes) -> httpx.Request:
    """Assemble the ``/write`` request carrying *payload*."""
    precision = require_writable(params.precision)
    query_string: dict[str, str] = {"db": str(params.database)}
    if params.retention_policy is not None:
        query_string["rp"] = str(params.retention_policy)
    query_string["precision"] = precision.code or ""
    if params.authentication is not None:
        query_string.update(params.authentication.to_params())
    return httpx.Request(
        "POST",
        f"{params.server.base_url}/write",
        params=query_string,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        content=payload,
    )


def check_write_response(response: httpx.Response, request: httpx.Request) -> None:
    """Raise for a failed write.

    A successful write answers with an empty body.  Any body at all is decoded
    as an error object; on a 2xx status that is a protocol violation.
    """
    body = response.content
    if not body:
        if response.is_error:
            raise classify_error(response.status_code, response.reason_phrase, request)
        return
    value = load_json(body)
    message = error_message(value) or f"unexpected write response: {value!r}"
    raise classify_error(response.status_code, message, request)


def write_bytes(params: WriteParams, payload: bytes) -> None:
    """Send an already encoded line-protocol *payload*."""
    request = build_write_request(params, payload)
    logger.debug("Writing %d byte(s) to database %s", len(payload), params.database)
    with open_client(params) as client:
        response = client.send(request)
    check_write_response(response, request)


def write(params: WriteParams, line: Line) -> None:
    """Write a single point."""
    to_timestamp = partial(scale_to, params.precision)
    write_bytes(params, encode_line(line, to_timestamp, escape_strings=params.escape_strings))


def write_batch(params: WriteParams, lines: Iterable[Line]) -> None:
    """Write several points in one request.  An empty batch sends nothing."""
    lines = list(lines)
    if not lines:
        logger.debug("Empty batch for database %s, nothing to write", params.database)
        return
    to_timestamp = partial(scale_to, params.precision)
    write_bytes(params, encode_lines(lines, to_timestamp, escape_strings=params.escape_strings))
