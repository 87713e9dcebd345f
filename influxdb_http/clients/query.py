"""``GET /query`` client.

``query`` reads the whole response before decoding it.  ``query_chunked``
asks the server for a chunked response and folds each chunk's rows as it
arrives, so memory use is bounded by the fold rather than the result size.
"""

from __future__ import annotations

import logging
from typing import TypeVar

import httpx

from influxdb_http.deps import open_client
from influxdb_http.errors import classify_error, raise_for_response
from influxdb_http.models import QueryParams
from influxdb_http.results import (
    Fold,
    QueryError,
    QueryResults,
    chunked_param,
    decode_body,
    decode_chunks,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")
R = TypeVar("R")


def build_query_request(
    params: QueryParams,
    q: str,
    *,
    chunked: bool = False,
    chunk_size: int | None = None,
) -> httpx.Request:
    """Assemble the ``/query`` request.

    ``epoch`` is omitted for RFC3339.  With *chunked* set, ``chunked`` is
    ``true`` (server-chosen size) or the clamped *chunk_size*.
    """
    query_string: dict[str, str] = {"q": q, "db": str(params.database)}
    if params.precision.epoch is not None:
        query_string["epoch"] = params.precision.epoch
    if chunked:
        query_string["chunked"] = chunked_param(chunk_size)
    if params.authentication is not None:
        query_string.update(params.authentication.to_params())
    return httpx.Request("GET", f"{params.server.base_url}/query", params=query_string)


def query(params: QueryParams, q: str, parser: QueryResults[T]) -> list[T]:
    """Run *q* and decode the full response with *parser*.

    Raises:
        ServerError, BadRequest: on 5xx / 4xx responses.
        IllformedJSON: if the body is not JSON.
        UnexpectedResponse: if the JSON does not match *parser*'s expectations.
        InternalInvariantError: if a 2xx response carries an ``error``.
    """
    request = build_query_request(params, q)
    logger.debug("Querying database %s on %s", params.database, params.server.base_url)
    with open_client(params) as client:
        response = client.send(request)
    raise_for_response(response, request)
    try:
        return decode_body(response.content, params.precision, parser)
    except QueryError as exc:
        raise classify_error(response.status_code, exc.message, request) from exc


def query_chunked(
    params: QueryParams,
    q: str,
    parser: QueryResults[T],
    fold: Fold[S, T, R],
    chunk_size: int | None = None,
) -> R:
    """Run *q* as a chunked query and fold the rows of every chunk.

    *chunk_size* is a hint for the server: ``None`` lets it choose (10 000
    points or one series per chunk), smaller values are clamped to 1.
    """
    request = build_query_request(params, q, chunked=True, chunk_size=chunk_size)
    logger.debug(
        "Streaming chunked query on database %s (chunk size %s)",
        params.database,
        request.url.params["chunked"],
    )
    with open_client(params) as client:
        response = client.send(request, stream=True)
        try:
            if response.is_error:
                response.read()
                raise_for_response(response, request)
            try:
                return decode_chunks(response.iter_bytes(), params.precision, parser, fold)
            except QueryError as exc:
                raise classify_error(response.status_code, exc.message, request) from exc
        finally:
            response.close()
