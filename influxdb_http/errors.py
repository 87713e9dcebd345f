"""Exceptions raised by the InfluxDB HTTP client and the status classifier.

User-facing failures derive from ``InfluxException``:

  • ``ServerError``        – 5xx; may succeed once the server side is fixed
  • ``BadRequest``         – 4xx; the request itself has to change
  • ``IllformedJSON``      – a body arrived but it is not valid JSON
  • ``UnexpectedResponse`` – valid JSON that does not have the expected shape

Transport failures are ``httpx.HTTPError`` and are passed through untouched.
``InternalInvariantError`` sits outside the hierarchy on purpose: it means
the library and the server disagree about the protocol.
"""

from __future__ import annotations

import json
from typing import Any

import httpx


class InfluxException(Exception):
    """Base class for errors reported while talking to InfluxDB."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ServerError(InfluxException):
    """Raised on 5xx responses."""


class BadRequest(InfluxException):
    """Raised on 4xx responses.  ``request`` is the request that was sent."""

    def __init__(self, message: str, request: httpx.Request | None = None) -> None:
        super().__init__(message)
        self.request = request


ClientError = BadRequest


class IllformedJSON(InfluxException):
    """Raised when a response body cannot be decoded as JSON."""

    def __init__(self, message: str, body: bytes) -> None:
        super().__init__(message)
        self.body = body


class UnexpectedResponse(InfluxException):
    """Raised when a JSON response does not match the documented schema."""

    def __init__(self, message: str, body: bytes = b"") -> None:
        super().__init__(message)
        self.body = body


class InternalInvariantError(RuntimeError):
    """The server answered in a way the protocol says is impossible."""


class PrecisionError(ValueError):
    """Raised when RFC3339 is used where only epoch precisions are valid."""


# ── Classification ────────────────────────────────────────────────────────────


def load_json(body: bytes) -> Any:
    """Decode *body* or raise ``IllformedJSON`` carrying the raw bytes."""
    try:
        return json.loads(body)
    except ValueError as exc:
        raise IllformedJSON(str(exc), body) from exc


def error_message(value: Any) -> str | None:
    """Return the top-level ``error`` string of a response object, if any."""
    if isinstance(value, dict):
        message = value.get("error")
        if isinstance(message, str):
            return message
    return None


def classify_error(
    status_code: int, message: str, request: httpx.Request
) -> Exception:
    """Map an HTTP status and error text onto the exception to raise."""
    if 500 <= status_code < 600:
        return ServerError(message)
    if 400 <= status_code < 500:
        return BadRequest(message, request)
    return InternalInvariantError(
        f"BUG: {message} (HTTP {status_code}) in response to "
        f"{request.method} {request.url.path}"
    )


def raise_for_response(response: httpx.Response, request: httpx.Request) -> None:
    """Raise the classified error for a 4xx/5xx *response*; no-op otherwise.

    An empty body falls back to the HTTP reason phrase.  On those statuses a
    body that is not JSON raises ``IllformedJSON``.
    """
    if not response.is_error:
        return
    message = response.reason_phrase
    body = response.content
    if body.strip():
        message = error_message(load_json(body)) or message
    raise classify_error(response.status_code, message, request)
