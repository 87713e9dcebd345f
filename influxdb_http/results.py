"""Decoding of ``/query`` responses into rows.

A response looks like::

    {"results": [{"statement_id": 0,
                  "series": [{"name": "cpu",
                              "tags": {"host": "a"},
                              "columns": ["time", "value"],
                              "values": [[1500000000, 0.5], ...]}]}]}

or ``{"error": "..."}``.  A *result parser* is any callable taking the query
precision and one decoded JSON value and returning a list of rows.  Most are
built with ``parse_results_with`` from a per-row constructor.

Chunked responses are a sequence of such objects.  ``JSONStream`` cuts the
incoming bytes into complete JSON values and ``decode_chunks`` folds the rows
of each value into caller-owned state.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from typing import Any, Generic, Protocol, TypeVar

from influxdb_http.errors import IllformedJSON, UnexpectedResponse, load_json
from influxdb_http.types import EPOCH, Key, Precision, QueryField

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)
S = TypeVar("S")
R = TypeVar("R")

RowParser = Callable[[Key, dict[Key, str], list[str], list[Any]], T]


class ResultParseError(Exception):
    """A response value does not have the shape a result parser expects."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class QueryError(ResultParseError):
    """The response reports an ``error`` for the query or one of its statements."""


class QueryResults(Protocol[T_co]):
    """Turns one decoded response value into rows."""

    def __call__(self, precision: Precision, value: Any) -> list[T_co]: ...


# ── Response schema ───────────────────────────────────────────────────────────


def _expect(value: Any, kind: type, what: str) -> Any:
    if not isinstance(value, kind):
        raise ResultParseError(f"expected {what}, got {value!r}")
    return value


def _raise_error_object(value: Any) -> None:
    if isinstance(value, dict) and "error" in value:
        message = value["error"]
        raise QueryError(message if isinstance(message, str) else repr(message))


def _series_body(series: Any) -> tuple[Key, dict[Key, str], list[str], list[Any]]:
    series = _expect(series, dict, "a series object")
    try:
        name = Key(_expect(series.get("name"), str, "a series name"))
        tags = {
            Key(key): _expect(value, str, "a tag value")
            for key, value in _expect(series.get("tags") or {}, dict, "a tags object").items()
        }
    except ValueError as exc:
        raise ResultParseError(str(exc)) from exc
    columns = _expect(series.get("columns"), list, "a columns array")
    for column in columns:
        _expect(column, str, "a column name")
    values = _expect(series.get("values") or [], list, "a values array")
    return name, tags, columns, values


def parse_results_with(row: RowParser[T]) -> QueryResults[T]:
    """Build a result parser that applies *row* to every values row.

    *row* receives the series name, its tags, the column names and one row of
    raw JSON values.  It may raise ``ResultParseError`` to reject a row.
    """

    def parse(precision: Precision, value: Any) -> list[T]:
        _raise_error_object(value)
        value = _expect(value, dict, "a response object")
        if "results" not in value:
            raise ResultParseError(f"key 'results' not found in {value!r}")
        rows: list[T] = []
        for statement in _expect(value["results"], list, "a results array"):
            _raise_error_object(statement)
            statement = _expect(statement, dict, "a statement result")
            for series in _expect(statement.get("series") or [], list, "a series array"):
                name, tags, columns, values = _series_body(series)
                for fields in values:
                    fields = _expect(fields, list, "a values row")
                    if len(fields) != len(columns):
                        raise ResultParseError(
                            f"row {fields!r} does not match columns {columns!r}"
                        )
                    rows.append(row(name, tags, columns, fields))
        return rows

    return parse


def no_results(precision: Precision, value: Any) -> list[Any]:
    """Result parser for statements that return nothing but may fail."""
    _raise_error_object(value)
    _expect(value, dict, "a response object")
    return []


def tuples(n: int) -> QueryResults[tuple[Any, ...]]:
    """Result parser returning the first *n* raw values of every row."""
    if not 2 <= n <= 8:
        raise ValueError(f"tuples() supports 2 to 8 values, not {n}")

    def row(name: Key, tags: dict[Key, str], columns: list[str], fields: list[Any]) -> tuple[Any, ...]:
        if len(fields) < n:
            raise ResultParseError(f"invalid fields: {fields!r}")
        return tuple(fields[:n])

    return parse_results_with(row)


# ── Field helpers ─────────────────────────────────────────────────────────────


def parse_key(name: str, columns: list[str], fields: list[Any]) -> Key:
    """Return the value of column *name* as a ``Key``."""
    try:
        value = fields[columns.index(name)]
    except (ValueError, IndexError):
        raise ResultParseError(f"parse_key: {name!r} not found in columns") from None
    if not isinstance(value, str) or not value:
        raise ResultParseError(f"parse_key: {name!r} is not a non-empty string: {value!r}")
    return Key(value)


def parse_query_field(value: Any) -> QueryField:
    """Validate one raw JSON value as a query field."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise ResultParseError(f"expected a field value, got {value!r}")


_RFC3339_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)


def parse_rfc3339(text: str) -> datetime:
    """Parse server RFC3339 text; sub-microsecond digits are truncated."""
    match = _RFC3339_RE.match(text)
    if match is None:
        raise ResultParseError(f"invalid RFC3339 timestamp: {text!r}")
    year, month, day, hour, minute, second, fraction, zulu, sign, off_h, off_m = match.groups()
    tz = timezone.utc
    if not zulu:
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tz = timezone(-offset if sign == "-" else offset)
    try:
        parsed = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second),
            int((fraction or "0")[:6].ljust(6, "0")), tzinfo=tz,
        )
    except ValueError as exc:
        raise ResultParseError(f"invalid RFC3339 timestamp: {text!r}") from exc
    return parsed.astimezone(timezone.utc)


def parse_timestamp(precision: Precision, value: Any) -> datetime:
    """Interpret a ``time`` column according to the query precision."""
    if precision is Precision.RFC3339:
        return parse_rfc3339(_expect(value, str, "an RFC3339 timestamp"))
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ResultParseError(f"expected an epoch timestamp, got {value!r}")
    microseconds = round(Fraction(value) * precision.scale * 10**6)
    return EPOCH + timedelta(microseconds=microseconds)


# ── Decoding ──────────────────────────────────────────────────────────────────


def _apply(parser: QueryResults[T], precision: Precision, value: Any, raw: bytes) -> list[T]:
    try:
        return parser(precision, value)
    except QueryError:
        raise
    except ResultParseError as exc:
        raise UnexpectedResponse(exc.message, raw) from exc


def decode_body(body: bytes, precision: Precision, parser: QueryResults[T]) -> list[T]:
    """Decode a whole response body.

    Shape mismatches raise ``UnexpectedResponse``; an ``error`` reported by the
    server raises ``QueryError`` for the caller to classify by status.
    """
    return _apply(parser, precision, load_json(body), body)


@dataclass(frozen=True)
class Fold(Generic[S, T, R]):
    """Accumulator driven by ``decode_chunks``.

    ``initial()`` creates the state, ``step(state, rows)`` folds one batch of
    rows into it and ``extract(state)`` produces the final result.
    """

    initial: Callable[[], S]
    step: Callable[[S, list[T]], S]
    extract: Callable[[S], R]

    @classmethod
    def collect(cls) -> Fold[list[T], T, list[T]]:
        def step(acc: list[T], rows: list[T]) -> list[T]:
            acc.extend(rows)
            return acc

        return cls(list, step, lambda acc: acc)

    @classmethod
    def count(cls) -> Fold[int, Any, int]:
        return cls(lambda: 0, lambda total, rows: total + len(rows), lambda total: total)


_WHITESPACE = b" \t\r\n"
_NON_WHITESPACE_RE = re.compile(rb"[^ \t\r\n]")
_STRUCTURAL_RE = re.compile(rb'[\[\]{}"]')
_STRING_SPECIAL_RE = re.compile(rb'["\\]')


class JSONStream:
    """Incrementally splits a byte stream into top-level JSON values.

    Only objects and arrays are accepted at the top level.  The scanner
    tracks nesting and string state across ``feed`` calls; every complete
    value is then checked by ``json.loads``.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._pos = 0
        self._depth = 0
        self._in_string = False

    def feed(self, chunk: bytes) -> list[tuple[Any, bytes]]:
        """Add *chunk*; return ``(value, raw_bytes)`` for each completed value."""
        self._buffer += chunk
        values = []
        item = self._next_value()
        while item is not None:
            values.append(item)
            item = self._next_value()
        return values

    def close(self) -> None:
        """Signal end of input; leftover non-whitespace data is an error."""
        if bytes(self._buffer).strip(_WHITESPACE):
            raise IllformedJSON("unexpected end of input", bytes(self._buffer))

    def _next_value(self) -> tuple[Any, bytes] | None:
        buf = self._buffer
        if self._depth == 0:
            match = _NON_WHITESPACE_RE.search(buf)
            if match is None:
                buf.clear()
                return None
            del buf[: match.start()]
            if buf[0] not in b"{[":
                raise IllformedJSON("expected a JSON object or array", bytes(buf))
            self._depth = 1
            self._pos = 1

        while True:
            if self._in_string:
                match = _STRING_SPECIAL_RE.search(buf, self._pos)
                if match is None:
                    self._pos = max(self._pos, len(buf))
                    return None
                if buf[match.start()] == ord("\\"):
                    # skip the escaped byte, which may not have arrived yet
                    self._pos = match.start() + 2
                else:
                    self._in_string = False
                    self._pos = match.end()
                continue

            match = _STRUCTURAL_RE.search(buf, self._pos)
            if match is None:
                self._pos = len(buf)
                return None
            self._pos = match.end()
            char = buf[match.start()]
            if char == ord('"'):
                self._in_string = True
            elif char in b"{[":
                self._depth += 1
            else:
                self._depth -= 1
                if self._depth == 0:
                    return self._take_value()

    def _take_value(self) -> tuple[Any, bytes]:
        raw = bytes(self._buffer[: self._pos])
        del self._buffer[: self._pos]
        self._pos = 0
        try:
            value = json.loads(raw)
        except ValueError as exc:
            raise IllformedJSON(str(exc), raw + bytes(self._buffer)) from exc
        return value, raw


def decode_chunks(
    chunks: Iterable[bytes],
    precision: Precision,
    parser: QueryResults[T],
    fold: Fold[S, T, R],
) -> R:
    """Fold the rows of a chunked response into *fold*.

    Reading stops at the end of *chunks* or at the first empty chunk.
    """
    stream = JSONStream()
    state = fold.initial()
    for chunk in chunks:
        if not chunk:
            break
        for value, raw in stream.feed(chunk):
            state = fold.step(state, _apply(parser, precision, value, raw))
    stream.close()
    return fold.extract(state)


def chunked_param(chunk_size: int | None) -> str:
    """Value of the ``chunked`` query parameter; sizes below 1 become 1."""
    if chunk_size is None:
        return "true"
    return str(max(1, chunk_size))
