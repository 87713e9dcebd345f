"""Core value types: keys, database names, field values and time precision.

Timestamps are converted with exact rational arithmetic so that nanosecond
values survive the trip from ``datetime``/``Decimal`` inputs unchanged.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Union

from pydantic_core import core_schema

from influxdb_http.errors import PrecisionError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Field values accepted by the line protocol.  Queries may also return null.
LineField = Union[bool, int, float, str]
QueryField = Union[bool, int, float, str, None]

Time = Union[datetime, timedelta, int, float, Decimal, Fraction]


class _NonEmptyText(str):
    def __new__(cls, value: str) -> _NonEmptyText:
        if not isinstance(value, str):
            raise TypeError(f"{cls.__name__} must be built from str, not {type(value).__name__}")
        if not value:
            raise ValueError(f"{cls.__name__} should never be empty")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str.__repr__(self)})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(cls, core_schema.str_schema())


class Key(_NonEmptyText):
    """Measurement name, tag key or field key."""


class Database(_NonEmptyText):
    """Database name."""


class Precision(Enum):
    """Timestamp precisions understood by the HTTP API.

    ``code`` is the short name used on the write endpoint, ``epoch`` the value
    of the query ``epoch`` parameter.  RFC3339 has neither: it is only valid
    for queries, where it is the server default.
    """

    NANOSECOND = ("n", "ns", Fraction(1, 10**9))
    MICROSECOND = ("u", "u", Fraction(1, 10**6))
    MILLISECOND = ("ms", "ms", Fraction(1, 10**3))
    SECOND = ("s", "s", Fraction(1))
    MINUTE = ("m", "m", Fraction(60))
    HOUR = ("h", "h", Fraction(3600))
    RFC3339 = (None, None, Fraction(1, 10**9))

    def __init__(self, code: str | None, epoch: str | None, scale: Fraction) -> None:
        self.code = code
        self.epoch = epoch
        self.scale = scale

    @property
    def writable(self) -> bool:
        return self is not Precision.RFC3339

    @classmethod
    def parse(cls, text: str) -> Precision:
        """Look a precision up by member name (``"second"``) or code (``"s"``)."""
        lowered = text.strip().lower()
        for member in cls:
            if lowered in (member.name.lower(), member.code, member.epoch):
                return member
        raise ValueError(f"unknown precision: {text!r}")


def require_writable(precision: Precision) -> Precision:
    """Return *precision* unchanged, or raise ``PrecisionError`` for RFC3339."""
    if not precision.writable:
        raise PrecisionError(f"{precision.name} is only valid for queries")
    return precision


def coerce_precision(value: Any) -> Any:
    """Before-validator: accept a precision name or code as text."""
    if isinstance(value, str):
        return Precision.parse(value)
    return value


def to_seconds(time: Time) -> Fraction:
    """Exact number of seconds between the POSIX epoch and *time*.

    Naive datetimes are taken to be UTC.  Numbers are POSIX seconds and a
    ``timedelta`` is an offset from the epoch.
    """
    if isinstance(time, datetime):
        if time.tzinfo is None:
            time = time.replace(tzinfo=timezone.utc)
        time = time - EPOCH
    if isinstance(time, timedelta):
        return Fraction(time.days * 86_400 + time.seconds) + Fraction(time.microseconds, 10**6)
    if isinstance(time, bool) or not isinstance(time, (int, float, Decimal, Fraction)):
        raise TypeError(f"unsupported timestamp type: {type(time).__name__}")
    return Fraction(time)


def _int64(value: int, time: Time) -> int:
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"timestamp {time!r} does not fit in a signed 64-bit integer")
    return value


def scale_to(precision: Precision, time: Time) -> int:
    """Scale *time* to an integer count of *precision* units since the epoch.

    Raises ``ValueError`` if the count does not fit in a signed 64-bit integer.
    """
    require_writable(precision)
    return _int64(round(to_seconds(time) / precision.scale), time)


def round_to(precision: Precision, time: Time) -> int:
    """Round *time* to the nearest *precision* unit, reported in nanoseconds."""
    require_writable(precision)
    rounded = round(to_seconds(time) / precision.scale) * precision.scale
    return _int64(round(rounded * 10**9), time)
