"""InfluxDB line protocol encoder.

One point renders as::

    <measurement>[,<tag>=<value>...] <field>=<value>[,<field>=<value>...][ <timestamp>]

See https://docs.influxdata.com/influxdb/v1/write_protocols/line_protocol_tutorial/
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from functools import partial

from pydantic import BaseModel, ConfigDict, Field, field_validator

from influxdb_http.types import (
    INT64_MAX,
    INT64_MIN,
    Key,
    LineField,
    Precision,
    QueryField,
    Time,
    scale_to,
)

TimestampEncoder = Callable[[Time], int]


class Line(BaseModel):
    """A single data point."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    measurement: Key = Field(..., description="Measurement name")
    tags: dict[Key, str] = Field(default_factory=dict, description="Tag set (optional)")
    fields: dict[Key, LineField] = Field(..., description="Field set, never empty")
    timestamp: Time | None = Field(None, description="Point time; server time if omitted")

    @field_validator("fields")
    @classmethod
    def _check_fields(cls, fields: dict[Key, LineField]) -> dict[Key, LineField]:
        if not fields:
            raise ValueError("a line needs at least one field")
        for key, value in fields.items():
            if isinstance(value, bool):
                continue
            if isinstance(value, int) and not INT64_MIN <= value <= INT64_MAX:
                raise ValueError(f"field {key!s} does not fit in a signed 64-bit integer")
            if isinstance(value, float) and not math.isfinite(value):
                raise ValueError(f"field {key!s} is not a finite float")
        return fields


def escape_key(text: str) -> str:
    """Backslash-escape commas and spaces."""
    return text.replace(",", "\\,").replace(" ", "\\ ")


def format_field_value(value: QueryField, escape_strings: bool = False) -> str:
    """Render a field value the way the line protocol expects it.

    Strings are quoted verbatim unless *escape_strings* is set, in which case
    backslashes and double quotes inside them are escaped.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        if escape_strings:
            value = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{value}"'
    raise TypeError(f"unsupported field value type: {type(value).__name__}")


def build_line(
    line: Line,
    to_timestamp: TimestampEncoder | None = None,
    *,
    escape_strings: bool = False,
) -> str:
    """Render *line* as text, without a trailing newline.

    *to_timestamp* turns the line's timestamp into an integer; it defaults to
    nanoseconds since the epoch.
    """
    if to_timestamp is None:
        to_timestamp = partial(scale_to, Precision.NANOSECOND)

    key = escape_key(line.measurement)
    if line.tags:
        key += "," + ",".join(
            f"{escape_key(name)}={escape_key(value)}"
            for name, value in sorted(line.tags.items())
        )
    fields = ",".join(
        f"{escape_key(name)}={format_field_value(value, escape_strings)}"
        for name, value in sorted(line.fields.items())
    )
    text = f"{key} {fields}"
    if line.timestamp is not None:
        text += f" {to_timestamp(line.timestamp)}"
    return text


def encode_line(
    line: Line,
    to_timestamp: TimestampEncoder | None = None,
    *,
    escape_strings: bool = False,
) -> bytes:
    """UTF-8 encoded ``build_line``."""
    return build_line(line, to_timestamp, escape_strings=escape_strings).encode()


def encode_lines(
    lines: Iterable[Line],
    to_timestamp: TimestampEncoder | None = None,
    *,
    escape_strings: bool = False,
) -> bytes:
    """Encode a batch; every line, the last included, ends with a newline."""
    return "".join(
        build_line(line, to_timestamp, escape_strings=escape_strings) + "\n"
        for line in lines
    ).encode()
