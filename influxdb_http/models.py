"""Pydantic parameter models for the query and write endpoints."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from influxdb_http.types import Database, Key, Precision, coerce_precision, require_writable


class Server(BaseModel):
    """Address of an InfluxDB server."""

    model_config = ConfigDict(frozen=True)

    host: str = Field("localhost", description="Host name or IP address")
    port: int = Field(8086, description="HTTP API port")
    ssl: bool = Field(False, description="Use https instead of http")

    @property
    def base_url(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"


class Credentials(BaseModel):
    """User name and password sent as ``u`` / ``p`` query parameters."""

    model_config = ConfigDict(frozen=True)

    user: str
    password: str

    def to_params(self) -> dict[str, str]:
        return {"u": self.user, "p": self.password}


class QueryParams(BaseModel):
    """Everything needed to issue a ``/query`` request."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    database: Database
    server: Server = Field(default_factory=Server)
    precision: Precision = Field(
        Precision.RFC3339, description="Format of the time column in results"
    )
    authentication: Credentials | None = None
    client: httpx.Client | None = Field(
        None, description="Shared HTTP client; a new one is opened per call if unset"
    )
    timeout: float = Field(10.0, description="Timeout for per-call clients (seconds)")

    @field_validator("precision", mode="before")
    @classmethod
    def _parse_precision(cls, value: Any) -> Any:
        return coerce_precision(value)


class WriteParams(BaseModel):
    """Everything needed to issue a ``/write`` request."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    database: Database
    server: Server = Field(default_factory=Server)
    retention_policy: Key | None = Field(
        None, description="Target retention policy; the database default if unset"
    )
    precision: Precision = Field(
        Precision.NANOSECOND, description="Unit the line timestamps are scaled to"
    )
    authentication: Credentials | None = None
    client: httpx.Client | None = None
    timeout: float = 10.0
    escape_strings: bool = Field(
        False, description="Escape quotes and backslashes inside string fields"
    )

    @field_validator("precision", mode="before")
    @classmethod
    def _parse_precision(cls, value: Any) -> Any:
        return coerce_precision(value)

    @field_validator("precision")
    @classmethod
    def _writable(cls, precision: Precision) -> Precision:
        return require_writable(precision)
