"""Client configuration loaded from environment variables."""

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from influxdb_http.types import Precision, coerce_precision


class Settings(BaseSettings):
    """All settings are read from ``INFLUXDB_*`` environment variables (case-insensitive)."""

    model_config = SettingsConfigDict(env_prefix="INFLUXDB_", env_file=".env", extra="ignore")

    # ── Server ────────────────────────────────────────────────────────────────
    host: str = "localhost"
    port: int = 8086
    ssl: bool = False
    timeout: float = 10.0

    # ── Database ──────────────────────────────────────────────────────────────
    database: str = ""
    # Empty means the database's default retention policy
    retention_policy: str = ""

    # ── Credentials ───────────────────────────────────────────────────────────
    # Leave the user empty to send unauthenticated requests.
    user: str = ""
    password: str = ""

    # ── Timestamps ────────────────────────────────────────────────────────────
    # Accepts member names ("second") or wire codes ("s").  RFC3339 is rejected
    # for writes when the write params are built.
    write_precision: Precision = Precision.NANOSECOND
    query_precision: Precision = Precision.RFC3339

    # ── Writes ────────────────────────────────────────────────────────────────
    escape_strings: bool = False

    @field_validator("write_precision", "query_precision", mode="before")
    @classmethod
    def _parse_precision(cls, value: Any) -> Any:
        return coerce_precision(value)
