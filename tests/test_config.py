"""Unit tests for environment-driven settings and the params factories."""

from __future__ import annotations

import httpx
import pytest
from pydantic import ValidationError

from influxdb_http.config import Settings
from influxdb_http.deps import get_query_params, get_settings, get_write_params, open_client
from influxdb_http.models import QueryParams
from influxdb_http.types import Precision


@pytest.fixture()
def influx_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    monkeypatch.setenv("INFLUXDB_HOST", "influx.internal")
    monkeypatch.setenv("INFLUXDB_PORT", "9086")
    monkeypatch.setenv("INFLUXDB_SSL", "true")
    monkeypatch.setenv("INFLUXDB_DATABASE", "telemetry")
    monkeypatch.setenv("INFLUXDB_USER", "svc")
    monkeypatch.setenv("INFLUXDB_PASSWORD", "hunter2")
    return monkeypatch


# ── Settings ──────────────────────────────────────────────────────────────────


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HOST", "PORT", "DATABASE", "USER", "WRITE_PRECISION", "QUERY_PRECISION"):
        monkeypatch.delenv(f"INFLUXDB_{name}", raising=False)
    settings = Settings(_env_file=None)
    assert (settings.host, settings.port, settings.ssl) == ("localhost", 8086, False)
    assert settings.write_precision is Precision.NANOSECOND
    assert settings.query_precision is Precision.RFC3339


def test_settings_read_the_environment(influx_env: pytest.MonkeyPatch) -> None:
    settings = get_settings()
    assert settings.host == "influx.internal"
    assert settings.port == 9086
    assert settings.ssl is True
    assert settings.database == "telemetry"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("s", Precision.SECOND),
        ("second", Precision.SECOND),
        ("ns", Precision.NANOSECOND),
        ("MS", Precision.MILLISECOND),
    ],
)
def test_precision_names_and_codes_are_accepted(
    monkeypatch: pytest.MonkeyPatch, text: str, expected: Precision
) -> None:
    monkeypatch.setenv("INFLUXDB_WRITE_PRECISION", text)
    assert Settings(_env_file=None).write_precision is expected


def test_unknown_precision_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INFLUXDB_QUERY_PRECISION", "fortnight")
    with pytest.raises(ValidationError, match="unknown precision"):
        Settings(_env_file=None)


# ── Params factories ──────────────────────────────────────────────────────────


def test_query_params_from_environment(influx_env: pytest.MonkeyPatch) -> None:
    params = get_query_params()
    assert params.database == "telemetry"
    assert params.server.base_url == "https://influx.internal:9086"
    assert params.authentication is not None
    assert params.authentication.to_params() == {"u": "svc", "p": "hunter2"}
    assert params.precision is Precision.RFC3339


def test_write_params_from_environment(influx_env: pytest.MonkeyPatch) -> None:
    influx_env.setenv("INFLUXDB_RETENTION_POLICY", "autogen")
    influx_env.setenv("INFLUXDB_WRITE_PRECISION", "ms")
    params = get_write_params()
    assert params.retention_policy == "autogen"
    assert params.precision is Precision.MILLISECOND


def test_anonymous_without_user() -> None:
    settings = Settings(_env_file=None, database="telemetry", user="")
    assert get_query_params(settings).authentication is None
    assert get_write_params(settings).retention_policy is None


def test_missing_database_is_reported() -> None:
    with pytest.raises(ValueError, match="INFLUXDB_DATABASE"):
        get_query_params(Settings(_env_file=None, database=""))


def test_rfc3339_write_precision_fails_when_params_are_built() -> None:
    settings = Settings(_env_file=None, database="telemetry", write_precision="rfc3339")
    with pytest.raises(ValidationError, match="only valid for queries"):
        get_write_params(settings)


# ── open_client ───────────────────────────────────────────────────────────────


def test_open_client_reuses_a_shared_client() -> None:
    with httpx.Client() as shared:
        params = QueryParams(database="telemetry", client=shared)
        with open_client(params) as client:
            assert client is shared
        assert not shared.is_closed


def test_open_client_closes_per_call_clients() -> None:
    params = QueryParams(database="telemetry", timeout=2.5)
    with open_client(params) as client:
        assert client.timeout.read == 2.5
    assert client.is_closed
