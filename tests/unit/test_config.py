"""Tests for reqlife.config: parameter validation and environment loading."""

from __future__ import annotations

import pytest

from reqlife.config import (
    DEFAULT_SLOW_THRESHOLD_MS,
    HttpClientParams,
    HttpRequestOptions,
    parse_bool,
    parse_int,
)
from reqlife.core import ResponseType
from reqlife.errors import ConfigError
from reqlife.net.retry_policy import retry_network_errors

ENV_NAMES = (
    "HOSTNAME",
    "PORT",
    "SSL",
    "TIMEOUT_MS",
    "RETRIES",
    "SLOW_THRESHOLD_MS",
    "BACKOFF_BASE_MS",
    "MAX_BACKOFF_MS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without REQLIFE_* variables."""
    for name in ENV_NAMES:
        monkeypatch.delenv(f"REQLIFE_{name}", raising=False)


class TestParseBool:
    @pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes", "on", " On "])
    def test_truthy(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("TEST_FLAG", value)
        assert parse_bool("TEST_FLAG", False) is True

    @pytest.mark.parametrize("value", ["0", "false", "No", "off"])
    def test_falsy(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("TEST_FLAG", value)
        assert parse_bool("TEST_FLAG", True) is False

    def test_unset_and_blank_use_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TEST_FLAG", raising=False)
        assert parse_bool("TEST_FLAG", True) is True
        monkeypatch.setenv("TEST_FLAG", "   ")
        assert parse_bool("TEST_FLAG", False) is False

    def test_invalid_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_FLAG", "maybe")
        with pytest.raises(ConfigError, match="invalid boolean value for TEST_FLAG"):
            parse_bool("TEST_FLAG", False)


class TestParseInt:
    def test_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_INT", " 42 ")
        assert parse_int("TEST_INT", 0) == 42

    def test_default(self) -> None:
        assert parse_int("TEST_INT_UNSET_XYZ", 7) == 7
        assert parse_int("TEST_INT_UNSET_XYZ", None) is None

    def test_invalid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_INT", "12ms")
        with pytest.raises(ConfigError, match="invalid integer value"):
            parse_int("TEST_INT", 0)

    def test_below_minimum(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_INT", "-1")
        with pytest.raises(ConfigError, match="below minimum 0"):
            parse_int("TEST_INT", 0)


class TestHttpClientParams:
    def test_defaults(self) -> None:
        p = HttpClientParams(hostname="example.com", port=443, ssl=True)
        assert p.headers == {}
        assert p.timeout_ms == 0
        assert p.retries == 0
        assert p.slow_threshold_ms == DEFAULT_SLOW_THRESHOLD_MS
        assert p.is_retryable is retry_network_errors
        assert p.backoff_base_ms == 250
        assert p.max_backoff_ms is None

    @pytest.mark.parametrize(
        ("ssl", "port", "expected"),
        [
            (True, 443, "https://example.com:443"),
            (False, 80, "http://example.com:80"),
            (False, 8080, "http://example.com:8080"),
        ],
    )
    def test_base_url_always_has_port(self, ssl: bool, port: int, expected: str) -> None:
        assert HttpClientParams(hostname="example.com", port=port, ssl=ssl).base_url == expected

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"hostname": ""}, "hostname"),
            ({"port": 0}, "port"),
            ({"port": 70000}, "port"),
            ({"timeout_ms": -1}, "timeout_ms"),
            ({"retries": -1}, "retries"),
            ({"slow_threshold_ms": -5}, "slow_threshold_ms"),
        ],
    )
    def test_validation(self, kwargs: dict[str, object], match: str) -> None:
        values: dict[str, object] = {"hostname": "example.com", "port": 443, "ssl": True}
        values.update(kwargs)
        with pytest.raises(ConfigError, match=match):
            HttpClientParams(**values)  # type: ignore[arg-type]


class TestFromEnv:
    def test_minimal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REQLIFE_HOSTNAME", "api.example.com")
        p = HttpClientParams.from_env()
        assert p.hostname == "api.example.com"
        assert p.ssl is True
        assert p.port == 443
        assert p.retries == 0

    def test_plain_http_defaults_to_port_80(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REQLIFE_HOSTNAME", "localhost")
        monkeypatch.setenv("REQLIFE_SSL", "false")
        p = HttpClientParams.from_env()
        assert p.port == 80
        assert p.base_url == "http://localhost:80"

    def test_all_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REQLIFE_HOSTNAME", "h")
        monkeypatch.setenv("REQLIFE_PORT", "9000")
        monkeypatch.setenv("REQLIFE_TIMEOUT_MS", "1500")
        monkeypatch.setenv("REQLIFE_RETRIES", "3")
        monkeypatch.setenv("REQLIFE_SLOW_THRESHOLD_MS", "50")
        monkeypatch.setenv("REQLIFE_BACKOFF_BASE_MS", "100")
        monkeypatch.setenv("REQLIFE_MAX_BACKOFF_MS", "2000")

        p = HttpClientParams.from_env()

        assert (p.port, p.timeout_ms, p.retries) == (9000, 1500, 3)
        assert (p.slow_threshold_ms, p.backoff_base_ms, p.max_backoff_ms) == (50, 100, 2000)

    def test_explicit_hostname_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REQLIFE_HOSTNAME", "from-env")
        assert HttpClientParams.from_env("explicit").hostname == "explicit"

    def test_missing_hostname(self) -> None:
        with pytest.raises(ConfigError, match="REQLIFE_HOSTNAME is not set"):
            HttpClientParams.from_env()

    def test_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BILLING_HOSTNAME", "billing.internal")
        monkeypatch.setenv("BILLING_RETRIES", "1")
        p = HttpClientParams.from_env(prefix="BILLING_")
        assert p.hostname == "billing.internal"
        assert p.retries == 1

    def test_invalid_value_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REQLIFE_HOSTNAME", "h")
        monkeypatch.setenv("REQLIFE_RETRIES", "lots")
        with pytest.raises(ConfigError, match="REQLIFE_RETRIES"):
            HttpClientParams.from_env()

    def test_port_zero_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REQLIFE_HOSTNAME", "h")
        monkeypatch.setenv("REQLIFE_PORT", "0")
        with pytest.raises(ConfigError, match="below minimum 1"):
            HttpClientParams.from_env()


class TestHttpRequestOptions:
    def test_defaults_are_unset(self) -> None:
        o = HttpRequestOptions()
        assert o.body is None
        assert o.headers is None
        assert o.timeout_ms is None
        assert o.retries is None
        assert o.is_retryable is None
        assert o.slow_threshold_ms is None
        assert o.response_type == ResponseType.TEXT

    @pytest.mark.parametrize("field_name", ["timeout_ms", "retries", "slow_threshold_ms"])
    def test_negative_rejected(self, field_name: str) -> None:
        with pytest.raises(ConfigError, match=field_name):
            HttpRequestOptions(**{field_name: -1})  # type: ignore[arg-type]
