"""Tests for delay planning - backoff, jitter and Retry-After hints."""

import math
from datetime import datetime, timezone
from email.utils import format_datetime
from types import MappingProxyType

import httpx
import pytest
from async_retry.policy import RetryConfig, RetryReason, apply_full_jitter, calculate_backoff, plan_delay
from async_retry.policy.backoff import (
    get_header,
    parse_retry_after_body,
    parse_retry_after_header,
    to_int_ms,
)
from async_retry.policy.config import RetryHintUnit

NOW_MS = 1_700_000_000_000


class HTTPError(Exception):
    """Minimal SDK-style error carrying a response mapping."""

    def __init__(self, status, headers=None, data=None):
        super().__init__(f"HTTP {status}")
        self.response = {"status": status, "headers": headers or {}, "data": data}


def http_date(epoch_ms: int) -> str:
    return format_datetime(datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc), usegmt=True)


def httpx_error(status: int, headers: dict | None = None) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://test")
    response = httpx.Response(status, headers=headers, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestToIntMs:
    """Test duration normalization."""

    @pytest.mark.parametrize(
        "value,expected",
        [(0, 0), (1.9, 1), (1500, 1500), (-5, 0), (math.inf, 0), (math.nan, 0), ("10", 0)],
    )
    def test_normalizes_to_non_negative_int(self, value, expected):
        """Durations become non-negative ints; non-finite or non-numeric values give 0."""
        assert to_int_ms(value) == expected


class TestCalculateBackoff:
    """Test backoff calculation behavior."""

    def test_backoff_grows_exponentially(self):
        """Given increasing attempts, delay doubles with factor 2."""
        config = RetryConfig(base_delay_ms=100, cap_delay_ms=10_000, backoff_factor=2)

        delays = [calculate_backoff(attempt, config) for attempt in (1, 2, 3, 4)]

        assert delays == [100, 200, 400, 800]

    def test_backoff_respects_cap(self):
        """Delay never exceeds cap_delay_ms."""
        config = RetryConfig(base_delay_ms=1000, cap_delay_ms=1500)

        assert calculate_backoff(2, config) == 1500
        assert calculate_backoff(50, config) == 1500

    def test_backoff_uses_factor(self):
        """Growth follows the configured backoff factor."""
        config = RetryConfig(base_delay_ms=100, cap_delay_ms=10_000, backoff_factor=3)

        assert calculate_backoff(3, config) == 900

    def test_overflowing_backoff_saturates_to_cap(self):
        """A float overflow at huge attempt numbers yields the cap."""
        config = RetryConfig(base_delay_ms=100, cap_delay_ms=5000, backoff_factor=10.0)

        assert calculate_backoff(10_000, config) == 5000

    def test_zero_base_stays_zero(self):
        """A zero base delay stays zero even when the power overflows."""
        config = RetryConfig(base_delay_ms=0, backoff_factor=10.0)

        assert calculate_backoff(10_000, config) == 0


class TestFullJitter:
    """Test full jitter behavior."""

    def test_scales_backoff_by_random_draw(self):
        """Given r=0.5, delay is half the backoff."""
        assert apply_full_jitter(1000, lambda: 0.5) == 500
        assert apply_full_jitter(1500, lambda: 0.5) == 750

    def test_stays_below_backoff(self):
        """A draw of 1.0 or more is clamped below the backoff."""
        assert apply_full_jitter(1000, lambda: 1.0) == 999
        assert apply_full_jitter(1000, lambda: 7) == 999

    @pytest.mark.parametrize("draw", [-0.5, math.nan, math.inf])
    def test_invalid_draws_give_zero(self, draw):
        """Negative or non-finite draws give a zero delay."""
        assert apply_full_jitter(1000, lambda: draw) == 0


class TestGetHeader:
    """Test case-insensitive header lookup across header shapes."""

    def test_plain_dict_is_case_insensitive(self):
        """Dict header names match regardless of case."""
        assert get_header({"Retry-After": "5"}, "retry-after") == "5"

    def test_list_value_uses_first_string(self):
        """A list value contributes its first element."""
        assert get_header({"retry-after": ["3", "4"]}, "Retry-After") == "3"

    def test_non_string_value_is_ignored(self):
        """Non-string header values are ignored."""
        assert get_header({"retry-after": 5}, "retry-after") is None
        assert get_header({"retry-after": [5]}, "retry-after") is None

    def test_missing_header(self):
        """Absent header or headers give None."""
        assert get_header({"content-type": "text/plain"}, "retry-after") is None
        assert get_header(None, "retry-after") is None

    def test_httpx_headers_use_get(self):
        """httpx.Headers are queried through their own get()."""
        headers = httpx.Headers({"Retry-After": "7"})
        assert get_header(headers, "retry-after") == "7"

    def test_getter_non_string_result_is_ignored(self):
        """A get() returning a non-string is ignored."""
        class Headers:
            def get(self, name):
                return 5

        assert get_header(Headers(), "retry-after") is None

    def test_read_only_mapping_is_case_insensitive(self):
        """Non-dict mappings are scanned like dicts."""
        headers = MappingProxyType({"Retry-After": "2"})

        assert get_header(headers, "retry-after") == "2"


class TestParseRetryAfterHeader:
    """Test Retry-After header parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [("2", 2000), (" 1.5 ", 1500), ("0", 0), ("-3", 0)],
    )
    def test_parses_delta_seconds(self, value, expected):
        """Delta-seconds values are converted to milliseconds."""
        assert parse_retry_after_header(value, NOW_MS) == expected

    def test_parses_http_date(self):
        """An HTTP date gives the time remaining until it."""
        assert parse_retry_after_header(http_date(NOW_MS + 3000), NOW_MS) == 3000

    def test_past_http_date_gives_zero(self):
        """A date in the past gives a zero delay."""
        assert parse_retry_after_header(http_date(NOW_MS - 60_000), NOW_MS) == 0

    @pytest.mark.parametrize("value", ["soon", "", "inf", "NaN", "1_000", "1e999"])
    def test_unparsable_values_give_none(self, value):
        """Values that are neither numbers nor dates give None."""
        assert parse_retry_after_header(value, NOW_MS) is None


class TestParseRetryAfterBody:
    """Test body retry_after parsing."""

    def test_seconds_unit(self):
        """Seconds are converted to milliseconds."""
        assert parse_retry_after_body(3, RetryHintUnit.SECONDS) == 3000
        assert parse_retry_after_body("1.5", RetryHintUnit.SECONDS) == 1500

    def test_milliseconds_unit(self):
        """Milliseconds are used as-is, truncated."""
        assert parse_retry_after_body(250, RetryHintUnit.MILLISECONDS) == 250
        assert parse_retry_after_body(" 250.9 ", RetryHintUnit.MILLISECONDS) == 250

    @pytest.mark.parametrize("value", [None, True, "later", {"s": 1}, [1], math.nan])
    def test_non_numeric_values_give_none(self, value):
        """Non-numeric body values give None."""
        assert parse_retry_after_body(value, RetryHintUnit.SECONDS) is None


class TestPlanDelay:
    """Test the choice between Retry-After hints and backoff."""

    def test_retry_after_header_on_429_skips_jitter(self):
        """Given 429 with Retry-After, the hint is used without jitter."""
        config = RetryConfig(rng=lambda: 0.1)
        error = HTTPError(429, {"Retry-After": "2"})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 2000)

    def test_retry_after_header_on_httpx_error(self):
        """Retry-After is read from an httpx response."""
        config = RetryConfig()
        error = httpx_error(429, {"Retry-After": "4"})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 4000)

    def test_retry_after_header_in_read_only_mapping(self):
        """A Retry-After inside a read-only mapping is honoured on 429."""
        config = RetryConfig(base_delay_ms=100, jitter="none")
        error = HTTPError(429, MappingProxyType({"Retry-After": "2"}))

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 2000)

    def test_http_date_header(self):
        """An HTTP-date Retry-After one second ahead gives 1000ms."""
        error = HTTPError(429, {"retry-after": http_date(NOW_MS + 1000)})

        assert plan_delay(error, 1, RetryConfig(), NOW_MS) == (RetryReason.RETRY_AFTER, 1000)

    def test_custom_header_name(self):
        """A configured header name is looked up case-insensitively."""
        config = RetryConfig(retry_after_header_name="X-RateLimit-Reset-After")
        error = HTTPError(429, {"x-ratelimit-reset-after": "1"})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 1000)

    def test_header_ignored_for_other_statuses(self):
        """Retry-After on a non-429 status falls back to backoff."""
        config = RetryConfig(base_delay_ms=100, jitter="none")
        error = HTTPError(503, {"Retry-After": "2"})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.BACKOFF, 100)

    def test_header_ignored_when_disabled(self):
        """respect_retry_after=False always uses backoff."""
        config = RetryConfig(base_delay_ms=100, jitter="none", respect_retry_after=False)
        error = HTTPError(429, {"Retry-After": "2"})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.BACKOFF, 100)

    def test_invalid_header_falls_back_to_backoff(self):
        """An unparsable header falls back to backoff."""
        config = RetryConfig(base_delay_ms=100, jitter="none")
        error = HTTPError(429, {"Retry-After": "soon"})

        assert plan_delay(error, 2, config, NOW_MS) == (RetryReason.BACKOFF, 200)

    def test_body_hint_when_enabled(self):
        """A body retry_after is used when a unit is configured."""
        config = RetryConfig(retry_after_body_unit="seconds")
        error = HTTPError(429, data={"retry_after": 3})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 3000)

    def test_body_hint_ignored_when_disabled(self):
        """Body hints are ignored by default."""
        config = RetryConfig(base_delay_ms=100, jitter="none")
        error = HTTPError(429, data={"retry_after": 3})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.BACKOFF, 100)

    def test_header_takes_precedence_over_body(self):
        """A usable header wins over a body hint."""
        config = RetryConfig(retry_after_body_unit="seconds")
        error = HTTPError(429, {"Retry-After": "1"}, data={"retry_after": 9})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 1000)

    def test_invalid_header_falls_back_to_body(self):
        """An unparsable header defers to the body hint."""
        config = RetryConfig(retry_after_body_unit="milliseconds")
        error = HTTPError(429, {"Retry-After": "soon"}, data={"retry_after": "750"})

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 750)

    def test_body_hint_from_raw_error_then_data(self):
        """raw_error is checked before top-level data."""
        config = RetryConfig(retry_after_body_unit="milliseconds")

        error = HTTPError(429)
        error.raw_error = {"retry_after": 300}
        error.data = {"retry_after": 900}
        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 300)

        error = HTTPError(429)
        error.data = {"retry_after": 900}
        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.RETRY_AFTER, 900)

    def test_backoff_with_full_jitter(self):
        """Deterministic random source gives floor(r * capped backoff)."""
        config = RetryConfig(base_delay_ms=1000, cap_delay_ms=1500, rng=lambda: 0.5)
        error = RuntimeError("fail")

        assert plan_delay(error, 1, config, NOW_MS) == (RetryReason.BACKOFF, 500)
        assert plan_delay(error, 2, config, NOW_MS) == (RetryReason.BACKOFF, 750)

    def test_backoff_without_jitter_is_deterministic(self):
        """With jitter disabled, the capped backoff is used directly."""
        config = RetryConfig(base_delay_ms=1000, cap_delay_ms=1500, jitter="none")

        assert plan_delay(RuntimeError(), 1, config, NOW_MS) == (RetryReason.BACKOFF, 1000)
        assert plan_delay(RuntimeError(), 2, config, NOW_MS) == (RetryReason.BACKOFF, 1500)
