"""Tests for the retry policy."""

import pytest

from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.rpc import RetryPolicy, is_rate_limit_message, is_rate_limited


class Flaky:
    """Callable that fails a fixed number of times before succeeding."""

    def __init__(self, failures: list[Exception], result="ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def test_retries_rate_limited_failures_with_schedule():
    """Rate-limited failures are retried after each scheduled delay."""
    sleeps = []
    func = Flaky([ProviderError("busy", 429, rate_limited=True), ProviderError("busy", 429, rate_limited=True)])
    policy = RetryPolicy(delays=(0.35, 0.9), sleep=sleeps.append)

    assert policy.call(func) == "ok"
    assert func.calls == 3
    assert sleeps == [0.35, 0.9]


def test_non_retryable_failure_raises_immediately():
    """Other failures are not retried."""
    sleeps = []
    func = Flaky([ProviderError("bad request", 400)])
    policy = RetryPolicy(sleep=sleeps.append)

    with pytest.raises(ProviderError, match="bad request"):
        policy.call(func)

    assert func.calls == 1
    assert sleeps == []


def test_exhausted_retries_raise_last_failure():
    """After the last delay the failure propagates."""
    sleeps = []
    func = Flaky([ProviderError(f"rate limit {i}", rate_limited=True) for i in range(5)])
    policy = RetryPolicy(delays=(0.1, 0.2), sleep=sleeps.append)

    with pytest.raises(ProviderError, match="rate limit 2"):
        policy.call(func)

    assert func.calls == policy.max_attempts == 3
    assert sleeps == [0.1, 0.2]


def test_rate_limit_detection():
    """429, Cloudflare 1015 and rate-limit wording all count."""
    assert is_rate_limit_message("HTTP 429 Too Many Requests")
    assert is_rate_limit_message("error code: 1015")
    assert is_rate_limit_message("Rate limit exceeded")
    assert not is_rate_limit_message("internal error")
    assert is_rate_limited(ProviderError("x", 429))
    assert not is_rate_limited(ProviderError("x", 500))
    assert is_rate_limited(RuntimeError("rate limit hit"))
