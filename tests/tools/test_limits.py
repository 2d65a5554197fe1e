from __future__ import annotations

import math
import threading

import pytest

from agentnest.tools import RateLimiter, RateLimitSpec, RetryPolicy, TokenBucket, backoff_delay
from agentnest.tools.errors import (
    ToolNetworkError,
    ToolRateLimitedError,
    ToolTimeoutError,
    ToolValidationError,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_backoff_delay_grows_exponentially_without_jitter():
    assert backoff_delay(0, 0.1, 0.0) == pytest.approx(0.1)
    assert backoff_delay(1, 0.1, 0.0) == pytest.approx(0.2)
    assert backoff_delay(3, 0.1, 0.0) == pytest.approx(0.8)


def test_backoff_delay_jitter_is_bounded():
    for _ in range(50):
        delay = backoff_delay(0, 0.1, 0.05)
        assert 0.1 <= delay <= 0.15


def test_token_bucket_admits_capacity_then_reports_wait():
    clock = FakeClock()
    bucket = TokenBucket(2, 1.0, clock=clock)

    assert bucket.try_acquire() == 0.0
    assert bucket.try_acquire() == 0.0
    assert bucket.try_acquire() == pytest.approx(1.0)

    clock.now = 0.5
    assert bucket.try_acquire() == pytest.approx(0.5)

    clock.now = 1.0
    assert bucket.try_acquire() == 0.0


def test_token_bucket_without_refill_never_recovers():
    clock = FakeClock()
    bucket = TokenBucket(1, 0.0, clock=clock)
    assert bucket.try_acquire() == 0.0
    clock.now = 1_000.0
    assert math.isinf(bucket.try_acquire())


def test_token_bucket_refill_is_capped_at_capacity():
    clock = FakeClock()
    bucket = TokenBucket(3, 10.0, clock=clock)
    bucket.try_acquire()
    clock.now = 60.0
    assert bucket.available == pytest.approx(3.0)


def test_token_bucket_is_safe_across_threads():
    bucket = TokenBucket(500, 0.0)
    admitted = []
    lock = threading.Lock()

    def worker():
        for _ in range(100):
            if bucket.try_acquire() == 0.0:
                with lock:
                    admitted.append(1)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(admitted) == 500


def test_rate_limit_spec_validation():
    with pytest.raises(ValueError):
        RateLimitSpec(capacity=0, refill_rate=1.0)
    with pytest.raises(ValueError):
        RateLimitSpec(capacity=1, refill_rate=-1.0)


def test_rate_limiter_shares_one_bucket_per_tool_name():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    spec = RateLimitSpec(capacity=1, refill_rate=2.0)

    limiter.acquire("search", spec)
    limiter.acquire("other", spec)
    with pytest.raises(ToolRateLimitedError) as exc_info:
        limiter.acquire("search", spec)
    assert exc_info.value.retry_after_s == pytest.approx(0.5)
    assert limiter.bucket_for("search", spec) is limiter.bucket_for("search", spec)


def test_rate_limiter_uses_default_spec_and_skips_unlimited_tools():
    unlimited = RateLimiter()
    for _ in range(100):
        unlimited.acquire("anything")
    assert unlimited.bucket_for("anything") is None

    limited = RateLimiter(default_spec=RateLimitSpec(capacity=1, refill_rate=0.0))
    limited.acquire("t")
    with pytest.raises(ToolRateLimitedError) as exc_info:
        limited.acquire("t")
    assert exc_info.value.retry_after_s is None


def test_retry_policy_only_retries_transient_failures():
    policy = RetryPolicy()
    assert policy.is_retryable(ToolNetworkError("down"))
    assert policy.is_retryable(ToolRateLimitedError("busy"))
    assert policy.is_retryable(ToolTimeoutError("slow"))
    assert policy.is_retryable(ConnectionResetError())
    assert not policy.is_retryable(ToolValidationError("bad args"))
    assert not policy.is_retryable(ValueError("bug"))


def test_retry_policy_waits_at_least_retry_after():
    policy = RetryPolicy(max_attempts=3, base_delay_s=0.01, jitter_s=0.0)
    assert policy.delay_for(0) == pytest.approx(0.01)
    assert policy.delay_for(0, ToolRateLimitedError("busy", retry_after_s=0.3)) == pytest.approx(0.3)


def test_retry_policy_requires_at_least_one_attempt():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
