from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Admission control and retry strategy for tool calls: per-tool token buckets and
exponential backoff with jitter.
"""

import logging
import math
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .base import RateLimitSpec
from .errors import ToolNetworkError, ToolRateLimitedError, ToolTimeoutError

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_s: float, jitter_s: float) -> float:
    """
    Exponential backoff with jitter.
    attempt=0 => base, attempt=1 => 2*base, etc.
    """
    exp = base_s * (2 ** attempt)
    jitter = random.uniform(0.0, jitter_s) if jitter_s > 0 else 0.0
    return exp + jitter


class TokenBucket:
    """
    Classic token bucket. State updates happen under a short lock and never
    across an await, so it is safe for tasks and worker threads alike.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if refill_rate < 0:
            raise ValueError("refill_rate must be >= 0")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._tokens = float(capacity)
        self._updated_at = clock()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._updated_at)
        self._updated_at = now
        if self.refill_rate > 0:
            self._tokens = min(float(self.capacity), self._tokens + elapsed * self.refill_rate)

    def try_acquire(self) -> float:
        """Take one token. Returns 0.0 when admitted, else seconds until a token is available."""
        with self._lock:
            self._refill(self._clock())
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0
            if self.refill_rate <= 0:
                return math.inf
            return (1.0 - self._tokens) / self.refill_rate

    @property
    def available(self) -> float:
        with self._lock:
            self._refill(self._clock())
            return self._tokens


class RateLimiter:
    """
    One bucket per tool name, shared by every caller of that tool regardless of
    which agent or depth the call comes from.
    """

    def __init__(
        self,
        *,
        default_spec: RateLimitSpec | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_spec = default_spec
        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def bucket_for(self, tool_name: str, spec: RateLimitSpec | None = None) -> Optional[TokenBucket]:
        effective = spec or self._default_spec
        if effective is None:
            return None
        with self._lock:
            bucket = self._buckets.get(tool_name)
            if bucket is None:
                bucket = TokenBucket(effective.capacity, effective.refill_rate, clock=self._clock)
                self._buckets[tool_name] = bucket
            return bucket

    def acquire(self, tool_name: str, spec: RateLimitSpec | None = None) -> None:
        """
        Admit one call or raise ToolRateLimitedError.

        Callers own the waiting: the executor retries with backoff, so no lock is
        held while a call is delayed.
        """
        bucket = self.bucket_for(tool_name, spec)
        if bucket is None:
            return
        wait_s = bucket.try_acquire()
        if wait_s > 0:
            logger.debug("rate limit hit for tool %s (retry after %.3fs)", tool_name, wait_s)
            raise ToolRateLimitedError(
                f"Tool '{tool_name}' is rate limited",
                retry_after_s=None if math.isinf(wait_s) else wait_s,
            )


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Bounded retries for transient failures.

    Only network-class errors and rate limiting are retried; schema, not-found,
    depth and sub-agent failures are final on the first attempt.
    """

    max_attempts: int = 3
    base_delay_s: float = 0.25
    jitter_s: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(
            exc,
            (
                ToolNetworkError,
                ToolRateLimitedError,
                ToolTimeoutError,
                ConnectionError,
                TimeoutError,
            ),
        )

    def delay_for(self, attempt: int, exc: BaseException | None = None) -> float:
        delay = backoff_delay(attempt, self.base_delay_s, self.jitter_s)
        if isinstance(exc, ToolRateLimitedError) and exc.retry_after_s is not None:
            # no point waking up before the bucket has a token
            delay = max(delay, exc.retry_after_s)
        return delay
