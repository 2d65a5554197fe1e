"""
Process-wide runtime configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..agents.errors import AgentConfigurationError
from ..tools.base import RateLimitSpec
from ..tools.limits import RetryPolicy


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise AgentConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise AgentConfigurationError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """
    Retry settings for transient tool failures.

    Attributes:
        max_attempts: Total attempts including the first one.
        base_delay_s: Backoff base; attempt `n` waits `base * 2**n` plus jitter.
        jitter_s: Upper bound of the uniform random jitter added to each delay.
    """

    max_attempts: int = 3
    base_delay_s: float = 0.25
    jitter_s: float = 0.1

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_s=self.base_delay_s,
            jitter_s=self.jitter_s,
        )


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """
    Runtime limits shared by every invocation served by one `AgentRuntime`.

    Attributes:
        max_rounds: Maximum oracle rounds per invocation.
        max_depth: Maximum nesting depth of sub-agent invocations.
        token_budget: Optional ceiling on input + output tokens for a whole run.
        per_tool_rate_limit: Default token bucket for tools without their own.
        retry: Retry settings for transient tool failures.
        max_parallel_tools: Worker-pool bound for concurrent read-only calls.
        cancel_grace_s: How long in-flight calls may keep running after
            cancellation before they are interrupted.
    """

    max_rounds: int = 20
    max_depth: int = 3
    token_budget: int | None = None
    per_tool_rate_limit: RateLimitSpec | None = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    max_parallel_tools: int = 8
    cancel_grace_s: float = 2.0

    def __post_init__(self) -> None:
        if self.max_rounds < 1:
            raise AgentConfigurationError("max_rounds must be >= 1")
        if self.max_depth < 0:
            raise AgentConfigurationError("max_depth must be >= 0")
        if self.token_budget is not None and self.token_budget < 0:
            raise AgentConfigurationError("token_budget must be >= 0")
        if self.retry.max_attempts < 1:
            raise AgentConfigurationError("retry.max_attempts must be >= 1")
        if self.retry.base_delay_s < 0 or self.retry.jitter_s < 0:
            raise AgentConfigurationError("retry delays must be >= 0")
        if self.max_parallel_tools < 1:
            raise AgentConfigurationError("max_parallel_tools must be >= 1")
        if self.cancel_grace_s < 0:
            raise AgentConfigurationError("cancel_grace_s must be >= 0")

    @staticmethod
    def from_env() -> "RuntimeConfig":
        capacity = _env_int("AGENTNEST_RATE_CAPACITY", None)
        refill = _env_float("AGENTNEST_RATE_REFILL_PER_S", None)
        rate_limit = None
        if capacity is not None:
            try:
                rate_limit = RateLimitSpec(capacity=capacity, refill_rate=refill or 0.0)
            except ValueError as e:
                raise AgentConfigurationError(str(e)) from e

        return RuntimeConfig(
            max_rounds=_env_int("AGENTNEST_MAX_ROUNDS", 20),
            max_depth=_env_int("AGENTNEST_MAX_DEPTH", 3),
            token_budget=_env_int("AGENTNEST_TOKEN_BUDGET", None),
            per_tool_rate_limit=rate_limit,
            retry=RetryConfig(
                max_attempts=_env_int("AGENTNEST_RETRY_MAX_ATTEMPTS", 3),
                base_delay_s=_env_float("AGENTNEST_RETRY_BASE_DELAY_MS", 250.0) / 1000.0,
                jitter_s=_env_float("AGENTNEST_RETRY_JITTER_MS", 100.0) / 1000.0,
            ),
            max_parallel_tools=_env_int("AGENTNEST_MAX_PARALLEL_TOOLS", 8),
            cancel_grace_s=_env_float("AGENTNEST_CANCEL_GRACE_S", 2.0),
        )
