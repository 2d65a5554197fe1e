"""
Tool execution: validation, admission control, retries and failure mapping.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..agents.errors import (
    AgentRunAbortedError,
    SubagentDepthExceededError,
    SubagentExecutionError,
)
from ..tools.base import Tool, ToolContext, ToolResult
from ..tools.errors import (
    ToolNetworkError,
    ToolNotFoundError,
    ToolRateLimitedError,
    ToolTimeoutError,
    ToolValidationError,
)
from ..tools.limits import RateLimiter, RetryPolicy
from .config import RuntimeConfig

logger = logging.getLogger(__name__)


def classify_tool_error(exc: BaseException) -> str:
    """Map a terminal tool exception to the `ToolResult.error_kind` reported to the model."""
    if isinstance(exc, ToolValidationError):
        return "schema_error"
    if isinstance(exc, ToolNotFoundError):
        return "not_found"
    if isinstance(exc, ToolRateLimitedError):
        return "rate_limited"
    if isinstance(exc, (ToolTimeoutError, TimeoutError)):
        return "timeout"
    if isinstance(exc, (ToolNetworkError, ConnectionError)):
        return "network_error"
    if isinstance(exc, SubagentDepthExceededError):
        return "depth_exceeded"
    if isinstance(exc, SubagentExecutionError):
        return "subagent_failed"
    return "execution_error"


class ToolExecutor:
    """
    Executes one tool call and always returns a `ToolResult`.

    The executor is process-wide: its rate limiter buckets are shared by every
    invocation (at any depth) that calls the same tool. Only run-level errors
    (`AgentRunAbortedError`) and task cancellation escape `execute`.
    """

    def __init__(
        self,
        *,
        retry: RetryPolicy | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.retry = retry or RetryPolicy()
        self.rate_limiter = rate_limiter or RateLimiter()

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> "ToolExecutor":
        return cls(
            retry=config.retry.to_policy(),
            rate_limiter=RateLimiter(default_spec=config.per_tool_rate_limit),
        )

    async def execute(
        self,
        tool: Tool[Any, Any],
        raw_args: Any,
        ctx: ToolContext,
    ) -> ToolResult[Any]:
        name = tool.spec.name
        call_id = ctx.tool_call_id

        try:
            args = tool.validate(raw_args)
        except ToolValidationError as e:
            return ToolResult.failure(
                "schema_error", str(e), tool_name=name, tool_call_id=call_id
            )

        counted = False
        attempt = 0
        while True:
            attempt += 1
            signal = ctx.cancellation
            if attempt > 1 and signal is not None and signal.cancelled:
                return ToolResult.failure(
                    "cancelled",
                    f"Tool '{name}' cancelled before attempt {attempt}",
                    tool_name=name,
                    tool_call_id=call_id,
                    attempts=attempt - 1,
                )

            try:
                self.rate_limiter.acquire(name, tool.rate_limit)
                if not counted and ctx.invocation is not None:
                    ctx.invocation.usage.increment(tool_calls=1)
                counted = True
                output = await tool.invoke(args, ctx)
                return ToolResult(
                    output=output,
                    success=True,
                    tool_name=name,
                    tool_call_id=call_id,
                    attempts=attempt,
                )
            except AgentRunAbortedError:
                raise
            except Exception as e:
                if self.retry.is_retryable(e) and attempt < self.retry.max_attempts:
                    delay = self.retry.delay_for(attempt - 1, e)
                    logger.warning(
                        "tool %s attempt %d/%d failed (%s); retrying in %.3fs",
                        name,
                        attempt,
                        self.retry.max_attempts,
                        e,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue

                kind = classify_tool_error(e)
                logger.info("tool %s failed after %d attempt(s): %s: %s", name, attempt, kind, e)
                return ToolResult.failure(
                    kind,
                    str(e) or e.__class__.__name__,
                    tool_name=name,
                    tool_call_id=call_id,
                    attempts=attempt,
                )
