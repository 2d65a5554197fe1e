from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

agentnest tools public API.

This package exposes:
- Core tool types (Tool, ToolSpec, ToolContext, ToolResult, RateLimitSpec)
- The @tool decorator for authoring tools quickly
- ToolRegistry (+ schema validation and OpenAI function-tool export)
- Admission control and retry primitives (TokenBucket, RateLimiter, RetryPolicy)
"""

from .base import (
    RateLimitSpec,
    Tool,
    ToolContext,
    ToolFn,
    ToolResult,
    ToolSpec,
    as_async,
    json_value_from_tool_result,
)
from .decorator import tool
from .errors import (
    AgentNestToolError,
    ToolAlreadyRegisteredError,
    ToolNetworkError,
    ToolNotFoundError,
    ToolRateLimitedError,
    ToolRegistryFrozenError,
    ToolSchemaError,
    ToolTimeoutError,
    ToolValidationError,
)
from .limits import RateLimiter, RetryPolicy, TokenBucket, backoff_delay
from .registry import ToolRegistry, validate_tool_schema

__all__ = [
    # core
    "Tool",
    "ToolSpec",
    "ToolContext",
    "ToolResult",
    "ToolFn",
    "RateLimitSpec",
    "as_async",
    "json_value_from_tool_result",
    # decorators
    "tool",
    # registry
    "ToolRegistry",
    "validate_tool_schema",
    # limits
    "TokenBucket",
    "RateLimiter",
    "RetryPolicy",
    "backoff_delay",
    # errors
    "AgentNestToolError",
    "ToolAlreadyRegisteredError",
    "ToolNetworkError",
    "ToolNotFoundError",
    "ToolRateLimitedError",
    "ToolRegistryFrozenError",
    "ToolSchemaError",
    "ToolTimeoutError",
    "ToolValidationError",
]
