"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines custom exceptions for error handling in the tools.
"""

from __future__ import annotations


class AgentNestToolError(Exception):
    """Base exception for all tool-related errors."""

    pass


class ToolAlreadyRegisteredError(AgentNestToolError):
    pass


class ToolSchemaError(AgentNestToolError):
    """Raised at registration when a tool's input schema is malformed."""

    pass


class ToolRegistryFrozenError(AgentNestToolError):
    pass


class ToolNotFoundError(AgentNestToolError):
    pass


class ToolValidationError(AgentNestToolError):
    """Arguments did not match the tool's input schema."""

    pass


class ToolTimeoutError(AgentNestToolError):
    pass


class ToolNetworkError(AgentNestToolError):
    """
    Transient, network-class failure raised by a handler.
    Retried by the executor's RetryPolicy.
    """

    pass


class ToolRateLimitedError(AgentNestToolError):
    def __init__(self, message: str, *, retry_after_s: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_s = retry_after_s
