"""
Core runtime exports.
"""

from .cancellation import CancellationSignal
from .config import RetryConfig, RuntimeConfig
from .executor import ToolExecutor, classify_tool_error
from .invocation import Invocation
from .runtime import AgentRuntime
from .session import StreamingSession

__all__ = [
    "AgentRuntime",
    "RuntimeConfig",
    "RetryConfig",
    "StreamingSession",
    "ToolExecutor",
    "classify_tool_error",
    "Invocation",
    "CancellationSignal",
]
