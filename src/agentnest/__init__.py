"""
agentnest: an agent-as-tool orchestration runtime.

Agents call ordinary tools and may delegate sub-tasks to nested agents exposed
as tools. A run shares one usage budget and one cancellation signal across the
whole invocation tree.
"""

from .agents import (
    Agent,
    AgentBudgetExceededError,
    AgentCancelledError,
    AgentError,
    AgentLoopLimitError,
    AgentResult,
    SubAgentInvoker,
    UsageSnapshot,
    UsageTracker,
)
from .core import AgentRuntime, RetryConfig, RuntimeConfig, StreamingSession, ToolExecutor
from .oracle import ModelOracle, ModelResponse, ScriptedOracle, ToolCall, Usage
from .tools import RateLimitSpec, Tool, ToolContext, ToolRegistry, ToolResult, tool

__all__ = [
    "Agent",
    "AgentResult",
    "AgentRuntime",
    "RuntimeConfig",
    "RetryConfig",
    "StreamingSession",
    "ToolExecutor",
    "SubAgentInvoker",
    "UsageTracker",
    "UsageSnapshot",
    "ModelOracle",
    "ScriptedOracle",
    "ModelResponse",
    "ToolCall",
    "Usage",
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "ToolResult",
    "RateLimitSpec",
    "tool",
    "AgentError",
    "AgentLoopLimitError",
    "AgentBudgetExceededError",
    "AgentCancelledError",
]
