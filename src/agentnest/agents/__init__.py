"""
Agent definitions, delegation and run-level types.
"""

from .base import Agent
from .errors import (
    AgentBudgetExceededError,
    AgentCancelledError,
    AgentConfigurationError,
    AgentError,
    AgentExecutionError,
    AgentLoopLimitError,
    AgentRunAbortedError,
    SubagentDepthExceededError,
    SubagentExecutionError,
)
from .subagent import SubAgentInvoker, SubagentTask
from .types import (
    AgentResult,
    AgentTurn,
    ErrorEvent,
    FinalAnswerEvent,
    RunEvent,
    TextDeltaEvent,
    ToolCallFinishedEvent,
    ToolCallStartedEvent,
    ToolExecutionRecord,
    event_to_dict,
)
from .usage import UsageSnapshot, UsageTracker

__all__ = [
    "Agent",
    "SubAgentInvoker",
    "SubagentTask",
    "UsageTracker",
    "UsageSnapshot",
    "AgentTurn",
    "AgentResult",
    "ToolExecutionRecord",
    "RunEvent",
    "TextDeltaEvent",
    "ToolCallStartedEvent",
    "ToolCallFinishedEvent",
    "FinalAnswerEvent",
    "ErrorEvent",
    "event_to_dict",
    "AgentError",
    "AgentConfigurationError",
    "AgentExecutionError",
    "AgentRunAbortedError",
    "AgentLoopLimitError",
    "AgentBudgetExceededError",
    "AgentCancelledError",
    "SubagentDepthExceededError",
    "SubagentExecutionError",
]
