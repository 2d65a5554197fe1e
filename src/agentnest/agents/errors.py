"""
Agent-layer error taxonomy.

Run-level failures derive from `AgentRunAbortedError` and unwind every
ancestor invocation. Everything else raised inside a tool call is converted
into a failed `ToolResult` by the executor.
"""

from __future__ import annotations


class AgentError(Exception):
    """Base exception for all agent-runtime failures."""
    pass


class AgentConfigurationError(AgentError):
    """
    Raised when agent or runtime configuration is invalid.

    Typical cases:
    - invalid constructor values
    - a tool registry that cannot be frozen for serving
    """
    pass


class AgentExecutionError(AgentError):
    """Raised for runtime execution failures not tied to configuration."""
    pass


class SubagentDepthExceededError(AgentExecutionError):
    """Raised when a nested invocation would exceed the configured maximum depth."""

    def __init__(self, message: str, *, depth: int, max_depth: int) -> None:
        super().__init__(message)
        self.depth = depth
        self.max_depth = max_depth


class SubagentExecutionError(AgentExecutionError):
    """Raised when delegated subagent execution fails."""
    pass


class AgentRunAbortedError(AgentExecutionError):
    """Base for failures that abort the whole invocation tree."""

    kind = "run_aborted"


class AgentLoopLimitError(AgentRunAbortedError):
    """Raised when an invocation exceeds its round limit."""

    kind = "round_limit_exceeded"


class AgentBudgetExceededError(AgentRunAbortedError):
    """Raised when the run's token budget is exceeded."""

    kind = "budget_exceeded"


class AgentCancelledError(AgentRunAbortedError):
    """Raised when a run is cancelled by its consumer."""

    kind = "cancelled"
