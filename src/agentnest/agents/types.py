"""
Provider-neutral types for agent runtime contracts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, TypeAlias

from ..oracle.types import JSONValue, Message, ToolCall
from ..tools import ToolResult, json_value_from_tool_result
from .usage import UsageSnapshot


RunEventType = Literal[
    "text_delta",
    "tool_call_started",
    "tool_call_finished",
    "final_answer",
    "error",
]


@dataclass(slots=True)
class AgentTurn:
    """
    Mutable conversation state for one invocation.

    Attributes:
        messages: Ordered conversation history (system prompt excluded).
        pending_calls: Tool calls requested in the current round.
        final_answer: Final text once the oracle stops requesting tools.
    """

    messages: list[Message] = field(default_factory=list)
    pending_calls: list[ToolCall] = field(default_factory=list)
    final_answer: str | None = None

    @property
    def done(self) -> bool:
        return self.final_answer is not None

    def add_user(self, text: str) -> None:
        self.messages.append(Message(role="user", content=text))

    def add_assistant(self, text: str, tool_calls: list[ToolCall]) -> None:
        self.pending_calls = list(tool_calls)
        self.messages.append(Message(role="assistant", content=text, tool_calls=list(tool_calls)))

    def add_tool_results(self, results: list[ToolResult[Any]]) -> None:
        """Fold results back in the order given (the order the calls were issued)."""
        for result in results:
            self.messages.append(
                Message(
                    role="tool",
                    name=result.tool_name,
                    tool_call_id=result.tool_call_id,
                    content=result.to_model_payload(),
                )
            )
        self.pending_calls = []

    def finish(self, text: str) -> None:
        self.pending_calls = []
        self.final_answer = text
        self.messages.append(Message(role="assistant", content=text))


@dataclass(frozen=True, slots=True)
class ToolExecutionRecord:
    """
    Normalized record for one tool execution.

    Attributes:
        tool_name: Executed tool name.
        tool_call_id: Tool-call identifier.
        round: Round in which the call was issued.
        success: Whether tool execution succeeded.
        output: JSON-safe tool output payload.
        error_kind: Failure classification when execution failed.
        error: Error message when execution failed.
        attempts: Handler attempts made (0 when never dispatched to the handler).
        latency_ms: Execution latency in milliseconds.
    """

    tool_name: str
    tool_call_id: str | None
    round: int
    success: bool
    output: JSONValue | None = None
    error_kind: str | None = None
    error: str | None = None
    attempts: int = 0
    latency_ms: float | None = None


@dataclass(frozen=True, slots=True)
class AgentResult:
    """
    Terminal result of one invocation.

    Attributes:
        run_id: Invocation identifier.
        agent_name: Name of the executed agent.
        final_text: Final assistant text.
        rounds: Oracle rounds used.
        depth: Invocation depth (0 for a top-level run).
        usage: Run-wide usage snapshot taken when this invocation finished.
        tool_executions: Ordered tool execution records.
        messages: Full conversation transcript.
    """

    run_id: str
    agent_name: str
    final_text: str
    rounds: int
    depth: int = 0
    usage: UsageSnapshot = field(default_factory=UsageSnapshot)
    tool_executions: list[ToolExecutionRecord] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TextDeltaEvent:
    text: str
    type: Literal["text_delta"] = "text_delta"


@dataclass(frozen=True, slots=True)
class ToolCallStartedEvent:
    call_id: str
    tool_name: str
    args: JSONValue = field(default_factory=dict)
    type: Literal["tool_call_started"] = "tool_call_started"


@dataclass(frozen=True, slots=True)
class ToolCallFinishedEvent:
    call_id: str
    outcome: dict[str, JSONValue] = field(default_factory=dict)
    type: Literal["tool_call_finished"] = "tool_call_finished"


@dataclass(frozen=True, slots=True)
class FinalAnswerEvent:
    content: str
    type: Literal["final_answer"] = "final_answer"


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    kind: str
    message: str
    type: Literal["error"] = "error"


RunEvent: TypeAlias = (
    TextDeltaEvent
    | ToolCallStartedEvent
    | ToolCallFinishedEvent
    | FinalAnswerEvent
    | ErrorEvent
)


def event_to_dict(event: RunEvent) -> dict[str, JSONValue]:
    """Serialize a run event into its wire shape (`type` plus payload fields)."""
    return asdict(event)


def outcome_from_result(result: ToolResult[Any]) -> dict[str, JSONValue]:
    if result.success:
        return {"success": True, "output": json_value_from_tool_result(result.output)}
    return {
        "success": False,
        "error_kind": result.error_kind,
        "error_message": result.error_message,
    }


def tool_record_from_result(
    result: ToolResult[Any],
    *,
    round: int,
    latency_ms: float | None = None,
) -> ToolExecutionRecord:
    """
    Convert a `ToolResult` into a normalized execution record.

    Args:
        result: Raw tool execution result object.
        round: Round in which the call was issued.
        latency_ms: Optional measured latency in milliseconds.

    Returns:
        Normalized `ToolExecutionRecord` for result reporting.
    """
    return ToolExecutionRecord(
        tool_name=result.tool_name or "",
        tool_call_id=result.tool_call_id,
        round=round,
        success=result.success,
        output=json_value_from_tool_result(result.output),
        error_kind=result.error_kind,
        error=result.error_message,
        attempts=result.attempts,
        latency_ms=latency_ms,
    )
