from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the provider-agnostic types exchanged with the model oracle.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias


JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]

Role = Literal["user", "assistant", "system", "tool"]


@dataclass(frozen=True, slots=True)
class ToolCall:
    """
    Data-only representation of a model-returned tool call.
    The runtime decides if/when/how to execute this.
    """

    id: str | None = None
    tool_name: str = ""
    arguments: JSONObject = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Message:
    role: Role
    content: str
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True, slots=True)
class ModelRequest:
    """
    One round submitted to the oracle: the conversation so far plus the declared tools.
    """

    system_prompt: str | None
    messages: list[Message]
    tools: list[dict[str, Any]] = field(default_factory=list)
    agent_name: str | None = None
    round: int = 1


@dataclass(frozen=True, slots=True)
class ModelResponse:
    """
    Oracle decision: either a final answer (no tool calls) or a set of tool-call requests.
    """

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_final(self) -> bool:
        return not self.tool_calls


@dataclass(frozen=True, slots=True)
class ModelTextDelta:
    type: Literal["text_delta"] = "text_delta"
    text: str = ""


@dataclass(frozen=True, slots=True)
class ModelCompleted:
    response: ModelResponse
    type: Literal["completed"] = "completed"


ModelStreamEvent: TypeAlias = ModelTextDelta | ModelCompleted
