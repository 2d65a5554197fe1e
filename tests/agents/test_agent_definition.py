from __future__ import annotations

import pytest
from pydantic import BaseModel

from agentnest.agents import Agent, AgentConfigurationError, SubAgentInvoker
from agentnest.oracle import ModelResponse, ScriptedOracle
from agentnest.tools import ToolRegistry, tool


class NoteArgs(BaseModel):
    note: str


@tool(args_model=NoteArgs, name="take_note")
def take_note(args: NoteArgs) -> str:
    """Record a note."""
    return args.note


def _oracle() -> ScriptedOracle:
    return ScriptedOracle([ModelResponse(text="ok")])


def test_agent_freezes_its_registry():
    agent = Agent(name="notes", model=_oracle(), tools=[take_note])

    assert agent.registry.frozen
    assert [t.name for t in agent.tools] == ["take_note"]
    assert "take_note" in repr(agent)


def test_agent_accepts_tool_factories():
    agent = Agent(name="notes", model=_oracle(), tools=[lambda: take_note])
    assert agent.registry.names() == ["take_note"]


def test_agent_rejects_invalid_configuration():
    with pytest.raises(AgentConfigurationError):
        Agent(name="bad", model="gpt-something")  # type: ignore[arg-type]

    with pytest.raises(AgentConfigurationError):
        Agent(name="dup", model=_oracle(), tools=[take_note, take_note])

    with pytest.raises(AgentConfigurationError):
        Agent(name="both", model=_oracle(), tools=[take_note], registry=ToolRegistry())

    with pytest.raises(AgentConfigurationError):
        Agent(name="junk", model=_oracle(), tools=[42])  # type: ignore[list-item]


def test_subagent_invoker_is_a_mutating_tool_named_after_the_agent():
    child = Agent(name="writer", model=_oracle())
    invoker = SubAgentInvoker(child)

    assert invoker.name == "ask_writer"
    assert invoker.concurrency_safe is False
    assert invoker.spec.parameters_schema["required"] == ["task"]

    parent = Agent(name="lead", model=_oracle(), tools=[invoker])
    assert parent.registry.lookup("ask_writer") is invoker


def test_subagent_invoker_accepts_custom_name_and_flags():
    child = Agent(name="fact_checker", model=_oracle())
    invoker = SubAgentInvoker(child, name="check", description="Verify a claim.", concurrency_safe=True)

    assert invoker.name == "check"
    assert invoker.spec.description == "Verify a claim."
    assert invoker.concurrency_safe is True
