"""
Invocation frames: one execution of an agent with its depth, usage and cancellation context.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..agents.errors import SubagentDepthExceededError
from ..agents.usage import UsageTracker
from .cancellation import CancellationSignal

if TYPE_CHECKING:
    from ..agents.base import Agent


def new_run_id(prefix: str = "run") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True, slots=True)
class Invocation:
    """
    Immutable call frame passed down the invocation stack.

    `usage` and `cancellation` are shared by reference with every ancestor and
    descendant; `depth` is passed by value and grows by exactly one per nesting.

    Attributes:
        agent: Agent being executed.
        input: User/task message seeding the invocation.
        usage: Run-wide usage tracker.
        cancellation: Run-wide cancellation signal.
        depth: 0 for the top-level run.
        max_depth: Deepest nesting allowed.
        run_id: Identifier of this invocation.
        parent_run_id: Identifier of the calling invocation, if nested.
    """

    agent: "Agent"
    input: str
    usage: UsageTracker
    cancellation: CancellationSignal
    depth: int = 0
    max_depth: int = 3
    run_id: str = ""
    parent_run_id: str | None = None

    def __post_init__(self) -> None:
        if not self.run_id:
            object.__setattr__(self, "run_id", new_run_id())
        if self.depth < 0:
            raise ValueError("depth must be >= 0")

    @property
    def is_root(self) -> bool:
        return self.parent_run_id is None

    def child(self, agent: "Agent", input: str) -> "Invocation":
        """
        Build the frame for a nested invocation.

        Raises:
            SubagentDepthExceededError: If the child would be deeper than `max_depth`.
        """
        depth = self.depth + 1
        if depth > self.max_depth:
            raise SubagentDepthExceededError(
                f"Sub-agent '{agent.name}' would run at depth {depth}, "
                f"exceeding max depth {self.max_depth}",
                depth=depth,
                max_depth=self.max_depth,
            )
        return Invocation(
            agent=agent,
            input=input,
            usage=self.usage,
            cancellation=self.cancellation,
            depth=depth,
            max_depth=self.max_depth,
            run_id=new_run_id("sub"),
            parent_run_id=self.run_id,
        )
