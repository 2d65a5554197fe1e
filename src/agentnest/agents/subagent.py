"""
Agent-as-tool delegation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from ..tools import RateLimitSpec, Tool, ToolContext, ToolSpec
from .errors import AgentError, AgentRunAbortedError, SubagentExecutionError

if TYPE_CHECKING:
    from ..core.runtime import AgentRuntime
    from .base import Agent

logger = logging.getLogger(__name__)


class SubagentTask(BaseModel):
    task: str = Field(min_length=1, description="Self-contained task for the sub-agent.")


class SubAgentInvoker(Tool[SubagentTask, str]):
    """
    Tool that runs a nested agent to completion.

    The child invocation shares the parent's usage tracker and cancellation
    signal and runs one level deeper. Depth violations and ordinary child
    failures come back as failed tool results; run-level failures (budget,
    cancellation, round limit) abort the whole tree.
    """

    def __init__(
        self,
        agent: "Agent",
        *,
        name: str | None = None,
        description: str | None = None,
        runtime: "AgentRuntime | None" = None,
        concurrency_safe: bool = False,
        rate_limit: RateLimitSpec | None = None,
        timeout: float | None = None,
    ) -> None:
        self.agent = agent
        self._runtime = runtime
        spec = ToolSpec(
            name=name or f"ask_{agent.name}",
            description=description or f"Delegate a self-contained task to the '{agent.name}' agent.",
            parameters_schema=SubagentTask.model_json_schema(),
        )
        super().__init__(
            spec=spec,
            fn=self._run_child,
            args_model=SubagentTask,
            concurrency_safe=concurrency_safe,
            rate_limit=rate_limit,
            default_timeout=timeout,
        )

    async def _run_child(self, args: SubagentTask, ctx: ToolContext) -> str:
        parent = ctx.invocation
        if parent is None:
            raise SubagentExecutionError(
                f"Sub-agent tool '{self.spec.name}' needs a parent invocation in its context"
            )
        runtime = self._runtime or ctx.runtime
        if runtime is None:
            raise SubagentExecutionError(
                f"Sub-agent tool '{self.spec.name}' has no runtime to execute on"
            )

        # raises SubagentDepthExceededError before any child work happens
        child = parent.child(self.agent, args.task)
        logger.debug(
            "delegating %s -> %s at depth %d (run %s)",
            parent.agent.name,
            self.agent.name,
            child.depth,
            child.run_id,
        )

        try:
            result = await runtime.run(child)
        except AgentRunAbortedError:
            raise
        except AgentError as e:
            raise SubagentExecutionError(f"Sub-agent '{self.agent.name}' failed: {e}") from e
        return result.final_text
