"""
Agent definitions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, TypeAlias

from ..oracle import ModelOracle
from ..tools import Tool, ToolRegistry
from ..tools.errors import AgentNestToolError
from .errors import AgentConfigurationError
from .types import AgentResult

if TYPE_CHECKING:
    from ..core.runtime import AgentRuntime

ToolLike: TypeAlias = "Tool[Any, Any] | Callable[[], Tool[Any, Any]]"


class Agent:
    """
    Declarative agent configuration consumed by `AgentRuntime`.

    The tool registry is built and frozen here, at construction time, so it is
    read-only by the time any invocation is served.
    """

    def __init__(
        self,
        *,
        model: ModelOracle,
        name: str | None = None,
        system_prompt: str | None = None,
        tools: list[ToolLike] | None = None,
        registry: ToolRegistry | None = None,
    ) -> None:
        """
        Initialize an agent definition.

        Args:
            model: Oracle bound to this agent.
            name: Logical name used in logs and as default sub-agent tool name.
            system_prompt: Instructions sent with every round.
            tools: Tools (or factories returning tools) the agent may call,
                including `SubAgentInvoker` instances.
            registry: Pre-built registry to use instead of `tools`.

        Raises:
            AgentConfigurationError: If the model is not a `ModelOracle`, both
                `tools` and `registry` are given, or a tool cannot be registered.
        """
        if not isinstance(model, ModelOracle):
            raise AgentConfigurationError(
                f"model must be a ModelOracle, got {type(model).__name__}"
            )
        if tools is not None and registry is not None:
            raise AgentConfigurationError("pass either tools or registry, not both")

        self.model = model
        self.name = name or self.__class__.__name__
        self.system_prompt = system_prompt

        if registry is None:
            registry = ToolRegistry()
            try:
                registry.register_many(self._normalize_tool(t) for t in tools or [])
            except AgentNestToolError as e:
                raise AgentConfigurationError(
                    f"Agent '{self.name}' has an invalid tool set: {e}"
                ) from e
        self.registry = registry.freeze()

    @property
    def tools(self) -> list[Tool[Any, Any]]:
        return self.registry.list()

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, tools={self.registry.names()!r})"

    async def call(
        self,
        user_message: str,
        *,
        runtime: "AgentRuntime | None" = None,
    ) -> AgentResult:
        """
        Execute this agent as a top-level run and return its result.

        Args:
            user_message: Message seeding the run.
            runtime: Runtime to execute on; defaults to `AgentRuntime()`.

        Returns:
            Terminal `AgentResult` for the run.
        """
        from ..core.session import StreamingSession

        session = StreamingSession(self, user_message, runtime=runtime)
        return await session.run()

    def _normalize_tool(self, candidate: ToolLike) -> Tool[Any, Any]:
        """
        Normalize a declared tool entry into a concrete `Tool`.

        Raises:
            AgentConfigurationError: If the candidate is not a valid tool shape.
        """
        if isinstance(candidate, Tool):
            return candidate
        if callable(candidate):
            value = candidate()
            if isinstance(value, Tool):
                return value
        raise AgentConfigurationError(
            f"Invalid tool '{candidate}'. Expected Tool or callable returning Tool."
        )
