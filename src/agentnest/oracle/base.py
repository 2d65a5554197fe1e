from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the ModelOracle contract consumed by the agent runtime.
The oracle is opaque: given a conversation and the declared tools it returns
either a final answer or a set of tool-call requests.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from .errors import ModelOracleProtocolError
from .types import ModelCompleted, ModelRequest, ModelResponse, ModelStreamEvent, ModelTextDelta


class ModelOracle(ABC):
    """
    Base class for model backends bound to an agent.

    Subclasses implement `respond`. Backends that stream natively override
    `stream` and must finish with exactly one `ModelCompleted` event.
    """

    @property
    def oracle_id(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    async def respond(self, req: ModelRequest) -> ModelResponse:
        """Return the decision for one round."""
        ...

    async def stream(self, req: ModelRequest) -> AsyncIterator[ModelStreamEvent]:
        """
        Stream one round. The default implementation emits the whole text as a
        single delta followed by the completed response.
        """
        response = await self.respond(req)
        if not isinstance(response, ModelResponse):
            raise ModelOracleProtocolError(
                f"Oracle '{self.oracle_id}' returned {type(response).__name__}, expected ModelResponse"
            )
        if response.text:
            yield ModelTextDelta(text=response.text)
        yield ModelCompleted(response=response)
