from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Deterministic oracle that replays canned decisions. Used by tests and demos.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Sequence, TypeAlias

from .base import ModelOracle
from .errors import ModelOracleExhaustedError
from .types import ModelRequest, ModelResponse

ScriptStep: TypeAlias = (
    ModelResponse
    | Exception
    | Callable[[ModelRequest], "ModelResponse | Awaitable[ModelResponse]"]
)


class ScriptedOracle(ModelOracle):
    """
    Replays `steps` in order, one per round.

    A step may be:
      - a `ModelResponse`, returned as-is
      - an `Exception` instance, raised for that round
      - a sync/async callable receiving the `ModelRequest`

    When `policy` is given it is used for every round instead of `steps`.
    """

    def __init__(
        self,
        steps: Sequence[ScriptStep] | None = None,
        *,
        policy: Callable[[ModelRequest], "ModelResponse | Awaitable[ModelResponse]"] | None = None,
        delay_s: float = 0.0,
        name: str | None = None,
    ) -> None:
        self._steps = list(steps or [])
        self._policy = policy
        self._delay_s = delay_s
        self._name = name
        self.requests: list[ModelRequest] = []

    @property
    def oracle_id(self) -> str:
        return self._name or "scripted"

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def respond(self, req: ModelRequest) -> ModelResponse:
        index = len(self.requests)
        self.requests.append(req)
        if self._delay_s:
            await asyncio.sleep(self._delay_s)

        if self._policy is not None:
            step: ScriptStep = self._policy
        elif index < len(self._steps):
            step = self._steps[index]
        else:
            raise ModelOracleExhaustedError(
                f"Scripted oracle '{self.oracle_id}' has no step for round {index + 1}"
            )

        if isinstance(step, Exception):
            raise step
        if isinstance(step, ModelResponse):
            return step

        out = step(req)
        if inspect.isawaitable(out):
            out = await out
        return out
