from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the types and base classes for tools that can be registered and invoked by agents.
"""

import asyncio
import functools
import inspect
import json
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Optional,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel, ValidationError

from .errors import ToolTimeoutError, ToolValidationError

if TYPE_CHECKING:
    from ..core.cancellation import CancellationSignal
    from ..core.invocation import Invocation
    from ..core.runtime import AgentRuntime


ArgsT = TypeVar("ArgsT", bound=BaseModel)
ReturnT = TypeVar("ReturnT")

AsyncToolFn = Callable[..., Awaitable[Any]]
SyncToolFn = Callable[..., Any]
ToolFn = Union[AsyncToolFn, SyncToolFn]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """
    Stable tool metadata used for registry listing + model-facing export.
    """

    name: str
    description: str
    parameters_schema: Dict[str, Any]  # JSON Schema for the tool's arguments


@dataclass(frozen=True, slots=True)
class RateLimitSpec:
    """
    Token-bucket admission settings for one tool.

    capacity: burst size (tokens available when the bucket is full)
    refill_rate: tokens added per second; 0 means the bucket never refills
    """

    capacity: int
    refill_rate: float

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("RateLimitSpec.capacity must be >= 1")
        if self.refill_rate < 0:
            raise ValueError("RateLimitSpec.refill_rate must be >= 0")


@dataclass(frozen=True, slots=True)
class ToolContext:
    """
    Contextual information available to a tool during its execution.

    `invocation` is the calling agent's frame (shared usage tracker, cancellation
    signal, depth). It is `None` when a tool is executed outside an agent run.
    """

    tool_call_id: str | None = None
    tool_name: str | None = None
    invocation: "Invocation | None" = None
    runtime: "AgentRuntime | None" = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def cancellation(self) -> "CancellationSignal | None":
        return self.invocation.cancellation if self.invocation is not None else None

    def record_usage(self, *, tokens_in: int = 0, tokens_out: int = 0) -> None:
        """Report tokens consumed by the tool itself against the run's usage tracker."""
        if self.invocation is None:
            return
        self.invocation.usage.increment(tokens_in=tokens_in, tokens_out=tokens_out)


@dataclass(frozen=True, slots=True)
class ToolResult(Generic[ReturnT]):
    """
    Standardized outcome of one tool call: success(output) or failure(error_kind, error_message).

    Every outcome the executor produces is a ToolResult, so the runtime only ever
    interprets tool failures as data.
    """

    output: Optional[ReturnT] = None
    success: bool = True
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    tool_name: Optional[str] = None
    tool_call_id: Optional[str] = None
    attempts: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(
        cls,
        kind: str,
        message: str,
        *,
        tool_name: str | None = None,
        tool_call_id: str | None = None,
        attempts: int = 0,
    ) -> "ToolResult[Any]":
        return cls(
            output=None,
            success=False,
            error_kind=kind,
            error_message=message,
            tool_name=tool_name,
            tool_call_id=tool_call_id,
            attempts=attempts,
        )

    def to_model_payload(self) -> str:
        """JSON text folded back into the conversation as the tool message content."""
        if self.success:
            payload: Dict[str, Any] = {"success": True, "output": json_value_from_tool_result(self.output)}
        else:
            payload = {
                "success": False,
                "error": {"kind": self.error_kind, "message": self.error_message},
            }
        return json.dumps(payload, ensure_ascii=False)


def json_value_from_tool_result(value: Any) -> Any:
    """
    Best-effort conversion of tool outputs to JSON-safe payloads.

    Pydantic models are dumped in JSON mode; other unsupported objects are
    stringified with `repr(...)`.
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [json_value_from_tool_result(v) for v in value]
    if isinstance(value, dict):
        return {str(k): json_value_from_tool_result(v) for k, v in value.items()}
    dump = getattr(value, "model_dump", None)
    if callable(dump):
        return json_value_from_tool_result(dump(mode="json"))
    return repr(value)


def as_async(fn: ToolFn) -> AsyncToolFn:
    """
    Utility function to convert a synchronous function into an asynchronous one.
    This allows the executor to treat all tools as async.
    """
    if inspect.iscoroutinefunction(fn):
        return fn  # type: ignore[return-value]

    async def _wrapped(*args: Any, **kwargs: Any) -> Any:
        # run sync function in threadpool
        return await asyncio.to_thread(functools.partial(fn, *args, **kwargs))

    return _wrapped


def _infer_call_style(fn: Callable[..., Any]) -> str:
    """
    Determine how to call a tool handler based on the signature.

    Allowed:
      (args)
      (args, ctx)
      (ctx, args)

    We accept ctx by name "ctx" OR annotation ToolContext.
    """
    sig = inspect.signature(fn)
    params = list(sig.parameters.values())

    if any(p.kind in (p.VAR_KEYWORD, p.VAR_POSITIONAL) for p in params):
        raise ToolValidationError(
            f"Tool function '{getattr(fn, '__name__', 'unknown')}' cannot have *args or **kwargs."
        )

    if len(params) == 1:
        return "args"

    if len(params) == 2:
        p0, p1 = params

        if p0.annotation in (ToolContext, "ToolContext") or p0.name == "ctx":
            return "ctx_args"

        if p1.annotation in (ToolContext, "ToolContext") or p1.name == "ctx":
            return "args_ctx"

        raise ToolValidationError(
            f"Tool function '{getattr(fn, '__name__', 'unknown')}' must include ToolContext "
            f"as 'ctx' (by name or annotation). Signature: {sig}"
        )

    raise ToolValidationError(
        f"Tool function '{getattr(fn, '__name__', 'unknown')}' has invalid signature. "
        f"Expected (args) or (args, ctx) or (ctx, args). Got {sig}."
    )


class Tool(Generic[ArgsT, ReturnT]):
    """
    A named, schema-validated capability.

    The tool itself only validates and invokes; admission control, retries and
    failure mapping live in `ToolExecutor`.
    """

    def __init__(
        self,
        *,
        spec: ToolSpec,
        fn: ToolFn,
        args_model: Type[ArgsT],
        concurrency_safe: bool = False,
        rate_limit: RateLimitSpec | None = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        self.spec = spec
        self.fn = as_async(fn)
        self.args_model = args_model
        self.concurrency_safe = concurrency_safe
        self.rate_limit = rate_limit
        self.default_timeout = default_timeout

        self._call_style = _infer_call_style(fn)

    @property
    def name(self) -> str:
        return self.spec.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.spec.name!r}, concurrency_safe={self.concurrency_safe})"

    def validate(self, raw_args: Any) -> ArgsT:
        if not isinstance(raw_args, dict):
            raise ToolValidationError(
                f"Invalid arguments for tool '{self.spec.name}': expected a JSON object, "
                f"got {type(raw_args).__name__}"
            )
        try:
            return self.args_model.model_validate(raw_args)
        except ValidationError as e:
            raise ToolValidationError(
                f"Invalid arguments for tool '{self.spec.name}': {e}"
            ) from e

    async def _invoke(self, args: ArgsT, ctx: ToolContext) -> Any:
        if self._call_style == "args":
            return await self.fn(args)
        if self._call_style == "args_ctx":
            return await self.fn(args, ctx)
        return await self.fn(ctx, args)

    async def invoke(
        self,
        args: ArgsT,
        ctx: ToolContext,
        *,
        timeout: Optional[float] = None,
    ) -> ReturnT:
        """
        Run the handler once on already-validated args. Handler exceptions propagate.
        """
        effective_timeout = timeout if timeout is not None else self.default_timeout
        if effective_timeout is None:
            return await self._invoke(args, ctx)

        try:
            return await asyncio.wait_for(self._invoke(args, ctx), timeout=effective_timeout)
        except asyncio.TimeoutError as e:
            raise ToolTimeoutError(
                f"Tool '{self.spec.name}' execution exceeded timeout of {effective_timeout} seconds."
            ) from e
