"""
The agent request/response loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Sequence, TypeAlias

from ..agents.base import Agent
from ..agents.errors import (
    AgentCancelledError,
    AgentExecutionError,
    AgentLoopLimitError,
    AgentRunAbortedError,
)
from ..agents.types import (
    AgentResult,
    AgentTurn,
    RunEvent,
    TextDeltaEvent,
    ToolCallFinishedEvent,
    ToolCallStartedEvent,
    ToolExecutionRecord,
    outcome_from_result,
    tool_record_from_result,
)
from ..agents.usage import UsageTracker
from ..oracle import ModelCompleted, ModelRequest, ModelResponse, ModelTextDelta, ToolCall
from ..oracle.errors import ModelOracleProtocolError
from ..tools import Tool, ToolContext, ToolResult, json_value_from_tool_result
from ..tools.errors import ToolNotFoundError
from .cancellation import CancellationSignal
from .config import RuntimeConfig
from .executor import ToolExecutor
from .invocation import Invocation

logger = logging.getLogger(__name__)

EventSink: TypeAlias = Callable[[RunEvent], "Awaitable[None] | None"]


async def _emit(sink: EventSink | None, event: RunEvent) -> None:
    if sink is None:
        return
    out = sink(event)
    if inspect.isawaitable(out):
        await out


def _segments(tools: Sequence[Tool[Any, Any] | None]) -> list[list[int]]:
    """
    Split one round into ordered execution segments.

    Consecutive concurrency-safe calls share a segment and may run together;
    every other call (mutating or unresolved) is a segment of its own.
    """
    out: list[list[int]] = []
    group: list[int] = []
    for idx, tool in enumerate(tools):
        if tool is not None and tool.concurrency_safe:
            group.append(idx)
            continue
        if group:
            out.append(group)
            group = []
        out.append([idx])
    if group:
        out.append(group)
    return out


class AgentRuntime:
    """
    Drives invocations: submit the turn to the oracle, dispatch requested tool
    calls through the executor, fold the results back and repeat until the
    oracle gives a final answer or a run-level limit trips.

    One runtime (and therefore one executor with its rate limiter buckets) is
    meant to be shared by the whole process; nested invocations run on the same
    instance.
    """

    def __init__(
        self,
        *,
        config: RuntimeConfig | None = None,
        executor: ToolExecutor | None = None,
    ) -> None:
        self.config = config or RuntimeConfig()
        self.executor = executor or ToolExecutor.from_config(self.config)

    def root_invocation(
        self,
        agent: Agent,
        input: str,
        *,
        usage: UsageTracker | None = None,
        cancellation: CancellationSignal | None = None,
    ) -> Invocation:
        """Build the depth-0 frame for a top-level run."""
        return Invocation(
            agent=agent,
            input=input,
            usage=usage or UsageTracker(token_budget=self.config.token_budget),
            cancellation=cancellation or CancellationSignal(),
            depth=0,
            max_depth=self.config.max_depth,
        )

    async def run(self, invocation: Invocation, *, emit: EventSink | None = None) -> AgentResult:
        """
        Execute one invocation to completion.

        Raises:
            AgentLoopLimitError: More than `max_rounds` oracle rounds.
            AgentBudgetExceededError: The run-wide token budget was exceeded.
            AgentCancelledError: The shared cancellation signal was set.
            AgentExecutionError: The oracle failed.
        """
        agent = invocation.agent
        signal = invocation.cancellation
        usage = invocation.usage
        turn = AgentTurn()
        turn.add_user(invocation.input)
        records: list[ToolExecutionRecord] = []
        tool_defs = agent.registry.to_openai_function_tools()
        rounds = 0

        logger.debug(
            "invocation %s started: agent=%s depth=%d",
            invocation.run_id,
            agent.name,
            invocation.depth,
        )

        while not turn.done:
            signal.raise_if_cancelled()
            rounds += 1
            if rounds > self.config.max_rounds:
                raise AgentLoopLimitError(
                    f"Agent '{agent.name}' exceeded max rounds ({self.config.max_rounds})"
                )
            usage.ensure_within_budget()

            req = ModelRequest(
                system_prompt=agent.system_prompt,
                messages=list(turn.messages),
                tools=tool_defs,
                agent_name=agent.name,
                round=rounds,
            )
            response = await self._ask_oracle(invocation, req, emit)
            usage.increment(
                tokens_in=response.usage.input_tokens,
                tokens_out=response.usage.output_tokens,
            )

            if response.is_final:
                turn.finish(response.text)
                break

            calls = self._normalize_calls(response.tool_calls, invocation.run_id, rounds)
            turn.add_assistant(response.text, calls)
            results = await self._run_round(invocation, calls, rounds, records, emit)
            turn.add_tool_results(results)

        snapshot = usage.snapshot()
        # nested completions are reported to the parent as tool results
        log = logger.info if invocation.is_root else logger.debug
        log(
            "invocation %s completed: agent=%s depth=%d rounds=%d tokens=%d tool_calls=%d",
            invocation.run_id,
            agent.name,
            invocation.depth,
            rounds,
            snapshot.total_tokens,
            snapshot.tool_calls,
        )
        return AgentResult(
            run_id=invocation.run_id,
            agent_name=agent.name,
            final_text=turn.final_answer or "",
            rounds=rounds,
            depth=invocation.depth,
            usage=snapshot,
            tool_executions=records,
            messages=list(turn.messages),
        )

    # ''''''''''''''''''''''''''''''''''''''
    # Oracle
    # ''''''''''''''''''''''''''''''''''''''

    async def _ask_oracle(
        self,
        invocation: Invocation,
        req: ModelRequest,
        emit: EventSink | None,
    ) -> ModelResponse:
        async def _consume() -> ModelResponse:
            completed: ModelResponse | None = None
            async for event in invocation.agent.model.stream(req):
                if isinstance(event, ModelTextDelta):
                    if event.text:
                        await _emit(emit, TextDeltaEvent(text=event.text))
                elif isinstance(event, ModelCompleted):
                    completed = event.response
            if completed is None:
                raise ModelOracleProtocolError(
                    f"Oracle '{invocation.agent.model.oracle_id}' stream ended without a response"
                )
            return completed

        task = asyncio.create_task(_consume())
        aborted = await self._settle([task], invocation.cancellation)
        if aborted is not None:
            raise aborted
        try:
            return task.result()
        except AgentRunAbortedError:
            raise
        except Exception as e:
            raise AgentExecutionError(
                f"Oracle for agent '{invocation.agent.name}' failed in round {req.round}: {e}"
            ) from e

    @staticmethod
    def _normalize_calls(calls: list[ToolCall], run_id: str, round: int) -> list[ToolCall]:
        """
        Ensure every call has an id that is unique within the round.

        Arguments are passed through as given; a payload that is not a JSON
        object is rejected per call by `Tool.validate` as a `schema_error`.
        """
        seen: set[str] = set()
        out: list[ToolCall] = []
        for idx, call in enumerate(calls):
            if not isinstance(call.arguments, dict):
                logger.warning(
                    "run %s round %d: call to %s has %s arguments, expected an object",
                    run_id,
                    round,
                    call.tool_name,
                    type(call.arguments).__name__,
                )
            call_id = call.id
            if not call_id or call_id in seen:
                call_id = f"{run_id}:{round}:{idx}"
            seen.add(call_id)
            out.append(
                call if call_id == call.id
                else ToolCall(id=call_id, tool_name=call.tool_name, arguments=call.arguments)
            )
        return out

    # ''''''''''''''''''''''''''''''''''''''
    # Tool rounds
    # ''''''''''''''''''''''''''''''''''''''

    async def _run_round(
        self,
        invocation: Invocation,
        calls: list[ToolCall],
        round: int,
        records: list[ToolExecutionRecord],
        emit: EventSink | None,
    ) -> list[ToolResult[Any]]:
        """
        Dispatch one round of calls and return their results in issue order.

        Mutating calls run strictly one after another; consecutive read-only
        calls fan out over a bounded pool.
        """
        signal = invocation.cancellation
        registry = invocation.agent.registry
        resolved: list[Tool[Any, Any] | None] = []
        for call in calls:
            try:
                resolved.append(registry.lookup(call.tool_name))
            except ToolNotFoundError:
                resolved.append(None)

        results: list[ToolResult[Any] | None] = [None] * len(calls)
        latencies: dict[int, float] = {}
        dispatched: set[int] = set()
        pool = asyncio.Semaphore(self.config.max_parallel_tools)

        async def _dispatch(idx: int) -> ToolResult[Any] | None:
            call = calls[idx]
            async with pool:
                if signal.cancelled:
                    return None
                dispatched.add(idx)
                await _emit(
                    emit,
                    ToolCallStartedEvent(
                        call_id=call.id or "",
                        tool_name=call.tool_name,
                        args=json_value_from_tool_result(call.arguments),
                    ),
                )
                started = time.monotonic()
                tool = resolved[idx]
                if tool is None:
                    result: ToolResult[Any] = ToolResult.failure(
                        "not_found",
                        f"Unknown tool: {call.tool_name}",
                        tool_name=call.tool_name,
                        tool_call_id=call.id,
                    )
                else:
                    ctx = ToolContext(
                        tool_call_id=call.id,
                        tool_name=call.tool_name,
                        invocation=invocation,
                        runtime=self,
                        metadata={"round": round, "depth": invocation.depth},
                    )
                    result = await self.executor.execute(tool, call.arguments, ctx)
                latencies[idx] = (time.monotonic() - started) * 1000.0
                await _emit(
                    emit,
                    ToolCallFinishedEvent(call_id=call.id or "", outcome=outcome_from_result(result)),
                )
                return result

        for segment in _segments(resolved):
            signal.raise_if_cancelled()
            logger.debug(
                "run %s round %d dispatching %s",
                invocation.run_id,
                round,
                [calls[i].tool_name for i in segment],
            )
            tasks = [asyncio.create_task(_dispatch(idx)) for idx in segment]
            aborted = await self._settle(tasks, signal)

            for idx, task in zip(segment, tasks):
                if task.cancelled() or isinstance(task.exception(), AgentCancelledError):
                    if idx in dispatched:
                        results[idx] = ToolResult.failure(
                            "cancelled",
                            f"Tool '{calls[idx].tool_name}' was interrupted",
                            tool_name=calls[idx].tool_name,
                            tool_call_id=calls[idx].id,
                        )
                    continue
                exc = task.exception()
                if exc is not None:
                    if isinstance(exc, AgentRunAbortedError):
                        continue
                    raise exc
                results[idx] = task.result()

            for idx in segment:
                result = results[idx]
                if result is not None:
                    records.append(
                        tool_record_from_result(result, round=round, latency_ms=latencies.get(idx))
                    )

            if aborted is not None:
                raise aborted

        return [r for r in results if r is not None]

    async def _settle(
        self,
        tasks: list[asyncio.Task[Any]],
        signal: CancellationSignal,
    ) -> AgentRunAbortedError | None:
        """
        Wait for `tasks` while watching the cancellation signal.

        When the signal fires (or a task fails with a run-level error) the
        remaining tasks get `cancel_grace_s` to finish before they are
        interrupted. Returns the run-level error to raise, if any.
        """
        pending: set[asyncio.Task[Any]] = {t for t in tasks if not t.done()}
        waiter = asyncio.create_task(signal.wait())
        abort: AgentRunAbortedError | None = None
        try:
            while pending and abort is None:
                done, _ = await asyncio.wait(pending | {waiter}, return_when=asyncio.FIRST_COMPLETED)
                pending -= done
                for t in done:
                    if t is waiter:
                        continue
                    if not t.cancelled() and isinstance(t.exception(), AgentRunAbortedError):
                        abort = t.exception()  # type: ignore[assignment]
                        break
                if waiter in done and abort is None:
                    abort = AgentCancelledError(f"Run cancelled: {signal.reason}")

            if pending:
                logger.warning(
                    "aborting with %d call(s) in flight (%s); grace period %.2fs",
                    len(pending),
                    abort.kind if abort is not None else "unknown",
                    self.config.cancel_grace_s,
                )
                if self.config.cancel_grace_s > 0:
                    _, pending = await asyncio.wait(pending, timeout=self.config.cancel_grace_s)
                for t in pending:
                    t.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        except BaseException:
            for t in pending:
                t.cancel()
            raise
        finally:
            waiter.cancel()
            await asyncio.gather(waiter, return_exceptions=True)

        if abort is None and signal.cancelled:
            abort = AgentCancelledError(f"Run cancelled: {signal.reason}")
        if abort is None:
            for t in tasks:
                if not t.cancelled() and isinstance(t.exception(), AgentRunAbortedError):
                    return t.exception()  # type: ignore[return-value]
        return abort
