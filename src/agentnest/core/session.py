"""
Streaming wrapper around a top-level run.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from ..agents.base import Agent
from ..agents.errors import AgentCancelledError, AgentError, AgentRunAbortedError
from ..agents.types import AgentResult, ErrorEvent, FinalAnswerEvent, RunEvent
from ..agents.usage import UsageSnapshot, UsageTracker
from .cancellation import CancellationSignal
from .runtime import AgentRuntime

logger = logging.getLogger(__name__)

_RUN_END = object()


def _mark_retrieved(fut: "asyncio.Future[AgentResult]") -> None:
    if not fut.cancelled():
        fut.exception()


def error_kind_for(exc: BaseException) -> str:
    if isinstance(exc, AgentRunAbortedError):
        return exc.kind
    if isinstance(exc, AgentError):
        return "execution_error"
    return "internal_error"


class StreamingSession:
    """
    Runs one top-level invocation and publishes its events in order.

    The session owns the run's `UsageTracker` and `CancellationSignal`. It is
    single-use and single-consumer: `events()` may be iterated once. The stream
    always ends with exactly one `final_answer` or `error` event.
    """

    def __init__(
        self,
        agent: Agent,
        user_message: str,
        *,
        runtime: AgentRuntime | None = None,
    ) -> None:
        self.agent = agent
        self.user_message = user_message
        self.runtime = runtime or AgentRuntime()
        self._usage: UsageTracker | None = UsageTracker(
            token_budget=self.runtime.config.token_budget
        )
        self._signal: CancellationSignal | None = CancellationSignal()
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._result_fut: asyncio.Future[AgentResult] | None = None
        self._events_consumed = False
        self._final_usage: UsageSnapshot | None = None

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def usage(self) -> UsageSnapshot:
        """Live usage while running, the final snapshot afterwards."""
        if self._usage is not None:
            return self._usage.snapshot()
        return self._final_usage or UsageSnapshot()

    def start(self) -> None:
        """Start the run in a background task. Idempotent."""
        if self._task is not None:
            return
        loop = asyncio.get_running_loop()
        self._result_fut = loop.create_future()
        # the terminal error event already reports a failure to stream-only consumers
        self._result_fut.add_done_callback(_mark_retrieved)
        self._task = asyncio.create_task(self._drive())

    async def events(self) -> AsyncIterator[RunEvent]:
        """
        Yield run events until the terminal event.

        Raises:
            RuntimeError: If the stream is requested by more than one consumer.
        """
        if self._events_consumed:
            raise RuntimeError("StreamingSession.events supports a single consumer")
        self._events_consumed = True
        self.start()
        while True:
            item = await self._queue.get()
            if item is _RUN_END:
                break
            yield item  # type: ignore[misc]

    def cancel(self, reason: str | None = None) -> None:
        """
        Request cooperative cancellation of the whole invocation tree.

        Events produced after this point are dropped; the stream still ends
        with a terminal `error` event once the runtime has unwound.
        """
        if self._signal is not None:
            logger.info("session cancel requested for agent %s: %s", self.agent.name, reason)
            self._signal.cancel(reason)

    async def await_result(self) -> AgentResult:
        """
        Wait for the terminal result.

        Raises:
            AgentError: The run-level error that terminated the run.
        """
        self.start()
        assert self._result_fut is not None
        return await asyncio.shield(self._result_fut)

    async def run(self) -> AgentResult:
        """Drain the event stream (if nobody else consumes it) and return the result."""
        if not self._events_consumed:
            async for _ in self.events():
                pass
        return await self.await_result()

    async def _publish(self, event: RunEvent) -> None:
        if self._signal is not None and self._signal.cancelled:
            return
        await self._queue.put(event)

    async def _drive(self) -> None:
        assert self._result_fut is not None
        assert self._usage is not None and self._signal is not None
        invocation = self.runtime.root_invocation(
            self.agent,
            self.user_message,
            usage=self._usage,
            cancellation=self._signal,
        )
        try:
            result = await self.runtime.run(invocation, emit=self._publish)
        except asyncio.CancelledError:
            err = AgentCancelledError("Run task was cancelled")
            self._queue.put_nowait(ErrorEvent(kind="cancelled", message=str(err)))
            self._result_fut.set_exception(err)
            raise
        except Exception as e:
            kind = error_kind_for(e)
            log = logger.info if isinstance(e, AgentRunAbortedError) else logger.error
            log("run %s failed: %s: %s", invocation.run_id, kind, e)
            self._queue.put_nowait(ErrorEvent(kind=kind, message=str(e)))
            self._result_fut.set_exception(e)
        else:
            self._queue.put_nowait(FinalAnswerEvent(content=result.final_text))
            self._result_fut.set_result(result)
        finally:
            self._final_usage = self._usage.snapshot()
            # the tracker and signal live exactly as long as the run
            self._usage = None
            self._signal = None
            self._queue.put_nowait(_RUN_END)
