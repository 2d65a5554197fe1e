"""
Cooperative cancellation shared by an invocation tree.
"""

from __future__ import annotations

import asyncio

from ..agents.errors import AgentCancelledError


class CancellationSignal:
    """
    One-shot cancellation flag.

    The runtime checks it at round boundaries and before every dispatch;
    in-flight calls can `wait()` on it. Setting it is idempotent and the first
    reason wins.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason or "cancelled by consumer"
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AgentCancelledError(f"Run cancelled: {self._reason}")

    async def wait(self) -> None:
        await self._event.wait()
