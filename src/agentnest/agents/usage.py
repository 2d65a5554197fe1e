"""
Shared usage accounting for one top-level run and all of its descendants.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from .errors import AgentBudgetExceededError


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """
    Consistent point-in-time view of a `UsageTracker`.

    Attributes:
        tokens_in: Cumulative input tokens.
        tokens_out: Cumulative output tokens.
        tool_calls: Number of tool calls dispatched to a handler.
        token_budget: Configured ceiling on `tokens_in + tokens_out`.
    """

    tokens_in: int = 0
    tokens_out: int = 0
    tool_calls: int = 0
    token_budget: int | None = None

    @property
    def total_tokens(self) -> int:
        return self.tokens_in + self.tokens_out

    @property
    def remaining_tokens(self) -> int | None:
        if self.token_budget is None:
            return None
        return max(0, self.token_budget - self.total_tokens)


class UsageTracker:
    """
    Monotonic counters shared by reference across an invocation tree.

    Increments are serialized with a `threading.Lock` so concurrent branches
    (tasks, or sync tools running in worker threads) never lose updates. The
    lock is only held for the arithmetic, never across I/O.
    """

    def __init__(self, *, token_budget: int | None = None) -> None:
        if token_budget is not None and token_budget < 0:
            raise ValueError("token_budget must be >= 0")
        self._token_budget = token_budget
        self._tokens_in = 0
        self._tokens_out = 0
        self._tool_calls = 0
        self._exhausted = False
        self._lock = threading.Lock()

    @property
    def token_budget(self) -> int | None:
        return self._token_budget

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def increment(
        self,
        *,
        tokens_in: int = 0,
        tokens_out: int = 0,
        tool_calls: int = 0,
    ) -> UsageSnapshot:
        """
        Atomically add consumption and return the resulting snapshot.

        The consumption is recorded even when it crosses the budget, since the
        work was performed; the crossing then raises.

        Raises:
            ValueError: On negative increments.
            AgentBudgetExceededError: When the budget is (or already was) exceeded.
        """
        if tokens_in < 0 or tokens_out < 0 or tool_calls < 0:
            raise ValueError("usage increments must be non-negative")

        with self._lock:
            self._tokens_in += tokens_in
            self._tokens_out += tokens_out
            self._tool_calls += tool_calls
            snap = self._snapshot_locked()
            if (
                not self._exhausted
                and self._token_budget is not None
                and snap.total_tokens > self._token_budget
            ):
                self._exhausted = True
            exhausted = self._exhausted

        if exhausted:
            raise AgentBudgetExceededError(
                f"Token budget exceeded: used {snap.total_tokens} of {self._token_budget}"
            )
        return snap

    def ensure_within_budget(self) -> None:
        """Raise if an earlier increment anywhere in the tree exhausted the budget."""
        if self._exhausted:
            snap = self.snapshot()
            raise AgentBudgetExceededError(
                f"Token budget exceeded: used {snap.total_tokens} of {self._token_budget}"
            )

    def snapshot(self) -> UsageSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> UsageSnapshot:
        return UsageSnapshot(
            tokens_in=self._tokens_in,
            tokens_out=self._tokens_out,
            tool_calls=self._tool_calls,
            token_budget=self._token_budget,
        )
