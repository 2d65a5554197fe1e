from __future__ import annotations

import asyncio

import pytest

from agentnest.agents import Agent, AgentCancelledError, AgentConfigurationError, UsageTracker
from agentnest.agents.errors import SubagentDepthExceededError
from agentnest.core import CancellationSignal, Invocation, RetryConfig, RuntimeConfig
from agentnest.oracle import ModelResponse, ScriptedOracle
from agentnest.tools import RateLimitSpec


def run_async(coro):
    return asyncio.run(coro)


def _agent(name: str) -> Agent:
    return Agent(name=name, model=ScriptedOracle([ModelResponse(text="ok")]))


def test_runtime_config_defaults():
    config = RuntimeConfig()
    assert config.max_rounds == 20
    assert config.max_depth == 3
    assert config.token_budget is None
    assert config.per_tool_rate_limit is None
    assert config.retry == RetryConfig(max_attempts=3, base_delay_s=0.25, jitter_s=0.1)
    assert config.retry.to_policy().max_attempts == 3


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_rounds": 0},
        {"max_depth": -1},
        {"token_budget": -5},
        {"max_parallel_tools": 0},
        {"cancel_grace_s": -1.0},
        {"retry": RetryConfig(max_attempts=0)},
        {"retry": RetryConfig(base_delay_s=-0.1)},
    ],
)
def test_runtime_config_rejects_invalid_values(kwargs):
    with pytest.raises(AgentConfigurationError):
        RuntimeConfig(**kwargs)


def test_runtime_config_from_env(monkeypatch):
    monkeypatch.setenv("AGENTNEST_MAX_ROUNDS", "7")
    monkeypatch.setenv("AGENTNEST_MAX_DEPTH", "2")
    monkeypatch.setenv("AGENTNEST_TOKEN_BUDGET", "5000")
    monkeypatch.setenv("AGENTNEST_RATE_CAPACITY", "4")
    monkeypatch.setenv("AGENTNEST_RATE_REFILL_PER_S", "0.5")
    monkeypatch.setenv("AGENTNEST_RETRY_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("AGENTNEST_RETRY_BASE_DELAY_MS", "100")
    monkeypatch.setenv("AGENTNEST_RETRY_JITTER_MS", "20")

    config = RuntimeConfig.from_env()

    assert config.max_rounds == 7
    assert config.max_depth == 2
    assert config.token_budget == 5000
    assert config.per_tool_rate_limit == RateLimitSpec(capacity=4, refill_rate=0.5)
    assert config.retry.max_attempts == 5
    assert config.retry.base_delay_s == pytest.approx(0.1)
    assert config.retry.jitter_s == pytest.approx(0.02)


def test_runtime_config_from_env_falls_back_to_defaults(monkeypatch):
    for name in ("AGENTNEST_MAX_ROUNDS", "AGENTNEST_TOKEN_BUDGET", "AGENTNEST_RATE_CAPACITY"):
        monkeypatch.delenv(name, raising=False)
    config = RuntimeConfig.from_env()
    assert config.max_rounds == 20
    assert config.token_budget is None
    assert config.per_tool_rate_limit is None


def test_runtime_config_from_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("AGENTNEST_MAX_ROUNDS", "many")
    with pytest.raises(AgentConfigurationError):
        RuntimeConfig.from_env()


def test_child_invocation_shares_state_and_grows_depth():
    root = Invocation(
        agent=_agent("lead"),
        input="go",
        usage=UsageTracker(),
        cancellation=CancellationSignal(),
        max_depth=2,
    )
    child = root.child(_agent("helper"), "sub task")
    grandchild = child.child(_agent("leaf"), "leaf task")

    assert root.is_root and not child.is_root
    assert (root.depth, child.depth, grandchild.depth) == (0, 1, 2)
    assert child.usage is root.usage and grandchild.usage is root.usage
    assert grandchild.cancellation is root.cancellation
    assert grandchild.parent_run_id == child.run_id
    assert len({root.run_id, child.run_id, grandchild.run_id}) == 3

    with pytest.raises(SubagentDepthExceededError) as exc_info:
        grandchild.child(_agent("too_deep"), "nope")
    assert exc_info.value.depth == 3
    assert exc_info.value.max_depth == 2


def test_cancellation_signal_is_idempotent_and_first_reason_wins():
    signal = CancellationSignal()
    signal.raise_if_cancelled()

    signal.cancel("user pressed stop")
    signal.cancel("second reason")

    assert signal.cancelled
    assert signal.reason == "user pressed stop"
    with pytest.raises(AgentCancelledError):
        signal.raise_if_cancelled()


def test_cancellation_signal_wakes_waiters():
    async def scenario():
        signal = CancellationSignal()
        waiter = asyncio.create_task(signal.wait())
        await asyncio.sleep(0)
        assert not waiter.done()
        signal.cancel()
        await asyncio.wait_for(waiter, timeout=1.0)
        return signal.reason

    assert run_async(scenario()) == "cancelled by consumer"
