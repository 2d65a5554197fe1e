from __future__ import annotations

import asyncio
import json

import pytest
from pydantic import BaseModel

from agentnest.tools import (
    Tool,
    ToolContext,
    ToolRegistry,
    ToolResult,
    ToolSpec,
    as_async,
    json_value_from_tool_result,
    tool,
)
from agentnest.tools.errors import (
    ToolAlreadyRegisteredError,
    ToolNotFoundError,
    ToolRegistryFrozenError,
    ToolSchemaError,
    ToolTimeoutError,
    ToolValidationError,
)


def run_async(coro):
    return asyncio.run(coro)


class EchoArgs(BaseModel):
    text: str


class AddArgs(BaseModel):
    a: int
    b: int = 0


def _echo_tool(name: str = "echo") -> Tool:
    @tool(args_model=EchoArgs, name=name)
    def echo(args: EchoArgs) -> str:
        """Echo the text back."""
        return args.text

    return echo


def test_as_async_supports_sync_and_async_functions():
    def sync_fn(value: int) -> int:
        return value + 1

    async def async_fn(value: int) -> int:
        return value + 2

    assert run_async(as_async(sync_fn)(10)) == 11
    assert run_async(as_async(async_fn)(10)) == 12


def test_tool_decorator_uses_docstring_and_defaults_to_mutating():
    echo = _echo_tool()
    assert echo.name == "echo"
    assert echo.spec.description == "Echo the text back."
    assert echo.spec.parameters_schema["type"] == "object"
    assert echo.concurrency_safe is False
    assert echo.rate_limit is None


def test_tool_function_signature_variants_are_supported():
    @tool(args_model=EchoArgs, name="args_only")
    def args_only(args: EchoArgs) -> str:
        return args.text

    @tool(args_model=EchoArgs, name="args_ctx")
    async def args_ctx(args: EchoArgs, ctx: ToolContext) -> str:
        return f"{args.text}:{ctx.tool_call_id}"

    @tool(args_model=EchoArgs, name="ctx_args")
    def ctx_args(ctx: ToolContext, args: EchoArgs) -> str:
        return f"{ctx.tool_name}:{args.text}"

    ctx = ToolContext(tool_call_id="tc_1", tool_name="ctx_args")
    args = EchoArgs(text="hi")
    assert run_async(args_only.invoke(args, ctx)) == "hi"
    assert run_async(args_ctx.invoke(args, ctx)) == "hi:tc_1"
    assert run_async(ctx_args.invoke(args, ctx)) == "ctx_args:hi"


def test_invalid_tool_signature_is_rejected():
    with pytest.raises(ToolValidationError):

        @tool(args_model=EchoArgs, name="bad")
        def bad(a: EchoArgs, b: str) -> str:
            return a.text


def test_tool_validate_raises_on_schema_mismatch():
    adder = Tool(
        spec=ToolSpec(name="add", description="add", parameters_schema=AddArgs.model_json_schema()),
        fn=lambda args: args.a + args.b,
        args_model=AddArgs,
    )
    assert adder.validate({"a": 2, "b": 3}) == AddArgs(a=2, b=3)
    with pytest.raises(ToolValidationError):
        adder.validate({"a": "not-a-number"})


def test_tool_timeout_raises_tool_timeout_error():
    @tool(args_model=EchoArgs, name="slow", timeout=0.01)
    async def slow(args: EchoArgs) -> str:
        await asyncio.sleep(0.5)
        return args.text

    with pytest.raises(ToolTimeoutError):
        run_async(slow.invoke(EchoArgs(text="x"), ToolContext()))


def test_tool_result_model_payload_shapes():
    ok = ToolResult(output={"n": 1}, tool_name="t", tool_call_id="c1")
    failed = ToolResult.failure("rate_limited", "slow down", tool_name="t", tool_call_id="c2")

    assert ok.to_model_payload() == '{"success": true, "output": {"n": 1}}'
    assert failed.success is False
    assert '"kind": "rate_limited"' in failed.to_model_payload()
    assert '"message": "slow down"' in failed.to_model_payload()


def test_registry_register_lookup_and_export():
    registry = ToolRegistry([_echo_tool("echo"), _echo_tool("echo_2")])

    assert len(registry) == 2
    assert "echo" in registry
    assert registry.has("echo_2")
    assert registry.names() == ["echo", "echo_2"]
    assert registry.lookup("echo").name == "echo"

    exported = registry.to_openai_function_tools()
    assert exported[0]["type"] == "function"
    assert exported[0]["function"]["name"] == "echo"
    assert exported[0]["function"]["parameters"]["required"] == ["text"]


def test_registry_duplicate_and_unknown_tool_errors():
    registry = ToolRegistry()
    registry.register(_echo_tool())

    with pytest.raises(ToolAlreadyRegisteredError):
        registry.register(_echo_tool())
    with pytest.raises(ToolNotFoundError):
        registry.lookup("missing")


def test_registry_is_read_only_after_freeze():
    registry = ToolRegistry([_echo_tool()]).freeze()

    assert registry.frozen
    with pytest.raises(ToolRegistryFrozenError):
        registry.register(_echo_tool("other"))
    assert registry.names() == ["echo"]


@pytest.mark.parametrize("name", ["", "has space", "x" * 65, "dots.not.allowed"])
def test_registry_rejects_invalid_tool_names(name):
    bad = Tool(
        spec=ToolSpec(name=name, description="d", parameters_schema=EchoArgs.model_json_schema()),
        fn=lambda args: args.text,
        args_model=EchoArgs,
    )
    with pytest.raises(ToolSchemaError):
        ToolRegistry().register(bad)


def test_registry_rejects_non_object_or_inconsistent_schemas():
    not_object = Tool(
        spec=ToolSpec(name="arr", description="d", parameters_schema={"type": "array"}),
        fn=lambda args: None,
        args_model=EchoArgs,
    )
    undeclared_required = Tool(
        spec=ToolSpec(
            name="req",
            description="d",
            parameters_schema={"type": "object", "properties": {}, "required": ["text"]},
        ),
        fn=lambda args: None,
        args_model=EchoArgs,
    )
    registry = ToolRegistry()
    with pytest.raises(ToolSchemaError):
        registry.register(not_object)
    with pytest.raises(ToolSchemaError):
        registry.register(undeclared_required)
    assert len(registry) == 0


def test_tool_validate_rejects_non_object_payloads():
    echo = _echo_tool()
    for payload in ('{"text": "hi"}', ["hi"], None):
        with pytest.raises(ToolValidationError):
            echo.validate(payload)


def test_tool_result_payload_dumps_pydantic_outputs():
    result = ToolResult(output=[EchoArgs(text="a"), {"nested": EchoArgs(text="b")}])
    assert json.loads(result.to_model_payload()) == {
        "success": True,
        "output": [{"text": "a"}, {"nested": {"text": "b"}}],
    }
    assert json_value_from_tool_result(object()).startswith("<object object")
