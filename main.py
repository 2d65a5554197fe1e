import asyncio
import logging

from pydantic import BaseModel, Field

from agentnest import (
    Agent,
    AgentRuntime,
    ModelResponse,
    RateLimitSpec,
    RetryConfig,
    RuntimeConfig,
    ScriptedOracle,
    StreamingSession,
    SubAgentInvoker,
    ToolCall,
    ToolContext,
    Usage,
    tool,
)
from agentnest.agents import event_to_dict


# -----------------------
# Models
# -----------------------


class SearchArgs(BaseModel):
    query: str = Field(..., description="Search query")


class SaveDraftArgs(BaseModel):
    title: str = Field(..., description="Draft title")
    body: str = Field(..., description="Draft body")


# -----------------------
# Tools
# -----------------------


DRAFTS: list[dict] = []


@tool(
    args_model=SearchArgs,
    name="web_search",
    concurrency_safe=True,
    rate_limit=RateLimitSpec(capacity=5, refill_rate=1.0),
)
async def web_search(args: SearchArgs, ctx: ToolContext) -> list[str]:
    """Search the web (read-only)."""
    await asyncio.sleep(0.01)
    ctx.record_usage(tokens_in=10, tokens_out=5)
    return [f"result for {args.query!r} #{i}" for i in range(2)]


@tool(args_model=SaveDraftArgs, name="save_draft")
def save_draft(args: SaveDraftArgs) -> dict:
    """Persist a draft (mutating, runs sequentially)."""
    DRAFTS.append({"title": args.title, "body": args.body})
    return {"draft_id": len(DRAFTS)}


# -----------------------
# Agents
# -----------------------


def build_agents() -> Agent:
    writer = Agent(
        name="writer",
        system_prompt="Turn research notes into a short draft and save it.",
        model=ScriptedOracle(
            [
                ModelResponse(
                    text="Saving the draft.",
                    tool_calls=[
                        ToolCall(
                            tool_name="save_draft",
                            arguments={"title": "Solar 2026", "body": "Panels got cheaper."},
                        )
                    ],
                    usage=Usage(input_tokens=40, output_tokens=12),
                ),
                ModelResponse(text="Draft #1 saved.", usage=Usage(input_tokens=30, output_tokens=6)),
            ],
            name="writer-oracle",
        ),
        tools=[save_draft],
    )

    return Agent(
        name="researcher",
        system_prompt="Research the topic, then delegate writing.",
        model=ScriptedOracle(
            [
                ModelResponse(
                    text="Searching two angles.",
                    tool_calls=[
                        ToolCall(tool_name="web_search", arguments={"query": "solar prices"}),
                        ToolCall(tool_name="web_search", arguments={"query": "solar adoption"}),
                    ],
                    usage=Usage(input_tokens=50, output_tokens=10),
                ),
                ModelResponse(
                    text="Delegating the draft.",
                    tool_calls=[
                        ToolCall(
                            tool_name="ask_writer",
                            arguments={"task": "Write a draft about cheaper solar panels."},
                        )
                    ],
                    usage=Usage(input_tokens=80, output_tokens=15),
                ),
                ModelResponse(
                    text="Research done and the draft is saved.",
                    usage=Usage(input_tokens=90, output_tokens=8),
                ),
            ],
            name="researcher-oracle",
        ),
        tools=[web_search, SubAgentInvoker(writer)],
    )


# -----------------------
# Main demo runner
# -----------------------


async def main():
    runtime = AgentRuntime(
        config=RuntimeConfig(
            max_rounds=6,
            max_depth=2,
            token_budget=2_000,
            retry=RetryConfig(max_attempts=2, base_delay_s=0.05, jitter_s=0.01),
        )
    )
    researcher = build_agents()

    print("\n--- 1) Streamed run with a delegating agent ---")
    session = StreamingSession(researcher, "Write about solar prices.", runtime=runtime)
    async for event in session.events():
        print("event:", event_to_dict(event))
    result = await session.await_result()
    print("final:", result.final_text)
    print("usage:", result.usage)

    print("\n--- 2) Tool execution records ---")
    for rec in result.tool_executions:
        print(rec)

    print("\n--- 3) Drafts written by the sub-agent ---")
    for draft in DRAFTS:
        print(draft)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
