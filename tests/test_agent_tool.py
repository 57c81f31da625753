import asyncio

import pytest

from toolbot.agent.cancel import CancellationToken
from toolbot.agent.loop import Agent
from toolbot.agent.tools import AgentTool, tool
from toolbot.errors import CancelledRunError, ModelFatalError, SchemaMismatchError, ToolExecutionError

from helpers import ScriptedProvider, text_response, tool_call_response


@tool("Search the web")
async def web_search(query: str) -> str:
    return f"results for {query}"


def _researcher(script) -> tuple[Agent, ScriptedProvider]:
    provider = ScriptedProvider(script)
    agent = Agent(
        provider,
        system_prompt="You are a meticulous researcher",
        tools=[web_search],
        name="researcher",
    )
    return agent, provider


def test_agent_tool_schema():
    sub, _ = _researcher([])
    delegate = sub.as_tool()

    assert isinstance(delegate, AgentTool)
    assert delegate.name == "researcher"
    assert "researcher" in delegate.description
    assert delegate.parameters["required"] == ["message"]
    assert delegate.parameters["properties"]["message"]["type"] == "string"

    renamed = AgentTool(sub, name="ask_researcher", description="Ask the researcher")
    assert renamed.name == "ask_researcher"
    assert renamed.description == "Ask the researcher"


def test_agent_tool_requires_message():
    sub, _ = _researcher([])

    with pytest.raises(SchemaMismatchError):
        sub.as_tool().parse_arguments("{}")


@pytest.mark.asyncio
async def test_sub_agent_call_adds_two_messages_to_parent():
    """子 Agent 内部多轮，主对话只增加 assistant 调用 + tool 结果两条消息"""
    sub, sub_provider = _researcher([
        tool_call_response(("s1", "web_search", {"query": "toolbot"})),
        tool_call_response(("s2", "web_search", {"query": "toolbot agents"})),
        text_response("toolbot is an agent runtime."),
    ])
    parent_provider = ScriptedProvider([
        tool_call_response(("p1", "researcher", {"message": "What is toolbot?"})),
        text_response("According to research, toolbot is an agent runtime."),
    ])
    parent = Agent(parent_provider, tools=[sub.as_tool()], name="coordinator")
    conversation = parent.new_conversation("Tell me about toolbot")

    before = len(conversation)
    await parent.run_conversation(conversation)

    # +2 为子 Agent 调用，+1 为最终回复
    assert len(conversation) == before + 3
    assert conversation[before + 1].content == "toolbot is an agent runtime."
    assert len(sub_provider.calls) == 3


@pytest.mark.asyncio
async def test_sub_agent_sees_only_its_own_conversation():
    sub, sub_provider = _researcher([text_response("done")])
    parent_provider = ScriptedProvider([
        tool_call_response(("p1", "researcher", {"message": "Summarize X"})),
        text_response("ok"),
    ])
    parent = Agent(parent_provider, system_prompt="You coordinate", tools=[sub.as_tool()])

    await parent.run("secret parent context")

    assert sub_provider.calls[0]["messages"] == [
        {"role": "system", "content": "You are a meticulous researcher"},
        {"role": "user", "content": "Summarize X"},
    ]


@pytest.mark.asyncio
async def test_sub_agent_failure_becomes_error_result(fast_retry):
    sub = Agent(
        ScriptedProvider([ModelFatalError("invalid api key")]),
        name="researcher",
        retry_policy=fast_retry,
    )
    parent_provider = ScriptedProvider([
        tool_call_response(("p1", "researcher", {"message": "go"})),
        text_response("The researcher is unavailable."),
    ])
    parent = Agent(parent_provider, tools=[sub.as_tool()])
    conversation = parent.new_conversation("go")

    assert await parent.run_conversation(conversation) == "The researcher is unavailable."
    assert conversation[3].content == (
        "Error: Tool 'researcher' failed: sub-agent failed: invalid api key"
    )


@pytest.mark.asyncio
async def test_execute_with_keyword_message():
    sub, _ = _researcher([text_response("42")])

    with pytest.raises(ToolExecutionError):
        await Agent(ScriptedProvider([]), name="empty").as_tool().execute(message="hi")
    assert await sub.as_tool().execute(message="meaning of life?") == "42"


@pytest.mark.asyncio
async def test_parent_cancel_stops_running_sub_agent():
    """主运行被取消时，进行中的子运行一起被取消，主对话不留下该批次"""
    started = asyncio.Event()
    sub_cancelled = []

    async def hang(messages):
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            sub_cancelled.append(True)
            raise

    sub, _ = _researcher([hang])
    parent = Agent(
        ScriptedProvider([tool_call_response(("p1", "researcher", {"message": "dig"}))]),
        tools=[sub.as_tool()],
    )
    conversation = parent.new_conversation("go")
    token = CancellationToken()

    task = asyncio.create_task(parent.run_conversation(conversation, token))
    await asyncio.wait_for(started.wait(), timeout=1)
    token.cancel()

    with pytest.raises(CancelledRunError):
        await task
    assert sub_cancelled == [True]
    assert len(conversation) == 2
