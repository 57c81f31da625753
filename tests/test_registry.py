import pytest

from toolbot.agent.loop import Agent
from toolbot.agent.tools import FunctionTool, ToolRegistry, tool
from toolbot.errors import ConfigurationError, DuplicateToolNameError, ToolNotFoundError

from helpers import ScriptedProvider


@tool("Get the current weather for a location")
async def get_weather(location: str) -> str:
    return f"22°C in {location}"


@tool("Add two numbers")
def add(a: int, b: int) -> int:
    return a + b


def test_duplicate_name_fails_at_build():
    """重名工具在构建阶段就失败"""
    def forecast(location: str) -> str:
        return "sunny"

    other = FunctionTool(forecast, name="get_weather", description="Another weather tool")
    with pytest.raises(DuplicateToolNameError) as exc_info:
        ToolRegistry.build([get_weather, other])
    assert exc_info.value.name == "get_weather"


def test_distinct_names_preserve_order():
    """不同名称的工具可以注册，schema_list 保持注册顺序"""
    registry = ToolRegistry.build([add, get_weather])

    schemas = registry.schema_list()
    assert [s["name"] for s in schemas] == ["add", "get_weather"]
    assert schemas[1]["description"] == "Get the current weather for a location"
    assert schemas[1]["parameters"]["required"] == ["location"]
    assert registry.tool_names == ["add", "get_weather"]
    assert len(registry) == 2
    assert "add" in registry


def test_get_definitions_uses_function_format():
    registry = ToolRegistry.build([get_weather])

    definition = registry.get_definitions()[0]
    assert definition["type"] == "function"
    assert definition["function"]["name"] == "get_weather"
    assert "location" in definition["function"]["parameters"]["properties"]


def test_lookup_missing_tool():
    registry = ToolRegistry.build([add])

    assert registry.get("missing") is None
    with pytest.raises(ToolNotFoundError) as exc_info:
        registry.lookup("missing")
    assert exc_info.value.tool_name == "missing"
    assert str(exc_info.value) == "Tool 'missing' not found"


def test_frozen_registry_rejects_registration():
    registry = ToolRegistry.build([add])

    assert registry.frozen
    with pytest.raises(ConfigurationError):
        registry.register(get_weather)


def test_unfrozen_registry_accepts_registration():
    registry = ToolRegistry()
    registry.register(add)
    registry.register(get_weather)

    assert not registry.frozen
    assert registry.has("get_weather")
    assert [t.name for t in registry] == ["add", "get_weather"]


def test_agent_freezes_registry():
    """Agent 构造后注册表只读"""
    registry = ToolRegistry([add])
    agent = Agent(ScriptedProvider(), tools=registry)

    assert agent.registry is registry
    assert registry.frozen


def test_agent_rejects_duplicate_tools():
    with pytest.raises(DuplicateToolNameError):
        Agent(ScriptedProvider(), tools=[add, add])
