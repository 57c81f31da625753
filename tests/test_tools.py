import asyncio
import threading
from typing import Annotated, Literal

import pytest
from pydantic import BaseModel, Field

from toolbot.agent.tools import FunctionTool, schema_from_function, schema_from_model, tool
from toolbot.errors import SchemaMismatchError


class WeatherArgs(BaseModel):
    location: str = Field(description="City name")
    unit: Literal["C", "F"] = "C"


def test_schema_from_function_signature():
    """函数签名反射：无默认值为必填，有默认值为可选"""
    def search(query: str, limit: int = 5, exact: bool = False):
        pass

    schema = schema_from_function(search)
    assert schema["type"] == "object"
    assert schema["required"] == ["query"]
    assert schema["properties"]["query"]["type"] == "string"
    assert schema["properties"]["limit"]["type"] == "integer"
    assert schema["properties"]["limit"]["default"] == 5
    assert schema["properties"]["exact"]["type"] == "boolean"
    assert "title" not in schema


def test_schema_from_model():
    schema = schema_from_model(WeatherArgs)

    assert schema["required"] == ["location"]
    assert schema["properties"]["location"]["description"] == "City name"
    assert schema["properties"]["unit"]["enum"] == ["C", "F"]


def test_annotated_field_description():
    def lookup(city: Annotated[str, Field(description="City to look up")]):
        pass

    schema = schema_from_function(lookup)
    assert schema["properties"]["city"]["description"] == "City to look up"


def test_tool_decorator_variants():
    """@tool / @tool("desc") / @tool(name=...) 三种写法"""
    @tool
    async def ping() -> str:
        """Check that the service is alive.

        Longer explanation that should not reach the model.
        """
        return "pong"

    @tool("Echo the input back")
    def echo(text: str) -> str:
        return text

    @tool(name="web_search", description="Search the web")
    async def search(query: str) -> str:
        return query

    assert isinstance(ping, FunctionTool)
    assert ping.name == "ping"
    assert ping.description == "Check that the service is alive."
    assert echo.description == "Echo the input back"
    assert search.name == "web_search"
    # 装饰后仍可直接调用原函数
    assert echo("hi") == "hi"


def test_parse_arguments_rejects_invalid_json():
    @tool("Echo")
    def echo(text: str) -> str:
        return text

    with pytest.raises(SchemaMismatchError) as exc_info:
        echo.parse_arguments("{not json")
    assert exc_info.value.tool_name == "echo"
    assert "not valid JSON" in str(exc_info.value)

    with pytest.raises(SchemaMismatchError):
        echo.parse_arguments("[1, 2]")


def test_parse_arguments_rejects_schema_mismatch():
    @tool("Add")
    def add(a: int, b: int) -> int:
        return a + b

    with pytest.raises(SchemaMismatchError) as exc_info:
        add.parse_arguments('{"a": "abc"}')
    joined = "; ".join(exc_info.value.errors)
    assert "a:" in joined
    assert "b:" in joined


def test_empty_arguments_for_parameterless_tool():
    @tool("No arguments")
    async def now() -> str:
        return "12:00"

    args = now.parse_arguments("")
    assert args.model_dump() == {}


@pytest.mark.asyncio
async def test_invoke_async_and_sync_functions():
    """同步函数在工作线程中执行"""
    main_thread = threading.get_ident()

    @tool("Which thread")
    def where() -> dict:
        return {"same_thread": threading.get_ident() == main_thread}

    @tool("Add")
    async def add(a: int, b: int) -> int:
        await asyncio.sleep(0)
        return a + b

    assert await where.invoke(where.parse_arguments("{}")) == '{"same_thread": false}'
    assert await add.invoke(add.parse_arguments('{"a": 2, "b": 3}')) == "5"


@pytest.mark.asyncio
async def test_single_model_parameter():
    """函数只有一个 pydantic 模型参数时，以模型实例调用"""
    seen = []

    @tool("Get the weather")
    async def get_weather(args: WeatherArgs) -> str:
        seen.append(args)
        return f"22°{args.unit} in {args.location}"

    assert get_weather.parameters["required"] == ["location"]

    output = await get_weather.invoke(get_weather.parse_arguments('{"location": "Paris"}'))
    assert output == "22°C in Paris"
    assert isinstance(seen[0], WeatherArgs)

    with pytest.raises(SchemaMismatchError):
        get_weather.parse_arguments('{"location": "Paris", "unit": "K"}')


@pytest.mark.asyncio
async def test_manual_parameters_use_base_validation():
    async def handler(path: str) -> str:
        return f"read {path}"

    read_file = FunctionTool(
        handler,
        name="read_file",
        description="Read a file",
        parameters={
            "type": "object",
            "properties": {"path": {"type": "string", "minLength": 1}},
            "required": ["path"],
        },
    )

    with pytest.raises(SchemaMismatchError) as exc_info:
        read_file.parse_arguments({})
    assert "missing required path" in exc_info.value.errors

    with pytest.raises(SchemaMismatchError):
        read_file.parse_arguments({"path": ""})

    assert await read_file.execute(path="a.txt") == "read a.txt"


@pytest.mark.asyncio
async def test_non_string_results_become_text():
    class Reading(BaseModel):
        celsius: float

    @tool("Nothing")
    def nothing() -> None:
        return None

    @tool("Model")
    def reading() -> Reading:
        return Reading(celsius=22.5)

    @tool("Unicode")
    def greet() -> list:
        return ["你好"]

    assert await nothing.invoke(nothing.parse_arguments(None)) == ""
    assert await reading.invoke(reading.parse_arguments(None)) == '{"celsius":22.5}'
    assert await greet.invoke(greet.parse_arguments(None)) == '["你好"]'
