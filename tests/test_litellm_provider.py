import asyncio
from types import SimpleNamespace

import litellm
import pytest

from toolbot.errors import ModelError, ModelFatalError, ModelRetryableError
from toolbot.providers import litellm_provider
from toolbot.providers.litellm_provider import LiteLLMProvider


def _response(content=None, tool_calls=None, finish_reason="stop", choices=True):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    usage = SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)] if choices else [],
        usage=usage,
    )


def _tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def captured(monkeypatch):
    """替换 acompletion，记录请求参数并返回预设响应"""
    state = {"kwargs": None, "response": _response("hello"), "error": None}

    async def fake_acompletion(**kwargs):
        state["kwargs"] = kwargs
        if state["error"] is not None:
            raise state["error"]
        return state["response"]

    monkeypatch.setattr(litellm_provider, "acompletion", fake_acompletion)
    return state


@pytest.mark.asyncio
async def test_text_response(captured):
    provider = LiteLLMProvider(api_key="sk-test", api_base="http://localhost:4000")

    response = await provider.chat([{"role": "user", "content": "hi"}])

    assert response.content == "hello"
    assert not response.has_tool_calls
    assert response.usage["total_tokens"] == 15
    kwargs = captured["kwargs"]
    assert kwargs["model"] == "openai/gpt-4o-mini"
    assert kwargs["api_key"] == "sk-test"
    assert kwargs["api_base"] == "http://localhost:4000"
    assert "tools" not in kwargs


@pytest.mark.asyncio
async def test_tool_calls_keep_raw_arguments(captured):
    captured["response"] = _response(
        tool_calls=[
            _tool_call("c1", "get_weather", '{"location": "Paris"}'),
            _tool_call("c2", "now", ""),
        ],
        finish_reason="tool_calls",
    )
    tools = [{"type": "function", "function": {"name": "get_weather", "parameters": {}}}]
    provider = LiteLLMProvider()

    response = await provider.chat([{"role": "user", "content": "hi"}], tools=tools, model="openai/gpt-4o")

    assert captured["kwargs"]["tools"] == tools
    assert captured["kwargs"]["tool_choice"] == "auto"
    assert captured["kwargs"]["model"] == "openai/gpt-4o"
    assert response.finish_reason == "tool_calls"
    assert [(tc.id, tc.name, tc.raw_arguments) for tc in response.tool_calls] == [
        ("c1", "get_weather", '{"location": "Paris"}'),
        ("c2", "now", "{}"),
    ]


def _litellm_error(cls):
    return cls(message="upstream said no", llm_provider="openai", model="gpt-4o-mini")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error_cls, expected, status_code",
    [
        (litellm.RateLimitError, ModelRetryableError, 429),
        (litellm.Timeout, ModelRetryableError, 408),
        (litellm.APIConnectionError, ModelRetryableError, 500),
        (litellm.ServiceUnavailableError, ModelRetryableError, 503),
        (litellm.InternalServerError, ModelRetryableError, 500),
        (litellm.AuthenticationError, ModelFatalError, 401),
        (litellm.BadRequestError, ModelFatalError, 400),
        (litellm.NotFoundError, ModelFatalError, 404),
    ],
)
async def test_litellm_errors_are_classified(captured, error_cls, expected, status_code):
    """限流/超时/连接/5xx 可重试，认证与请求错误不可重试"""
    captured["error"] = _litellm_error(error_cls)

    with pytest.raises(ModelError) as exc_info:
        await LiteLLMProvider().chat([{"role": "user", "content": "hi"}])

    assert type(exc_info.value) is expected
    assert exc_info.value.status_code == status_code
    assert isinstance(exc_info.value.__cause__, error_cls)


@pytest.mark.asyncio
async def test_timeout_is_retryable(captured):
    captured["error"] = asyncio.TimeoutError()

    with pytest.raises(ModelRetryableError):
        await LiteLLMProvider().chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_other_errors_are_fatal(captured):
    captured["error"] = ValueError("bad request")

    with pytest.raises(ModelFatalError, match="bad request") as exc_info:
        await LiteLLMProvider().chat([{"role": "user", "content": "hi"}])
    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_no_choices_is_fatal(captured):
    captured["response"] = _response(choices=False)

    with pytest.raises(ModelFatalError):
        await LiteLLMProvider().chat([{"role": "user", "content": "hi"}])


def test_default_model():
    assert LiteLLMProvider(default_model="anthropic/claude-sonnet-4-5").get_default_model() == (
        "anthropic/claude-sonnet-4-5"
    )
