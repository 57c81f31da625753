"""
测试辅助工具：按脚本返回响应的内存 LLMProvider。
"""

import json
from typing import Any

from toolbot.providers.base import LLMProvider, LLMResponse, ToolCallRequest


class ScriptedProvider(LLMProvider):
    """
    按顺序返回预先准备的响应。

    脚本中的每一项可以是：
      - LLMResponse：直接返回
      - 异常实例：直接抛出
      - 异步函数 async def step(messages) -> LLMResponse：用于模拟慢调用或按上下文应答
    """

    def __init__(self, script: list[Any] | None = None, model: str = "test/scripted"):
        super().__init__()
        self.script = list(script or [])
        self.model = model
        self.calls: list[dict[str, Any]] = []

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        self.calls.append({"messages": messages, "tools": tools, "model": model})
        if not self.script:
            raise AssertionError("ScriptedProvider ran out of responses")
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return await step(messages)
        return step

    def get_default_model(self) -> str:
        return self.model


def text_response(content: str | None) -> LLMResponse:
    """不带工具调用的最终回复。"""
    return LLMResponse(content=content)


def tool_call_response(*calls: tuple[str, str, Any], content: str | None = None) -> LLMResponse:
    """
    构造带工具调用的响应。

    calls 中每一项为 (id, name, arguments)，arguments 为 dict 时序列化成 JSON 字符串。
    """
    requests = [
        ToolCallRequest(
            id=call_id,
            name=name,
            raw_arguments=json.dumps(args) if isinstance(args, dict) else args,
        )
        for call_id, name, args in calls
    ]
    return LLMResponse(content=content, tool_calls=requests, finish_reason="tool_calls")
