"""
LLM 提供者基类定义模块。

本模块定义了与大语言模型交互的核心抽象接口：
- ToolCallRequest : LLM 返回的工具调用请求（参数保持未解析的原始形态）
- LLMResponse     : LLM 的统一响应格式（文本内容、工具调用、token 用量等）
- LLMProvider     : 抽象基类，所有模型传输实现都必须实现 chat()

架构角色：
  Agent 循环 → LLMProvider.chat() → LLM API → LLMResponse → Agent 循环

Agent 循环只依赖这里的接口，不关心请求如何序列化、如何鉴权。
chat() 失败时必须抛出 ModelRetryableError 或 ModelFatalError，
由 Agent 循环决定是否退避重试。
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolCallRequest:
    """
    LLM 返回的工具调用请求。

    属性：
        id: 调用的关联 ID（由 LLM API 生成，工具结果必须携带同一个 ID）
        name: 要调用的工具名称
        raw_arguments: 未解析的参数，JSON 字符串或已解码的字典。
            解析与校验延迟到 Dispatch 阶段，解析失败属于该次调用的错误。
    """
    id: str
    name: str
    raw_arguments: str | dict[str, Any] = "{}"

    @property
    def arguments_json(self) -> str:
        """以 JSON 字符串形式返回参数（写回对话历史时使用）。"""
        if isinstance(self.raw_arguments, str):
            return self.raw_arguments
        return json.dumps(self.raw_arguments, ensure_ascii=False)


@dataclass
class LLMResponse:
    """
    LLM 的统一响应数据结构。

    属性：
        content: 文本内容（只返回工具调用时可能为 None）
        tool_calls: 工具调用请求列表（一次可以请求多个工具）
        finish_reason: 结束原因（"stop" / "tool_calls" / "length" 等）
        usage: token 用量统计
    """
    content: str | None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        """检查响应中是否包含工具调用请求。"""
        return len(self.tool_calls) > 0


class LLMProvider(ABC):
    """
    LLM 提供者抽象基类。

    实现类必须可以被多个 Agent 运行并发调用（无状态的请求/响应）。

    属性：
        api_key: API 密钥
        api_base: API 基础 URL（用于自定义端点或代理）
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        发送对话补全请求。

        参数：
            messages: 消息列表（chat-completion 格式）
            tools: 可选的工具定义列表（OpenAI 函数调用格式）
            model: 模型标识符，为空时使用提供者的默认模型
            max_tokens: 响应的最大 token 数
            temperature: 采样温度

        返回：
            LLMResponse，包含文本内容和/或工具调用请求

        异常：
            ModelRetryableError: 超时、限流等可重试错误
            ModelFatalError: 认证失败、请求格式错误等不可重试错误
        """
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """获取该提供者的默认模型名称。"""
        pass
