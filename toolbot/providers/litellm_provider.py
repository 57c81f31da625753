"""
LiteLLM 提供者实现模块 —— 多 LLM 服务商的统一调用层。

本模块是 LLMProvider 抽象基类的默认实现，通过 LiteLLM 开源库对接
OpenAI、Anthropic、OpenRouter、DeepSeek 等所有 OpenAI 兼容的服务。

核心设计：
  1. 请求构建：模型名、消息、工具定义、采样参数直接传给 litellm.acompletion
  2. 响应解析：将 LiteLLM 响应转换为统一的 LLMResponse，工具参数保持原始字符串
  3. 错误分类：LiteLLM 异常被映射为 ModelRetryableError / ModelFatalError，
     重试策略由 Agent 循环统一负责

数据流：
  AgentRun → LiteLLMProvider.chat() → litellm.acompletion() → LLM API
                                                ↓
  AgentRun ← _parse_response() ← LLMResponse ←──┘
"""

import asyncio
from typing import Any

import litellm
from litellm import acompletion

from toolbot.errors import ModelFatalError, ModelRetryableError
from toolbot.providers.base import LLMProvider, LLMResponse, ToolCallRequest

# 超时、限流、连接中断、服务端错误 —— 退避后重试通常能恢复
_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    litellm.Timeout,
    litellm.RateLimitError,
    litellm.APIConnectionError,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
    asyncio.TimeoutError,
)


class LiteLLMProvider(LLMProvider):
    """
    基于 LiteLLM 的 LLM 提供者实现类。

    构造参数：
        api_key: API 密钥
        api_base: 自定义 API 基础 URL（用于代理/网关/本地部署）
        default_model: 默认模型名称（LiteLLM 格式，如 "openai/gpt-4o"）
        extra_headers: 额外的 HTTP 请求头
        timeout: 单次请求超时时间（秒）
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "openai/gpt-4o-mini",
        extra_headers: dict[str, str] | None = None,
        timeout: float | None = 120.0,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.extra_headers = extra_headers or {}
        self.timeout = timeout

        # 禁用 LiteLLM 的调试日志输出
        litellm.suppress_debug_info = True
        # 自动丢弃服务商不支持的参数
        litellm.drop_params = True

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

        LiteLLM 异常不会被吞掉：超时、限流等抛出 ModelRetryableError，
        其余一律抛出 ModelFatalError。
        """
        kwargs: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers
        if self.timeout:
            kwargs["timeout"] = self.timeout

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await acompletion(**kwargs)
        except _RETRYABLE_ERRORS as e:
            raise ModelRetryableError(
                f"Error calling LLM: {e}", status_code=getattr(e, "status_code", None)
            ) from e
        except Exception as e:
            raise ModelFatalError(
                f"Error calling LLM: {e}", status_code=getattr(e, "status_code", None)
            ) from e
        return self._parse_response(response)

    def _parse_response(self, response: Any) -> LLMResponse:
        """
        将 LiteLLM 的原始响应解析为统一的 LLMResponse 格式。

        response.choices[0].message 中包含：
          - content: 文本回复
          - tool_calls: 工具调用请求列表（arguments 为 JSON 字符串，原样保留）
        """
        if not response.choices:
            raise ModelFatalError("No choices in LLM response")
        choice = response.choices[0]
        message = choice.message

        tool_calls = []
        if getattr(message, "tool_calls", None):
            for tc in message.tool_calls:
                tool_calls.append(ToolCallRequest(
                    id=tc.id,
                    name=tc.function.name,
                    raw_arguments=tc.function.arguments or "{}",
                ))

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """获取默认模型名称。"""
        return self.default_model
