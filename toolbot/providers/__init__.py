"""
LLM 提供者抽象层模块（providers 包）。

模块组成：
- base.py             : LLMProvider 抽象基类、LLMResponse 与 ToolCallRequest 数据结构
- litellm_provider.py : 基于 LiteLLM 的默认实现，负责把传输层异常分类为可重试/不可重试
- retry.py            : 模型调用的有界指数退避策略
"""

from toolbot.providers.base import LLMProvider, LLMResponse, ToolCallRequest
from toolbot.providers.litellm_provider import LiteLLMProvider
from toolbot.providers.retry import RetryPolicy, retry_async

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "ToolCallRequest",
    "LiteLLMProvider",
    "RetryPolicy",
    "retry_async",
]
