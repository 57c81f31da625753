"""
toolbot - 轻量级工具调用 AI Agent 运行时

核心功能：
    - 工具注册表：按名称唯一注册的函数工具，运行时生成参数 JSON Schema
    - 执行循环：调用 LLM → 并发调度工具 → 回填结果 → 直到给出最终回复或轮次耗尽
    - 对话历史：系统提示词 + 只追加的消息序列
    - 多 Agent 组合：把一个 Agent 作为另一个 Agent 的工具，子 Agent 的中间过程对调用方不可见
"""

__version__ = "0.1.0"

__logo__ = "🔧"

from toolbot.agent import Agent, AgentRun, CancellationToken, Conversation, RunState  # noqa: E402
from toolbot.agent.tools import AgentTool, FunctionTool, Tool, ToolRegistry, tool  # noqa: E402
from toolbot.providers import LiteLLMProvider, LLMProvider, LLMResponse, RetryPolicy, ToolCallRequest  # noqa: E402

__all__ = [
    "Agent",
    "AgentRun",
    "RunState",
    "CancellationToken",
    "Conversation",
    "Tool",
    "FunctionTool",
    "tool",
    "AgentTool",
    "ToolRegistry",
    "LLMProvider",
    "LLMResponse",
    "LiteLLMProvider",
    "RetryPolicy",
    "ToolCallRequest",
]
