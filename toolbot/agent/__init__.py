"""
Agent 核心模块 —— toolbot 的"大脑"。

本包包含 Agent 运行所需的全部核心组件：
- Agent / AgentRun: 执行循环（状态机），负责 调用LLM → 调度工具 → 回填结果
- Conversation: 对话历史（系统提示词 + 有序消息）
- ToolDispatcher: 工具批次的并发调度
- CancellationToken: 运行取消信号
"""

from toolbot.agent.cancel import CancellationToken
from toolbot.agent.conversation import Conversation, Message, ToolCallResult
from toolbot.agent.dispatch import ToolDispatcher, dispatch
from toolbot.agent.loop import Agent, AgentRun, RunState

__all__ = [
    "Agent",
    "AgentRun",
    "RunState",
    "Conversation",
    "Message",
    "ToolCallResult",
    "ToolDispatcher",
    "dispatch",
    "CancellationToken",
]
