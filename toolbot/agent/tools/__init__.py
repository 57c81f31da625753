"""
Agent 工具子包 (agent/tools)

模块职责：
    定义 Agent 可调用的"工具"（Tool），采用"注册表模式"：
      - Tool（基类）：统一接口（名称、描述、参数 schema、解析与执行）
      - FunctionTool / @tool：把普通函数包装成工具
      - AgentTool：把另一个 Agent 包装成工具（多 Agent 组合）
      - ToolRegistry（注册表）：按名称唯一地管理工具实例
      - schema：运行时参数 Schema 构建（pydantic 模型 / 函数签名反射）
"""

from toolbot.agent.tools.agent_tool import AgentCallArgs, AgentTool
from toolbot.agent.tools.base import Tool
from toolbot.agent.tools.function import FunctionTool, tool
from toolbot.agent.tools.registry import ToolRegistry
from toolbot.agent.tools.schema import schema_from_function, schema_from_model

__all__ = [
    "Tool",
    "FunctionTool",
    "tool",
    "AgentTool",
    "AgentCallArgs",
    "ToolRegistry",
    "schema_from_function",
    "schema_from_model",
]
