"""
子 Agent 工具模块 (agent/tools/agent_tool.py)

模块职责：
    提供 AgentTool，把一个 Agent 包装成另一个 Agent 可以调用的工具。
    主 Agent 把任务委托给领域 Agent（研究员、分析师等），只拿回最终答复。

调用链：
    LLM → tool_call("researcher", {message: "..."})
      → ToolDispatcher → AgentTool.invoke()
        → sub_agent.run(message)   # 全新的私有对话

隔离保证：
    - 子 Agent 的对话只包含它自己的系统提示词和这条 message，主对话历史不会被带入
    - 子 Agent 内部经历多少轮，主对话都只增加一条 assistant 工具调用消息和一条 tool 结果消息
    - 子运行不持有取消令牌：主运行被取消时，调度任务的 asyncio 取消会一路传入子运行
"""

from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, Field

from toolbot.agent.tools.base import Tool, decode_arguments
from toolbot.agent.tools.schema import parse_with_model, schema_from_model
from toolbot.errors import ToolbotError, ToolExecutionError
from toolbot.utils.helpers import preview

if TYPE_CHECKING:
    from toolbot.agent.loop import Agent


class AgentCallArgs(BaseModel):
    """调用子 Agent 的参数。"""
    message: str = Field(description="The message or task to send to the agent")


class AgentTool(Tool):
    """
    把 Agent 暴露为工具。

    子运行失败（轮次超限、模型错误等）时抛出 ToolExecutionError，
    由 ToolDispatcher 转换为 "Error: ..." 文本交给主 Agent；strict 模式下则中断主运行。
    """

    def __init__(
        self,
        agent: "Agent",
        name: str | None = None,
        description: str | None = None,
    ):
        """
        参数:
            agent: 被包装的子 Agent
            name: 工具名称（主 Agent 看到的名字），默认使用 agent.name
            description: 工具描述，默认根据子 Agent 名称生成
        """
        self._agent = agent
        self._name = name or agent.name
        self._description = description or f"Delegate a task to the '{agent.name}' agent and return its final answer."
        self._parameters = schema_from_model(AgentCallArgs)

    @property
    def agent(self) -> "Agent":
        return self._agent

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return self._parameters

    def parse_arguments(self, raw: str | dict[str, Any] | None) -> AgentCallArgs:
        return parse_with_model(self.name, AgentCallArgs, decode_arguments(self.name, raw))

    async def invoke(self, arguments: AgentCallArgs) -> str:
        logger.debug(f"Sub-agent [{self._name}] starting: {preview(arguments.message, 80)}")
        try:
            result = await self._agent.run(arguments.message)
        except ToolbotError as e:
            raise ToolExecutionError(self._name, f"sub-agent failed: {e}") from e
        logger.debug(f"Sub-agent [{self._name}] finished: {preview(result, 80)}")
        return result

    async def execute(self, message: str, **kwargs: Any) -> str:
        return await self.invoke(AgentCallArgs(message=message))
