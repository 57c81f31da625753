"""
Agent 主循环模块 —— toolbot 的核心处理引擎。

本模块实现了完整的工具调用循环：
  用户消息 → LLM 推理 → 工具调度 → 结果回填 → LLM 推理 → ... → 最终回复

- Agent:    配置对象，绑定 provider、模型、系统提示词、工具注册表、轮次/重试配置。
            跨运行无状态，可以被多个并发运行共享。
- AgentRun: 一次运行的瞬态状态（对话、轮次计数、取消令牌、状态机），每次运行独占。

状态机：
    AWAITING_MODEL → DISPATCHING_TOOLS → AWAITING_MODEL → ... → DONE | FAILED | CANCELLED

每一轮：
1. 把完整对话和工具定义发给模型，得到一条 assistant 消息
2. 没有工具调用 → 追加该消息，DONE，返回其文本
3. 有工具调用 → DISPATCHING_TOOLS：并发执行全部工具，
   然后把 assistant 消息和按请求顺序排列的工具结果一次性追加到对话
4. 轮次计数等于模型调用次数；发起新一轮前若已达到 max_turns → TurnLimitExceededError
"""

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

from loguru import logger

from toolbot.agent.cancel import CancellationToken
from toolbot.agent.conversation import Conversation
from toolbot.agent.dispatch import ToolDispatcher, describe_results
from toolbot.agent.tools.base import Tool
from toolbot.agent.tools.registry import ToolRegistry
from toolbot.errors import (
    CancelledRunError,
    ConfigurationError,
    ModelError,
    ModelFatalError,
    ToolbotError,
    TurnLimitExceededError,
)
from toolbot.providers.base import LLMProvider, LLMResponse
from toolbot.providers.retry import RetryPolicy, retry_async
from toolbot.utils.helpers import preview

if TYPE_CHECKING:
    from toolbot.agent.tools.agent_tool import AgentTool
    from toolbot.config.schema import Config

DEFAULT_MAX_TURNS = 10
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


class RunState(str, Enum):
    """AgentRun 的状态。"""
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Agent:
    """
    可以调用工具的 AI Agent。

    用法:
        agent = Agent(
            provider=LiteLLMProvider(api_key="..."),
            model="openai/gpt-4o",
            system_prompt="You are a helpful weather assistant",
            tools=[get_weather],
        )
        reply = await agent.run("What's the weather in Paris?")

    属性:
        provider: LLM 提供者（所有运行共享，必须可并发调用）
        model: 模型标识符
        system_prompt: 新对话的系统提示词
        registry: 冻结后的工具注册表
        max_turns: 单次运行允许的最大模型调用次数
        retry_policy: 模型调用的退避重试策略
        strict_tools: 任一工具失败是否中断整个运行
    """

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        system_prompt: str | None = None,
        tools: ToolRegistry | Iterable[Tool] | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        retry_policy: RetryPolicy | None = None,
        strict_tools: bool = False,
        tool_timeout: float | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        name: str = "agent",
    ):
        if max_turns < 1:
            raise ConfigurationError("max_turns must be >= 1")
        self.provider = provider
        self.model = model or provider.get_default_model()
        if not self.model:
            raise ConfigurationError("Model must be specified")
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self.registry = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self.registry.freeze()
        self.max_turns = max_turns
        self.retry_policy = retry_policy or RetryPolicy()
        self.strict_tools = strict_tools
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.name = name
        self.dispatcher = ToolDispatcher(self.registry, strict=strict_tools, timeout=tool_timeout)

    @classmethod
    def from_config(
        cls,
        config: "Config",
        provider: LLMProvider,
        tools: ToolRegistry | Iterable[Tool] | None = None,
        **overrides: Any,
    ) -> "Agent":
        """根据全局配置创建 Agent，overrides 中的关键字参数优先。"""
        defaults = config.agents.defaults
        retry = config.agents.retry
        kwargs: dict[str, Any] = {
            "model": defaults.model,
            "system_prompt": defaults.system_prompt,
            "max_turns": defaults.max_turns,
            "strict_tools": defaults.strict_tools,
            "tool_timeout": defaults.tool_timeout,
            "max_tokens": defaults.max_tokens,
            "temperature": defaults.temperature,
            "retry_policy": RetryPolicy(
                max_attempts=retry.max_attempts,
                initial_delay=retry.initial_delay,
                max_delay=retry.max_delay,
                multiplier=retry.multiplier,
            ),
        }
        kwargs.update(overrides)
        return cls(provider=provider, tools=tools, **kwargs)

    def new_conversation(self, message: str | None = None) -> Conversation:
        """创建以本 Agent 系统提示词开头的新对话，可选地追加一条用户消息。"""
        conversation = Conversation.with_system(self.system_prompt)
        if message is not None:
            conversation.add_user(message)
        return conversation

    async def run(self, message: str, cancel_token: CancellationToken | None = None) -> str:
        """
        用一条用户消息运行 Agent。

        每次调用都会创建全新的对话，运行结束后丢弃。

        异常:
            TurnLimitExceededError / ModelFatalError / CancelledRunError，
            以及 strict 模式下的工具错误
        """
        return await self.run_conversation(self.new_conversation(message), cancel_token)

    async def run_conversation(
        self,
        conversation: Conversation,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        """
        在已有对话上运行 Agent（多轮对话场景）。

        最终的 assistant 回复会被追加到 conversation 中，调用方可以直接继续 add_user()。
        """
        return await self.start(conversation, cancel_token).execute()

    def start(
        self,
        conversation: Conversation,
        cancel_token: CancellationToken | None = None,
    ) -> "AgentRun":
        """创建一次运行（尚未执行），便于调用方观察轮次与状态。"""
        return AgentRun(self, conversation, cancel_token or CancellationToken())

    def as_tool(self, name: str | None = None, description: str | None = None) -> "AgentTool":
        """把本 Agent 包装成可以注册到其他 Agent 的工具。"""
        from toolbot.agent.tools.agent_tool import AgentTool
        return AgentTool(self, name=name, description=description)

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, model={self.model!r}, tools={self.registry.tool_names})"


class AgentRun:
    """
    一次 Agent 运行的瞬态状态。

    属性:
        agent: 所属 Agent（只读使用）
        conversation: 本次运行独占的对话
        cancel_token: 取消令牌
        turns: 已完成的模型调用次数
        state: 当前状态
        error: 失败或取消时的异常
    """

    def __init__(self, agent: Agent, conversation: Conversation, cancel_token: CancellationToken):
        self.agent = agent
        self.conversation = conversation
        self.cancel_token = cancel_token
        self.turns = 0
        self.state = RunState.AWAITING_MODEL
        self.error: BaseException | None = None
        self._started = False

    async def execute(self) -> str:
        """执行循环直到 DONE / FAILED / CANCELLED。"""
        if self._started:
            raise RuntimeError("AgentRun can only be executed once")
        self._started = True

        agent = self.agent
        last = self.conversation[-1]
        logger.info(f"Agent [{agent.name}] run started: {preview(last.content, 80)}")
        try:
            content = await self._loop()
        except CancelledRunError as e:
            self._finish(RunState.CANCELLED, e)
            logger.warning(f"Agent [{agent.name}] cancelled after {self.turns} turns")
            raise
        except asyncio.CancelledError as e:
            self._finish(RunState.CANCELLED, e)
            raise
        except ToolbotError as e:
            self._finish(RunState.FAILED, e)
            logger.error(f"Agent [{agent.name}] failed after {self.turns} turns: {e}")
            raise
        self.state = RunState.DONE
        logger.info(f"Agent [{agent.name}] done in {self.turns} turns: {preview(content, 120)}")
        return content

    async def _loop(self) -> str:
        agent = self.agent
        while True:
            self.cancel_token.raise_if_cancelled()
            if self.turns >= agent.max_turns:
                raise TurnLimitExceededError(agent.max_turns)

            self.state = RunState.AWAITING_MODEL
            response = await self._call_model()
            self.turns += 1

            if not response.has_tool_calls:
                content = response.content or ""
                self.conversation.add_assistant(content)
                return content

            self.state = RunState.DISPATCHING_TOOLS
            results = await self.cancel_token.race(agent.dispatcher.dispatch(response.tool_calls))
            # 批次完整结束后才提交：assistant 消息与全部结果一起写入
            self.conversation.extend_turn(response.content, response.tool_calls, results)
            logger.debug(f"Agent [{agent.name}] turn {self.turns} results: {describe_results(results)}")

    async def _call_model(self) -> LLMResponse:
        """调用模型；可重试错误按 retry_policy 退避，等待期间可被取消。"""
        agent = self.agent
        messages = self.conversation.to_dicts()
        tools = agent.registry.get_definitions() or None

        async def attempt() -> LLMResponse:
            try:
                return await agent.provider.chat(
                    messages=messages,
                    tools=tools,
                    model=agent.model,
                    max_tokens=agent.max_tokens,
                    temperature=agent.temperature,
                )
            except ModelError:
                raise
            except Exception as e:
                raise ModelFatalError(f"Error calling LLM: {e}") from e

        return await retry_async(
            lambda: self.cancel_token.race(attempt()),
            agent.retry_policy,
            sleep=self.cancel_token.sleep,
        )

    def _finish(self, state: RunState, error: BaseException) -> None:
        self.state = state
        self.error = error
