"""
对话历史模块 (agent/conversation.py)

模块职责：
    定义对话中的消息模型（Message / ToolCallResult）以及 Conversation 容器。
    Conversation 是一次 Agent 运行独占的有序消息历史：
    - 第一条消息永远是系统提示词，构造时设定，之后不可修改
    - 只能追加，不会自动重排或裁剪（历史裁剪属于外部策略）
    - 每个工具调用请求都必须恰好被一条 tool 消息应答，
      且同一条 assistant 消息的全部请求应答完之前，不能追加其他消息

消息格式（to_dict 的输出，与 chat-completion 工具调用格式兼容）：
    {"role": "system", "content": "..."}
    {"role": "user", "content": "..."}
    {"role": "assistant", "content": "..." | None,
     "tool_calls": [{"id": "c1", "type": "function",
                     "function": {"name": "get_weather", "arguments": "{...}"}}]}
    {"role": "tool", "tool_call_id": "c1", "name": "get_weather", "content": "..."}
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Literal, Sequence

from toolbot.providers.base import ToolCallRequest

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class Message:
    """
    对话中的一条消息。

    属性:
        role: system / user / assistant / tool
        content: 文本内容；只携带工具调用的 assistant 消息可以为 None
        tool_calls: 工具调用请求（仅 assistant 消息）
        tool_call_id: 所应答的工具调用 ID（仅 tool 消息）
        name: 工具名称（仅 tool 消息）
    """
    role: Role
    content: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        if self.tool_calls and self.role != "assistant":
            raise ValueError("Only assistant messages may carry tool calls")
        if self.role == "tool" and not self.tool_call_id:
            raise ValueError("Tool messages require a tool_call_id")
        if self.role != "tool" and self.tool_call_id is not None:
            raise ValueError("tool_call_id is only valid on tool messages")

    def to_dict(self) -> dict[str, Any]:
        """转换为 chat-completion 请求中的消息字典。"""
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.arguments_json},
                }
                for tc in self.tool_calls
            ]
        if self.role == "tool":
            msg["tool_call_id"] = self.tool_call_id
            if self.name:
                msg["name"] = self.name
        return msg


@dataclass(frozen=True)
class ToolCallResult:
    """
    一次工具调用的结果。

    属性:
        id: 与原始 ToolCallRequest.id 相同
        name: 工具名称
        output: 成功时的文本输出
        error: 失败时的异常（已分类的 ToolError，或处理函数抛出的原始异常）
    """
    id: str
    name: str
    output: str | None = None
    error: BaseException | None = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def content(self) -> str:
        """作为 tool 消息内容回传给 LLM 的文本。"""
        if self.error is not None:
            return f"Error: {self.error}"
        return self.output or ""


class Conversation:
    """
    一次 Agent 运行的消息历史。

    用法:
        conv = Conversation.with_system("You are helpful")
        conv.add_user("Hello!")
        reply = await agent.run_conversation(conv)
        conv.add_user("Tell me more")
        reply = await agent.run_conversation(conv)
    """

    def __init__(self, system_prompt: str):
        self._messages: list[Message] = [Message(role="system", content=system_prompt)]
        # 最近一条 assistant 消息中尚未应答的工具调用 ID（按请求顺序）
        self._pending: list[str] = []

    @classmethod
    def with_system(cls, system_prompt: str) -> "Conversation":
        """创建只包含一条系统消息的对话。"""
        return cls(system_prompt)

    @property
    def system_prompt(self) -> str:
        return self._messages[0].content or ""

    @property
    def messages(self) -> tuple[Message, ...]:
        """只读的有序消息视图。"""
        return tuple(self._messages)

    @property
    def pending_tool_calls(self) -> tuple[str, ...]:
        """尚未应答的工具调用 ID。"""
        return tuple(self._pending)

    def add_user(self, content: str) -> Message:
        """追加一条用户消息。"""
        return self._append(Message(role="user", content=content))

    def add_assistant(
        self,
        content: str | None,
        tool_calls: Sequence[ToolCallRequest] | None = None,
    ) -> Message:
        """追加一条助手消息；携带工具调用时，后续必须逐个应答。"""
        msg = self._append(Message(role="assistant", content=content, tool_calls=tuple(tool_calls or ())))
        self._pending = [tc.id for tc in msg.tool_calls]
        return msg

    def add_tool_result(
        self,
        result: ToolCallResult | str,
        content: str | None = None,
        name: str | None = None,
    ) -> Message:
        """
        追加一条工具结果消息。

        可以传入 ToolCallResult，也可以直接传 (tool_call_id, content)。

        异常:
            ValueError: tool_call_id 不属于当前待应答的工具调用
        """
        if isinstance(result, ToolCallResult):
            call_id, text, tool_name = result.id, result.content, result.name
        else:
            call_id, text, tool_name = result, content or "", name
        if call_id not in self._pending:
            raise ValueError(f"No pending tool call with id '{call_id}'")
        msg = Message(role="tool", content=text, tool_call_id=call_id, name=tool_name)
        self._messages.append(msg)
        self._pending.remove(call_id)
        return msg

    def extend_turn(
        self,
        content: str | None,
        tool_calls: Sequence[ToolCallRequest],
        results: Sequence[ToolCallResult],
    ) -> None:
        """
        原子地提交一个工具轮次：一条 assistant 消息 + 按请求顺序的全部工具结果。

        异常:
            ValueError: 结果与请求的数量或 ID 顺序不一致（此时对话不做任何修改）
        """
        if [r.id for r in results] != [tc.id for tc in tool_calls]:
            raise ValueError("Tool results must answer every tool call in request order")
        if self._pending:
            raise ValueError(f"Unanswered tool calls: {self._pending}")
        self.add_assistant(content, tool_calls)
        for result in results:
            self.add_tool_result(result)

    def to_dicts(self) -> list[dict[str, Any]]:
        """转换为传给 LLMProvider.chat() 的消息列表。"""
        return [m.to_dict() for m in self._messages]

    def _append(self, msg: Message) -> Message:
        if self._pending:
            raise ValueError(f"Unanswered tool calls: {self._pending}")
        self._messages.append(msg)
        return msg

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]
