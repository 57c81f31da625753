"""
工具注册表模块 (agent/tools/registry.py)

模块职责：
    管理 Agent 可用工具的注册表（Registry）。
    提供工具的注册、查找、Schema 列表导出等能力，是 Agent 循环与具体工具实现之间的中间层。

在架构中的位置：
    Agent 持有一个 ToolRegistry 实例：
    1. 构建阶段，把所有工具 register() 进来（重名直接报错）
    2. Agent 构造时冻结注册表，之后只读，可被并发运行无锁访问
    3. 构建 LLM 请求时，调用 get_definitions() 获取所有工具的 JSON Schema
    4. LLM 返回 tool_calls 时，ToolDispatcher 通过 lookup(name) 找到对应工具

用法:
    registry = ToolRegistry.build([get_weather, calculator])
"""

from typing import Any, Iterable, Iterator

from toolbot.agent.tools.base import Tool
from toolbot.errors import ConfigurationError, DuplicateToolNameError, ToolNotFoundError


class ToolRegistry:
    """
    Agent 工具注册表。

    内部使用 dict[str, Tool] 存储，以工具名称为键；dict 保持插入顺序，
    因此导出的 Schema 列表顺序与注册顺序一致。
    """

    def __init__(self, tools: Iterable[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        for t in tools or ():
            self.register(t)

    @classmethod
    def build(cls, tools: Iterable[Tool]) -> "ToolRegistry":
        """注册全部工具并冻结注册表。任意重名都会让构建失败。"""
        registry = cls(tools)
        registry.freeze()
        return registry

    def register(self, tool: Tool) -> None:
        """
        注册一个工具到注册表。

        异常:
            DuplicateToolNameError: 同名工具已存在
            ConfigurationError: 注册表已冻结
        """
        if self._frozen:
            raise ConfigurationError(f"Cannot register '{tool.name}': tool registry is frozen")
        if tool.name in self._tools:
            raise DuplicateToolNameError(tool.name)
        self._tools[tool.name] = tool

    def freeze(self) -> "ToolRegistry":
        """冻结注册表，之后不再接受注册。"""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Tool | None:
        """按名称获取工具实例，未找到返回 None。"""
        return self._tools.get(name)

    def lookup(self, name: str) -> Tool:
        """
        按名称查找工具。

        异常:
            ToolNotFoundError: 工具不存在
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def has(self, name: str) -> bool:
        """检查指定名称的工具是否已注册。"""
        return name in self._tools

    def schema_list(self) -> list[dict[str, Any]]:
        """按注册顺序返回 [{name, description, parameters}, ...]。"""
        return [tool.schema_entry() for tool in self._tools.values()]

    def get_definitions(self) -> list[dict[str, Any]]:
        """
        获取所有已注册工具的 OpenAI Function Calling 格式定义。

        此列表直接传给 LLM API 的 tools 参数。
        """
        return [tool.to_schema() for tool in self._tools.values()]

    @property
    def tool_names(self) -> list[str]:
        """获取所有已注册工具的名称列表。"""
        return list(self._tools.keys())

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
