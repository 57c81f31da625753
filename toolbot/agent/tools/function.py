"""
函数工具模块 (agent/tools/function.py)

模块职责：
    提供 FunctionTool —— 把普通 Python 函数（同步或异步）包装成 Tool，
    以及 @tool 装饰器作为快捷构造方式。

参数 Schema 的三种来源（优先级从高到低）：
    1. parameters：手写的 JSON Schema 字典，使用 Tool 基类的校验逻辑
    2. args_model：pydantic 模型；函数只有一个该模型类型的参数时自动识别
    3. 函数签名反射：由 schema.model_from_function() 动态生成模型

示例:
    @tool("Get the current weather for a location")
    async def get_weather(location: str, unit: str = "C") -> str:
        return f"Weather in {location}: 22°{unit}"

    registry = ToolRegistry.build([get_weather])
"""

import asyncio
import inspect
import json
from typing import Any, Callable

from pydantic import BaseModel

from toolbot.agent.tools.base import Tool, decode_arguments
from toolbot.agent.tools.schema import (
    model_from_function,
    parse_with_model,
    schema_from_model,
    single_model_param,
)


class FunctionTool(Tool):
    """
    包装一个 Python 函数的工具。

    同步函数通过 asyncio.to_thread 在线程中执行，不会阻塞同批次的其他工具。
    返回值不是字符串时会被序列化为 JSON 文本。
    """

    def __init__(
        self,
        func: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        args_model: type[BaseModel] | None = None,
        parameters: dict[str, Any] | None = None,
    ):
        """
        参数:
            func: 工具处理函数
            name: 工具名称，默认使用函数名
            description: 工具描述，默认使用函数 docstring 的第一段
            args_model: 参数模型；指定后函数以单个模型实例作为参数被调用
            parameters: 手写的 JSON Schema；指定后跳过 pydantic 校验
        """
        self._func = func
        self._name = name or func.__name__
        self._description = description or _first_paragraph(func.__doc__) or self._name
        self._is_async = inspect.iscoroutinefunction(func)

        self._model: type[BaseModel] | None = None
        self._model_as_single_arg = False
        if parameters is not None:
            self._parameters = parameters
        else:
            if args_model is None:
                args_model = single_model_param(func)
                self._model_as_single_arg = args_model is not None
            else:
                self._model_as_single_arg = True
            self._model = args_model or model_from_function(func)
            self._parameters = schema_from_model(self._model)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return self._parameters

    @property
    def func(self) -> Callable[..., Any]:
        """被包装的原始函数。"""
        return self._func

    def parse_arguments(self, raw: str | dict[str, Any] | None) -> Any:
        if self._model is None:
            return super().parse_arguments(raw)
        return parse_with_model(self.name, self._model, decode_arguments(self.name, raw))

    async def invoke(self, arguments: Any) -> str:
        if isinstance(arguments, BaseModel):
            if self._model_as_single_arg:
                args, kwargs = (arguments,), {}
            else:
                args, kwargs = (), {k: getattr(arguments, k) for k in type(arguments).model_fields}
        else:
            args, kwargs = (), dict(arguments)

        if self._is_async:
            result = await self._func(*args, **kwargs)
        else:
            result = await asyncio.to_thread(self._func, *args, **kwargs)
        return _to_text(result)

    async def execute(self, **kwargs: Any) -> str:
        return await self.invoke(self.parse_arguments(kwargs))

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """保持被装饰函数可以直接调用。"""
        return self._func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"FunctionTool(name={self._name!r})"


def tool(
    description: str | Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    args_model: type[BaseModel] | None = None,
) -> Any:
    """
    把函数声明为工具的装饰器。

    支持三种写法:
        @tool
        @tool("描述")
        @tool(name="search", description="描述")
    """
    if callable(description):
        return FunctionTool(description)

    def decorator(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(func, name=name, description=description, args_model=args_model)

    return decorator


def _first_paragraph(doc: str | None) -> str:
    if not doc:
        return ""
    return inspect.cleandoc(doc).split("\n\n", 1)[0].replace("\n", " ").strip()


def _to_text(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    return json.dumps(result, ensure_ascii=False, default=str)
