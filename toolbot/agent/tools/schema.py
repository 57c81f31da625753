"""
参数 Schema 构建模块 (agent/tools/schema.py)

模块职责：
    在运行时为工具生成 JSON Schema 参数定义，供 LLM function calling 使用。
    两种来源：
    - schema_from_model(): 从 pydantic BaseModel 生成（显式声明参数结构）
    - schema_from_function(): 通过反射函数签名，先动态生成 pydantic 模型，再生成 Schema

    生成的模型同时用于参数校验，保证"告诉 LLM 的 Schema"和"实际校验规则"一致。

示例:
    class WeatherArgs(BaseModel):
        location: str
        unit: Literal["C", "F"] = "C"

    schema_from_model(WeatherArgs)
    # {"type": "object", "properties": {...}, "required": ["location"]}

    async def get_weather(location: str, unit: str = "C") -> str: ...
    schema_from_function(get_weather)   # 同样的结构
"""

import inspect
import typing
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from toolbot.errors import SchemaMismatchError


def parse_with_model(tool_name: str, model: type[BaseModel], params: dict[str, Any]) -> BaseModel:
    """
    用 pydantic 模型校验参数字典。

    异常:
        SchemaMismatchError: 校验失败，错误信息形如 "unit: Input should be 'C' or 'F'"
    """
    try:
        return model.model_validate(params)
    except ValidationError as e:
        messages = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err.get("loc", ())) or "parameter"
            messages.append(f"{loc}: {err.get('msg', 'invalid value')}")
        raise SchemaMismatchError(tool_name, messages) from e


def schema_from_model(model: type[BaseModel]) -> dict[str, Any]:
    """
    从 pydantic 模型生成工具参数 Schema。

    顶层 title 对 LLM 没有意义，会被移除；嵌套模型保留在 $defs 中。
    """
    schema = model.model_json_schema()
    schema.pop("title", None)
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    return schema


def model_from_function(func: Callable[..., Any]) -> type[BaseModel]:
    """
    根据函数签名动态创建参数模型。

    规则：
    - 有默认值的参数为可选字段，否则为必填
    - 未标注类型的参数视为 Any
    - *args / **kwargs 被忽略
    - 支持 Annotated[str, Field(description=...)] 为字段添加描述
    """
    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError):
        hints = {}

    fields: dict[str, Any] = {}
    for pname, param in inspect.signature(func).parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = hints.get(pname, param.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = Any
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[pname] = (annotation, default)

    model_name = "".join(part.title() for part in func.__name__.split("_")) + "Args"
    return create_model(
        model_name,
        __config__=ConfigDict(extra="ignore"),
        **fields,
    )


def schema_from_function(func: Callable[..., Any]) -> dict[str, Any]:
    """通过函数签名反射生成工具参数 Schema。"""
    return schema_from_model(model_from_function(func))


def single_model_param(func: Callable[..., Any]) -> type[BaseModel] | None:
    """
    如果函数只接收一个 pydantic 模型参数（如 `async def f(args: WeatherArgs)`），返回该模型类。
    """
    params = [
        p for p in inspect.signature(func).parameters.values()
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if len(params) != 1:
        return None
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        hints = {}
    annotation = hints.get(params[0].name, params[0].annotation)
    if inspect.isclass(annotation) and issubclass(annotation, BaseModel):
        return annotation
    return None
