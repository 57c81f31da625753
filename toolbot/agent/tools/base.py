"""
工具基类模块 (agent/tools/base.py)

模块职责：
    定义所有 Agent 工具的抽象基类 Tool。
    每个工具必须实现4个核心接口：name、description、parameters、execute。
    基类提供参数解析（parse_arguments）、参数校验（validate_params）
    和 OpenAI Function Calling 格式转换（to_schema）的通用能力。

在架构中的位置：
    Tool 是工具系统的最底层抽象。两种具体实现：
    - FunctionTool（function.py）：包装一个普通 Python 函数
    - AgentTool（agent_tool.py）：把另一个 Agent 包装成工具
    ToolRegistry 持有 Tool 实例的集合，ToolDispatcher 通过 registry 间接调用 Tool。

调用协议（由 ToolDispatcher 驱动）：
    1. parse_arguments(raw)  —— 原始参数 → 已校验的参数，失败抛 SchemaMismatchError
    2. invoke(arguments)     —— 已校验的参数 → 文本结果，失败直接抛异常
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from toolbot.errors import SchemaMismatchError


class Tool(ABC):
    """
    Agent 工具的抽象基类。

    所有工具必须实现以下抽象属性和方法：
      - name: 工具名称，LLM 在 function call 中使用此名称来调用工具
      - description: 工具功能描述，帮助 LLM 理解何时该调用此工具
      - parameters: JSON Schema 格式的参数定义
      - execute(): 实际执行工具逻辑的异步方法

    工具实例注册后不应再修改 name / description / parameters。
    """

    # JSON Schema 类型 -> Python 类型的映射表，用于参数校验
    _TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
    }

    @property
    @abstractmethod
    def name(self) -> str:
        """工具名称，用于 LLM function call 中的函数名标识。"""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """工具功能描述，LLM 据此判断何时调用该工具。"""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """工具参数的 JSON Schema 定义。"""
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """
        执行工具的核心逻辑（异步方法）。

        参数:
            **kwargs: 工具特定的参数，已经过 parse_arguments() 校验。

        返回:
            str: 工具执行结果的文本表示，会回传给 LLM 作为后续推理的上下文。
        """
        pass

    def parse_arguments(self, raw: str | dict[str, Any] | None) -> Any:
        """
        解析并校验 LLM 给出的原始参数。

        参数:
            raw: JSON 字符串或已解码的字典（None / 空字符串视为无参数）

        返回:
            Any: 供 invoke() 使用的参数，基类实现返回 dict

        异常:
            SchemaMismatchError: JSON 无法解析、不是对象，或不符合 parameters
        """
        params = decode_arguments(self.name, raw)
        errors = self.validate_params(params)
        if errors:
            raise SchemaMismatchError(self.name, errors)
        return params

    async def invoke(self, arguments: Any) -> str:
        """用 parse_arguments() 的结果调用工具。"""
        return await self.execute(**arguments)

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """
        根据 JSON Schema 校验工具参数。

        返回:
            list[str]: 错误信息列表，空列表表示校验通过。
        """
        schema = self.parameters or {}
        if schema.get("type", "object") != "object":
            raise ValueError(f"Schema must be object type, got {schema.get('type')!r}")
        return self._validate(params, {**schema, "type": "object"}, "")

    def _validate(self, val: Any, schema: dict[str, Any], path: str) -> list[str]:
        """
        递归校验单个值是否符合 JSON Schema。

        参数:
            val: 待校验的值
            schema: 该值对应的 JSON Schema 片段
            path: 当前字段路径（用于错误信息定位，如 "address.city"）
        """
        t, label = schema.get("type"), path or "parameter"
        # bool 是 int 的子类，integer/number 需要单独排除
        if t in ("integer", "number") and isinstance(val, bool):
            return [f"{label} should be {t}"]
        if t in self._TYPE_MAP and not isinstance(val, self._TYPE_MAP[t]):
            return [f"{label} should be {t}"]

        errors = []
        if "enum" in schema and val not in schema["enum"]:
            errors.append(f"{label} must be one of {schema['enum']}")
        if t in ("integer", "number"):
            if "minimum" in schema and val < schema["minimum"]:
                errors.append(f"{label} must be >= {schema['minimum']}")
            if "maximum" in schema and val > schema["maximum"]:
                errors.append(f"{label} must be <= {schema['maximum']}")
        if t == "string":
            if "minLength" in schema and len(val) < schema["minLength"]:
                errors.append(f"{label} must be at least {schema['minLength']} chars")
            if "maxLength" in schema and len(val) > schema["maxLength"]:
                errors.append(f"{label} must be at most {schema['maxLength']} chars")
        if t == "object":
            props = schema.get("properties", {})
            for k in schema.get("required", []):
                if k not in val:
                    errors.append(f"missing required {path + '.' + k if path else k}")
            for k, v in val.items():
                if k in props:
                    errors.extend(self._validate(v, props[k], path + '.' + k if path else k))
        if t == "array" and "items" in schema:
            for i, item in enumerate(val):
                errors.extend(self._validate(item, schema["items"], f"{path}[{i}]" if path else f"[{i}]"))
        return errors

    def schema_entry(self) -> dict[str, Any]:
        """返回 (name, description, parameters) 三元组的字典形式。"""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def to_schema(self) -> dict[str, Any]:
        """
        将工具转换为 OpenAI Function Calling 格式。

        返回值示例:
            {
                "type": "function",
                "function": {
                    "name": "get_weather",
                    "description": "Get the current weather for a location",
                    "parameters": { ... JSON Schema ... }
                }
            }
        """
        return {
            "type": "function",
            "function": self.schema_entry(),
        }


def decode_arguments(tool_name: str, raw: str | dict[str, Any] | None) -> dict[str, Any]:
    """
    把原始参数解码为字典。

    异常:
        SchemaMismatchError: 非法 JSON，或解码结果不是对象
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SchemaMismatchError(tool_name, f"arguments are not valid JSON ({e.msg})") from e
    if not isinstance(raw, dict):
        raise SchemaMismatchError(tool_name, f"arguments must be a JSON object, got {type(raw).__name__}")
    return raw
