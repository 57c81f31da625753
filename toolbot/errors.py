"""
错误类型模块 (errors.py)

模块职责：
    定义 toolbot 的全部异常类型，所有异常都继承自 ToolbotError。
    调用方可以只捕获 ToolbotError，也可以按具体子类精细处理。

异常分类：
    - 注册表错误：DuplicateToolNameError、ConfigurationError
    - 工具错误（ToolError 子类）：ToolNotFoundError、SchemaMismatchError、
      ToolExecutionError、ToolTimeoutError
    - 模型调用错误（ModelError 子类）：ModelRetryableError、ModelFatalError
    - 运行控制错误：TurnLimitExceededError、CancelledRunError

传播策略：
    工具错误默认在 Dispatch 阶段被捕获，转换为文本结果回传给 LLM；
    只有 strict 模式下才会中断整个运行。
    模型错误、轮次超限、取消始终向调用方抛出。
"""

from __future__ import annotations


class ToolbotError(Exception):
    """toolbot 所有异常的基类。"""


class ConfigurationError(ToolbotError):
    """配置无效（如缺少模型名、向已冻结的注册表注册工具）。"""


class DuplicateToolNameError(ToolbotError):
    """同名工具重复注册。在注册表构建阶段抛出，早于任何一次运行。"""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


# ==============================================================================
# 工具错误
# ==============================================================================


class ToolError(ToolbotError):
    """
    单次工具调用失败的基类。

    属性:
        tool_name: 出错的工具名称
        message: 错误描述（不含工具名前缀）
    """

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.message = message


class ToolNotFoundError(ToolError):
    """LLM 请求了注册表中不存在的工具。"""

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool '{tool_name}' not found")


class SchemaMismatchError(ToolError):
    """工具参数无法解析或不符合参数 Schema。"""

    def __init__(self, tool_name: str, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        super().__init__(
            tool_name,
            f"Invalid parameters for tool '{tool_name}': " + "; ".join(errors),
        )
        self.errors = errors


class ToolExecutionError(ToolError):
    """工具处理函数执行时报告了失败。"""

    def __init__(self, tool_name: str, message: str, call_id: str | None = None) -> None:
        super().__init__(tool_name, f"Tool '{tool_name}' failed: {message}")
        self.call_id = call_id


class ToolTimeoutError(ToolExecutionError):
    """工具执行超过了配置的超时时间。"""

    def __init__(self, tool_name: str, timeout: float, call_id: str | None = None) -> None:
        super().__init__(tool_name, f"timed out after {timeout:g}s", call_id)
        self.timeout = timeout


# ==============================================================================
# 模型调用错误
# ==============================================================================


class ModelError(ToolbotError):
    """
    LLM 调用失败的基类。

    属性:
        status_code: HTTP 状态码（传输层能提供时）
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ModelRetryableError(ModelError):
    """可重试的模型错误：超时、限流、连接中断、服务端 5xx。"""


class ModelFatalError(ModelError):
    """不可重试的模型错误：认证失败、请求格式错误，或重试次数耗尽。"""


# ==============================================================================
# 运行控制错误
# ==============================================================================


class TurnLimitExceededError(ToolbotError):
    """Agent 循环在 max_turns 轮内没有给出最终回复。"""

    def __init__(self, max_turns: int) -> None:
        super().__init__(f"Agent exceeded maximum turns: {max_turns}")
        self.max_turns = max_turns


class CancelledRunError(ToolbotError):
    """运行被 CancellationToken 取消。"""

    def __init__(self, message: str = "Agent run was cancelled") -> None:
        super().__init__(message)
