"""
工具调度模块 (agent/dispatch.py)

模块职责：
    ToolDispatcher 把一批 ToolCallRequest 并发执行，返回与请求顺序一致的 ToolCallResult 列表。

单个请求的处理流程：
    1. registry.lookup(name)         —— 找不到抛 ToolNotFoundError
    2. tool.parse_arguments(raw)     —— 解析/校验失败抛 SchemaMismatchError
    3. await tool.invoke(arguments)  —— 处理函数抛出的异常包装为 ToolExecutionError

批次语义：
    - 同一批次的请求作为互相独立的 asyncio 任务并发执行，总耗时约等于最慢的那个
    - 等待全部任务完成后才返回，结果按请求顺序重新排列（与完成顺序无关）
    - 单个任务失败不影响兄弟任务：错误被捕获，作为该工具的文本结果回传给 LLM
    - strict 模式：全部任务完成后，按请求顺序找到第一个失败并抛出，整个批次作废
    - 调度本身被取消时（asyncio 取消），所有进行中的工具任务一起被取消
"""

import asyncio
import json
from typing import Sequence

from loguru import logger

from toolbot.agent.conversation import ToolCallResult
from toolbot.agent.tools.registry import ToolRegistry
from toolbot.errors import ToolError, ToolExecutionError, ToolTimeoutError
from toolbot.providers.base import ToolCallRequest
from toolbot.utils.helpers import preview


class ToolDispatcher:
    """
    工具批次调度器。

    属性:
        registry: 工具注册表（只读）
        strict: 是否在任一工具失败时让整个批次失败
        timeout: 单个工具调用的超时秒数，None 表示不限制
    """

    def __init__(
        self,
        registry: ToolRegistry,
        strict: bool = False,
        timeout: float | None = None,
    ):
        self.registry = registry
        self.strict = strict
        self.timeout = timeout

    async def dispatch(self, requests: Sequence[ToolCallRequest]) -> list[ToolCallResult]:
        """
        并发执行一批工具调用。

        参数:
            requests: 有序的工具调用请求

        返回:
            list[ToolCallResult]: 与 requests 等长、ID 顺序一致的结果列表

        异常:
            ToolError: 仅 strict 模式，批次中按请求顺序的第一个失败
        """
        if not requests:
            return []

        # gather 按传入顺序返回结果，与各任务的完成顺序无关
        results = await asyncio.gather(*(self._run_one(req) for req in requests))

        if self.strict:
            for result in results:
                if result.error is not None:
                    logger.error(f"Strict mode: aborting tool batch on {result.name} [{result.id}]: {result.error}")
                    raise result.error
        return list(results)

    async def _run_one(self, request: ToolCallRequest) -> ToolCallResult:
        """执行单个工具调用，所有失败都被转换为带 error 的结果。"""
        logger.info(f"Tool call: {request.name}({preview(request.arguments_json, 200)})")
        try:
            tool = self.registry.lookup(request.name)
            arguments = tool.parse_arguments(request.raw_arguments)
            if self.timeout is not None:
                try:
                    output = await asyncio.wait_for(tool.invoke(arguments), timeout=self.timeout)
                except asyncio.TimeoutError as e:
                    raise ToolTimeoutError(request.name, self.timeout, request.id) from e
            else:
                output = await tool.invoke(arguments)
        except ToolError as e:
            logger.warning(f"Tool {request.name} [{request.id}] rejected: {e}")
            return ToolCallResult(id=request.id, name=request.name, error=e)
        except Exception as e:
            error = ToolExecutionError(request.name, str(e) or type(e).__name__, request.id)
            error.__cause__ = e
            logger.warning(f"Tool {request.name} [{request.id}] failed: {e}")
            return ToolCallResult(id=request.id, name=request.name, error=error)
        return ToolCallResult(id=request.id, name=request.name, output=output)


async def dispatch(
    requests: Sequence[ToolCallRequest],
    registry: ToolRegistry,
    strict: bool = False,
) -> list[ToolCallResult]:
    """ToolDispatcher 的便捷函数形式。"""
    return await ToolDispatcher(registry, strict=strict).dispatch(requests)


def describe_results(results: Sequence[ToolCallResult]) -> str:
    """把一批结果压缩成一行日志摘要。"""
    return json.dumps(
        [{"id": r.id, "name": r.name, "ok": r.ok} for r in results],
        ensure_ascii=False,
    )
