"""
取消令牌模块 (agent/cancel.py)

CancellationToken 是一次性的取消信号：
- 调用方持有令牌，随时调用 cancel()
- AgentRun 在每轮循环开始时检查令牌，并用 race() 让进行中的模型调用、
  工具批次、退避等待在令牌触发时立即被取消
- 同一个令牌可以传给子 Agent，取消会一路传播下去
"""

import asyncio
import inspect
from typing import Awaitable, TypeVar

from toolbot.errors import CancelledRunError

T = TypeVar("T")


class CancellationToken:
    """可等待的一次性取消信号。"""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "Agent run was cancelled"

    def cancel(self, reason: str | None = None) -> None:
        """触发取消。重复调用无副作用。"""
        if reason and not self._event.is_set():
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self) -> None:
        """令牌已触发时抛出 CancelledRunError。"""
        if self._event.is_set():
            raise CancelledRunError(self._reason)

    async def wait(self) -> None:
        await self._event.wait()

    async def race(self, awaitable: Awaitable[T]) -> T:
        """
        等待 awaitable 完成；若令牌先触发，则取消它并抛出 CancelledRunError。

        被取消的任务会被等待到真正结束，不会留下仍在运行的工具任务。
        令牌已触发时，尚未开始的协程会被直接关闭。
        """
        if self._event.is_set():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise CancelledRunError(self._reason)
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            await asyncio.gather(task, waiter, return_exceptions=True)
            raise
        if task.done():
            waiter.cancel()
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise CancelledRunError(self._reason)

    async def sleep(self, delay: float) -> None:
        """可被取消打断的 asyncio.sleep。"""
        await self.race(asyncio.sleep(delay))
