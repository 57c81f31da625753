import asyncio
import inspect

import pytest

from toolbot.agent.cancel import CancellationToken
from toolbot.errors import CancelledRunError


@pytest.mark.asyncio
async def test_race_returns_result():
    async def compute():
        return 42

    assert await CancellationToken().race(compute()) == 42


@pytest.mark.asyncio
async def test_race_on_cancelled_token_closes_coroutine():
    """令牌已触发：不启动协程，直接关闭它并抛出 CancelledRunError"""
    started = []

    async def work():
        started.append(True)

    token = CancellationToken()
    token.cancel("stop")
    coro = work()

    with pytest.raises(CancelledRunError, match="stop"):
        await token.race(coro)
    assert inspect.getcoroutinestate(coro) == inspect.CORO_CLOSED
    assert started == []


@pytest.mark.asyncio
async def test_sleep_interrupted_by_cancel():
    token = CancellationToken()

    async def cancel_soon():
        await asyncio.sleep(0.01)
        token.cancel()

    asyncio.create_task(cancel_soon())
    with pytest.raises(CancelledRunError):
        await asyncio.wait_for(token.sleep(10), timeout=1)


@pytest.mark.asyncio
async def test_outer_cancel_waits_for_inner_task():
    """外层任务被 asyncio 取消时，内部任务在 race 返回前已经结束"""
    started = asyncio.Event()
    inner_done = []

    async def inner():
        started.set()
        try:
            await asyncio.sleep(10)
        finally:
            inner_done.append(True)

    outer = asyncio.create_task(CancellationToken().race(inner()))
    await started.wait()
    outer.cancel()

    with pytest.raises(asyncio.CancelledError):
        await outer
    assert inner_done == [True]


def test_cancel_keeps_first_reason():
    token = CancellationToken()
    token.cancel("first")
    token.cancel("second")

    assert token.cancelled
    assert token.reason == "first"
    with pytest.raises(CancelledRunError, match="first"):
        token.raise_if_cancelled()
