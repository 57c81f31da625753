"""
模型调用重试模块 (providers/retry.py)

模块职责：
    定义 RetryPolicy（有界指数退避策略）以及 retry_async() 执行器。
    Agent 循环通过 retry_async() 调用 LLMProvider.chat()：
    - ModelRetryableError：按退避间隔重试，最多 max_attempts 次
    - 重试耗尽：升级为 ModelFatalError（保留最后一次异常作为 __cause__）
    - 其他异常：直接抛出，不重试

退避公式：
    delay(attempt) = min(initial_delay * multiplier ** attempt, max_delay)
    attempt 从 0 开始计数，即第一次重试前等待 initial_delay 秒。
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from toolbot.errors import ModelFatalError, ModelRetryableError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    有界指数退避策略。

    属性:
        max_attempts: 最大尝试次数（包含第一次调用），至少为 1
        initial_delay: 第一次重试前的等待秒数
        max_delay: 单次等待的上限秒数
        multiplier: 每次重试等待时间的放大倍数
    """
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """返回第 attempt 次重试（从 0 开始）前的等待秒数。"""
        return min(self.initial_delay * (self.multiplier ** attempt), self.max_delay)


def should_retry(error: BaseException) -> bool:
    """判断异常是否值得重试。"""
    return isinstance(error, ModelRetryableError)


async def retry_async(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    按 policy 执行 call，可重试错误退避后重试。

    参数:
        call: 无参的异步调用工厂（每次尝试都会重新调用以产生新的协程）
        policy: 重试策略
        sleep: 等待函数，Agent 运行时会传入可被取消令牌打断的版本

    返回:
        call 的返回值

    异常:
        ModelFatalError: 重试次数耗尽，或 call 直接抛出了不可重试错误
    """
    for attempt in range(policy.max_attempts):
        try:
            return await call()
        except ModelRetryableError as e:
            if attempt + 1 >= policy.max_attempts:
                raise ModelFatalError(
                    f"Model call failed after {policy.max_attempts} attempts: {e}",
                    status_code=e.status_code,
                ) from e
            delay = policy.delay_for(attempt)
            logger.warning(
                f"Retryable model error (attempt {attempt + 1}/{policy.max_attempts}), "
                f"retrying in {delay:.1f}s: {e}"
            )
            await sleep(delay)
    raise AssertionError("unreachable")
