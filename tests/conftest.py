"""
Pytest Configuration and Fixtures
"""

import pytest

from toolbot.providers.retry import RetryPolicy


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """不等待的重试策略，避免测试被退避拖慢。"""
    return RetryPolicy(max_attempts=3, initial_delay=0.0, max_delay=0.0)


@pytest.fixture
def config_path(tmp_path):
    """临时配置文件路径。"""
    return tmp_path / "config.json"
