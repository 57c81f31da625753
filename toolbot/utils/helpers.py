"""
辅助函数 - 数据目录定位与日志预览文本。
"""

import re
from pathlib import Path

_WHITESPACE = re.compile(r"\s+")


def get_data_path(*parts: str) -> Path:
    """
    返回 ~/.toolbot 下的子目录，不存在时递归创建。

    例如 get_data_path("history") -> ~/.toolbot/history
    """
    path = Path.home().joinpath(".toolbot", *parts)
    path.mkdir(parents=True, exist_ok=True)
    return path


def preview(text: str | None, max_len: int = 100) -> str:
    """
    把消息、参数等文本压成单行预览，供日志使用。

    连续空白（含换行）折叠为一个空格；超过 max_len 时截断并以 "..." 结尾，
    结果长度不超过 max_len。
    """
    flat = _WHITESPACE.sub(" ", text or "").strip()
    if len(flat) <= max_len:
        return flat
    return flat[: max(max_len - 3, 0)] + "..."
