"""
工具函数模块 - 提供 toolbot 项目全局通用的辅助函数。
"""

from toolbot.utils.helpers import get_data_path, preview

__all__ = ["get_data_path", "preview"]
