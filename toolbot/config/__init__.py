"""
配置模块 (config)
================
1. schema.py —— 使用 Pydantic 定义所有配置项的结构和默认值
2. loader.py —— 从 JSON 文件读取/保存配置（文件用 camelCase 键），环境变量优先于文件
"""

from toolbot.config.loader import get_config_path, load_config, save_config
from toolbot.config.schema import Config

__all__ = ["Config", "load_config", "save_config", "get_config_path"]
