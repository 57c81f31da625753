"""
配置加载工具模块 (config/loader.py)
=================================
读写 ~/.toolbot/config.json。

文件中的 camelCase 键由 Config 模型的别名处理（见 config/schema.py），
本模块只负责定位文件、解析 JSON，以及损坏时降级到默认配置。
文件内容作为构造参数交给 Config，TOOLBOT_ 环境变量仍然会覆盖它
（优先级见 Config.settings_customise_sources）。
"""

import json
from pathlib import Path

from pydantic import ValidationError

from toolbot.config.schema import Config


def get_config_path() -> Path:
    """默认配置文件路径: ~/.toolbot/config.json"""
    return Path.home() / ".toolbot" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    加载配置：文件（若存在）→ 环境变量覆盖 → 字段默认值补齐。

    文件不是合法 JSON、顶层不是对象，或字段校验失败时，打印警告并忽略该文件。

    参数:
        config_path: 配置文件路径，None 时使用 get_config_path()
    """
    path = config_path or get_config_path()
    if not path.exists():
        return Config()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        # model_validate 不读取环境变量：先把文件校验成字段名形式，只保留文件里出现过的键，
        # 再交给构造函数与环境变量按字段名合并
        from_file = Config.model_validate(data).model_dump(exclude_unset=True)
        return Config(**from_file)
    except (json.JSONDecodeError, ValidationError, ValueError) as e:
        print(f"Warning: Failed to load config from {path}: {e}")
        print("Using default configuration.")
    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """以 camelCase 键名、两空格缩进写出配置。"""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", by_alias=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
