"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 toolbot 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── agents
│   ├── defaults  - Agent 运行参数（模型、系统提示词、最大轮次、strict 模式等）
│   └── retry     - 模型调用的退避重试策略
└── provider      - LLM 服务的连接参数（API Key、API Base、额外请求头）

键名约定：
    config.json 使用 camelCase（maxTurns、apiKey），Python 代码使用 snake_case。
    转换由 pydantic 的 alias_generator 完成，只作用于字段名，
    extra_headers 这类用户数据字典的键原样保留。

配置来源优先级（高 → 低）：
    TOOLBOT_ 环境变量 > config.json > 字段默认值
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class Base(BaseModel):
    """配置模型基类：JSON 中使用 camelCase，同时接受 snake_case。"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==============================================================================
# Agent 配置
# ==============================================================================


class AgentDefaults(Base):
    """Agent 默认配置。定义了执行循环的核心运行参数。"""
    model: str = "openai/gpt-4o-mini"  # LiteLLM 格式: provider/model
    system_prompt: str = "You are a helpful assistant."
    max_tokens: int = 4096  # 单次 LLM 调用的最大输出 token 数
    temperature: float = 0.7
    max_turns: int = Field(default=10, ge=1)  # 单次运行允许的最大模型调用次数
    strict_tools: bool = False  # True 时任一工具失败都会中断运行
    tool_timeout: float | None = None  # 单个工具调用的超时秒数（None 不限制）


class RetryConfig(Base):
    """模型调用重试配置（有界指数退避）。"""
    max_attempts: int = Field(default=3, ge=1)  # 包含第一次调用
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)


class AgentsConfig(Base):
    """Agent 配置容器。"""
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)
    retry: RetryConfig = Field(default_factory=RetryConfig)


# ==============================================================================
# LLM 提供商配置
# ==============================================================================


class ProviderConfig(Base):
    """
    LLM 服务连接配置。

    toolbot 通过 LiteLLM 访问模型，模型名前缀（如 "openai/"、"anthropic/"）
    决定路由，这里只需配置凭据与端点。
    """
    api_key: str = ""  # 留空时 LiteLLM 会回退到服务商的标准环境变量
    api_base: str | None = None  # 私有部署或代理的 URL
    extra_headers: dict[str, str] | None = None  # 键名原样发送，不做大小写转换
    timeout: float = 120.0  # 单次请求超时（秒）


# ==============================================================================
# 根配置类
# ==============================================================================


class Config(BaseSettings):
    """
    toolbot 根配置类。

    构造参数（load_config 传入的文件内容）之上再叠加环境变量：
    - 环境变量前缀: TOOLBOT_
    - 嵌套分隔符: __ (双下划线)
    - 示例: TOOLBOT_AGENTS__DEFAULTS__MAX_TURNS=5
    """
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)

    model_config = SettingsConfigDict(
        env_prefix="TOOLBOT_",
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # 环境变量排在构造参数（即配置文件）之前，嵌套字段按键深度合并
        return env_settings, init_settings, dotenv_settings, file_secret_settings
