"""
Page Engine配置。

采用 pydantic_settings 风格：字段名即大写环境变量名，可由 `.env` 覆盖。
渲染入口均接收显式的 `config` 参数，模块级 `settings` 仅在调用方
未传入时作为默认值使用，便于并发调用与确定性测试。
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    渲染核心的全部可调参数。

    实例被冻结，一次渲染期间不会被修改；需要不同参数时构造新的实例，
    例如 `Settings(STYLE_NUMERIC_MAX=800)`。
    """

    # ====== 样式引擎 ======
    STYLE_NUMERIC_MIN: int = Field(0, description="数值型样式字段的下限(px)")
    STYLE_NUMERIC_MAX: int = Field(500, description="数值型样式字段的上限(px)")
    STYLE_OFFSET_LIMIT: int = Field(500, description="阴影偏移的对称上限(px)")
    CUSTOM_CSS_MAX_LENGTH: int = Field(10000, description="自定义CSS最大字符数")

    # ====== 页面渲染 ======
    ELEMENT_CLASS_PREFIX: str = Field("lcms-el", description="元素容器class前缀")
    DEFAULT_LAYOUT: str = Field("default", description="页面未指定布局时使用的布局ID")
    RECENT_POSTS_DEFAULT_COUNT: int = Field(6, description="recent-posts默认条数")

    # ====== 设计文档编译 ======
    PEN_CLASS_PREFIX: str = Field("pen-", description="设计文档节点class前缀")
    MAX_REF_DEPTH: int = Field(10, description="组件引用的最大嵌套深度")

    # ====== 日志 ======
    LOG_LEVEL: str = Field("INFO", description="命令行脚本的日志级别")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )


settings = Settings()
