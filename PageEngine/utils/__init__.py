"""
Page Engine工具模块。

暴露配置读取与异常层级，供渲染器与脚本共享。
"""

from PageEngine.utils.config import Settings, settings
from PageEngine.utils.errors import (
    EnrichmentError,
    PageEngineError,
    PenDocumentError,
    ReferenceResolutionError,
    TemplateSyntaxError,
)

__all__ = [
    "Settings",
    "settings",
    "PageEngineError",
    "TemplateSyntaxError",
    "PenDocumentError",
    "ReferenceResolutionError",
    "EnrichmentError",
]
