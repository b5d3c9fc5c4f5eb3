"""
Page Engine 数据契约与校验工具。

暴露槽位/样式/设计文档的常量定义与校验器，供渲染器与脚本共同复用。
"""

from .schema import (
    PEN_SCHEMA_VERSION,
    SLOT_TYPES,
    LAYOUT_PRESETS,
    PAGE_STYLE_TARGETS,
)
from .validator import (
    PenDocumentValidator,
    SlotDataValidator,
    SlotDefinitionValidator,
    is_themed_value,
    theme_of,
)

__all__ = [
    "PEN_SCHEMA_VERSION",
    "SLOT_TYPES",
    "LAYOUT_PRESETS",
    "PAGE_STYLE_TARGETS",
    "PenDocumentValidator",
    "SlotDataValidator",
    "SlotDefinitionValidator",
    "is_themed_value",
    "theme_of",
]
