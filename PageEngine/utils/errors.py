"""
Page Engine异常层级。

内部流程通过这些异常上报问题，公开入口负责按错误分类就地恢复：
引用错误 → 诊断节点；结构错误 → 清洗/丢弃；来源错误 → 空结果。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PageEngineError(ValueError):
    """所有渲染核心异常的基类，附带可选的上下文字典方便日志定位。"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class TemplateSyntaxError(PageEngineError):
    """槽位模板的结构错误（例如未闭合的区块）。"""


class PenDocumentError(PageEngineError):
    """设计文档结构非法：缺少children、组件无子节点、主题变量缺少默认值等。"""


class ReferenceResolutionError(PageEngineError):
    """组件引用无法解析：ref不存在、循环引用或超出最大深度。"""

    def __init__(self, ref_id: str, reason: str):
        super().__init__(f"无法解析组件引用 {ref_id}: {reason}", {"ref": ref_id, "reason": reason})
        self.ref_id = ref_id
        self.reason = reason


class EnrichmentError(PageEngineError):
    """动态元素数据补全失败。"""


__all__ = [
    "PageEngineError",
    "TemplateSyntaxError",
    "PenDocumentError",
    "ReferenceResolutionError",
    "EnrichmentError",
]
