"""
Page Engine。

页面组合渲染引擎：把元素模板 + 实例槽位/样式数据，以及设计工具导出的
.pen JSON 文档（可复用组件、引用实例、后代覆盖、主题变量）编译为
最终对访客输出的 HTML 与 CSS。
"""

from .renderers import (
    PageRenderer,
    PenConverter,
    SlotRenderer,
    StyleRenderer,
    escape,
    render,
)
from .core import ElementInstance, ElementTemplate, Page, RenderResult

__version__ = "1.0.0"
__author__ = "Page Engine Team"

__all__ = [
    "PageRenderer",
    "PenConverter",
    "SlotRenderer",
    "StyleRenderer",
    "ElementInstance",
    "ElementTemplate",
    "Page",
    "RenderResult",
    "escape",
    "render",
]
