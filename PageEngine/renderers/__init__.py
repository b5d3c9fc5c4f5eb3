"""
渲染器集合：槽位模板、样式、元素页面与设计文档编译器。
"""

from .slot_renderer import SlotRenderer, escape, render, unescape
from .style_renderer import StyleRenderer
from .page_renderer import PageRenderer
from .pen_style_builder import PenStyleBuilder
from .pen_node_renderer import PenNodeRenderer, RenderContext
from .pen_converter import PenConverter

__all__ = [
    "SlotRenderer",
    "StyleRenderer",
    "PageRenderer",
    "PenStyleBuilder",
    "PenNodeRenderer",
    "RenderContext",
    "PenConverter",
    "escape",
    "unescape",
    "render",
]
