"""
Page Engine 数据契约常量。

集中维护槽位类型、样式字段白名单、布局预设以及设计文档节点类型，
确保校验器、样式引擎与两个渲染器对同一套结构有统一认知。
"""

from __future__ import annotations

from typing import Dict, List, Tuple

PEN_SCHEMA_VERSION = "1.0"

# ====== 元素模板槽位 ======
SLOT_TYPES: List[str] = [
    "text",
    "richtext",
    "image",
    "link",
    "select",
    "boolean",
    "number",
    "list",
    "object",
]

SLOT_KEY_PATTERN = r"^[a-z0-9_]+$"

# ====== 样式数据白名单 ======
ALLOWED_UNITS: List[str] = ["px", "rem", "em", "%", "vh", "vw"]

SPACING_SIDES: Tuple[str, ...] = ("top", "right", "bottom", "left")

NUMERIC_STYLE_KEYS: List[str] = [
    "margin_top",
    "margin_right",
    "margin_bottom",
    "margin_left",
    "padding_top",
    "padding_right",
    "padding_bottom",
    "padding_left",
    "text_size",
    "border_width",
    "border_radius",
    "shadow_x",
    "shadow_y",
    "shadow_blur",
    "shadow_spread",
]

# 允许为负数的偏移类字段，范围为 ±STYLE_OFFSET_LIMIT
OFFSET_STYLE_KEYS = {"shadow_x", "shadow_y"}

UNIT_STYLE_KEYS: List[str] = [
    "margin_unit",
    "padding_unit",
    "text_size_unit",
    "border_unit",
    "border_radius_unit",
]

COLOR_STYLE_KEYS: List[str] = ["bg_color", "text_color", "border_color", "shadow_color"]

SELECT_STYLE_OPTIONS: Dict[str, List[str]] = {
    "text_align": ["left", "center", "right", "justify"],
    "text_weight": ["100", "200", "300", "400", "500", "600", "700", "800", "900"],
    "border_style": ["none", "solid", "dashed", "dotted", "double"],
    "bg_size": ["cover", "contain", "auto"],
    "bg_position": ["center center", "top center", "bottom center", "left center", "right center"],
    "bg_repeat": ["no-repeat", "repeat", "repeat-x", "repeat-y"],
}

DIMENSION_STYLE_KEYS: List[str] = ["max_width", "min_height"]

FLAG_STYLE_KEYS: List[str] = ["margin_linked", "padding_linked"]

# 页面级样式目标 (key => CSS选择器)
PAGE_STYLE_TARGETS: Dict[str, str] = {
    "page_body": ".page-body",
    "container": ".container",
    "site_main": ".site-main",
}

# ====== 页面布局预设 ======
LAYOUT_PRESETS: Dict[str, str] = {
    "default": (
        ".page-body{max-width:1100px;margin:0 auto;padding:0 1rem}\n"
        ".page-body>.lcms-el{display:block}"
    ),
    "full-width": (
        ".page-body{max-width:none;margin:0;padding:0}\n"
        ".page-body>.lcms-el{width:100%}"
    ),
    "narrow": ".page-body{max-width:720px;margin:0 auto;padding:0 1rem}",
    "sidebar-left": (
        ".page-body{display:grid;grid-template-columns:280px minmax(0,1fr);gap:2rem;"
        "max-width:1280px;margin:0 auto;padding:0 1rem}"
    ),
    "sidebar-right": (
        ".page-body{display:grid;grid-template-columns:minmax(0,1fr) 280px;gap:2rem;"
        "max-width:1280px;margin:0 auto;padding:0 1rem}"
    ),
}

# ====== 设计文档(.pen)节点 ======
RENDERABLE_NODE_TYPES: List[str] = [
    "frame",
    "group",
    "text",
    "rectangle",
    "ellipse",
    "line",
    "polygon",
    "path",
    "icon_font",
    "ref",
    "reference",
]

REFERENCE_NODE_TYPES = {"ref", "reference"}

# 仅供设计工具使用，不输出任何标记
SILENT_NODE_TYPES = {"note", "prompt", "context"}

# frame 名称关键字 → 语义标签
SEMANTIC_TAG_MAP: Dict[str, str] = {
    "header": "header",
    "footer": "footer",
    "nav": "nav",
    "sidebar": "aside",
    "section": "section",
    "article": "article",
    "main": "main",
}

# (最小字号, 标签, 是否要求粗体)
HEADING_THRESHOLDS: List[Tuple[float, str, bool]] = [
    (32, "h1", False),
    (24, "h2", False),
    (20, "h3", False),
    (18, "h4", False),
    (16, "h5", True),
]

ICON_FONT_CDN: Dict[str, str] = {
    "lucide": "https://cdn.jsdelivr.net/npm/lucide-static@latest/font/lucide.min.css",
    "feather": "https://cdn.jsdelivr.net/npm/feather-icons/dist/feather.css",
    "Material Symbols Outlined": "https://fonts.googleapis.com/css2?family=Material+Symbols+Outlined",
    "Material Symbols Rounded": "https://fonts.googleapis.com/css2?family=Material+Symbols+Rounded",
    "Material Symbols Sharp": "https://fonts.googleapis.com/css2?family=Material+Symbols+Sharp",
    "phosphor": "https://cdn.jsdelivr.net/npm/@phosphor-icons/web@2/src/regular/style.css",
}

# 引用节点上不会覆盖到组件根节点的字段
REF_SKIP_KEYS = {"type", "ref", "descendants", "id", "reusable"}

__all__ = [
    "PEN_SCHEMA_VERSION",
    "SLOT_TYPES",
    "SLOT_KEY_PATTERN",
    "ALLOWED_UNITS",
    "SPACING_SIDES",
    "NUMERIC_STYLE_KEYS",
    "OFFSET_STYLE_KEYS",
    "UNIT_STYLE_KEYS",
    "COLOR_STYLE_KEYS",
    "SELECT_STYLE_OPTIONS",
    "DIMENSION_STYLE_KEYS",
    "FLAG_STYLE_KEYS",
    "PAGE_STYLE_TARGETS",
    "LAYOUT_PRESETS",
    "RENDERABLE_NODE_TYPES",
    "REFERENCE_NODE_TYPES",
    "SILENT_NODE_TYPES",
    "SEMANTIC_TAG_MAP",
    "HEADING_THRESHOLDS",
    "ICON_FONT_CDN",
    "REF_SKIP_KEYS",
]
