"""
元素实例样式的生成、作用域隔离与安全清洗。

样式数据(style data)来自后台GUI，按白名单清洗后：
- 可继承属性（外边距、文字颜色/字号/对齐、阴影、透明度、尺寸）输出为内联style；
- 不可继承属性（背景、内边距、边框、圆角）输出为页面CSS规则，层叠进子元素；
- 自由书写的自定义CSS逐条清洗危险构造后，加上实例作用域前缀，
  保证作者CSS无法泄漏到实例容器之外。
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from ..ir.schema import (
    ALLOWED_UNITS,
    COLOR_STYLE_KEYS,
    DIMENSION_STYLE_KEYS,
    FLAG_STYLE_KEYS,
    NUMERIC_STYLE_KEYS,
    OFFSET_STYLE_KEYS,
    PAGE_STYLE_TARGETS,
    SELECT_STYLE_OPTIONS,
    SPACING_SIDES,
    UNIT_STYLE_KEYS,
)
from ..utils.config import Settings, settings

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_RGB_COLOR = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*(\d*\.?\d+)\s*)?\)$"
)
_CSS_DIMENSION = re.compile(r"^-?\d+(?:\.\d+)?(?:px|rem|em|%|vh|vw)$")
_CLASS_TOKEN = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_CSS_COMMENT = re.compile(r"/\*.*?\*/", re.S)

# 命中任意一条即整条规则被丢弃
_DANGEROUS_CSS = [
    re.compile(pattern, re.I)
    for pattern in (
        r"@import\b",
        r"@charset\b",
        r"@namespace\b",
        r"javascript\s*:",
        r"vbscript\s*:",
        r"expression\s*\(",
        r"behavior\s*:",
        r"-moz-binding",
        r"<",
        r">",
        r"\\",
        r"url\s*\(\s*['\"]?\s*data:(?!image/)",
    )
]

# 内部规则需要加作用域的分组at-rule
_GROUPING_AT_RULES = {"media", "supports", "container", "layer"}


class StyleRenderer:
    """
    样式引擎。

    四个彼此独立的操作：sanitize_style_data / build_inline_style /
    sanitize_custom_css + scope_custom_css / get_custom_classes，
    以及页面CSS使用的 build_cascade_styles / build_page_layout_css。
    无内部状态，可并发调用。
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings

    # ====== 样式数据清洗 ======

    def sanitize_style_data(self, raw: Any) -> Dict[str, Any]:
        """
        白名单清洗样式数据，未知键静默丢弃。

        - 数值字段夹到安全范围并取整；
        - 颜色必须是 #hex / rgb() / rgba()；
        - 枚举字段必须在各自的允许列表中；
        - 清洗结果再次清洗保持不变（幂等）。
        """
        if not isinstance(raw, Mapping):
            return {}
        data = self._normalize_keys(raw)
        sanitized: Dict[str, Any] = {}

        for key in NUMERIC_STYLE_KEYS:
            number = _to_number(data.get(key))
            if number is None:
                continue
            low, high = self._numeric_range(key)
            sanitized[key] = int(round(min(max(number, low), high)))

        opacity = _to_number(data.get("opacity"))
        if opacity is not None:
            sanitized["opacity"] = round(min(max(opacity, 0.0), 1.0), 2)

        for key in UNIT_STYLE_KEYS:
            if data.get(key) in ALLOWED_UNITS:
                sanitized[key] = data[key]

        for key in COLOR_STYLE_KEYS:
            value = data.get(key)
            if isinstance(value, str) and valid_color(value.strip()):
                sanitized[key] = value.strip()

        for key, allowed in SELECT_STYLE_OPTIONS.items():
            value = data.get(key)
            if isinstance(value, (int, str)) and not isinstance(value, bool) and str(value) in allowed:
                sanitized[key] = str(value)

        bg_image = data.get("bg_image")
        if isinstance(bg_image, str):
            image = _sanitize_css_value(bg_image)
            if image and valid_bg_image_url(image):
                sanitized["bg_image"] = image

        for key in DIMENSION_STYLE_KEYS:
            value = data.get(key)
            if isinstance(value, str):
                cleaned = _sanitize_css_value(value)
                if cleaned and valid_css_dimension(cleaned):
                    sanitized[key] = cleaned

        classes = self.get_custom_classes(data.get("custom_class"))
        if classes:
            sanitized["custom_class"] = " ".join(classes)

        custom_css = data.get("custom_css")
        if isinstance(custom_css, str):
            cleaned_css = self.sanitize_custom_css(custom_css)
            if cleaned_css:
                sanitized["custom_css"] = cleaned_css

        for key in FLAG_STYLE_KEYS:
            if key in data:
                sanitized[key] = bool(data[key])

        return sanitized

    def _normalize_keys(self, raw: Mapping) -> Dict[str, Any]:
        """接受 camelCase 键（customCss / bgColor），snake_case 同名键优先。"""
        normalized: Dict[str, Any] = {}
        for key, value in raw.items():
            if not isinstance(key, str):
                continue
            snake = _CAMEL_BOUNDARY.sub("_", key).lower()
            if snake == key or snake not in raw:
                normalized[snake] = value
        return normalized

    def _numeric_range(self, key: str) -> Tuple[int, int]:
        if key in OFFSET_STYLE_KEYS:
            limit = abs(self.config.STYLE_OFFSET_LIMIT)
            return -limit, limit
        return self.config.STYLE_NUMERIC_MIN, self.config.STYLE_NUMERIC_MAX

    # ====== 内联样式 ======

    def build_inline_style(self, style_data: Mapping) -> str:
        """
        生成可继承属性的内联声明，按属性名排序保证输出确定。

        例如 `color: #333; font-size: 18px; margin-top: 10px`。
        """
        if not isinstance(style_data, Mapping):
            return ""
        declarations: Dict[str, str] = {}

        margin_unit = _valid_unit(style_data.get("margin_unit"))
        for side in SPACING_SIDES:
            value = _number_or_none(style_data.get(f"margin_{side}"))
            if value is not None:
                declarations[f"margin-{side}"] = f"{_format_number(value)}{margin_unit}"

        text_color = style_data.get("text_color")
        if isinstance(text_color, str) and valid_color(text_color):
            declarations["color"] = text_color

        text_size = _number_or_none(style_data.get("text_size"))
        if text_size is not None:
            declarations["font-size"] = f"{_format_number(text_size)}{_valid_unit(style_data.get('text_size_unit'))}"

        if style_data.get("text_align") in SELECT_STYLE_OPTIONS["text_align"]:
            declarations["text-align"] = style_data["text_align"]
        if str(style_data.get("text_weight", "")) in SELECT_STYLE_OPTIONS["text_weight"]:
            declarations["font-weight"] = str(style_data["text_weight"])

        shadow = self._build_shadow(style_data)
        if shadow:
            declarations["box-shadow"] = shadow

        opacity = _number_or_none(style_data.get("opacity"))
        if opacity is not None and opacity < 1.0:
            declarations["opacity"] = _format_number(max(0.0, min(1.0, opacity)))

        for key, prop in (("max_width", "max-width"), ("min_height", "min-height")):
            value = style_data.get(key)
            if isinstance(value, str) and value and valid_css_dimension(value):
                declarations[prop] = value

        return "; ".join(f"{prop}: {declarations[prop]}" for prop in sorted(declarations))

    def _build_shadow(self, style_data: Mapping) -> str:
        color = style_data.get("shadow_color")
        if not (isinstance(color, str) and valid_color(color)):
            return ""
        parts = [_number_or_none(style_data.get(f"shadow_{name}")) for name in ("x", "y", "blur", "spread")]
        if all(part is None for part in parts):
            return ""
        values = [part or 0 for part in parts]
        if not any(values):
            return ""
        x, y, blur, spread = (_format_number(value) for value in values)
        return f"{x}px {y}px {blur}px {spread}px {color}"

    # ====== 不可继承属性 → 页面CSS规则 ======

    def build_cascade_styles(self, style_data: Mapping, scope: str) -> str:
        """把背景/内边距/边框/圆角输出为 `scope, scope > *` 规则，使其覆盖子元素的目录样式。"""
        declarations = self._non_inheriting_declarations(style_data)
        if not declarations:
            return ""
        return f"{scope}, {scope} > * {{ {declarations}; }}\n"

    def _non_inheriting_declarations(self, style_data: Mapping) -> str:
        if not isinstance(style_data, Mapping):
            return ""
        props: List[str] = []

        bg_color = style_data.get("bg_color")
        if isinstance(bg_color, str) and valid_color(bg_color):
            props.append(f"background-color: {bg_color}")
        bg_image = style_data.get("bg_image")
        if isinstance(bg_image, str) and bg_image and valid_bg_image_url(bg_image):
            quoted = bg_image.replace("'", "\\'")
            props.append(f"background-image: url('{quoted}')")
        for key, prop in (("bg_size", "background-size"), ("bg_position", "background-position"), ("bg_repeat", "background-repeat")):
            if style_data.get(key) in SELECT_STYLE_OPTIONS[key]:
                props.append(f"{prop}: {style_data[key]}")

        padding_unit = _valid_unit(style_data.get("padding_unit"))
        for side in SPACING_SIDES:
            value = _number_or_none(style_data.get(f"padding_{side}"))
            if value is not None:
                props.append(f"padding-{side}: {_format_number(value)}{padding_unit}")

        border_width = _number_or_none(style_data.get("border_width"))
        border_style = style_data.get("border_style")
        border_color = style_data.get("border_color")
        if (
            border_width
            and border_width > 0
            and border_style in SELECT_STYLE_OPTIONS["border_style"]
            and border_style != "none"
            and isinstance(border_color, str)
            and valid_color(border_color)
        ):
            unit = _valid_unit(style_data.get("border_unit"))
            props.append(f"border: {_format_number(border_width)}{unit} {border_style} {border_color}")

        radius = _number_or_none(style_data.get("border_radius"))
        if radius and radius > 0:
            props.append(f"border-radius: {_format_number(radius)}{_valid_unit(style_data.get('border_radius_unit'))}")

        return "; ".join(props)

    def build_page_layout_css(self, page_style: Any) -> str:
        """页面级目标（.page-body / .container / .site-main）的GUI样式与自定义CSS。"""
        if not isinstance(page_style, Mapping):
            return ""
        css = ""
        for key, selector in PAGE_STYLE_TARGETS.items():
            target = self.sanitize_style_data(page_style.get(key))
            if not target:
                continue
            declarations = "; ".join(
                part for part in (self.build_inline_style(target), self._non_inheriting_declarations(target)) if part
            )
            if declarations:
                css += f"{selector} {{ {declarations}; }}\n"
            custom_css = target.get("custom_css")
            if custom_css:
                css += f"/* Page Layout Custom CSS: {key} */\n{self.scope_custom_css(custom_css, selector)}\n"
        return css

    # ====== 自定义CSS ======

    def sanitize_custom_css(self, raw: Any) -> str:
        """
        逐条清洗自定义CSS。

        含有危险构造的顶层规则/声明被整条丢弃，其余规则原样保留；
        @media/@supports 内部递归清洗。输出再次清洗保持不变。
        """
        if not isinstance(raw, str):
            return ""
        css = raw[: self.config.CUSTOM_CSS_MAX_LENGTH]
        css = _CSS_COMMENT.sub("", css)
        unclosed = css.find("/*")
        if unclosed != -1:
            css = css[:unclosed]
        return self._sanitize_items(css)

    def _sanitize_items(self, css: str) -> str:
        kept: List[str] = []
        for kind, text in split_css_items(css):
            if kind == "open":
                logger.warning(f"自定义CSS存在未闭合的规则，已丢弃: {text[:80]!r}")
                continue
            if kind == "block":
                name = _at_rule_name(text)
                if name in _GROUPING_AT_RULES:
                    header, inner = _split_block(text)
                    if _is_dangerous(header):
                        logger.warning(f"丢弃危险的at-rule: {header[:80]!r}")
                        continue
                    cleaned_inner = self._sanitize_items(inner)
                    if cleaned_inner:
                        kept.append(f"{header}{{{cleaned_inner}}}")
                    continue
            elif text.startswith("@"):
                logger.warning(f"丢弃at-rule语句: {text[:80]!r}")
                continue
            if _is_dangerous(text):
                logger.warning(f"丢弃危险的CSS规则: {text[:80]!r}")
                continue
            kept.append(text)
        return "\n".join(kept)

    def scope_custom_css(self, css: str, scope: str) -> str:
        """
        为每条规则的每个选择器加上作用域前缀。

        `.a{color:red}` → `.scope .a{color:red}`；
        没有选择器的顶层声明合并包裹进一个 `.scope{...}` 规则。
        """
        if not isinstance(css, str) or not css.strip():
            return ""
        scoped: List[str] = []
        bare: List[str] = []
        for kind, text in split_css_items(css.strip()):
            if kind == "open":
                continue
            if kind != "block":
                if text.startswith("@"):
                    scoped.append(text)
                else:
                    bare.append(text)
                continue
            name = _at_rule_name(text)
            header, inner = _split_block(text)
            if name in _GROUPING_AT_RULES:
                scoped.append(f"{header}{{{self.scope_custom_css(inner, scope)}}}")
            elif name:
                # @keyframes / @font-face / @page 内部不是选择器
                scoped.append(text)
            else:
                scoped.append(_scope_selector_list(header, scope) + text[len(header):].lstrip())
        if bare:
            scoped.append(f"{scope}{{{' '.join(bare)}}}")
        return "\n".join(scoped)

    # ====== 自定义class ======

    def get_custom_classes(self, raw: Any) -> List[str]:
        """逐个校验class名（字母/数字/连字符/下划线，不能以数字开头），非法的直接丢弃。"""
        if isinstance(raw, Mapping):
            raw = raw.get("custom_class", raw.get("customClass"))
        if isinstance(raw, str):
            tokens = raw.split()
        elif isinstance(raw, (list, tuple)):
            tokens = [token.strip() for token in raw if isinstance(token, str)]
        else:
            return []
        classes: List[str] = []
        for token in tokens:
            if _CLASS_TOKEN.match(token) and token not in classes:
                classes.append(token)
            elif token and not _CLASS_TOKEN.match(token):
                logger.debug(f"丢弃非法class名: {token!r}")
        return classes


# ====== 模块级工具 ======

def valid_color(color: str) -> bool:
    """#hex(3/4/6/8位) 或各分量0-255、alpha不超过1的 rgb()/rgba()。"""
    if not isinstance(color, str) or not color:
        return False
    if _HEX_COLOR.match(color):
        return True
    match = _RGB_COLOR.match(color)
    if not match:
        return False
    if any(int(channel) > 255 for channel in match.group(1, 2, 3)):
        return False
    alpha = match.group(4)
    return alpha is None or float(alpha) <= 1.0


def valid_css_dimension(value: str) -> bool:
    """`100px` / `50%` / `auto` / `none` 等尺寸值。"""
    value = value.strip()
    return value in ("auto", "none") or bool(_CSS_DIMENSION.match(value))


def valid_bg_image_url(url: str) -> bool:
    """背景图地址：普通路径或 data:image/ URI，拒绝脚本协议与标记字符。"""
    url = url.strip()
    if not url:
        return False
    lowered = url.lower()
    if lowered.startswith("data:") and not lowered.startswith("data:image/"):
        return False
    return not re.search(r"<|>|expression|javascript|vbscript|\\|\)", url, re.I)


def split_css_items(css: str) -> List[Tuple[str, str]]:
    """
    按顶层花括号切分CSS。

    返回 (kind, text) 列表：kind 为 block（完整规则）、statement
    （以分号结束的顶层语句/声明）、trailing（末尾无分号的声明）
    或 open（未闭合的规则）。引号内的花括号与分号不参与切分。
    """
    items: List[Tuple[str, str]] = []
    depth = 0
    start = 0
    quote: Optional[str] = None
    for idx, char in enumerate(css):
        if quote:
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                # 多余的右花括号：连同之前的碎片一起丢弃
                start = idx + 1
                continue
            depth -= 1
            if depth == 0:
                text = css[start:idx + 1].strip()
                if text:
                    items.append(("block", text))
                start = idx + 1
        elif char == ";" and depth == 0:
            text = css[start:idx + 1].strip()
            if text and text != ";":
                items.append(("statement", text))
            start = idx + 1
    tail = css[start:].strip()
    if tail:
        items.append(("open" if depth > 0 or quote else "trailing", tail))
    return items


def _split_block(block: str) -> Tuple[str, str]:
    """把 `header{inner}` 拆为 (header, inner)，header 已去除首尾空白。"""
    brace = block.find("{")
    return block[:brace].strip(), block[brace + 1:-1].strip()


def _at_rule_name(text: str) -> str:
    match = re.match(r"@(-?[a-zA-Z-]+)", text)
    return match.group(1).lower() if match else ""


def _scope_selector_list(selector: str, scope: str) -> str:
    """逗号分隔的选择器逐个加前缀，括号内的逗号（:is(a, b)）不切分。"""
    parts: List[str] = []
    depth = 0
    current = ""
    for char in selector:
        if char in "([":
            depth += 1
        elif char in ")]" and depth:
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += char
    parts.append(current.strip())
    scoped = [part if _within_scope(part, scope) else f"{scope} {part}" for part in parts if part]
    return ", ".join(scoped) if scoped else scope


def _within_scope(selector: str, scope: str) -> bool:
    """
    选择器是否已经落在作用域内：等于作用域本身，或以作用域加空白开头的后代/子选择器。

    `.scope + p`、`.scope ~ div` 指向实例之外的兄弟元素，`.scopex` 只是前缀相同，
    都需要重新加前缀。
    """
    if selector == scope:
        return True
    if not selector.startswith(scope) or not selector[len(scope)].isspace():
        return False
    return not selector[len(scope):].lstrip().startswith(("+", "~"))


def _is_dangerous(text: str) -> bool:
    return any(pattern.search(text) for pattern in _DANGEROUS_CSS)


def _sanitize_css_value(value: str) -> str:
    """单个CSS取值：命中注入特征时返回空串。"""
    value = value.strip()
    if _is_dangerous(value) or "/*" in value:
        return ""
    return value


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _number_or_none(value: Any) -> Optional[float]:
    """渲染阶段只接受真正的数值（清洗结果），字符串数值也兼容。"""
    return _to_number(value)


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def _valid_unit(unit: Any) -> str:
    return unit if unit in ALLOWED_UNITS else "px"


__all__ = [
    "StyleRenderer",
    "valid_color",
    "valid_css_dimension",
    "valid_bg_image_url",
    "split_css_items",
]
