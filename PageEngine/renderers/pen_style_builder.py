"""
设计文档节点属性 → CSS 声明。

每次编译创建一个实例，持有文档中已声明的变量名，用于把 `$name`
引用解析为 `var(--name)` 并提示未声明的变量。所有 build_* 方法返回
以分号结尾的声明串，可直接拼进规则体。
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

_NUMERIC_RE = re.compile(r"^\s*-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?\s*$")
_FALLBACK_RE = re.compile(r"\((\d+(?:\.\d+)?)\)")
_UNSAFE_VALUE_CHARS = re.compile(r"[;{}<>]")
_VARIABLE_NAME_RE = re.compile(r"[^A-Za-z0-9_-]")

_IMAGE_SIZE_MODES = {"fill": "cover", "fit": "contain", "stretch": "100% 100%"}
_JUSTIFY_MAP = {
    "start": "flex-start",
    "center": "center",
    "end": "flex-end",
    "space_between": "space-between",
    "space_around": "space-around",
}
_ALIGN_MAP = {"start": "flex-start", "center": "center", "end": "flex-end"}


def is_numeric(value: Any) -> bool:
    """有限的数值或数值字符串（布尔值除外），"1e400" 这类溢出为inf的不算。"""
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        if not _NUMERIC_RE.match(value):
            return False
    elif not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def format_number(value: Any) -> str:
    """整数值去掉小数部分：1.0 → "1"，0.25 → "0.25"。"""
    try:
        number = float(value)
    except OverflowError:
        return "0"
    if not math.isfinite(number):
        return "0"
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"


def css_safe(value: Any) -> str:
    """去掉可能闭合声明或规则的字符。"""
    return _UNSAFE_VALUE_CHARS.sub("", str(value))


def css_url(url: Any) -> str:
    """用于 url('...') 的地址：去掉引号/括号/反斜杠，拒绝脚本协议。"""
    cleaned = re.sub(r"[\s'\"()\\<>]", "", str(url or ""))
    if re.match(r"^(?:javascript|vbscript):", cleaned, re.I):
        return ""
    if cleaned.lower().startswith("data:") and not cleaned.lower().startswith("data:image/"):
        return ""
    return cleaned


class PenStyleBuilder:
    """把节点的 fill/stroke/effect/layout/typography/size 等属性翻译为CSS。"""

    def __init__(self, known_variables: Optional[Iterable[str]] = None):
        self.known_variables = set(known_variables or [])
        self._reported: set = set()

    # ====== 取值解析 ======

    def resolve_value(self, value: Any) -> str:
        """`$name` / `$--name` → `var(--name)`；数值格式化；其余字符串去掉危险字符。"""
        if value is None:
            return ""
        if isinstance(value, str) and value.startswith("$"):
            name = value[1:]
            if name.startswith("--"):
                name = name[2:]
            name = _VARIABLE_NAME_RE.sub("", name)
            self._check_variable(name)
            return f"var(--{name})"
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float)):
            return format_number(value)
        return css_safe(value).strip()

    def _check_variable(self, name: str) -> None:
        if self.known_variables and name not in self.known_variables and name not in self._reported:
            self._reported.add(name)
            logger.warning(f"样式引用了未声明的变量: ${name}")

    def resolve_color(self, color: Any) -> str:
        """颜色：变量引用、3位hex展开、8位hex转rgba，其余原样。"""
        if color is None:
            return ""
        if isinstance(color, str):
            if color.startswith("$"):
                return self.resolve_value(color)
            if color.startswith("#"):
                digits = color[1:]
                if len(digits) == 3:
                    return "#" + "".join(ch * 2 for ch in digits)
                if len(digits) == 8:
                    return self.hex_to_rgba(color)
        return css_safe(color).strip()

    @staticmethod
    def hex_to_rgba(color: str) -> str:
        """#RRGGBBAA → rgba(r, g, b, a)。"""
        digits = color.lstrip("#")
        if len(digits) != 8:
            return "#" + digits
        try:
            red, green, blue, alpha = (int(digits[idx:idx + 2], 16) for idx in range(0, 8, 2))
        except ValueError:
            return "#" + css_safe(digits)
        return f"rgba({red}, {green}, {blue}, {format_number(round(alpha / 255, 3))})"

    def stroke_color(self, stroke_fill: Any, default: str = "#000000") -> str:
        if stroke_fill is None:
            return default
        if isinstance(stroke_fill, str):
            return self.resolve_color(stroke_fill)
        if isinstance(stroke_fill, dict):
            if stroke_fill.get("type", "color") == "color":
                return self.resolve_color(stroke_fill.get("color", default))
            return default
        if isinstance(stroke_fill, list) and stroke_fill:
            first = stroke_fill[0]
            if isinstance(first, str):
                return self.resolve_color(first)
            if isinstance(first, dict) and "color" in first:
                return self.resolve_color(first["color"])
        return default

    # ====== 填充 ======

    def build_fill(self, fill: Any) -> str:
        if fill is None:
            return ""
        if isinstance(fill, str):
            return f"background-color: {self.resolve_color(fill)};"
        if isinstance(fill, list):
            return self.build_fills(fill)
        if isinstance(fill, dict) and "type" in fill:
            if fill.get("enabled") is False:
                return ""
            fill_type = fill["type"]
            if fill_type == "color":
                return f"background-color: {self.resolve_color(fill.get('color', ''))};"
            if fill_type == "gradient":
                gradient = self.build_gradient_value(fill)
                return f"background: {gradient};" if gradient else ""
            if fill_type == "image":
                return self.build_image_fill(fill)
        return ""

    def build_fills(self, fills: List[Any]) -> str:
        """多层填充：渐变/图片叠成 background 列表，纯色作为 background-color。"""
        backgrounds: List[str] = []
        bg_color = ""
        for fill in fills:
            if isinstance(fill, str):
                bg_color = f"background-color: {self.resolve_color(fill)};"
                continue
            if not isinstance(fill, dict) or fill.get("enabled") is False:
                continue
            fill_type = fill.get("type", "color")
            if fill_type == "color":
                bg_color = f"background-color: {self.resolve_color(fill.get('color', ''))};"
            elif fill_type == "gradient":
                gradient = self.build_gradient_value(fill)
                if gradient:
                    backgrounds.append(gradient)
            elif fill_type == "image":
                url = css_url(fill.get("url"))
                if url:
                    size = _IMAGE_SIZE_MODES.get(fill.get("mode", "fill"), "cover")
                    backgrounds.append(f"url('{url}') center / {size} no-repeat")
        css = ""
        if backgrounds:
            css += f"background: {', '.join(backgrounds)};"
        return css + bg_color

    def build_gradient_value(self, fill: Dict[str, Any]) -> str:
        colors = fill.get("colors") or []
        if not isinstance(colors, list) or not colors:
            return ""
        stops: List[str] = []
        for stop in colors:
            if not isinstance(stop, dict):
                continue
            color = self.resolve_color(stop.get("color", "#000000"))
            position = stop.get("position")
            suffix = f" {round(float(position) * 100)}%" if is_numeric(position) else ""
            stops.append(color + suffix)
        if not stops:
            return ""
        stop_list = ", ".join(stops)
        gradient_type = fill.get("gradientType", "linear")
        if gradient_type == "linear":
            rotation = float(fill.get("rotation", 0)) if is_numeric(fill.get("rotation", 0)) else 0.0
            # 设计工具按逆时针从上方计角，CSS按顺时针且 180deg 为向下
            degrees = (360 - rotation + 180) % 360
            return f"linear-gradient({format_number(degrees)}deg, {stop_list})"
        if gradient_type == "radial":
            return f"radial-gradient(ellipse at center, {stop_list})"
        if gradient_type == "angular":
            return f"conic-gradient({stop_list})"
        return f"linear-gradient({stop_list})"

    def build_image_fill(self, fill: Dict[str, Any]) -> str:
        url = css_url(fill.get("url"))
        if not url:
            return ""
        size = _IMAGE_SIZE_MODES.get(fill.get("mode", "fill"), "cover")
        css = (
            f"background-image: url('{url}');"
            f"background-size: {size};"
            "background-position: center;"
            "background-repeat: no-repeat;"
        )
        if "opacity" in fill:
            css += f"opacity: {self.resolve_value(fill['opacity'])};"
        return css

    # ====== 描边与效果 ======

    def build_stroke(self, stroke: Any) -> str:
        if not isinstance(stroke, dict) or not stroke:
            return ""
        color = self.stroke_color(stroke.get("fill"))
        style = "dashed" if stroke.get("dashPattern") else "solid"
        thickness = stroke.get("thickness", 0)
        if isinstance(thickness, dict):
            css = ""
            for side in ("top", "right", "bottom", "left"):
                value = thickness.get(side, 0)
                if is_numeric(value) and float(value) > 0:
                    css += f"border-{side}: {self.resolve_value(value)}px {style} {color};"
            return css
        value = self.resolve_value(thickness)
        if value in ("", "0"):
            return ""
        return f"border: {value}px {style} {color};"

    def build_effects(self, effects: Any) -> str:
        """阴影 → box-shadow；模糊 → filter；背景模糊 → backdrop-filter。"""
        if isinstance(effects, dict):
            effects = [effects]
        if not isinstance(effects, list):
            return ""
        shadows: List[str] = []
        filters: List[str] = []
        backdrop: List[str] = []
        for effect in effects:
            if not isinstance(effect, dict) or effect.get("enabled") is False:
                continue
            effect_type = effect.get("type", "")
            if effect_type == "shadow":
                offset = effect.get("offset") if isinstance(effect.get("offset"), dict) else {}
                x = self.resolve_value(offset.get("x", 0))
                y = self.resolve_value(offset.get("y", 0))
                blur = self.resolve_value(effect.get("blur", 0))
                spread = self.resolve_value(effect.get("spread", 0))
                color = self.resolve_color(effect.get("color", "#00000040"))
                inset = "inset " if effect.get("shadowType", "outer") == "inner" else ""
                shadows.append(f"{inset}{x}px {y}px {blur}px {spread}px {color}")
            elif effect_type == "blur":
                filters.append(f"blur({self.resolve_value(effect.get('radius', 0))}px)")
            elif effect_type == "background_blur":
                backdrop.append(f"blur({self.resolve_value(effect.get('radius', 0))}px)")
        css = ""
        if shadows:
            css += f"box-shadow: {', '.join(shadows)};"
        if filters:
            css += f"filter: {' '.join(filters)};"
        if backdrop:
            joined = " ".join(backdrop)
            css += f"backdrop-filter: {joined}; -webkit-backdrop-filter: {joined};"
        return css

    # ====== 布局 ======

    def build_layout(self, node: Dict[str, Any], layout: Optional[str] = None) -> str:
        """flex 布局；layout 为 none 时子节点绝对定位，容器只需 position: relative。"""
        layout = layout if layout is not None else node.get("layout")
        if layout is None or layout == "none":
            return "position: relative;"
        css = "display: flex;"
        css += "flex-direction: column;" if layout == "vertical" else "flex-direction: row;"
        if node.get("gap") is not None:
            css += f"gap: {self.resolve_value(node['gap'])}px;"
        if node.get("padding") is not None:
            css += self.build_padding(node["padding"])
        if node.get("justifyContent") is not None:
            css += f"justify-content: {_JUSTIFY_MAP.get(node['justifyContent'], 'flex-start')};"
        if node.get("alignItems") is not None:
            css += f"align-items: {_ALIGN_MAP.get(node['alignItems'], 'flex-start')};"
        return css

    def build_padding(self, padding: Any) -> str:
        if padding is None:
            return ""
        if is_numeric(padding) or (isinstance(padding, str) and padding.startswith("$")):
            return f"padding: {self.resolve_value(padding)}px;"
        if isinstance(padding, list) and len(padding) in (2, 4):
            return f"padding: {' '.join(self.resolve_value(v) + 'px' for v in padding)};"
        return ""

    # ====== 文字 ======

    def build_typography(self, node: Dict[str, Any]) -> str:
        css = ""
        if "fontFamily" in node:
            family = self.resolve_value(node["fontFamily"])
            if family.startswith("var("):
                css += f"font-family: {family};"
            else:
                css += f'font-family: "{family.replace(chr(34), "")}", sans-serif;'
        if "fontSize" in node:
            css += f"font-size: {self.resolve_value(node['fontSize'])}px;"
        if "fontWeight" in node:
            css += f"font-weight: {self.resolve_value(node['fontWeight'])};"
        if "fontStyle" in node:
            css += f"font-style: {self.resolve_value(node['fontStyle'])};"
        if "letterSpacing" in node:
            css += f"letter-spacing: {self.resolve_value(node['letterSpacing'])}px;"
        if "lineHeight" in node:
            css += f"line-height: {self.resolve_value(node['lineHeight'])};"
        if "textAlign" in node:
            css += f"text-align: {self.resolve_value(node['textAlign'])};"
        decoration = []
        if node.get("underline"):
            decoration.append("underline")
        if node.get("strikethrough"):
            decoration.append("line-through")
        if decoration:
            css += f"text-decoration: {' '.join(decoration)};"
        return css

    def build_text_color(self, fill: Any) -> str:
        """文字使用 color；渐变填充借助 background-clip: text。"""
        if fill is None:
            return ""
        if isinstance(fill, str):
            return f"color: {self.resolve_color(fill)};"
        if isinstance(fill, dict):
            if fill.get("type") == "color":
                return f"color: {self.resolve_color(fill.get('color', ''))};"
            if fill.get("type") == "gradient":
                gradient = self.build_gradient_value(fill)
                if not gradient:
                    return ""
                return (
                    f"background: {gradient}; -webkit-background-clip: text; "
                    "-webkit-text-fill-color: transparent; background-clip: text;"
                )
        if isinstance(fill, list) and fill:
            return self.build_text_color(fill[0])
        return ""

    # ====== 尺寸与定位 ======

    def build_sizing(self, node: Dict[str, Any], parent_layout: str = "horizontal") -> str:
        return "".join(
            self.build_dimension(dim, node[dim], parent_layout)
            for dim in ("width", "height")
            if node.get(dim) is not None
        )

    def build_dimension(self, dim: str, value: Any, parent_layout: str = "horizontal") -> str:
        """
        单个维度。

        fill_container 在父容器主轴上转为 flex 伸展，交叉轴上为 100%；
        fit_content 转为 fit-content，括号中的回退值作为最小尺寸。
        """
        if value is None:
            return ""
        if is_numeric(value):
            return f"{dim}: {format_number(value)}px;"
        if not isinstance(value, str):
            return ""
        if value.startswith("$"):
            return f"{dim}: {self.resolve_value(value)};"
        if value.startswith("fill_container"):
            fallback = extract_fallback(value)
            main_axis = (dim == "width" and parent_layout == "horizontal") or (
                dim == "height" and parent_layout == "vertical"
            )
            if main_axis:
                basis = f"{format_number(fallback)}px" if fallback is not None else "0%"
                return f"flex: 1 1 {basis}; min-{dim}: 0;"
            return f"{dim}: 100%;"
        if value.startswith("fit_content"):
            fallback = extract_fallback(value)
            css = f"{dim}: fit-content;"
            if fallback is not None:
                css += f"min-{dim}: {format_number(fallback)}px;"
            return css
        return ""

    def build_position(self, node: Dict[str, Any]) -> str:
        css = "position: absolute;"
        if node.get("x") is not None:
            css += f"left: {self.resolve_value(node['x'])}px;"
        if node.get("y") is not None:
            css += f"top: {self.resolve_value(node['y'])}px;"
        return css

    def build_rotation(self, rotation: Any) -> str:
        """设计工具逆时针旋转，CSS顺时针，因此取反。"""
        if rotation is None or (is_numeric(rotation) and float(rotation) == 0):
            return ""
        value = self.resolve_value(rotation)
        if is_numeric(value):
            return f"transform: rotate({format_number(-float(value))}deg);"
        return f"transform: rotate(calc(-1 * {value}));"

    def build_corner_radius(self, radius: Any) -> str:
        if radius is None or (is_numeric(radius) and float(radius) == 0):
            return ""
        if is_numeric(radius) or (isinstance(radius, str) and radius.startswith("$")):
            return f"border-radius: {self.resolve_value(radius)}px;"
        if isinstance(radius, list) and len(radius) == 4:
            return f"border-radius: {' '.join(self.resolve_value(v) + 'px' for v in radius)};"
        return ""

    def build_opacity(self, opacity: Any) -> str:
        if opacity is None or (is_numeric(opacity) and float(opacity) == 1):
            return ""
        return f"opacity: {self.resolve_value(opacity)};"

    @staticmethod
    def build_clip(clip: Any) -> str:
        return "overflow: hidden;" if clip is True else ""

    def build_all_styles(self, node: Dict[str, Any], is_absolute: bool = False, parent_layout: str = "horizontal") -> str:
        """尺寸、定位、圆角、透明度、裁剪与旋转的合集。"""
        css = self.build_sizing(node, parent_layout)
        if is_absolute:
            css += self.build_position(node)
        css += self.build_corner_radius(node.get("cornerRadius"))
        css += self.build_opacity(node.get("opacity"))
        css += self.build_clip(node.get("clip"))
        css += self.build_rotation(node.get("rotation"))
        return css


def extract_fallback(sizing: str) -> Optional[float]:
    """`fill_container(100)` → 100.0。"""
    match = _FALLBACK_RE.search(sizing)
    return float(match.group(1)) if match else None


__all__ = [
    "PenStyleBuilder",
    "is_numeric",
    "format_number",
    "css_safe",
    "css_url",
    "extract_fallback",
]
