"""
设计文档节点 → HTML，CSS规则写入本次编译的上下文。

节点按 type 分派到 `_render_<type>`；组件引用在这里解析：深拷贝组件、
合并引用节点的根级字段与后代覆盖，再递归渲染。引用栈同时承担
循环检测与深度上限，无法解析的引用输出诊断块而不是抛出异常。
"""

from __future__ import annotations

import copy
import math
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from loguru import logger

from ..ir.schema import (
    HEADING_THRESHOLDS,
    ICON_FONT_CDN,
    REFERENCE_NODE_TYPES,
    REF_SKIP_KEYS,
    RENDERABLE_NODE_TYPES,
    SEMANTIC_TAG_MAP,
    SILENT_NODE_TYPES,
)
from ..utils.errors import ReferenceResolutionError
from .pen_style_builder import PenStyleBuilder, format_number, is_numeric
from .slot_renderer import escape

_CLASS_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")
_TEXT_VARIABLE = re.compile(r"\$--([A-Za-z0-9_-]+)")
# 多边形边数上限
MAX_POLYGON_SIDES = 64


@dataclass
class RenderContext:
    """
    单次编译的可变状态。

    每次 convert_document 新建一个，编译结束即丢弃，
    因此同一个转换器可以被并发调用。
    """

    components: Dict[str, Dict[str, Any]]
    styles: PenStyleBuilder
    variable_defaults: Dict[str, str] = field(default_factory=dict)
    class_prefix: str = "pen-"
    max_ref_depth: int = 10
    css_rules: List[str] = field(default_factory=list)
    icon_imports: Dict[str, str] = field(default_factory=dict)
    ref_stack: List[str] = field(default_factory=list)
    scope_chain: List[str] = field(default_factory=list)
    parent_layout: str = "vertical"

    def class_for(self, node_id: Any) -> str:
        return self.class_prefix + _CLASS_UNSAFE.sub("-", str(node_id or "unknown"))

    def selector(self, cls: str) -> str:
        """规则选择器：页面根与外层引用实例的class作为前缀。"""
        return " ".join([*self.scope_chain, f".{cls}"])

    def add_rule(self, cls: str, declarations: str) -> None:
        if declarations:
            self.css_rules.append(f"{self.selector(cls)}{{{declarations}}}")

    @contextmanager
    def nested(self, layout: str, scope_cls: Optional[str] = None) -> Iterator[None]:
        """渲染子节点期间切换父布局，并按需压入作用域class。"""
        previous = self.parent_layout
        self.parent_layout = layout
        if scope_cls:
            self.scope_chain.append(f".{scope_cls}")
        try:
            yield
        finally:
            if scope_cls:
                self.scope_chain.pop()
            self.parent_layout = previous


class PenNodeRenderer:
    """无状态的节点渲染器，所有可变状态都在 RenderContext 中。"""

    def render_node(self, node: Any, ctx: RenderContext, scoped: bool = False) -> str:
        """
        渲染单个节点。

        scoped=True 表示该节点是页面根或引用实例的根，其class会成为
        子孙节点CSS规则的前缀。
        """
        if not isinstance(node, dict) or node.get("enabled") is False:
            return ""
        node_type = node.get("type", "")
        if node_type in SILENT_NODE_TYPES:
            return ""
        if node_type not in RENDERABLE_NODE_TYPES:
            logger.debug(f"跳过未知类型的节点: {node_type} ({node.get('id')})")
            return ""
        if node.get("reusable"):
            # 组件定义只通过引用渲染
            return ""
        if node_type in REFERENCE_NODE_TYPES:
            node_type = "ref"
        handler = getattr(self, f"_render_{node_type}")
        try:
            return handler(node, ctx, scoped)
        except (ArithmeticError, TypeError, ValueError) as exc:
            logger.warning(f"节点 {node.get('id')} ({node_type}) 取值无法渲染，已跳过: {exc}")
            return ""

    def render_children(self, node: Dict[str, Any], ctx: RenderContext, layout: str, scope_cls: Optional[str]) -> str:
        children = node.get("children")
        if not isinstance(children, list) or not children:
            return ""
        with ctx.nested(layout, scope_cls):
            return "".join(self.render_node(child, ctx) for child in children)

    # ====== 容器 ======

    def _render_frame(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        cls = ctx.class_for(node.get("id"))
        tag = infer_frame_tag(node.get("name", ""))
        layout = node.get("layout") or "horizontal"
        styles = ctx.styles
        ctx.add_rule(
            cls,
            "box-sizing: border-box;"
            + styles.build_layout(node, layout)
            + styles.build_fill(node.get("fill"))
            + styles.build_stroke(node.get("stroke"))
            + styles.build_effects(node.get("effect"))
            + styles.build_all_styles(node, ctx.parent_layout == "none", ctx.parent_layout),
        )
        inner = self.render_children(node, ctx, layout, cls if scoped else None)
        return f'<{tag} class="{cls}">{inner}</{tag}>'

    def _render_group(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        cls = ctx.class_for(node.get("id"))
        layout = node.get("layout") or "none"
        styles = ctx.styles
        declarations = "box-sizing: border-box;"
        if "layout" in node:
            declarations += styles.build_layout(node, layout)
        declarations += styles.build_sizing(node, ctx.parent_layout)
        if ctx.parent_layout == "none":
            declarations += styles.build_position(node)
        declarations += styles.build_effects(node.get("effect")) + styles.build_opacity(node.get("opacity"))
        ctx.add_rule(cls, declarations)
        inner = self.render_children(node, ctx, layout, cls if scoped else None)
        return f'<div class="{cls}">{inner}</div>'

    # ====== 文字 ======

    def _render_text(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        cls = ctx.class_for(node.get("id"))
        styles = ctx.styles
        declarations = (
            "box-sizing: border-box; margin: 0;"
            + styles.build_typography(node)
            + styles.build_text_color(node.get("fill"))
            + styles.build_sizing(node, ctx.parent_layout)
        )
        if ctx.parent_layout == "none":
            declarations += styles.build_position(node)
        declarations += (
            styles.build_opacity(node.get("opacity"))
            + styles.build_rotation(node.get("rotation"))
            + styles.build_effects(node.get("effect"))
        )
        if node.get("textGrowth") == "fixed-width-height":
            declarations += "overflow: hidden;"
        ctx.add_rule(cls, declarations)

        content = self._text_content(node.get("content"), ctx, raw=node.get("raw") is True)
        href = node.get("href")
        if isinstance(href, str) and href:
            return f'<a href="{escape(href)}" class="{cls}">{content}</a>'
        tag = infer_text_tag(node)
        return f'<{tag} class="{cls}">{content}</{tag}>'

    def _text_content(self, content: Any, ctx: RenderContext, raw: bool = False) -> str:
        """
        文字内容。

        字符串中的 `$--name` 替换为变量默认值后转义（换行转 <br>）；
        显式声明 raw 的节点原样输出。数组为带样式的文字片段。
        """
        if content is None or content == "":
            return ""
        if isinstance(content, str):
            text = substitute_variables(content, ctx.variable_defaults)
            if raw:
                return text
            return escape(text).replace("\n", "<br>\n")
        if not isinstance(content, list):
            return escape(content)
        parts: List[str] = []
        for run in content:
            if isinstance(run, str):
                parts.append(escape(substitute_variables(run, ctx.variable_defaults)))
                continue
            if not isinstance(run, dict):
                continue
            text = escape(substitute_variables(str(run.get("content", "")), ctx.variable_defaults))
            style = (ctx.styles.build_typography(run) + ctx.styles.build_text_color(run.get("fill"))).strip()
            style_attr = f' style="{escape(style)}"' if style else ""
            href = run.get("href")
            if isinstance(href, str) and href:
                parts.append(f'<a href="{escape(href)}"{style_attr}>{text}</a>')
            elif style:
                parts.append(f"<span{style_attr}>{text}</span>")
            else:
                parts.append(text)
        return "".join(parts)

    # ====== 图形 ======

    def _render_rectangle(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        return self._render_shape(node, ctx, "box-sizing: border-box;")

    def _render_ellipse(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        return self._render_shape(node, ctx, "box-sizing: border-box; border-radius: 50%;")

    def _render_shape(self, node: Dict[str, Any], ctx: RenderContext, base: str) -> str:
        cls = ctx.class_for(node.get("id"))
        styles = ctx.styles
        ctx.add_rule(
            cls,
            base
            + styles.build_fill(node.get("fill"))
            + styles.build_stroke(node.get("stroke"))
            + styles.build_effects(node.get("effect"))
            + styles.build_all_styles(node, ctx.parent_layout == "none", ctx.parent_layout),
        )
        return f'<div class="{cls}"></div>'

    def _render_line(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        cls = ctx.class_for(node.get("id"))
        stroke = node.get("stroke") if isinstance(node.get("stroke"), dict) else {}
        thickness = stroke.get("thickness", 1)
        width = int(float(thickness)) if is_numeric(thickness) else 1
        color = ctx.styles.stroke_color(stroke.get("fill"))
        declarations = (
            f"box-sizing: border-box; border: none;border-top: {width}px solid {color};"
            + ctx.styles.build_sizing(node, ctx.parent_layout)
        )
        if ctx.parent_layout == "none":
            declarations += ctx.styles.build_position(node)
        ctx.add_rule(cls, declarations)
        return f'<hr class="{cls}">'

    def _render_polygon(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        width, height = _svg_size(node)
        sides = int(float(node["polygonCount"])) if is_numeric(node.get("polygonCount")) else 6
        points = polygon_points(min(max(sides, 3), MAX_POLYGON_SIDES), width, height)
        body = (
            f'<polygon points="{points}" fill="{escape(self._svg_fill(node.get("fill"), ctx))}" '
            f"{self._svg_stroke(node.get('stroke'), ctx)}/>"
        )
        return self._render_svg(node, ctx, body)

    def _render_path(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        geometry = node.get("geometry") if isinstance(node.get("geometry"), str) else ""
        fill_rule = node.get("fillRule") if node.get("fillRule") in ("nonzero", "evenodd") else "nonzero"
        body = (
            f'<path d="{escape(geometry)}" fill="{escape(self._svg_fill(node.get("fill"), ctx))}" '
            f'fill-rule="{fill_rule}" {self._svg_stroke(node.get("stroke"), ctx)}/>'
        )
        return self._render_svg(node, ctx, body)

    def _render_svg(self, node: Dict[str, Any], ctx: RenderContext, body: str) -> str:
        cls = ctx.class_for(node.get("id"))
        width, height = _svg_size(node)
        declarations = ctx.styles.build_sizing(node, ctx.parent_layout)
        if ctx.parent_layout == "none":
            declarations += ctx.styles.build_position(node)
        declarations += ctx.styles.build_effects(node.get("effect"))
        ctx.add_rule(cls, declarations)
        w, h = format_number(width), format_number(height)
        return f'<svg class="{cls}" viewBox="0 0 {w} {h}" width="{w}" height="{h}">{body}</svg>'

    def _svg_fill(self, fill: Any, ctx: RenderContext) -> str:
        if fill is None:
            return "none"
        if isinstance(fill, str):
            return ctx.styles.resolve_color(fill)
        if isinstance(fill, dict) and fill.get("type") == "color":
            return ctx.styles.resolve_color(fill.get("color", "none"))
        if isinstance(fill, list) and fill:
            return self._svg_fill(fill[0], ctx)
        return "none"

    def _svg_stroke(self, stroke: Any, ctx: RenderContext) -> str:
        if not isinstance(stroke, dict) or not stroke:
            return 'stroke="none"'
        color = ctx.styles.stroke_color(stroke.get("fill"), default="none")
        width = format_number(stroke["thickness"]) if is_numeric(stroke.get("thickness")) else "0"
        return f'stroke="{escape(color)}" stroke-width="{width}"'

    def _render_icon_font(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        cls = ctx.class_for(node.get("id"))
        family = str(node.get("iconFontFamily") or "lucide")
        name = escape(ctx.styles.resolve_value(node.get("iconFontName", "")))
        width = float(node["width"]) if is_numeric(node.get("width")) else 24.0
        height = float(node["height"]) if is_numeric(node.get("height")) else 24.0
        if family in ICON_FONT_CDN:
            ctx.icon_imports.setdefault(family, ICON_FONT_CDN[family])
        else:
            logger.debug(f"未知的图标字体: {family}")

        declarations = (
            f"font-size: {format_number(max(width, height))}px;"
            f"width: {format_number(width)}px; height: {format_number(height)}px;"
            "display: inline-flex; align-items: center; justify-content: center;"
            + ctx.styles.build_text_color(node.get("fill"))
        )
        if ctx.parent_layout == "none":
            declarations += ctx.styles.build_position(node)
        ctx.add_rule(cls, declarations)

        if family.startswith("Material Symbols"):
            family_cls = _CLASS_UNSAFE.sub("-", family.replace(" ", "-"))
            return f'<span class="{cls} {escape(family)} {family_cls}">{name}</span>'
        if family == "phosphor":
            return f'<i class="{cls} ph ph-{name}"></i>'
        if family == "feather":
            return f'<i class="{cls} feather icon-{name}"></i>'
        return f'<i class="{cls} icon-{name}"></i>'

    # ====== 组件引用 ======

    def _render_ref(self, node: Dict[str, Any], ctx: RenderContext, scoped: bool) -> str:
        ref_id = node.get("ref")
        try:
            resolved = self.resolve(node, ctx)
        except ReferenceResolutionError as exc:
            logger.warning(str(exc))
            return diagnostic(ctx, exc.ref_id, exc.reason)
        ctx.ref_stack.append(ref_id)
        try:
            return self.render_node(resolved, ctx, scoped=True)
        finally:
            ctx.ref_stack.pop()

    def resolve(self, node: Dict[str, Any], ctx: RenderContext) -> Dict[str, Any]:
        """查找组件并生成覆盖后的独立副本；失败时抛出 ReferenceResolutionError。"""
        ref_id = node.get("ref")
        if not isinstance(ref_id, str) or not ref_id:
            raise ReferenceResolutionError(str(node.get("id", "")), "missing-ref")
        if ref_id in ctx.ref_stack:
            raise ReferenceResolutionError(ref_id, "cycle")
        if len(ctx.ref_stack) >= ctx.max_ref_depth:
            raise ReferenceResolutionError(ref_id, "max-depth")
        component = ctx.components.get(ref_id)
        if component is None:
            raise ReferenceResolutionError(ref_id, "not-found")
        return resolve_reference(node, component)


# ====== 模块级工具 ======

def resolve_reference(node: Dict[str, Any], component: Dict[str, Any]) -> Dict[str, Any]:
    """
    深拷贝组件并应用引用节点上的覆盖。

    根级字段（type/ref/descendants/id/reusable 之外）覆盖副本的根；
    实例id替换组件id，使同一组件的多个实例拥有不同的class。
    """
    resolved = copy.deepcopy(component)
    for key, value in node.items():
        if key not in REF_SKIP_KEYS:
            resolved[key] = copy.deepcopy(value)
    resolved["id"] = node.get("id") or f"{node['ref']}-inst"
    resolved["reusable"] = False
    descendants = node.get("descendants")
    if isinstance(descendants, dict) and descendants:
        apply_descendants(resolved, descendants)
    return resolved


def apply_descendants(root: Dict[str, Any], descendants: Dict[str, Any]) -> None:
    """
    就地应用后代覆盖（root 必须已是副本）。

    键为节点id（在整棵副本中查找，先序第一个命中）或 `a/b/c` 形式的id路径。
    含 type 的覆盖整体替换目标节点，否则逐字段合并。路径途经嵌套引用时，
    剩余路径转交给该引用节点自己的 descendants。
    """
    for key, override in descendants.items():
        if not isinstance(override, dict):
            continue
        location = find_descendant(root, str(key))
        if location is None:
            logger.debug(f"后代覆盖未命中任何节点: {key}")
            continue
        siblings, index, rest = location
        target = siblings[index]
        if rest:
            nested = target.get("descendants") if isinstance(target.get("descendants"), dict) else {}
            nested["/".join(rest)] = copy.deepcopy(override)
            target["descendants"] = nested
        elif "type" in override:
            siblings[index] = copy.deepcopy(override)
        else:
            target.update(copy.deepcopy(override))


def find_descendant(root: Dict[str, Any], key: str) -> Optional[Tuple[List[Any], int, List[str]]]:
    """返回 (兄弟列表, 下标, 剩余路径)，未找到返回None。"""
    if "/" in key:
        parts = [part for part in key.split("/") if part]
        container = root
        for depth, part in enumerate(parts):
            children = container.get("children")
            if not isinstance(children, list):
                return None
            index = _index_of(children, part)
            if index is None:
                return None
            rest = parts[depth + 1:]
            child = children[index]
            if not rest:
                return children, index, []
            if child.get("type") in REFERENCE_NODE_TYPES and not isinstance(child.get("children"), list):
                return children, index, rest
            container = child
        return None
    return _find_by_id(root, key)


def _index_of(children: List[Any], node_id: str) -> Optional[int]:
    for index, child in enumerate(children):
        if isinstance(child, dict) and child.get("id") == node_id:
            return index
    return None


def _find_by_id(node: Dict[str, Any], node_id: str) -> Optional[Tuple[List[Any], int, List[str]]]:
    children = node.get("children")
    if not isinstance(children, list):
        return None
    for index, child in enumerate(children):
        if not isinstance(child, dict):
            continue
        if child.get("id") == node_id:
            return children, index, []
        found = _find_by_id(child, node_id)
        if found is not None:
            return found
    return None


def diagnostic(ctx: RenderContext, ref_id: str, reason: str) -> str:
    """无法解析的引用：可见的空诊断块，不包含任何组件内容。"""
    safe_ref = escape(ref_id)
    return (
        f"<!-- pen: unresolved reference {safe_ref} ({reason}) -->"
        f'<div class="{ctx.class_prefix}diagnostic" data-pen-error="{escape(reason)}" data-ref="{safe_ref}"></div>'
    )


def substitute_variables(text: str, defaults: Dict[str, str]) -> str:
    """把文字中的 `$--name` 替换为变量默认值，未声明的保持原样。"""

    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in defaults:
            return defaults[name]
        logger.warning(f"文字引用了未声明的变量: $--{name}")
        return match.group(0)

    return _TEXT_VARIABLE.sub(replace, text)


def infer_frame_tag(name: Any) -> str:
    """frame 名称包含语义关键字时使用对应标签（Site Footer → footer）。"""
    lowered = str(name or "").lower()
    for keyword, tag in SEMANTIC_TAG_MAP.items():
        if keyword in lowered:
            return tag
    return "div"


def infer_text_tag(node: Dict[str, Any]) -> str:
    """按字号/字重推断标题级别，16px 以上需要粗体（>=600）才视为 h5。"""
    font_size = node.get("fontSize")
    if not is_numeric(font_size):
        return "p"
    weight = node.get("fontWeight", "400")
    weight_num = int(float(weight)) if is_numeric(weight) else 400
    for minimum, tag, require_bold in HEADING_THRESHOLDS:
        if float(font_size) >= minimum:
            if require_bold and weight_num < 600:
                continue
            return tag
    return "p"


def polygon_points(sides: int, width: float, height: float) -> str:
    """正多边形顶点，从正上方开始顺时针。"""
    cx, cy = width / 2, height / 2
    points = []
    for idx in range(sides):
        angle = (2 * math.pi * idx / sides) - (math.pi / 2)
        x = round(cx + cx * math.cos(angle), 2)
        y = round(cy + cy * math.sin(angle), 2)
        points.append(f"{format_number(x)},{format_number(y)}")
    return " ".join(points)


def _svg_size(node: Dict[str, Any]) -> Tuple[float, float]:
    width = float(node["width"]) if is_numeric(node.get("width")) else 100.0
    height = float(node["height"]) if is_numeric(node.get("height")) else 100.0
    return width, height


__all__ = [
    "MAX_POLYGON_SIDES",
    "PenNodeRenderer",
    "RenderContext",
    "resolve_reference",
    "apply_descendants",
    "find_descendant",
    "substitute_variables",
    "infer_frame_tag",
    "infer_text_tag",
    "polygon_points",
    "diagnostic",
]
