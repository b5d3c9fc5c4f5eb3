"""
元素页面渲染器：把有序的元素实例组装为整页 HTML 与 CSS。

每个实例经过 槽位强制转换 → 动态补全 → 槽位模板渲染 → 容器包裹，
样式数据拆分为内联style与页面CSS（层叠规则 + 带作用域的自定义CSS）。
任何单个实例的问题只会让它退化为占位块，整页渲染不会失败。
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from loguru import logger

from ..core.catalogue import ElementCatalogue
from ..core.dynamic_elements import DynamicEnricher
from ..core.elements import ElementInstance, ElementTemplate, Page, RenderResult
from ..ir.schema import LAYOUT_PRESETS
from ..ir.validator import SlotDataValidator
from ..utils.config import Settings, settings
from .slot_renderer import SlotRenderer, escape
from .style_renderer import StyleRenderer

_UNSAFE_TOKEN_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_COMMENT_DELIMITERS = re.compile(r"[*/]")


class PageRenderer:
    """
    页面渲染入口。

    协作者全部通过构造参数注入：
    - catalogue: 按slug提供元素模板；
    - enricher: 可选的动态元素补全器（is_dynamic / enrich）；
    - config: 可选的 Settings，缺省使用模块级配置。
    渲染器本身不持有跨调用的可变状态。
    """

    def __init__(
        self,
        catalogue: ElementCatalogue,
        enricher: Optional[DynamicEnricher] = None,
        config: Optional[Settings] = None,
    ):
        self.catalogue = catalogue
        self.enricher = enricher
        self.config = config or settings
        self.prefix = self.config.ELEMENT_CLASS_PREFIX
        self.slot_renderer = SlotRenderer()
        self.style_renderer = StyleRenderer(self.config)
        self.slot_validator = SlotDataValidator()

    # ====== 单个实例 ======

    def render_instance(
        self,
        instance: ElementInstance,
        template: Optional[ElementTemplate] = None,
    ) -> RenderResult:
        """
        渲染单个实例，返回容器HTML与该实例专属的CSS。

        未提供template时从目录按slug查找；模板缺失/停用或槽位数据
        不是对象时返回占位块，CSS为空。
        """
        if template is None:
            template = self.catalogue.get(instance.slug)
        if template is None:
            logger.warning(f"实例 {instance.instance_id} 引用了未知元素: {instance.slug}")
            return RenderResult(html=self._placeholder(instance, "unknown-element"))
        if not template.active:
            logger.warning(f"实例 {instance.instance_id} 引用了已停用的元素: {template.slug}")
            return RenderResult(html=self._placeholder(instance, "inactive-element"))
        if not isinstance(instance.slot_data, Mapping):
            logger.warning(f"实例 {instance.instance_id} 的槽位数据不是对象，输出占位块")
            return RenderResult(html=self._placeholder(instance, "malformed-slot-data"))

        slot_data, errors = self.slot_validator.coerce(template.slots, dict(instance.slot_data))
        if errors:
            logger.warning(f"实例 {instance.instance_id} ({template.slug}) 槽位数据已修正: {errors}")
        slot_data = self._enrich(template.slug, slot_data)

        inner = self.slot_renderer.render(template.html_template, slot_data)
        style_data = self.style_renderer.sanitize_style_data(instance.style_data)
        inline_style = self.style_renderer.build_inline_style(style_data)
        custom_classes = style_data.get("custom_class", "").split()

        class_attr = " ".join([self.prefix, f"{self.prefix}-{template.slug}", *custom_classes])
        html = (
            f'<div class="{escape(class_attr)}"'
            f' data-element-id="{escape(template.id)}"'
            f' data-instance-id="{escape(instance.instance_id)}"'
            + (f' style="{escape(inline_style)}"' if inline_style else "")
            + f">\n{inner}\n</div>\n"
        )
        css = self._instance_css(template.slug, instance.instance_id, style_data)
        logger.debug(f"实例 {instance.instance_id} ({template.slug}) 渲染完成")
        return RenderResult(html=html, css=css)

    def _enrich(self, slug: str, slot_data: Dict[str, Any]) -> Dict[str, Any]:
        """动态元素补全，失败时退化为未补全的数据。"""
        if self.enricher is None or not self.enricher.is_dynamic(slug):
            return slot_data
        try:
            enriched = self.enricher.enrich(slug, dict(slot_data))
        except Exception as exc:
            logger.exception(f"动态元素 {slug} 补全失败，使用原始槽位数据: {exc}")
            return slot_data
        if not isinstance(enriched, Mapping):
            logger.warning(f"动态元素 {slug} 补全结果不是对象，使用原始槽位数据")
            return slot_data
        return dict(enriched)

    def _placeholder(self, instance: ElementInstance, reason: str) -> str:
        return (
            f'<div class="{self.prefix} {self.prefix}-placeholder"'
            f' data-instance-id="{escape(instance.instance_id)}"'
            f' data-error="{escape(reason)}">'
            f"<!-- element unavailable: {escape(instance.slug)} -->"
            "</div>\n"
        )

    def instance_scope(self, slug: str, instance_id: Any) -> str:
        """实例作用域选择器，只保留安全字符，避免选择器注入。"""
        safe_slug = _UNSAFE_TOKEN_CHARS.sub("", str(slug))
        safe_id = _UNSAFE_TOKEN_CHARS.sub("", str(instance_id))
        return f'.{self.prefix}-{safe_slug}[data-instance-id="{safe_id}"]'

    def _instance_css(self, slug: str, instance_id: Any, style_data: Dict[str, Any]) -> str:
        scope = self.instance_scope(slug, instance_id)
        css = self.style_renderer.build_cascade_styles(style_data, scope)
        custom_css = style_data.get("custom_css")
        if custom_css:
            scoped = self.style_renderer.scope_custom_css(custom_css, scope)
            if scoped:
                safe_id = _UNSAFE_TOKEN_CHARS.sub("", str(instance_id))
                css += f"/* Custom CSS: instance #{safe_id} */\n{scoped}\n"
        return css

    # ====== 整页 ======

    def render_page(self, page: Page) -> str:
        """按页面顺序拼接全部实例的HTML。"""
        parts: List[str] = []
        for instance in page.ordered_instances():
            try:
                parts.append(self.render_instance(instance).html)
            except Exception as exc:
                logger.exception(f"实例 {instance.instance_id} 渲染异常，输出占位块: {exc}")
                parts.append(self._placeholder(instance, "render-error"))
        logger.info(f"页面渲染完成: {len(parts)} 个实例")
        return "".join(parts)

    def get_page_css(self, page: Page) -> str:
        """
        汇总整页CSS。

        顺序：目录CSS（按slug去重）→ 各实例的层叠规则与自定义CSS →
        布局预设 → 页面级样式目标。
        """
        parts: List[str] = []
        resolved: List[tuple] = []
        seen: set = set()
        for instance in page.ordered_instances():
            template = self.catalogue.get(instance.slug)
            if template is None or not template.active:
                continue
            resolved.append((instance, template))
            if template.slug in seen:
                continue
            seen.add(template.slug)
            element_css = template.css.strip()
            if element_css:
                label = _COMMENT_DELIMITERS.sub("", template.name or template.slug)
                parts.append(f"/* Element: {label} */\n{element_css}\n")

        for instance, template in resolved:
            style_data = self.style_renderer.sanitize_style_data(instance.style_data)
            instance_css = self._instance_css(template.slug, instance.instance_id, style_data)
            if instance_css:
                parts.append(instance_css)

        layout_css = self.get_page_layout_css(page.layout_id)
        if layout_css:
            parts.append(layout_css)
        page_style_css = self.style_renderer.build_page_layout_css(page.page_style)
        if page_style_css:
            parts.append(f"/* Page Layout Styles */\n{page_style_css}")
        return "\n".join(parts)

    def get_page_layout_css(self, layout_id: Optional[str]) -> str:
        """布局预设CSS；未知布局回退到默认布局。"""
        layout = layout_id or self.config.DEFAULT_LAYOUT
        preset = LAYOUT_PRESETS.get(layout)
        if preset is None:
            logger.warning(f"未知布局 {layout}，回退到 {self.config.DEFAULT_LAYOUT}")
            layout = self.config.DEFAULT_LAYOUT
            preset = LAYOUT_PRESETS.get(layout, "")
        if not preset:
            return ""
        preset = preset.replace(".lcms-el", f".{self.prefix}")
        return f"/* Layout: {layout} */\n{preset}\n"

    def render_page_result(self, page: Page) -> RenderResult:
        return RenderResult(html=self.render_page(page), css=self.get_page_css(page))


__all__ = ["PageRenderer"]
