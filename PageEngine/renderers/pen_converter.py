"""
设计文档(.pen) → HTML + CSS 编译器。

流程：
1. 结构校验（PenDocumentValidator），致命错误直接返回空结果；
2. 递归扫描 reusable 节点建立组件注册表；
3. 逐个渲染非组件的顶层节点（页面根），CSS规则限定在 `pen-{根id}` 之下；
4. 组装CSS：图标字体 @import → 变量块（:root / 主题 / 覆盖）→ 基础规则 → 节点规则。

任何输入问题都不会向调用方抛出异常：来源错误返回空结果，
引用错误在原位输出诊断块。
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger

from ..core.elements import RenderResult
from ..ir.validator import PenDocumentValidator, is_themed_value, theme_of
from ..utils.config import Settings, settings
from ..utils.errors import PageEngineError, PenDocumentError
from .pen_node_renderer import PenNodeRenderer, RenderContext
from .pen_style_builder import PenStyleBuilder, css_safe, format_number

_NAME_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")
_CONTAINER_TYPES = {"frame", "group"}
_FALSE_STRINGS = {"", "0", "false", "no", "off"}

VariableOverrides = Mapping[str, Any]


class PenConverter:
    """
    设计文档编译器。

    实例只保存配置与无状态的协作对象，每次转换的中间状态都放在
    新建的 RenderContext 中，可在多线程中共享同一个实例。
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.validator = PenDocumentValidator()
        self.node_renderer = PenNodeRenderer()

    # ====== 公共入口 ======

    def convert_document(self, document: Any, variable_overrides: Optional[VariableOverrides] = None) -> RenderResult:
        """编译已解析的文档；文档非法时返回空结果。"""
        try:
            return self._convert(document, variable_overrides or {})
        except PageEngineError as exc:
            logger.error(f"设计文档编译失败: {exc}")
        except Exception as exc:
            logger.exception(f"设计文档编译出现未预期的错误: {exc}")
        return RenderResult()

    def convert_file(self, path: Union[str, Path], variable_overrides: Optional[VariableOverrides] = None) -> RenderResult:
        """读取UTF-8编码的 .pen 文件并编译；文件缺失或不可读时返回空结果。"""
        document = self._load_file(path)
        if document is None:
            return RenderResult()
        return self.convert_document(document, variable_overrides)

    def convert_json(self, text: str, variable_overrides: Optional[VariableOverrides] = None) -> RenderResult:
        document = self._parse_json(text, "<json>")
        if document is None:
            return RenderResult()
        return self.convert_document(document, variable_overrides)

    def extract_variables(self, path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
        """
        列出文档声明的变量，供设置界面生成覆盖表单。

        返回 {name: {"type", "themed", "values"}}，values 的键为
        `default` 或 `mode:dark` 这样的主题限定（多个轴以 `/` 连接）。
        """
        document = self._load_file(path)
        if not isinstance(document, dict) or not isinstance(document.get("variables"), dict):
            return {}
        result: Dict[str, Dict[str, Any]] = {}
        for name, definition in document["variables"].items():
            if not isinstance(definition, dict):
                continue
            value = definition.get("value")
            entry: Dict[str, Any] = {"type": definition.get("type", "string"), "themed": False, "values": {}}
            if is_themed_value(value):
                for item in value:
                    theme = theme_of(item)
                    key = "/".join(f"{axis}:{val}" for axis, val in theme.items()) or "default"
                    entry["values"][key] = item.get("value", "")
                entry["themed"] = any(theme_of(item) for item in value)
            else:
                entry["values"]["default"] = value
            result[name] = entry
        return result

    # ====== 编译流程 ======

    def _convert(self, document: Any, overrides: VariableOverrides) -> RenderResult:
        ok, errors = self.validator.validate(document)
        if not ok:
            raise PenDocumentError(f"设计文档结构非法: {'; '.join(errors)}", {"errors": errors})

        variables = document.get("variables") or {}
        ctx = RenderContext(
            components=build_component_registry(document["children"]),
            styles=PenStyleBuilder(variables.keys()),
            variable_defaults=variable_defaults(variables),
            class_prefix=self.config.PEN_CLASS_PREFIX,
            max_ref_depth=self.config.MAX_REF_DEPTH,
        )

        html_parts: List[str] = []
        for child in document["children"]:
            if not isinstance(child, dict) or child.get("reusable"):
                continue
            html_parts.append(self.node_renderer.render_node(child, ctx, scoped=True))

        css = self._assemble_css(ctx, variables, overrides)
        logger.info(
            f"设计文档编译完成: {len(html_parts)} 个页面根, {len(ctx.components)} 个组件, "
            f"{len(ctx.css_rules)} 条CSS规则"
        )
        return RenderResult(html="".join(html_parts), css=css)

    def _assemble_css(self, ctx: RenderContext, variables: Dict[str, Any], overrides: VariableOverrides) -> str:
        parts: List[str] = [f"@import url('{url}');" for url in ctx.icon_imports.values()]
        variable_css = build_variable_css(variables, overrides)
        if variable_css:
            parts.append(variable_css)
        parts.append(f'[class^="{ctx.class_prefix}"]{{box-sizing:border-box}}')
        parts.extend(ctx.css_rules)
        return "\n".join(parts) + "\n"

    # ====== 读取 ======

    def _load_file(self, path: Union[str, Path]) -> Any:
        file_path = Path(path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error(f"无法读取设计文档 {file_path}: {exc}")
            return None
        return self._parse_json(text, str(file_path))

    @staticmethod
    def _parse_json(text: str, source: str) -> Any:
        try:
            return json.loads(text)
        except (TypeError, json.JSONDecodeError) as exc:
            logger.error(f"设计文档 {source} 不是合法JSON: {exc}")
            return None


# ====== 组件注册表 ======

def build_component_registry(children: List[Any]) -> Dict[str, Dict[str, Any]]:
    """
    递归收集 reusable 节点，按id建立注册表。

    没有子节点的容器组件不注册（对它的引用会得到 not-found 诊断）；
    id重复时保留先出现的定义。
    """
    registry: Dict[str, Dict[str, Any]] = {}
    _scan_components(children, registry)
    return registry


def _scan_components(children: Any, registry: Dict[str, Dict[str, Any]]) -> None:
    if not isinstance(children, list):
        return
    for child in children:
        if not isinstance(child, dict):
            continue
        if child.get("reusable"):
            component_id = child.get("id")
            if not isinstance(component_id, str) or not component_id:
                logger.warning("跳过缺少id的组件定义")
            elif child.get("type") in _CONTAINER_TYPES and not child.get("children"):
                logger.warning(f"组件 {component_id} 没有子节点，不予注册")
            elif component_id in registry:
                logger.warning(f"组件id重复: {component_id}，保留先出现的定义")
            else:
                registry[component_id] = child
        _scan_components(child.get("children"), registry)


# ====== 变量 ======

def variable_defaults(variables: Dict[str, Any]) -> Dict[str, str]:
    """每个变量的默认(light)取值文本，用于替换文字中的 `$--name`。"""
    defaults: Dict[str, str] = {}
    for name, definition in variables.items():
        if not isinstance(definition, dict):
            continue
        value = definition.get("value")
        var_type = definition.get("type", "string")
        if is_themed_value(value):
            for entry in value:
                if not theme_of(entry):
                    defaults[str(name)] = _format_value(var_type, entry.get("value", ""))
                    break
        elif value is not None and not isinstance(value, (list, dict)):
            defaults[str(name)] = _format_value(var_type, value)
    return defaults


def build_variable_css(variables: Dict[str, Any], overrides: Optional[VariableOverrides] = None) -> str:
    """
    变量CSS块。

    `:root{--a:1;--b:2}` 为默认值；每个主题组合一个属性选择器块，
    例如 `[data-theme-mode="dark"]{--a:3}`；覆盖值最后单独输出一个
    `:root{...}` 块，保证在任何主题下都生效且不改动基础块。
    """
    root: Dict[str, str] = {}
    themes: Dict[str, Dict[str, str]] = {}
    for name, definition in variables.items():
        if not isinstance(definition, dict):
            continue
        safe_name = variable_css_name(name)
        value = definition.get("value")
        if not safe_name or value is None:
            continue
        var_type = definition.get("type", "string")
        if is_themed_value(value):
            for entry in value:
                css_value = css_safe(_format_value(var_type, entry.get("value", ""))).strip()
                theme = theme_of(entry)
                if theme:
                    themes.setdefault(theme_selector(theme), {})[safe_name] = css_value
                else:
                    root[safe_name] = css_value
        elif isinstance(value, (list, dict)):
            logger.warning(f"变量 {name} 的取值结构无法识别，已跳过")
        else:
            root[safe_name] = css_safe(_format_value(var_type, value)).strip()

    blocks: List[str] = []
    if root:
        blocks.append(_variable_block(":root", root))
    for selector, values in themes.items():
        blocks.append(_variable_block(selector, values))

    override_values: Dict[str, str] = {}
    for name, value in (overrides or {}).items():
        safe_name = variable_css_name(name)
        if not safe_name or value is None or isinstance(value, (list, dict)):
            continue
        override_values[safe_name] = css_safe(_format_value("string", value)).strip()
    if override_values:
        blocks.append(_variable_block(":root", override_values))
    return "\n".join(blocks)


def variable_css_name(name: Any) -> str:
    """变量名（允许带 `--` 前缀）只保留字母/数字/下划线/连字符。"""
    text = str(name)
    if text.startswith("--"):
        text = text[2:]
    return _NAME_UNSAFE.sub("", text)


def theme_selector(theme: Dict[str, str]) -> str:
    """{"mode": "dark"} → `[data-theme-mode="dark"]`，多个轴直接拼接。"""
    return "".join(
        f'[data-theme-{_NAME_UNSAFE.sub("", axis)}="{_NAME_UNSAFE.sub("", value)}"]'
        for axis, value in theme.items()
    )


def _variable_block(selector: str, values: Dict[str, str]) -> str:
    return selector + "{" + ";".join(f"--{name}:{value}" for name, value in values.items()) + "}"


def _format_value(var_type: str, value: Any) -> str:
    if var_type == "boolean" or isinstance(value, bool):
        if isinstance(value, str):
            return "0" if value.strip().lower() in _FALSE_STRINGS else "1"
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return format_number(value)
    return "" if value is None else str(value)


__all__ = [
    "PenConverter",
    "build_component_registry",
    "build_variable_css",
    "variable_defaults",
    "variable_css_name",
    "theme_selector",
]
