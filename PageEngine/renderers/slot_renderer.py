"""
元素槽位的轻量 Mustache 风格模板引擎。

语法：
    {{key}}              HTML转义后输出
    {{{key}}}            原样输出（仅用于可信的富文本槽位）
    {{#key}}...{{/key}}  区块：真值时渲染一次；数组时逐项循环
    {{^key}}...{{/key}}  反向区块：假值/缺失时渲染
    {{key.sub}}          点号路径访问嵌套字典
    {{.}}                循环中当前的标量元素

模板先被解析为不可变的节点序列（文本 / 变量 / 区块），再由解释器
在作用域栈上求值，而不是多轮字符串替换，保证嵌套与转义的正确性。
"""

from __future__ import annotations

import html
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, List, Optional, Sequence, Tuple, Union

from loguru import logger

from ..utils.errors import TemplateSyntaxError

# 解析表达式只接受 [\w.] 组成的键名，其它形式的 {{...}} 一律当作普通文本。
_TAG_PATTERN = re.compile(
    r"""
    \{\{\{\s*(?P<raw>[\w.]+)\s*\}\}\}         # {{{key}}}
    |
    \{\{\s*(?P<sigil>[\#^/]?)\s*(?P<key>[\w.]+)\s*\}\}   # {{key}} / {{#key}} / {{^key}} / {{/key}}
    """,
    re.VERBOSE,
)


# ====== 节点 ======

@dataclass(frozen=True)
class TextNode:
    text: str


@dataclass(frozen=True)
class VariableNode:
    key: str
    raw: bool = False


@dataclass(frozen=True)
class SectionNode:
    key: str
    inverted: bool = False
    children: Tuple["Node", ...] = ()


Node = Union[TextNode, VariableNode, SectionNode]


@dataclass
class _OpenSection:
    """解析期间尚未闭合的区块。"""

    key: str
    inverted: bool
    start: int
    children: List[Node] = field(default_factory=list)


# ====== 公共工具 ======

def escape(value: Any) -> str:
    """HTML实体转义，覆盖 < > & " ' 五个字符。"""
    return html.escape(value if isinstance(value, str) else stringify(value), quote=True)


def unescape(value: str) -> str:
    """escape的逆操作。"""
    return html.unescape(value)


def is_truthy(value: Any) -> bool:
    """
    区块求值使用的真值规则。

    假值：缺失/None、False、0 与 0.0、空字符串、空数组、空字典。
    其余一律为真，包括字符串 "0" 与纯空白字符串。
    """
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, Mapping, list, tuple)):
        return len(value) > 0
    return bool(value)


def stringify(value: Any) -> str:
    """把槽位值转换为输出文本；数组与字典不直接输出。"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return ""
    return str(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


# ====== 解析 ======

def parse_template(template: str, strict: bool = False) -> Tuple[Node, ...]:
    """
    将模板文本解析为节点序列。

    非严格模式下：
        - 与当前最内层区块不匹配的闭合标签按普通文本输出；
        - 未闭合的区块：最外层未闭合的开标签及其后的全部内容按普通文本输出。
    严格模式下上述两种情况抛出 TemplateSyntaxError，供模板保存前校验。
    """
    root: List[Node] = []
    stack: List[_OpenSection] = []
    pos = 0

    for match in _TAG_PATTERN.finditer(template):
        current = stack[-1].children if stack else root
        if match.start() > pos:
            current.append(TextNode(template[pos:match.start()]))
        pos = match.end()

        if match.group("raw") is not None:
            current.append(VariableNode(match.group("raw"), raw=True))
            continue

        sigil = match.group("sigil")
        key = match.group("key")
        if sigil in ("#", "^"):
            stack.append(_OpenSection(key=key, inverted=sigil == "^", start=match.start()))
        elif sigil == "/":
            if stack and stack[-1].key == key:
                section = stack.pop()
                node = SectionNode(section.key, section.inverted, tuple(section.children))
                (stack[-1].children if stack else root).append(node)
            else:
                if strict:
                    raise TemplateSyntaxError(
                        f"闭合标签 {{{{/{key}}}}} 没有匹配的开标签",
                        {"offset": match.start()},
                    )
                current.append(TextNode(match.group(0)))
        else:
            current.append(VariableNode(key))

    if stack:
        outer = stack[0]
        if strict:
            raise TemplateSyntaxError(
                f"区块 {{{{#{outer.key}}}}} 未闭合",
                {"offset": outer.start},
            )
        logger.warning(f"槽位模板中区块 {outer.key} 未闭合，剩余内容按文本输出")
        # 区块未闭合期间不会有节点写入root，root即为开标签之前的全部内容
        root.append(TextNode(template[outer.start:]))
    elif pos < len(template):
        root.append(TextNode(template[pos:]))

    return tuple(root)


@lru_cache(maxsize=512)
def _parse_cached(template: str) -> Tuple[Node, ...]:
    return parse_template(template)


# ====== 渲染 ======

class SlotRenderer:
    """
    槽位模板解释器。

    无内部可变状态，同一实例可以被多个请求线程并发调用；
    解析结果按模板文本缓存，节点不可变，缓存跨线程共享是安全的。
    """

    def render(self, template: str, values: Optional[Mapping] = None) -> str:
        """使用给定的槽位数据渲染模板，缺失键输出空串而不是报错。"""
        if not template:
            return ""
        nodes = _parse_cached(template)
        scopes: List[Any] = [values if isinstance(values, Mapping) else {}]
        return self._render_nodes(nodes, scopes)

    def parse(self, template: str, strict: bool = False) -> Tuple[Node, ...]:
        if strict:
            return parse_template(template, strict=True)
        return _parse_cached(template)

    def validate_template(self, template: str) -> Tuple[bool, List[str]]:
        """严格解析模板，返回(是否通过, 错误列表)。"""
        try:
            parse_template(template, strict=True)
        except TemplateSyntaxError as exc:
            return False, [str(exc)]
        return True, []

    def _render_nodes(self, nodes: Sequence[Node], scopes: List[Any]) -> str:
        parts: List[str] = []
        for node in nodes:
            if isinstance(node, TextNode):
                parts.append(node.text)
            elif isinstance(node, VariableNode):
                value = self.lookup(node.key, scopes)
                parts.append(stringify(value) if node.raw else escape(value))
            else:
                parts.append(self._render_section(node, scopes))
        return "".join(parts)

    def _render_section(self, node: SectionNode, scopes: List[Any]) -> str:
        value = self.lookup(node.key, scopes)
        if node.inverted:
            return "" if is_truthy(value) else self._render_nodes(node.children, scopes)
        if _is_sequence(value):
            return "".join(self._render_nodes(node.children, scopes + [item]) for item in value)
        if is_truthy(value):
            return self._render_nodes(node.children, scopes)
        return ""

    @staticmethod
    def lookup(key: str, scopes: Sequence[Any]) -> Any:
        """
        沿作用域栈由内向外查找首段键名，再按点号路径逐段深入。

        任一中间段缺失都返回None，不抛异常。
        """
        if key == ".":
            return scopes[-1] if scopes else None
        head, *rest = key.split(".")
        value: Any = None
        for scope in reversed(scopes):
            if isinstance(scope, Mapping) and head in scope:
                value = scope[head]
                break
        else:
            return None
        for part in rest:
            if isinstance(value, Mapping) and part in value:
                value = value[part]
            elif _is_sequence(value) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                return None
        return value


_default_renderer = SlotRenderer()


def render(template: str, values: Optional[Mapping] = None) -> str:
    """模块级便捷入口，等价于 SlotRenderer().render。"""
    return _default_renderer.render(template, values)


__all__ = [
    "SlotRenderer",
    "TextNode",
    "VariableNode",
    "SectionNode",
    "parse_template",
    "render",
    "escape",
    "unescape",
    "is_truthy",
    "stringify",
]
