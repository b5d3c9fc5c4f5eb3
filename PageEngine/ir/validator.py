"""
槽位数据与设计文档的结构校验器。

渲染核心不能因为上游数据的结构问题而崩溃：这里负责提前定位错误，
槽位数据按模板声明的类型做白名单式的强制转换，设计文档则在编译前
检查会导致整份文档无法渲染的致命问题。错误定位采用path语法。
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

from loguru import logger

from .schema import SLOT_KEY_PATTERN, SLOT_TYPES

if TYPE_CHECKING:
    from ..core.elements import SlotDefinition

_SLOT_KEY_RE = re.compile(SLOT_KEY_PATTERN)
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}
_MISSING = object()


class SlotDefinitionValidator:
    """
    模板槽位声明校验器（管理后台保存模板前调用）。

    规则：key 仅允许小写字母/数字/下划线且唯一；label 必填；
    type 必须是已知类型；select 需要 options；list 需要 sub_slots。
    """

    def validate(self, slots: Any) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        if not isinstance(slots, list):
            return False, ["slots 必须是数组"]
        self._validate_slot_list(slots, "slots", errors)
        return len(errors) == 0, errors

    def _validate_slot_list(self, slots: List[Any], path: str, errors: List[str]) -> None:
        seen: set = set()
        for idx, slot in enumerate(slots):
            slot_path = f"{path}[{idx}]"
            if hasattr(slot, "to_dict"):
                slot = slot.to_dict()
            if not isinstance(slot, dict):
                errors.append(f"{slot_path} 必须是对象")
                continue
            key = slot.get("key")
            if not isinstance(key, str) or not key:
                errors.append(f"{slot_path}.key 缺失")
            elif not _SLOT_KEY_RE.match(key):
                errors.append(f"{slot_path}.key 只能包含小写字母、数字和下划线: {key}")
            elif key in seen:
                errors.append(f'{slot_path}.key 重复: "{key}"')
            else:
                seen.add(key)
            if not isinstance(slot.get("label"), str) or not slot.get("label"):
                errors.append(f"{slot_path}.label 缺失")
            slot_type = slot.get("type")
            if slot_type not in SLOT_TYPES:
                errors.append(f"{slot_path}.type 不被支持: {slot_type}")
                continue
            if slot_type == "select" and not (isinstance(slot.get("options"), list) and slot.get("options")):
                errors.append(f"{slot_path}.options select类型需要非空options数组")
            if slot_type == "list":
                sub_slots = slot.get("sub_slots")
                if not isinstance(sub_slots, list) or not sub_slots:
                    errors.append(f"{slot_path}.sub_slots list类型需要非空sub_slots数组")
                else:
                    self._validate_slot_list(sub_slots, f"{slot_path}.sub_slots", errors)


class SlotDataValidator:
    """
    按模板声明强制转换实例的槽位数据。

    说明：
        - 缺失的键使用槽位 default；
        - 类型不符的值被丢弃并记录错误（白名单，而非黑名单）；
        - 模板未声明的键原样保留，动态元素补全的数据依赖这些键；
        - 非字典的槽位数据视为结构损坏，由调用方决定输出占位块。
    """

    def validate(self, slots: List[SlotDefinition], slot_data: Any) -> Tuple[bool, List[str]]:
        if not isinstance(slot_data, dict):
            return False, ["slot_data 必须是对象"]
        _, errors = self.coerce(slots, slot_data)
        return len(errors) == 0, errors

    def coerce(self, slots: List[SlotDefinition], slot_data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """返回 (转换后的新字典, 错误列表)，不修改入参。"""
        errors: List[str] = []
        result = self._coerce_mapping(slots, slot_data, "slot_data", errors)
        return result, errors

    # ======== 内部工具 ========

    def _coerce_mapping(
        self,
        slots: List[SlotDefinition],
        data: Dict[str, Any],
        path: str,
        errors: List[str],
    ) -> Dict[str, Any]:
        declared = {slot.key for slot in slots}
        result: Dict[str, Any] = {key: value for key, value in data.items() if key not in declared}
        for slot in slots:
            raw = data.get(slot.key, _MISSING)
            if raw is _MISSING or raw is None:
                if slot.default is not None:
                    result[slot.key] = slot.default
                elif slot.required:
                    errors.append(f"{path}.{slot.key} 缺失（必填）")
                continue
            value = self._coerce_value(slot, raw, f"{path}.{slot.key}", errors)
            if value is not _MISSING:
                result[slot.key] = value
            elif slot.default is not None:
                result[slot.key] = slot.default
        return result

    def _coerce_value(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        handler = getattr(self, f"_coerce_{slot.type}", None)
        if handler is None:
            errors.append(f"{path} 槽位类型未知: {slot.type}")
            return _MISSING
        value = handler(slot, raw, path, errors)
        if value is _MISSING:
            logger.debug(f"丢弃非法槽位值 {path}: {raw!r}")
        return value

    def _coerce_text(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        if isinstance(raw, str):
            return raw
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return str(raw)
        errors.append(f"{path} 需要字符串")
        return _MISSING

    _coerce_richtext = _coerce_text
    _coerce_image = _coerce_text

    def _coerce_select(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        value = self._coerce_text(slot, raw, path, errors)
        if value is _MISSING:
            return value
        if slot.options and value not in slot.options:
            errors.append(f"{path} 取值不在options中: {value}")
            return _MISSING
        return value

    def _coerce_boolean(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)):
            return raw != 0
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        errors.append(f"{path} 需要布尔值")
        return _MISSING

    def _coerce_number(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        if isinstance(raw, bool):
            errors.append(f"{path} 需要数值")
            return _MISSING
        if isinstance(raw, (int, float)):
            return raw
        if isinstance(raw, str):
            try:
                number = float(raw.strip())
            except ValueError:
                errors.append(f"{path} 需要数值")
                return _MISSING
            return int(number) if number.is_integer() else number
        errors.append(f"{path} 需要数值")
        return _MISSING

    def _coerce_link(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        if not isinstance(raw, dict):
            errors.append(f"{path} 需要对象")
            return _MISSING
        link = dict(raw)
        for key in ("url", "text", "target"):
            if key in link and not isinstance(link[key], str):
                link[key] = "" if link[key] is None else str(link[key])
        return link

    def _coerce_object(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        if not isinstance(raw, dict):
            errors.append(f"{path} 需要对象")
            return _MISSING
        if slot.sub_slots:
            return self._coerce_mapping(slot.sub_slots, raw, path, errors)
        return dict(raw)

    def _coerce_list(self, slot: SlotDefinition, raw: Any, path: str, errors: List[str]) -> Any:
        if not isinstance(raw, list):
            errors.append(f"{path} 需要数组")
            return _MISSING
        if not slot.sub_slots:
            return list(raw)
        items: List[Any] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, dict):
                errors.append(f"{path}[{idx}] 需要对象")
                continue
            items.append(self._coerce_mapping(slot.sub_slots, item, f"{path}[{idx}]", errors))
        return items


class PenDocumentValidator:
    """
    设计文档(.pen)致命错误校验。

    只检查会让整份文档失去意义的问题：根不是对象、缺少children数组、
    主题变量没有唯一的默认值。组件无子节点、引用无法解析等局部问题
    由编译器就地降级处理，不在此报错。
    """

    def validate(self, document: Any) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        if not isinstance(document, dict):
            return False, ["document 必须是对象"]
        if not isinstance(document.get("children"), list):
            errors.append("document.children 必须是数组")
        variables = document.get("variables")
        if variables is not None:
            if not isinstance(variables, dict):
                errors.append("document.variables 必须是对象")
            else:
                for name, definition in variables.items():
                    self._validate_variable(name, definition, f"variables.{name}", errors)
        return len(errors) == 0, errors

    def _validate_variable(self, name: str, definition: Any, path: str, errors: List[str]) -> None:
        if not isinstance(definition, dict):
            errors.append(f"{path} 必须是对象")
            return
        value = definition.get("value")
        if not is_themed_value(value):
            return
        defaults = sum(1 for entry in value if not theme_of(entry))
        if defaults == 0:
            errors.append(f"{path} 缺少默认(light)取值")
        elif defaults > 1:
            errors.append(f"{path} 存在 {defaults} 个默认取值，只允许一个")


def is_themed_value(value: Any) -> bool:
    """变量取值是否为 [{theme, value}, ...] 形式的主题化列表。"""
    return isinstance(value, list) and bool(value) and all(isinstance(entry, dict) for entry in value)


def theme_of(entry: Dict[str, Any]) -> Dict[str, str]:
    """提取主题限定，空字典代表默认(light)取值。"""
    theme = entry.get("theme")
    if not isinstance(theme, dict):
        return {}
    return {str(axis): str(val) for axis, val in theme.items() if val not in (None, "")}


__all__ = [
    "SlotDefinitionValidator",
    "SlotDataValidator",
    "PenDocumentValidator",
    "is_themed_value",
    "theme_of",
]
