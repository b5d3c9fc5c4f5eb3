"""
元素模板 / 元素实例 / 页面 的值对象。

这些结构由外部（管理后台、数据库行、JSON）一次性交给渲染核心，
渲染期间只读。`from_dict` 同时兼容 camelCase 的 JSON 键与
snake_case 的数据库列名，JSON字符串形式的列会在这里解码。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger


def _first(payload: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """按顺序返回第一个存在的键值。"""
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _decode_json_column(value: Any, label: str) -> Any:
    """
    解码数据库中以JSON字符串保存的列。

    解码失败时原样返回字符串，交由上层判定为结构错误，而不是在此抛出。
    """
    if not isinstance(value, str):
        return value
    if not value.strip():
        return {}
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        logger.warning(f"{label} 不是合法JSON，保留原始值: {exc}")
        return value


@dataclass
class SlotDefinition:
    """模板声明的一个槽位。"""

    key: str
    label: str = ""
    type: str = "text"
    required: bool = False
    default: Any = None
    options: List[str] = field(default_factory=list)
    sub_slots: List["SlotDefinition"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SlotDefinition":
        sub_slots = _first(payload, "sub_slots", "subSlots", default=[]) or []
        return cls(
            key=str(payload.get("key", "")),
            label=str(payload.get("label") or payload.get("key", "")),
            type=str(payload.get("type") or "text"),
            required=bool(payload.get("required", False)),
            default=payload.get("default"),
            options=[str(opt) for opt in payload.get("options") or []],
            sub_slots=[cls.from_dict(sub) for sub in sub_slots if isinstance(sub, dict)],
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "required": self.required,
        }
        if self.default is not None:
            data["default"] = self.default
        if self.options:
            data["options"] = list(self.options)
        if self.sub_slots:
            data["sub_slots"] = [sub.to_dict() for sub in self.sub_slots]
        return data


@dataclass
class ElementTemplate:
    """
    目录中的可复用元素模板。

    `html_template` 使用槽位模板语法，`css` 为模板自带的目录样式，
    在整页CSS中按slug去重后输出一次。
    """

    id: int
    slug: str
    name: str = ""
    html_template: str = ""
    css: str = ""
    slots: List[SlotDefinition] = field(default_factory=list)
    version: int = 1
    active: bool = True
    category: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ElementTemplate":
        """兼容数据库行（slots_json/status）与JSON（slots/active）两种形态。"""
        raw_slots = _decode_json_column(_first(payload, "slots", "slots_json", default=[]), "slots_json")
        slots = [SlotDefinition.from_dict(s) for s in raw_slots if isinstance(s, dict)] if isinstance(raw_slots, list) else []
        if "active" in payload:
            active = bool(payload["active"])
        else:
            active = str(payload.get("status", "active")) == "active"
        return cls(
            id=int(_first(payload, "id", "element_id", default=0) or 0),
            slug=str(payload.get("slug", "")),
            name=str(payload.get("name", "")),
            html_template=str(_first(payload, "html_template", "htmlTemplate", "template", default="")),
            css=str(payload.get("css") or ""),
            slots=slots,
            version=int(payload.get("version", 1) or 1),
            active=active,
            category=str(payload.get("category") or ""),
            description=str(payload.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "html_template": self.html_template,
            "css": self.css,
            "slots": [slot.to_dict() for slot in self.slots],
            "version": self.version,
            "active": self.active,
            "category": self.category,
            "description": self.description,
        }


@dataclass
class ElementInstance:
    """
    元素模板在页面上的一次放置。

    `slot_data` 可能因上游数据损坏而不是字典，渲染器会据此输出占位块。
    """

    instance_id: Any
    slug: str
    slot_data: Any = field(default_factory=dict)
    style_data: Dict[str, Any] = field(default_factory=dict)
    sort_order: int = 0

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ElementInstance":
        slot_data = _decode_json_column(
            _first(payload, "slotData", "slot_data", "slot_data_json", default={}),
            "slot_data_json",
        )
        style_data = _decode_json_column(
            _first(payload, "styleData", "style_data", "style_data_json", default={}),
            "style_data_json",
        )
        if not isinstance(style_data, dict):
            style_data = {}
        return cls(
            instance_id=_first(payload, "instanceId", "instance_id", "id", default=0),
            slug=str(payload.get("slug", "")),
            slot_data=slot_data,
            style_data=style_data,
            sort_order=int(_first(payload, "sortOrder", "sort_order", default=0) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instanceId": self.instance_id,
            "slug": self.slug,
            "slotData": self.slot_data,
            "styleData": self.style_data,
            "sortOrder": self.sort_order,
        }


@dataclass
class Page:
    """一次渲染所消费的页面快照：有序实例 + 布局元数据。"""

    instances: List[ElementInstance] = field(default_factory=list)
    layout_id: Optional[str] = None
    theme_override: Optional[str] = None
    page_style: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Page":
        raw_instances = _first(payload, "instances", "elements", default=[]) or []
        page_style = _decode_json_column(_first(payload, "pageStyle", "page_style", default={}), "page_style")
        return cls(
            instances=[
                item if isinstance(item, ElementInstance) else ElementInstance.from_dict(item)
                for item in raw_instances
                if isinstance(item, (dict, ElementInstance))
            ],
            layout_id=_first(payload, "layoutId", "layout_id", "layout"),
            theme_override=_first(payload, "themeOverride", "theme_override"),
            page_style=page_style if isinstance(page_style, dict) else {},
        )

    def ordered_instances(self) -> List[ElementInstance]:
        """按sort_order稳定排序，保持同序号实例的原始顺序。"""
        return sorted(self.instances, key=lambda inst: inst.sort_order)


@dataclass
class RenderResult:
    """渲染产物：HTML片段 + CSS文本，由调用方决定如何嵌入响应。"""

    html: str = ""
    css: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.html and not self.css

    def to_dict(self) -> Dict[str, str]:
        return {"html": self.html, "css": self.css}


__all__ = [
    "SlotDefinition",
    "ElementTemplate",
    "ElementInstance",
    "Page",
    "RenderResult",
]
