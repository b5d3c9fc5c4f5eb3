"""
元素目录协作者。

页面渲染器不直接访问数据库，只通过 `ElementCatalogue.get(slug)` 取模板；
生产环境由调用方提供持久化实现，这里给出内存实现与初始目录。
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol, Union, runtime_checkable

from loguru import logger

from ..ir import SlotDefinitionValidator
from .elements import ElementTemplate
from .seed_elements import seed_definitions


@runtime_checkable
class ElementCatalogue(Protocol):
    """按slug查找元素模板；不存在时返回None。"""

    def get(self, slug: str) -> Optional[ElementTemplate]:
        ...


class InMemoryCatalogue:
    """
    基于字典的元素目录。

    注册时校验槽位声明，声明非法的模板仍然入库（渲染阶段按已有声明
    尽力强制转换），但会记录告警，方便在后台定位问题模板。
    """

    def __init__(self, templates: Optional[Iterable[Union[ElementTemplate, Dict[str, Any]]]] = None):
        self._templates: Dict[str, ElementTemplate] = {}
        self._slot_validator = SlotDefinitionValidator()
        for template in templates or []:
            self.add(template)

    def add(self, template: Union[ElementTemplate, Dict[str, Any]]) -> ElementTemplate:
        """注册（或替换同slug的）模板，返回注册后的对象。"""
        if not isinstance(template, ElementTemplate):
            template = ElementTemplate.from_dict(template)
        ok, errors = self._slot_validator.validate(template.slots)
        if not ok:
            logger.warning(f"元素 {template.slug} 的槽位声明存在问题: {errors}")
        if template.slug in self._templates:
            logger.debug(f"替换已注册的元素模板: {template.slug}")
        self._templates[template.slug] = template
        return template

    def get(self, slug: str) -> Optional[ElementTemplate]:
        return self._templates.get(slug)

    def slugs(self) -> List[str]:
        return list(self._templates)

    def __contains__(self, slug: object) -> bool:
        return slug in self._templates

    def __len__(self) -> int:
        return len(self._templates)


def seed_catalogue() -> InMemoryCatalogue:
    """载入全部初始元素的内存目录。"""
    catalogue = InMemoryCatalogue(seed_definitions())
    logger.debug(f"初始元素目录已载入 {len(catalogue)} 个模板")
    return catalogue


__all__ = ["ElementCatalogue", "InMemoryCatalogue", "seed_catalogue"]
