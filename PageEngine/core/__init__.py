"""
Page Engine 核心数据结构与协作者。

包含元素/实例/页面值对象、元素目录以及动态元素补全注册表。
"""

from .elements import ElementInstance, ElementTemplate, Page, RenderResult, SlotDefinition
from .catalogue import ElementCatalogue, InMemoryCatalogue, seed_catalogue
from .dynamic_elements import (
    DynamicElementRegistry,
    DynamicEnricher,
    RecentPostsProvider,
    build_default_registry,
)

__all__ = [
    "SlotDefinition",
    "ElementTemplate",
    "ElementInstance",
    "Page",
    "RenderResult",
    "ElementCatalogue",
    "InMemoryCatalogue",
    "seed_catalogue",
    "DynamicEnricher",
    "DynamicElementRegistry",
    "RecentPostsProvider",
    "build_default_registry",
]
