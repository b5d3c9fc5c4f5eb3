"""
动态元素的数据补全。

大多数元素是纯模板（槽位数据即用户输入）；动态元素在渲染前由提供者
把实时内容注入槽位数据。提供者以注入方式获得数据源，本模块不做任何
远程或数据库访问。
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from loguru import logger

from ..utils.config import Settings, settings
from ..utils.errors import EnrichmentError

# 提供者：接收槽位数据副本，返回补全后的槽位数据
Provider = Callable[[Dict[str, Any]], Dict[str, Any]]

RECENT_POSTS_COUNTS = (3, 6, 9, 12)
EXCERPT_LENGTH = 160
_TAG_RE = re.compile(r"<[^>]*>")


@runtime_checkable
class DynamicEnricher(Protocol):
    def is_dynamic(self, slug: str) -> bool:
        ...

    def enrich(self, slug: str, slot_data: Dict[str, Any]) -> Dict[str, Any]:
        ...


class DynamicElementRegistry:
    """slug → 提供者 的注册表，实现 DynamicEnricher 协议。"""

    def __init__(self):
        self._providers: Dict[str, Provider] = {}

    def register(self, slug: str, provider: Provider) -> None:
        self._providers[slug] = provider

    def is_dynamic(self, slug: str) -> bool:
        return slug in self._providers

    def enrich(self, slug: str, slot_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        调用slug对应的提供者。

        未注册的slug原样返回槽位数据；提供者抛出的异常统一包装为
        EnrichmentError，由页面渲染器降级为未补全的数据。
        """
        provider = self._providers.get(slug)
        if provider is None:
            return slot_data
        try:
            enriched = provider(dict(slot_data))
        except EnrichmentError:
            raise
        except Exception as exc:
            raise EnrichmentError(f"动态元素 {slug} 数据补全失败: {exc}", {"slug": slug}) from exc
        if not isinstance(enriched, Mapping):
            raise EnrichmentError(f"动态元素 {slug} 的提供者返回了非字典结果", {"slug": slug})
        return dict(enriched)


class RecentPostsProvider:
    """
    recent-posts 元素的提供者。

    `fetch_posts(limit)` 由调用方注入，返回已发布文章的字典序列（按发布时间
    倒序），字段：title / slug / featured_image / excerpt / body /
    published_at / created_at / author_name。
    """

    def __init__(self, fetch_posts: Callable[[int], Iterable[Mapping]], config: Optional[Settings] = None):
        self.fetch_posts = fetch_posts
        self.config = config or settings

    def __call__(self, slot_data: Dict[str, Any]) -> Dict[str, Any]:
        count = self._normalize_count(slot_data.get("count"))
        posts = [self._format_post(post) for post in self.fetch_posts(count) if isinstance(post, Mapping)]
        logger.debug(f"recent-posts 补全 {len(posts)} 篇文章 (count={count})")
        slot_data["posts"] = posts[:count]
        return slot_data

    def _normalize_count(self, raw: Any) -> int:
        default = self.config.RECENT_POSTS_DEFAULT_COUNT
        try:
            count = int(raw) if raw is not None and not isinstance(raw, bool) else default
        except (TypeError, ValueError):
            return default
        return count if count in RECENT_POSTS_COUNTS else default

    def _format_post(self, post: Mapping) -> Dict[str, Any]:
        excerpt = post.get("excerpt") or ""
        if not excerpt:
            excerpt = _TAG_RE.sub("", str(post.get("body") or ""))[:EXCERPT_LENGTH]
        return {
            "title": post.get("title") or "",
            "slug": post.get("slug") or "",
            "featured_image": post.get("featured_image") or "",
            "excerpt": excerpt,
            "formatted_date": format_post_date(post.get("published_at") or post.get("created_at")),
            "author_name": post.get("author_name") or "Unknown",
        }


def format_post_date(value: Any) -> str:
    """`2024-03-05 10:00:00` → `Mar 5, 2024`；无法解析时返回空串。"""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value.strip():
        try:
            moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"无法解析的文章日期: {value!r}")
            return ""
    else:
        return ""
    return f"{moment:%b} {moment.day}, {moment.year}"


def build_default_registry(fetch_posts: Optional[Callable[[int], Iterable[Mapping]]] = None) -> DynamicElementRegistry:
    """注册内置提供者；未给出文章数据源时 recent-posts 补全为空列表。"""
    registry = DynamicElementRegistry()
    registry.register("recent-posts", RecentPostsProvider(fetch_posts or _no_posts))
    return registry


def _no_posts(limit: int) -> List[Mapping]:
    return []


__all__ = [
    "DynamicEnricher",
    "DynamicElementRegistry",
    "RecentPostsProvider",
    "build_default_registry",
    "format_post_date",
    "RECENT_POSTS_COUNTS",
]
