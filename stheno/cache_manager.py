"""Cache facade for Stheno builds.

The CacheManager composes the content, template and render caches and gives
the build orchestrator one object to feed, query and invalidate. It is an
ordinary instance: create one at the start of a build, pass it to whatever
needs it, and clear it when the build is done if memory matters.

Render keys follow one scheme throughout: ``"<kind>:<slug>"`` as produced by
``page_key``/``post_key``. Content invalidation relies on it, because it
purges render entries whose key contains the slug.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .cache import DEFAULT_RENDER_CACHE_CAPACITY, ContentCache, RenderCache, TemplateCache
from .content import Page, Post
from .templates import Template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStatistics:
    """Read-only snapshot of all three caches.

    Attributes:
        content_cache_size: Number of cached content records.
        template_cache_size: Number of template entries, tombstoned included.
        render_cache_size: Number of cached render results.
        render_hits: Render cache lookups that found an entry.
        render_misses: Render cache lookups that found nothing.
    """

    content_cache_size: int
    template_cache_size: int
    render_cache_size: int
    render_hits: int
    render_misses: int

    @property
    def render_hit_ratio(self) -> float:
        total = self.render_hits + self.render_misses
        return self.render_hits / total if total else 0.0


class CacheManager:
    """Facade over the content, template and render caches.

    Attributes:
        content_cache: Parsed pages and posts.
        template_cache: Templates and their dependency graph.
        render_cache: Rendered output.
    """

    def __init__(self, render_cache_capacity: int = DEFAULT_RENDER_CACHE_CAPACITY):
        """Initialize empty caches.

        Args:
            render_cache_capacity: Maximum number of render results kept.
        """
        self.content_cache = ContentCache()
        self.template_cache = TemplateCache()
        self.render_cache = RenderCache(render_cache_capacity)

    @staticmethod
    def page_key(slug: str) -> str:
        return f"page:{slug}"

    @staticmethod
    def post_key(slug: str) -> str:
        return f"post:{slug}"

    # Content

    def cache_page(self, key: str, page: Page) -> None:
        self.content_cache.put(key, page)
        logger.debug("Cached page %s", key)

    def get_page(self, key: str) -> Page | None:
        content = self.content_cache.get(key)
        # Post subclasses Page; a post is not reported as a page.
        return content if type(content) is Page else None

    def cache_post(self, key: str, post: Post) -> None:
        self.content_cache.put(key, post)
        logger.debug("Cached post %s", key)

    def get_post(self, key: str) -> Post | None:
        content = self.content_cache.get(key)
        return content if isinstance(content, Post) else None

    def is_content_valid(self, key: str, last_modified: datetime) -> bool:
        return self.content_cache.is_valid(key, last_modified)

    def is_content_stale(self, key: str, current_time: datetime) -> bool:
        return not self.content_cache.is_valid(key, current_time)

    # Templates

    def cache_template(self, name: str, template: Template) -> None:
        """Cache a template; its partial dependencies are recorded automatically."""
        self.template_cache.put(name, template)
        logger.debug(
            "Cached template %s (dependencies: %s)",
            name,
            ", ".join(sorted(template.dependencies)) or "none",
        )

    def get_template(self, name: str) -> Template | None:
        return self.template_cache.get(name)

    def add_template_dependency(self, template: str, dependency: str) -> None:
        self.template_cache.add_dependency(template, dependency)

    def is_template_valid(self, name: str, last_modified: datetime) -> bool:
        return self.template_cache.is_valid(name, last_modified)

    def template_count(self) -> int:
        return self.template_cache.size()

    # Rendered output

    def cache_rendered(self, key: str, content: str, timestamp: datetime | None = None) -> None:
        self.render_cache.put(key, content, timestamp)
        logger.debug("Cached render result %s", key)

    def get_rendered(self, key: str, as_of: datetime | None = None) -> str | None:
        """Return rendered output, treating entries older than ``as_of`` as misses."""
        return self.render_cache.get(key, as_of)

    def is_render_valid(self, key: str, last_modified: datetime) -> bool:
        return self.render_cache.is_valid(key, last_modified)

    # Invalidation

    def invalidate_content_and_related(self, key: str) -> None:
        """Drop a content record and every render entry whose key contains ``key``."""
        self.content_cache.remove(key)
        removed = self.render_cache.invalidate_by_pattern(f"*{key}*")
        logger.debug("Invalidated content %s and %d render entries", key, removed)

    def invalidate_template_and_dependents(self, template_name: str) -> None:
        """Tombstone a template and its direct dependents, then empty the render cache.

        Render keys do not record which template produced them, so every
        render entry is dropped. Hit/miss counters are kept.
        """
        affected = self.template_cache.invalidate_dependents(template_name)
        removed = self.render_cache.invalidate_by_pattern("*")
        logger.debug(
            "Invalidated templates %s and %d render entries",
            ", ".join(sorted(affected)),
            removed,
        )

    def clear_all(self) -> None:
        self.content_cache.clear()
        self.template_cache.clear()
        self.render_cache.clear()
        logger.info("Cleared all caches")

    def warm_up(
        self,
        pages: Iterable[Page] = (),
        posts: Iterable[Post] = (),
        templates: Iterable[Template] = (),
    ) -> None:
        """Register a batch of already-loaded records at build start.

        Pages and posts are keyed by slug, templates by name.
        """
        page_count = post_count = template_count = 0
        for page in pages:
            self.content_cache.put(page.slug, page)
            page_count += 1
        for post in posts:
            self.content_cache.put(post.slug, post)
            post_count += 1
        for template in templates:
            self.template_cache.put(template.name, template)
            template_count += 1
        logger.info(
            "Cache warm-up complete: %d pages, %d posts, %d templates",
            page_count,
            post_count,
            template_count,
        )

    def get_statistics(self) -> CacheStatistics:
        render_stats = self.render_cache.statistics()
        return CacheStatistics(
            content_cache_size=self.content_cache.size(),
            template_cache_size=self.template_cache.size(),
            render_cache_size=render_stats.total_entries,
            render_hits=render_stats.hit_count,
            render_misses=render_stats.miss_count,
        )
