"""In-memory caches for incremental rendering.

Three caches decide what a build can reuse:

- ContentCache: parsed Page/Post records keyed by slug, stamped with the
  record's own modification time.
- TemplateCache: templates keyed by name with a dependency graph and
  logical invalidation (tombstones).
- RenderCache: rendered output under caller-chosen keys, bounded in size with
  oldest-entry eviction and hit/miss counters.

Every cache guards its maps with its own lock. There is no transaction across
caches, so a reader may briefly see content invalidated while the matching
render entries are still present.
"""

from __future__ import annotations

import hashlib
import json
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from .protocols import ContentRecord
from .templates import Template

T = TypeVar("T")

DEFAULT_RENDER_CACHE_CAPACITY = 1000


def normalize_timestamp(value: datetime) -> datetime:
    """Return a naive local-time datetime comparable with any other timestamp.

    Naive values are taken to be local time already; aware values are
    converted to local time and stripped of their zone.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone().replace(tzinfo=None)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the timestamp validity checks compare against."""

    value: T
    timestamp: datetime


class ContentCache:
    """Unbounded cache of parsed content records."""

    def __init__(self):
        self._entries: dict[str, CacheEntry[ContentRecord]] = {}
        self._lock = threading.RLock()

    def put(self, key: str, content: ContentRecord, timestamp: datetime | None = None) -> None:
        """Store a record.

        Args:
            key: Logical key, usually the slug.
            content: Parsed record.
            timestamp: Validity timestamp; defaults to the record's
                ``last_modified``.
        """
        stamp = normalize_timestamp(timestamp if timestamp is not None else content.last_modified)
        with self._lock:
            self._entries[key] = CacheEntry(content, stamp)

    def get(self, key: str) -> ContentRecord | None:
        with self._lock:
            entry = self._entries.get(key)
        return entry.value if entry else None

    def is_valid(self, key: str, threshold: datetime) -> bool:
        """Return True when the entry exists and is not older than ``threshold``."""
        with self._lock:
            entry = self._entries.get(key)
        return entry is not None and entry.timestamp >= normalize_timestamp(threshold)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)


class TemplateCache:
    """Template cache with dependency tracking and tombstones.

    A tombstoned entry stays in the main map but ``get`` reports it as absent
    until the name is written again with ``put``.
    """

    def __init__(self):
        self._entries: dict[str, CacheEntry[Template]] = {}
        # Partial edges are derived from the source on every put; edges added
        # through add_dependency survive re-puts until remove or clear.
        self._dependencies: dict[str, set[str]] = {}
        self._added_dependencies: dict[str, set[str]] = {}
        self._invalidated: dict[str, datetime] = {}
        self._lock = threading.RLock()

    def put(self, name: str, template: Template) -> None:
        """Store a template, record its partial dependencies and clear any tombstone."""
        with self._lock:
            self._entries[name] = CacheEntry(template, datetime.now())
            self._dependencies[name] = set(template.dependencies)
            self._invalidated.pop(name, None)

    def get(self, name: str) -> Template | None:
        with self._lock:
            entry = self._entries.get(name)
            if entry is None or name in self._invalidated:
                return None
            return entry.value

    def get_template(self, name: str) -> Template | None:
        return self.get(name)

    def is_valid(self, name: str, threshold: datetime) -> bool:
        with self._lock:
            entry = self._entries.get(name)
            if entry is None or name in self._invalidated:
                return False
            return entry.timestamp >= normalize_timestamp(threshold)

    def add_dependency(self, dependent: str, dependency: str) -> None:
        """Record that ``dependent`` includes ``dependency``."""
        with self._lock:
            self._added_dependencies.setdefault(dependent, set()).add(dependency)

    def dependencies(self, name: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._dependencies.get(name, ())) | frozenset(
                self._added_dependencies.get(name, ())
            )

    def dependents(self, name: str) -> frozenset[str]:
        """Return the templates whose dependency set contains ``name``."""
        with self._lock:
            names = set(self._dependencies) | set(self._added_dependencies)
            return frozenset(
                dependent for dependent in names if name in self.dependencies(dependent)
            )

    def invalidate_dependents(self, name: str) -> frozenset[str]:
        """Tombstone ``name`` and every template that directly depends on it.

        Only one hop of the graph is walked.

        Returns:
            The names that were tombstoned.
        """
        now = datetime.now()
        with self._lock:
            affected = set(self.dependents(name))
            affected.add(name)
            for target in affected:
                self._invalidated[target] = now
        return frozenset(affected)

    def is_invalidated(self, name: str) -> bool:
        with self._lock:
            return name in self._invalidated

    def remove(self, name: str) -> None:
        """Physically delete the entry, its dependency edges and its tombstone."""
        with self._lock:
            self._entries.pop(name, None)
            self._dependencies.pop(name, None)
            self._added_dependencies.pop(name, None)
            self._invalidated.pop(name, None)

    def names(self) -> list[str]:
        """Return the names of all entries, tombstoned ones included."""
        with self._lock:
            return sorted(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._dependencies.clear()
            self._added_dependencies.clear()
            self._invalidated.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class RenderCacheStatistics:
    """Snapshot of render cache counters."""

    total_entries: int
    hit_count: int
    miss_count: int

    @property
    def hit_ratio(self) -> float:
        total = self.hit_count + self.miss_count
        return self.hit_count / total if total else 0.0


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a glob with ``*`` wildcards into a whole-key regex.

    Everything except ``*`` matches literally.
    """
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.DOTALL)


class RenderCache:
    """Size-bounded cache of rendered output.

    When a new key arrives at capacity, the entry with the smallest timestamp
    is evicted. Finding it is a linear scan, which is fine for the default
    capacity but grows with it.

    Attributes:
        capacity: Maximum number of entries.
    """

    def __init__(self, capacity: int = DEFAULT_RENDER_CACHE_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: dict[str, CacheEntry[str]] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()

    def put(self, key: str, value: str, timestamp: datetime | None = None) -> None:
        """Store rendered output, evicting the oldest entry when full."""
        stamp = normalize_timestamp(timestamp) if timestamp is not None else datetime.now()
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.capacity:
                self._evict_oldest()
            self._entries[key] = CacheEntry(value, stamp)

    def _evict_oldest(self) -> None:
        oldest = min(self._entries, key=lambda k: self._entries[k].timestamp)
        del self._entries[oldest]

    def get(self, key: str, threshold: datetime | None = None) -> str | None:
        """Return cached output, counting a hit or a miss.

        Args:
            key: Render key.
            threshold: When given, an entry older than this is treated as
                absent and counted as a miss.

        Returns:
            The cached output, or None.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or (
                threshold is not None and entry.timestamp < normalize_timestamp(threshold)
            ):
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def is_valid(self, key: str, threshold: datetime) -> bool:
        with self._lock:
            entry = self._entries.get(key)
        return entry is not None and entry.timestamp >= normalize_timestamp(threshold)

    def invalidate_by_pattern(self, pattern: str) -> int:
        """Remove every key matching a ``*`` glob.

        The match is on the raw key string and knows nothing about how keys
        are structured.

        Returns:
            Number of entries removed.
        """
        regex = glob_to_regex(pattern)
        with self._lock:
            doomed = [key for key in self._entries if regex.fullmatch(key)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove every entry and reset the hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def statistics(self) -> RenderCacheStatistics:
        with self._lock:
            return RenderCacheStatistics(len(self._entries), self._hits, self._misses)

    @staticmethod
    def generate_key(template: str, content: str, context: Mapping[str, Any]) -> str:
        """Fingerprint a render input.

        The hash covers the template source, the content and the context
        serialised with sorted keys, so key order never changes the result.

        Args:
            template: Template source.
            content: Content being rendered.
            context: Render context.

        Returns:
            Hex SHA-256 digest.
        """
        digest = hashlib.sha256()
        digest.update(template.encode("utf-8"))
        digest.update(b"\0")
        digest.update(content.encode("utf-8"))
        digest.update(b"\0")
        digest.update(json.dumps(context, sort_keys=True, default=str).encode("utf-8"))
        return digest.hexdigest()
