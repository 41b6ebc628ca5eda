"""Protocol definitions for Stheno.

This module defines the interfaces the rendering core depends on, following
the Dependency Inversion Principle: the renderer only needs something that
can look templates up by name, and the caches only need records that carry a
modification time.

These protocols enable:
- Loose coupling between the renderer and whichever store backs it
- Easy testing through small fake implementations
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .templates import Template


@runtime_checkable
class TemplateResolver(Protocol):
    """Protocol for looking up templates by name.

    Implemented by TemplateStore, TemplateCache and CacheManager, so a
    renderer can resolve partials and layouts through any of them.
    """

    @abstractmethod
    def get_template(self, name: str) -> Template | None:
        """Return the named template, or None when it is unknown.

        Args:
            name: Template name.

        Returns:
            The template, or None.
        """
        ...


@runtime_checkable
class ContentRecord(Protocol):
    """Protocol for parsed content stored in the content cache."""

    slug: str
    last_modified: datetime

    @abstractmethod
    def to_context(self) -> dict[str, Any]:
        """Return the record as a render context mapping."""
        ...
