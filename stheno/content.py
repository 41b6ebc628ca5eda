"""Content records consumed by the rendering core.

Markdown parsing and front matter extraction happen elsewhere; this module
only describes the already-parsed records handed to the caches and turned
into render contexts.

Key classes:
- Page: A parsed page with its front matter and rendered body.
- Post: A Page with publication date, categories and tags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from .utils import slugify, split_list, titleize, word_excerpt


@dataclass
class Page:
    """Represents a parsed content page.

    Attributes:
        filename: Name of the source file.
        slug: URL-friendly slug; derived from the filename when empty.
        front_matter: Metadata parsed from the file header.
        raw_content: Source text without front matter.
        rendered_content: HTML produced from the source text.
        last_modified: Modification time of the source file.
    """

    filename: str
    slug: str = ""
    front_matter: dict[str, Any] = field(default_factory=dict)
    raw_content: str = ""
    rendered_content: str = ""
    last_modified: datetime | None = None

    def __post_init__(self) -> None:
        if not self.filename or not self.filename.strip():
            raise ValueError("filename must not be empty")
        if self.last_modified is None:
            raise ValueError("last_modified is required")
        if not self.slug:
            self.slug = slugify(self.filename.rsplit(".", 1)[0])

    @property
    def title(self) -> str:
        """Front matter title, or a title built from the filename."""
        title = self.front_matter.get("title")
        if isinstance(title, str) and title.strip():
            return title
        return titleize(self.filename)

    @property
    def description(self) -> str:
        description = self.front_matter.get("description")
        return description if isinstance(description, str) else ""

    @property
    def is_published(self) -> bool:
        return self.front_matter.get("draft") is not True

    def to_context(self) -> dict[str, Any]:
        """Return the page as a plain mapping usable as a render context.

        Front matter keys are exposed at the top level, below the record's
        own fields, so a template can write ``{{title}}`` or
        ``{{front_matter.author}}`` interchangeably.
        """
        context: dict[str, Any] = dict(self.front_matter)
        context.update(
            {
                "filename": self.filename,
                "slug": self.slug,
                "title": self.title,
                "description": self.description,
                "front_matter": dict(self.front_matter),
                "raw_content": self.raw_content,
                "content": self.rendered_content,
                "last_modified": self.last_modified,
                "published": self.is_published,
            }
        )
        return context


@dataclass
class Post(Page):
    """A dated blog post.

    Attributes:
        published_at: Publication time; defaults to ``last_modified``.
        categories: Category names.
        tags: Tag names.
    """

    published_at: datetime | None = None
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.published_at is None:
            self.published_at = self.last_modified

    @property
    def is_published(self) -> bool:
        if self.front_matter.get("draft") is True:
            return False
        return self.published_at <= datetime.now(self.published_at.tzinfo)

    def excerpt(self, max_length: int = 150) -> str:
        """Return the raw content shortened at a word boundary.

        Args:
            max_length: Maximum length of the excerpt, ellipsis included.

        Returns:
            Excerpt text.
        """
        return word_excerpt(self.raw_content, max_length)

    def to_context(self) -> dict[str, Any]:
        context = super().to_context()
        context.update(
            {
                "published_at": self.published_at,
                "date": self.published_at,
                "categories": list(self.categories),
                "tags": list(self.tags),
                "excerpt": self.excerpt(),
            }
        )
        return context

    @classmethod
    def from_page(cls, page: Page) -> Post:
        """Build a Post from a Page, reading post fields from front matter.

        ``date`` is parsed as an ISO timestamp (falling back to the page's
        modification time), ``categories`` and ``tags`` accept either a list
        or a comma separated string.

        Args:
            page: Parsed page.

        Returns:
            Post sharing the page's fields.
        """
        front_matter = page.front_matter
        return cls(
            filename=page.filename,
            slug=page.slug,
            front_matter=front_matter,
            raw_content=page.raw_content,
            rendered_content=page.rendered_content,
            last_modified=page.last_modified,
            published_at=_parse_published_at(front_matter.get("date"), page.last_modified),
            categories=split_list(front_matter.get("categories")),
            tags=split_list(front_matter.get("tags")),
        )


def _parse_published_at(value: Any, fallback: datetime) -> datetime:
    """Parse a front matter date value.

    Args:
        value: Raw ``date`` value (datetime, date or ISO string).
        fallback: Value used when the date is missing or invalid.

    Returns:
        Publication datetime.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return fallback
    return fallback
