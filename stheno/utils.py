"""Utility functions for Stheno.

String helpers shared by the content records and the template filters.

Key functions:
    slugify: Convert text to a URL slug.
    titleize: Convert filenames to human-readable titles.
    truncate: Cut text to a length and mark the cut with an ellipsis.
    word_excerpt: Cut text at a word boundary without exceeding a length.
    split_list: Normalize a list-or-comma-separated front matter value.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

ELLIPSIS = "..."

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Convert text to a slug.

    Lowercases, replaces every run of non-alphanumeric characters with a
    single hyphen and trims hyphens from both ends.

    Args:
        text: Text to convert.

    Returns:
        URL-friendly slug, possibly empty.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    return _NON_ALNUM_RE.sub("-", text.lower()).strip("-")


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Args:
        filename: Filename with or without extension.

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'

        >>> titleize("getting_started.md")
        'Getting Started'
    """
    base = Path(filename).stem
    if "-" in base:
        parts = base.split("-")
        if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
            base = "-".join(parts[3:])
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def truncate(text: str, length: int) -> str:
    """Cut text to ``length`` characters and append an ellipsis.

    Text that already fits is returned unchanged.

    Args:
        text: Text to shorten.
        length: Number of characters to keep.

    Returns:
        Shortened text.

    Examples:
        >>> truncate("HELLO", 3)
        'HEL...'
    """
    if length < 0 or len(text) <= length:
        return text
    return text[:length].rstrip() + ELLIPSIS


def word_excerpt(text: str, max_length: int) -> str:
    """Shorten text at a word boundary, never exceeding ``max_length``.

    Args:
        text: Text to shorten.
        max_length: Maximum length of the result, ellipsis included.

    Returns:
        The original text when it fits, otherwise a shortened version
        ending in an ellipsis.
    """
    if len(text) <= max_length:
        return text
    excerpt = text[:max_length]
    last_space = excerpt.rfind(" ")
    if last_space > 0:
        excerpt = excerpt[:last_space]
    result = excerpt + ELLIPSIS
    if len(result) > max_length:
        return text[: max(0, max_length - len(ELLIPSIS))] + ELLIPSIS
    return result


def split_list(value: Any) -> list[str]:
    """Normalize a front matter value into a list of strings.

    Lists keep their string members; strings are split on commas.

    Args:
        value: Raw front matter value.

    Returns:
        List of non-empty strings.
    """
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return []
