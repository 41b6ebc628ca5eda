"""HTML utility functions for Stheno.

This module provides the small amount of HTML string manipulation the
template filters need. It is not a sanitizer and not a Markdown engine.

Functions:
    strip_html: Remove tag-like substrings from a string.
    inline_markdown: Convert bold and italic Markdown markers to HTML.
"""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]*>")

# Bold must run before italic so "**x**" is not read as two empty emphases.
_BOLD_RE = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1", re.DOTALL)
_ITALIC_STAR_RE = re.compile(r"\*(?=\S)(.+?)(?<=\S)\*", re.DOTALL)
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?=\S)(.+?)(?<=\S)_(?!\w)", re.DOTALL)


def strip_html(text: str) -> str:
    """Remove anything that looks like an HTML tag.

    Args:
        text: The string to clean.

    Returns:
        The string without tag-like substrings.

    Examples:
        >>> strip_html("<p>Hello <b>world</b></p>")
        'Hello world'
    """
    return _TAG_RE.sub("", text)


def inline_markdown(text: str) -> str:
    """Convert inline bold and italic Markdown to HTML.

    Only ``**bold**``/``__bold__`` and ``*italic*``/``_italic_`` are
    recognised. Everything else is left untouched.

    Args:
        text: Markdown-flavoured text.

    Returns:
        Text with emphasis converted to ``<strong>`` and ``<em>``.

    Examples:
        >>> inline_markdown("**bold** and *italic*")
        '<strong>bold</strong> and <em>italic</em>'
    """
    text = _BOLD_RE.sub(r"<strong>\2</strong>", text)
    text = _ITALIC_STAR_RE.sub(r"<em>\1</em>", text)
    return _ITALIC_UNDERSCORE_RE.sub(r"<em>\1</em>", text)
