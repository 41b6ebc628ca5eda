"""Template filters for Stheno.

Filters transform a value inside a variable tag, e.g.
``{{title | lowercase | truncate:20}}``. Each filter is a callable taking the
current value and the list of literal arguments and returning the new value.

Key classes:
- FilterRegistry: Name-to-callable registry holding the built-in filters.

The registry follows the Open/Closed Principle: new filters are registered by
name without touching the renderer.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from .context import stringify
from .errors import TemplateError
from .html_utils import inline_markdown, strip_html
from .utils import slugify, truncate

FilterFunction = Callable[[Any, list[str]], Any]

DEFAULT_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_TRUNCATE_LENGTH = 150


def _int_arg(name: str, args: list[str], default: int) -> int:
    if not args or not args[0]:
        return default
    try:
        return int(args[0])
    except ValueError:
        raise TemplateError(f"Filter '{name}' expects an integer, got '{args[0]}'") from None


def date_filter(value: Any, args: list[str]) -> Any:
    """Format a date or datetime with a strftime pattern.

    ISO formatted strings are parsed first; values that are not temporal are
    returned unchanged.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if not isinstance(value, date):
        return value
    pattern = args[0] if args and args[0] else DEFAULT_DATE_FORMAT
    return value.strftime(pattern)


def slugify_filter(value: Any, args: list[str]) -> str:
    return slugify(stringify(value))


def truncate_filter(value: Any, args: list[str]) -> str:
    return truncate(stringify(value), _int_arg("truncate", args, DEFAULT_TRUNCATE_LENGTH))


def excerpt_filter(value: Any, args: list[str]) -> str:
    return truncate(stringify(value), _int_arg("excerpt", args, DEFAULT_TRUNCATE_LENGTH))


def uppercase_filter(value: Any, args: list[str]) -> str:
    return stringify(value).upper()


def lowercase_filter(value: Any, args: list[str]) -> str:
    return stringify(value).lower()


def capitalize_filter(value: Any, args: list[str]) -> str:
    return stringify(value).capitalize()


def markdown_filter(value: Any, args: list[str]) -> str:
    return inline_markdown(stringify(value))


def strip_html_filter(value: Any, args: list[str]) -> str:
    return strip_html(stringify(value))


BUILTIN_FILTERS: dict[str, FilterFunction] = {
    "date": date_filter,
    "slugify": slugify_filter,
    "truncate": truncate_filter,
    "excerpt": excerpt_filter,
    "uppercase": uppercase_filter,
    "lowercase": lowercase_filter,
    "capitalize": capitalize_filter,
    "markdown": markdown_filter,
    "strip_html": strip_html_filter,
}


class FilterRegistry:
    """Registry for template filters.

    A fresh registry starts with the built-in filters. Registering a name
    that already exists replaces the previous filter.
    """

    def __init__(self, include_builtins: bool = True):
        """Initialize the registry.

        Args:
            include_builtins: Whether to pre-register the built-in filters.
        """
        self._filters: dict[str, FilterFunction] = {}
        if include_builtins:
            self._filters.update(BUILTIN_FILTERS)

    def register(self, name: str, func: FilterFunction) -> None:
        """Register a filter.

        Args:
            name: Name used after the pipe in templates.
            func: Callable taking ``(value, args)`` and returning a value.
        """
        if not name or not name.strip():
            raise ValueError("filter name must not be empty")
        self._filters[name.strip()] = func

    def get(self, name: str) -> FilterFunction | None:
        return self._filters.get(name)

    def names(self) -> list[str]:
        return sorted(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def apply(self, name: str, value: Any, args: list[str]) -> Any:
        """Apply a filter by name.

        Unknown filters pass the value through unchanged.

        Args:
            name: Filter name.
            value: Input value.
            args: Literal filter arguments.

        Returns:
            The filtered value.
        """
        func = self._filters.get(name)
        if func is None:
            return value
        return func(value, args)
