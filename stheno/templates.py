"""Template records and the template store.

Key classes:
- Template: Immutable named template source with derived partial dependencies.
- TemplateStore: Thread-safe registry of templates by name.

Design principles:
- Dependencies are derived from the source, never stored separately, so they
  can not drift from what the template actually includes.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .errors import TemplateError

DEFAULT_MAX_TEMPLATE_SIZE = 1024 * 1024

PARTIAL_RE = re.compile(r"\{\{\s*>\s*([^}]*?)\s*\}\}")


def unquote(text: str) -> str:
    """Strip one pair of matching single or double quotes."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def find_partials(source: str) -> frozenset[str]:
    """Return the partial names referenced with ``{{> name}}`` in a source.

    Args:
        source: Template source text.

    Returns:
        Set of partial names, in no particular order.
    """
    names = (unquote(match.group(1).strip()) for match in PARTIAL_RE.finditer(source))
    return frozenset(name for name in names if name)


@dataclass(frozen=True)
class Template:
    """A named template source.

    Attributes:
        name: Logical template name, e.g. ``layouts/base``.
        source: Template source text.
    """

    name: str
    source: str

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("template name must not be empty")
        if self.source is None:
            raise ValueError("template source must not be None")

    @property
    def dependencies(self) -> frozenset[str]:
        """Partial names this template includes."""
        return find_partials(self.source)


class TemplateStore:
    """Thread-safe registry of templates keyed by name.

    The store satisfies the TemplateResolver protocol, so it can back a
    TemplateRenderer directly when no caching is wanted.

    Attributes:
        max_template_size: Largest accepted source length in characters.
    """

    def __init__(
        self,
        templates: Iterable[Template] = (),
        max_template_size: int = DEFAULT_MAX_TEMPLATE_SIZE,
    ):
        self.max_template_size = max_template_size
        self._templates: dict[str, Template] = {}
        self._lock = threading.RLock()
        for template in templates:
            self.register(template)

    def register(self, template: Template) -> None:
        """Add or replace a template.

        Raises:
            TemplateError: If the source exceeds the size limit.
        """
        if len(template.source) > self.max_template_size:
            raise TemplateError(
                f"Template size {len(template.source)} exceeds limit of {self.max_template_size}",
                template.name,
            )
        with self._lock:
            self._templates[template.name] = template

    def get_template(self, name: str) -> Template | None:
        with self._lock:
            return self._templates.get(name)

    def remove(self, name: str) -> None:
        with self._lock:
            self._templates.pop(name, None)

    def dependencies(self, name: str) -> frozenset[str]:
        """Return the partial names the named template includes."""
        template = self.get_template(name)
        return template.dependencies if template else frozenset()

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._templates)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._templates

    def __iter__(self) -> Iterator[Template]:
        with self._lock:
            return iter(list(self._templates.values()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._templates)
