"""Error types for Stheno."""

from __future__ import annotations


class TemplateError(Exception):
    """Error raised while preparing or rendering a template.

    A single kind covers every failure of the renderer: oversized sources,
    unbalanced or malformed tags, nesting that is too deep, missing partials
    or layouts and partial cycles.

    Attributes:
        reason: Human-readable reason for the failure.
        template_name: Name of the template involved, when known.
    """

    def __init__(self, reason: str, template_name: str | None = None):
        self.reason = reason
        self.template_name = template_name
        if template_name:
            super().__init__(f"{template_name}: {reason}")
        else:
            super().__init__(reason)
