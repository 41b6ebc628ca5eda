"""Stheno incremental rendering core.

This package provides the rendering heart of a static site generator: a small
logic-light template language and a three-tier cache that decides, on every
build, what has to be rendered again and what can be reused.

Main pieces:
- TemplateRenderer: interprets templates (variables, conditionals, loops,
  layouts, partials, filters) against a context.
- CacheManager: owns the content, template and render caches and exposes the
  invalidation and statistics operations a build orchestrator needs.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
