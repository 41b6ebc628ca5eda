"""Build-side helpers for Stheno.

The rendering core never touches the file system. This module is the thin
collaborator that does: it loads configuration, data and templates from a
project directory, wires a CacheManager to a TemplateRenderer, and renders
through the render cache.

Key functions:
- load_config: Loads configuration from stheno.yaml.
- load_data: Loads context data from YAML files in the data directory.
- load_templates: Discovers template files and returns Template objects.
- open_session: Builds a ready-to-use RenderSession for a project.
- render_cached: Reuses a valid render result or renders and caches one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .cache_manager import CacheManager
from .errors import TemplateError
from .renderer import TemplateRenderer
from .templates import Template

TEMPLATE_SUFFIXES = (".html", ".hbs", ".tmpl")

DEFAULT_CONFIG = {
    "templates_dir": "templates",
    "data_dir": "data",
    "max_template_size": 1024 * 1024,
    "max_depth": 50,
    "render_cache_capacity": 1000,
}


class RenderError(Exception):
    """Error rendering one output with the key it was rendered for.

    Attributes:
        key: Render cache key of the failed output.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        key: str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.key = key
        self.message = message
        self.original_error = original_error
        super().__init__(f"{key}: {message}")


@dataclass
class RenderSession:
    """Everything needed to render a project.

    Attributes:
        config: Configuration with defaults applied.
        data: Context data loaded from the data directory.
        manager: Cache manager holding the project's templates.
        renderer: Renderer resolving partials and layouts through the manager.
    """

    config: dict[str, Any]
    data: dict[str, Any]
    manager: CacheManager
    renderer: TemplateRenderer


def load_config(project_root: Path) -> dict[str, Any]:
    """Load configuration from stheno.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / "stheno.yaml"
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
    return config


def load_data(data_dir: Path) -> dict[str, Any]:
    """Load context data from YAML files.

    ``site.yaml`` is merged at the top level; every other file is placed
    under its stem.

    Args:
        data_dir: Directory holding the YAML files.

    Returns:
        Dictionary containing merged data from all YAML files.
    """
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.glob("*.yaml")):
        with open(path, encoding="utf-8") as f:
            payload = yaml.safe_load(f) or {}
        if not isinstance(payload, dict):
            continue
        if path.name == "site.yaml":
            data.update(payload)
        else:
            data[path.stem] = payload
    return data


def load_templates(templates_dir: Path) -> list[Template]:
    """Discover template files below a directory.

    Templates are named by their path relative to ``templates_dir`` without
    the suffix, using forward slashes (``partials/header``).

    Args:
        templates_dir: Directory to scan.

    Returns:
        Templates sorted by name.
    """
    templates: list[Template] = []
    if not templates_dir.exists():
        return templates
    for path in sorted(templates_dir.rglob("*")):
        if path.is_dir() or path.suffix.lower() not in TEMPLATE_SUFFIXES:
            continue
        name = path.relative_to(templates_dir).with_suffix("").as_posix()
        templates.append(Template(name, path.read_text(encoding="utf-8")))
    return templates


def open_session(project_root: Path) -> RenderSession:
    """Load a project and wire its caches to a renderer.

    Args:
        project_root: Root directory of the project.

    Returns:
        RenderSession with every discovered template cached.
    """
    config = load_config(project_root)
    manager = CacheManager(render_cache_capacity=int(config["render_cache_capacity"]))
    manager.warm_up(templates=load_templates(project_root / config["templates_dir"]))
    renderer = TemplateRenderer(
        manager,
        max_template_size=int(config["max_template_size"]),
        max_depth=int(config["max_depth"]),
    )
    data = load_data(project_root / config["data_dir"])
    return RenderSession(config=config, data=data, manager=manager, renderer=renderer)


def render_cached(
    manager: CacheManager,
    renderer: TemplateRenderer,
    name: str,
    context: dict[str, Any],
    key: str,
    as_of: datetime | None = None,
) -> str:
    """Return the rendered output for ``key``, rendering only when needed.

    A cached result is reused when present and, if ``as_of`` is given, not
    older than it. Otherwise the named template is rendered and cached.

    Args:
        manager: Cache manager.
        renderer: Renderer to use on a miss.
        name: Template name.
        context: Render context.
        key: Render cache key.
        as_of: Optional freshness threshold.

    Returns:
        Rendered output.

    Raises:
        RenderError: If the template fails to render.
    """
    cached = manager.get_rendered(key, as_of)
    if cached is not None:
        return cached
    try:
        rendered = renderer.render_template(name, context)
    except TemplateError as exc:
        raise RenderError(key, str(exc), exc) from exc
    manager.cache_rendered(key, rendered)
    return rendered
