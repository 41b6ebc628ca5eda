from datetime import datetime, timedelta
from pathlib import Path

import pytest

from stheno.build import (
    DEFAULT_CONFIG,
    RenderError,
    load_config,
    load_data,
    load_templates,
    open_session,
    render_cached,
)
from stheno.cache_manager import CacheManager
from stheno.renderer import TemplateRenderer
from stheno.templates import Template


def create_project(tmp_path: Path) -> Path:
    templates = tmp_path / "templates"
    (templates / "partials").mkdir(parents=True)
    (templates / "layouts").mkdir()
    (templates / "partials" / "header.html").write_text("<h1>{{title}}</h1>", encoding="utf-8")
    (templates / "layouts" / "base.html").write_text(
        "<html>{{#block body}}{{/block}}</html>", encoding="utf-8"
    )
    (templates / "index.hbs").write_text(
        '{{#extends "layouts/base"}}{{#block body}}{{> partials/header}}'
        "{{#each nav.links}}<a>{{this}}</a>{{/each}}{{/block}}{{/extends}}",
        encoding="utf-8",
    )
    (templates / "notes.txt").write_text("ignored", encoding="utf-8")
    data = tmp_path / "data"
    data.mkdir()
    (data / "site.yaml").write_text("title: My Site\n", encoding="utf-8")
    (data / "nav.yaml").write_text("links:\n  - home\n  - about\n", encoding="utf-8")
    return tmp_path


def test_load_config_defaults(tmp_path):
    assert load_config(tmp_path) == DEFAULT_CONFIG


def test_load_config_overrides(tmp_path):
    (tmp_path / "stheno.yaml").write_text(
        "templates_dir: views\nrender_cache_capacity: 5\n", encoding="utf-8"
    )
    config = load_config(tmp_path)
    assert config["templates_dir"] == "views"
    assert config["render_cache_capacity"] == 5
    assert config["max_depth"] == 50


def test_load_config_ignores_non_mapping(tmp_path):
    (tmp_path / "stheno.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    assert load_config(tmp_path) == DEFAULT_CONFIG


def test_load_data_merges_site_yaml(tmp_path):
    project = create_project(tmp_path)
    data = load_data(project / "data")
    assert data["title"] == "My Site"
    assert data["nav"] == {"links": ["home", "about"]}
    assert load_data(tmp_path / "missing") == {}


def test_load_templates_names_by_relative_path(tmp_path):
    project = create_project(tmp_path)
    templates = load_templates(project / "templates")
    assert [t.name for t in templates] == ["index", "layouts/base", "partials/header"]
    assert load_templates(tmp_path / "missing") == []


def test_open_session_renders_project(tmp_path):
    project = create_project(tmp_path)
    session = open_session(project)
    assert session.manager.template_count() == 3
    assert session.manager.template_cache.dependents("partials/header") == {"index"}
    html = session.renderer.render_template("index", session.data)
    assert html == "<html><h1>My Site</h1><a>home</a><a>about</a></html>"


def test_open_session_applies_limits(tmp_path):
    project = create_project(tmp_path)
    (project / "stheno.yaml").write_text("max_depth: 1\n", encoding="utf-8")
    session = open_session(project)
    assert session.renderer.max_depth == 1


def test_render_cached_reuses_result():
    manager = CacheManager()
    manager.cache_template("t", Template("t", "{{n}}"))
    renderer = TemplateRenderer(manager)

    assert render_cached(manager, renderer, "t", {"n": 1}, "page:t") == "1"
    # A cached entry wins even though the context changed.
    assert render_cached(manager, renderer, "t", {"n": 2}, "page:t") == "1"
    stats = manager.get_statistics()
    assert (stats.render_hits, stats.render_misses) == (1, 1)


def test_render_cached_rerenders_stale_entry():
    manager = CacheManager()
    manager.cache_template("t", Template("t", "{{n}}"))
    renderer = TemplateRenderer(manager)
    manager.cache_rendered("page:t", "old", datetime(2000, 1, 1))

    assert render_cached(manager, renderer, "t", {"n": 3}, "page:t", as_of=datetime(2001, 1, 1)) == "3"
    assert manager.get_rendered("page:t") == "3"
    assert render_cached(
        manager, renderer, "t", {"n": 4}, "page:t", as_of=datetime.now() - timedelta(hours=1)
    ) == "3"


def test_render_cached_wraps_template_errors():
    manager = CacheManager()
    renderer = TemplateRenderer(manager)
    with pytest.raises(RenderError) as excinfo:
        render_cached(manager, renderer, "missing", {}, "page:missing")
    assert excinfo.value.key == "page:missing"
    assert "not found" in excinfo.value.message
    assert manager.get_rendered("page:missing") is None


def test_render_cached_counts_stale_entry_as_miss():
    manager = CacheManager()
    manager.cache_template("t", Template("t", "{{n}}"))
    renderer = TemplateRenderer(manager)
    manager.cache_rendered("page:t", "old", datetime(2000, 1, 1))

    render_cached(manager, renderer, "t", {"n": 1}, "page:t", as_of=datetime(2020, 1, 1))

    stats = manager.get_statistics()
    assert (stats.render_hits, stats.render_misses) == (0, 1)
