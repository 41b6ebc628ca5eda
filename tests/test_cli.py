from pathlib import Path

from click.testing import CliRunner

from stheno import __version__
from stheno.cli import cli


def create_project(root: Path) -> Path:
    templates = root / "templates"
    templates.mkdir(parents=True)
    (templates / "header.html").write_text("<h1>{{title|uppercase}}</h1>", encoding="utf-8")
    (templates / "home.html").write_text("{{> header}}<p>{{tagline}}</p>", encoding="utf-8")
    (templates / "broken.html").write_text("{{> ghost}}", encoding="utf-8")
    data = root / "data"
    data.mkdir()
    (data / "site.yaml").write_text("title: hi\ntagline: welcome\n", encoding="utf-8")
    return root


def test_cli_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_render_prints_html(monkeypatch, tmp_path):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["render", "home"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "<h1>HI</h1><p>welcome</p>" in result.output


def test_cli_render_with_stats(monkeypatch, tmp_path):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["render", "home", "--stats"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Cache statistics:" in result.output
    assert "template entries: 3" in result.output
    assert "render hits/misses: 0/1" in result.output


def test_cli_render_failure_exits_nonzero(monkeypatch, tmp_path):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["render", "broken"])
    assert result.exit_code == 1
    assert "Render failed:" in result.output
    assert "Partial 'ghost' not found" in result.output


def test_cli_render_unknown_template(monkeypatch, tmp_path):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["render", "nope"])
    assert result.exit_code == 1
    assert "Template 'nope' not found" in result.output


def test_cli_deps_lists_all_templates(monkeypatch, tmp_path):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["deps"], catch_exceptions=False)
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "broken"
    assert "header" in lines
    header_index = lines.index("header")
    assert lines[header_index + 1] == "  includes: -"
    assert lines[header_index + 2] == "  used by:  home"


def test_cli_deps_single_template(monkeypatch, tmp_path):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["deps", "home"], catch_exceptions=False)
    assert result.output.splitlines() == ["home", "  includes: header", "  used by:  -"]


def test_cli_deps_unknown_template(monkeypatch, tmp_path):
    monkeypatch.chdir(create_project(tmp_path))
    result = CliRunner().invoke(cli, ["deps", "nope"])
    assert result.exit_code != 0
    assert "Unknown template: nope" in result.output
