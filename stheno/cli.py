"""Command-line interface for Stheno.

This module defines the CLI commands using Click framework.
It is a thin surface over the rendering core for checking templates by hand.

Commands:
- render: Render a template with the project's data and print the result.
- deps: Show the partial dependencies and dependents of templates.
"""

from __future__ import annotations

from pathlib import Path

import click

from . import __version__
from .cache_manager import CacheStatistics


@click.group()
@click.version_option(version=__version__, prog_name="stheno")
def cli():
    """Stheno incremental template renderer."""


@cli.command()
@click.argument("name")
@click.option("--key", default=None, help="Render cache key (defaults to page:NAME)")
@click.option("--stats", is_flag=True, help="Print cache statistics to stderr")
def render(name: str, key: str | None, stats: bool):
    """Render template NAME with the project's data."""
    from .build import RenderError, open_session, render_cached

    session = open_session(Path.cwd())
    cache_key = key or session.manager.page_key(name)
    try:
        html = render_cached(
            session.manager, session.renderer, name, session.data, cache_key
        )
    except RenderError as exc:
        click.echo(click.style("Render failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Template: {name}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(html)
    if stats:
        _echo_statistics(session.manager.get_statistics())


@cli.command()
@click.argument("name", required=False)
def deps(name: str | None):
    """Show template dependencies (all templates when NAME is omitted)."""
    from .build import open_session

    session = open_session(Path.cwd())
    cache = session.manager.template_cache
    if name and session.manager.get_template(name) is None:
        raise click.ClickException(f"Unknown template: {name}")
    names = [name] if name else cache.names()
    for template_name in names:
        dependencies = ", ".join(sorted(cache.dependencies(template_name))) or "-"
        dependents = ", ".join(sorted(cache.dependents(template_name))) or "-"
        click.echo(f"{template_name}")
        click.echo(f"  includes: {dependencies}")
        click.echo(f"  used by:  {dependents}")


def _echo_statistics(stats: CacheStatistics) -> None:
    """Print a statistics snapshot to stderr."""
    click.echo("Cache statistics:", err=True)
    click.echo(f"  content entries:  {stats.content_cache_size}", err=True)
    click.echo(f"  template entries: {stats.template_cache_size}", err=True)
    click.echo(f"  render entries:   {stats.render_cache_size}", err=True)
    click.echo(
        f"  render hits/misses: {stats.render_hits}/{stats.render_misses}"
        f" ({stats.render_hit_ratio:.0%})",
        err=True,
    )


def main():
    """Entry point for the CLI application."""
    cli()
