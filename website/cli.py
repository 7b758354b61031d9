"""Command-line interface for the website.

This module defines the CLI commands using Click framework.

Commands:
- serve: Load the site and serve it until interrupted.
- feed: Print the RSS feed to stdout.
- posts: List the loaded posts, newest first.
- new: Create a new markdown post interactively.
"""

from __future__ import annotations

import logging
import signal
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import click
import questionary
from dotenv import find_dotenv, load_dotenv

from . import __version__
from .config import Config
from .errors import WebsiteError
from .posts import format_published
from .utils import is_markdown, slugify, titleize

logger = logging.getLogger("website")


def _load_config(port: int | None = None) -> Config:
    """Read ``.env`` into the environment, then build the Config."""
    load_dotenv(find_dotenv(usecwd=True))
    try:
        config = Config.from_env()
    except WebsiteError as exc:
        raise click.ClickException(str(exc)) from None
    if port is not None:
        config = replace(config, port=port)
    return config


@click.group()
@click.version_option(version=__version__, prog_name="website")
def cli():
    """Personal website and blog server."""


@cli.command()
@click.option(
    "--port",
    type=click.IntRange(0, 65535),
    required=False,
    help="Port to listen on (overrides PORT)",
)
def serve(port: int | None):
    """Serve the site until interrupted."""
    from .build import build_site
    from .logs import configure_logging
    from .server import WebServer

    config = _load_config(port)
    configure_logging(config)
    stop = threading.Event()

    def _request_stop(signum, frame):
        logger.info("received signal, shutting down", extra={"signal": signum})
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    try:
        site = build_site(config)
        WebServer(config, site.router).serve(stop)
    except Exception as exc:
        logger.error("encountered top-level error", extra={"error": str(exc)})
        raise SystemExit(1) from None


@cli.command()
def feed():
    """Print the RSS feed."""
    from .build import build_site

    config = _load_config()
    try:
        site = build_site(config)
    except WebsiteError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(site.feed)


@cli.command(name="posts")
def list_posts():
    """List posts, newest first."""
    from .posts import load_posts

    config = _load_config()
    try:
        posts = load_posts(config.posts_dir)
    except WebsiteError as exc:
        raise click.ClickException(str(exc)) from None
    for post in posts:
        date = post.published_at.strftime("%Y-%m-%d")
        click.echo(f"{date}  {post.slug}  {post.title}")


@cli.command()
@click.option(
    "--dir",
    "posts_dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Directory to create the post in (defaults to the packaged posts)",
)
def new(posts_dir: Path | None):
    """Create a new markdown post interactively."""
    target_dir = posts_dir or _load_config().posts_dir

    name = questionary.text(
        "Filename (without .md extension):",
        validate=lambda x: len(slugify(x)) > 0 or "Filename must contain letters or digits",
        style=_questionary_style(),
    ).ask()
    if name is None:
        raise click.Abort()
    slug = slugify(name)

    title = questionary.text(
        "Title:",
        default=titleize(slug),
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    existing = _get_existing_slugs(target_dir)
    if slug in existing:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {existing[slug].name}"
        )

    target_dir.mkdir(parents=True, exist_ok=True)
    target_path = target_dir / f"{slug}.md"
    published = format_published(datetime.now(timezone.utc))
    target_path.write_text(
        f"---\ntitle: {_yaml_quote(title.strip() or titleize(slug))}\n"
        f"published: {published}\n---\n\n",
        encoding="utf-8",
    )
    click.echo(f"Created {target_path}")


def _get_existing_slugs(folder: Path) -> dict[str, Path]:
    """Map slugs of existing posts in ``folder`` to their files."""
    slugs: dict[str, Path] = {}
    if folder.exists():
        for f in folder.iterdir():
            if f.is_file() and is_markdown(f):
                slugs[slugify(f.stem)] = f
    return slugs


def _yaml_quote(value: str) -> str:
    """Quote a string as a YAML double-quoted scalar."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
