"""Post loading for the blog.

This module reads a directory of markdown posts, each starting with a YAML
frontmatter block, and turns them into immutable Post records sorted newest
first.

Key objects:
- Post: Dataclass representing a loaded blog post.
- load_post: Load a single markdown file.
- load_posts: Load and sort every post in a directory.
- build_slug_index: Map slugs to positions, rejecting duplicates.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import yaml
from markupsafe import Markup

from .errors import PostError
from .renderers import (
    HTMLSanitizer,
    MarkdownRenderer,
    default_markdown_renderer,
    default_sanitizer,
)
from .utils import is_markdown, slugify

FRONTMATTER_RE = re.compile(r"^---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|$)", re.DOTALL)

# Frontmatter ``published`` values look like "Jan 02 2024 PST". Month names
# are English whatever the locale, and matched case-insensitively.
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
PUBLISHED_EXAMPLE = "Jan 02 2006 MST"

_MONTH_NUMBERS = {name.lower(): number for number, name in enumerate(MONTHS, 1)}
_ZONE_RE = re.compile(r"^[A-Z]{3,5}$")
_STAMP_RE = re.compile(r"^([A-Za-z]{3}) (\d{2}) (\d{4})$")

ZONE_OFFSETS = {
    "UTC": 0,
    "GMT": 0,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
}


@dataclass(frozen=True)
class Post:
    """A loaded blog post.

    Attributes:
        title: Title from the frontmatter.
        published_at: Timezone-aware publication timestamp.
        slug: URL identifier derived from the filename.
        content: Sanitized HTML body, safe to embed in templates.
    """

    title: str
    published_at: datetime
    slug: str
    content: Markup

    @property
    def url(self) -> str:
        return f"/blog/{self.slug}"


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML frontmatter from the markdown body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content).

    Raises:
        ValueError: If the block is missing, is not valid YAML, or is not a
            mapping.
    """
    text = text.lstrip("\ufeff")
    match = FRONTMATTER_RE.match(text)
    if not match:
        raise ValueError("missing frontmatter block")
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ValueError(f"malformed frontmatter: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("frontmatter must be a mapping")
    return data, text[match.end() :]


def parse_published(value: str) -> datetime:
    """Parse a publication date like ``Jan 02 2006 MST``.

    Known zone abbreviations get their UTC offset; any other upper-case
    abbreviation is taken to be UTC.

    Raises:
        ValueError: If the value does not match the format.
    """
    parts = value.strip().rsplit(" ", 1)
    if len(parts) != 2 or not _ZONE_RE.match(parts[1]):
        raise ValueError(
            f"parsing post timestamp '{value}': expected format '{PUBLISHED_EXAMPLE}'"
        )
    stamp, zone = parts
    match = _STAMP_RE.match(stamp)
    month = _MONTH_NUMBERS.get(match.group(1).lower()) if match else None
    if month is None:
        raise ValueError(
            f"parsing post timestamp '{value}': expected format '{PUBLISHED_EXAMPLE}'"
        )
    offset = timedelta(hours=ZONE_OFFSETS.get(zone, 0))
    try:
        return datetime(
            int(match.group(3)),
            month,
            int(match.group(2)),
            tzinfo=timezone(offset, zone),
        )
    except ValueError as exc:
        raise ValueError(f"parsing post timestamp '{value}': {exc}") from exc


def format_published(value: datetime) -> str:
    """Format a timestamp the way ``parse_published`` expects it."""
    zone = value.tzname() or "UTC"
    return f"{MONTHS[value.month - 1]} {value.day:02d} {value.year:04d} {zone}"


def load_post(
    path: Path,
    renderer: MarkdownRenderer = default_markdown_renderer,
    sanitizer: HTMLSanitizer = default_sanitizer,
) -> Post:
    """Load a single markdown post.

    Args:
        path: Path to the markdown file.
        renderer: Markdown to HTML renderer.
        sanitizer: Sanitizer applied to the rendered HTML.

    Returns:
        The loaded Post.

    Raises:
        PostError: On I/O failure, bad frontmatter or a bad date.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PostError(f"reading content: {exc}", path) from exc

    try:
        meta, body = extract_frontmatter(text)
    except ValueError as exc:
        raise PostError(f"extracting frontmatter: {exc}", path) from exc

    title = meta.get("title")
    if title is not None and not isinstance(title, (dict, list)):
        title = str(title)
    if not isinstance(title, str) or not title.strip():
        raise PostError("extracting frontmatter: 'title' must be a non-empty string", path)
    published = meta.get("published")
    if published is None:
        raise PostError("extracting frontmatter: missing 'published'", path)

    try:
        published_at = parse_published(str(published))
    except ValueError as exc:
        raise PostError(str(exc), path) from exc

    slug = slugify(path.stem)
    if not slug:
        raise PostError("filename does not produce a usable slug", path)

    html = sanitizer.sanitize(renderer.render(body))
    return Post(
        title=title.strip(),
        published_at=published_at,
        slug=slug,
        content=Markup(html),
    )


def load_posts(directory: Path, **kwargs: Any) -> list[Post]:
    """Load every markdown post in ``directory``, newest first.

    Posts published at the same instant are ordered by slug.

    Raises:
        PostError: If the directory cannot be read or any post fails to load.
    """
    try:
        files = sorted(p for p in directory.iterdir() if p.is_file() and is_markdown(p))
    except OSError as exc:
        raise PostError(f"read dir {directory}: {exc}") from exc

    posts = [load_post(path, **kwargs) for path in files]
    posts.sort(key=lambda p: p.slug)
    posts.sort(key=lambda p: p.published_at, reverse=True)
    return posts


def build_slug_index(posts: Iterable[Post]) -> dict[str, int]:
    """Map each slug to its position in ``posts``.

    Raises:
        PostError: If two posts share a slug.
    """
    index: dict[str, int] = {}
    for i, post in enumerate(posts):
        if post.slug in index:
            raise PostError(f"duplicate post {post.slug} found")
        index[post.slug] = i
    return index


def recent(posts: Sequence[Post], count: int = 3) -> list[Post]:
    """Return the ``count`` newest posts (fewer if fewer exist)."""
    return list(posts[:count])
