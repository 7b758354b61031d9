"""Utility functions for the website.

This module contains the small string and path helpers shared by the post
loader, the feed builder and the CLI.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    is_markdown: Check if a path is a Markdown file.
    escape_html: Escape special HTML/XML characters.
    join_root_url: Join a base URL with a path.
"""

from __future__ import annotations

import re
from pathlib import Path

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Convert a filename stem to a URL-safe slug.

    Args:
        name: Filename stem (without extension).

    Returns:
        Lower-cased slug with runs of other characters collapsed to hyphens.

    Examples:
        >>> slugify("Hello World")
        'hello-world'

        >>> slugify("go_1.22-notes")
        'go-1-22-notes'
    """
    return _NON_SLUG_RE.sub("-", name.lower()).strip("-")


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Replaces hyphens and underscores with spaces and capitalizes each word.

    Args:
        filename: Filename with or without extension.

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("getting-started.md")
        'Getting Started'
    """
    base = Path(filename).stem
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file.

    Args:
        path: Path to check.

    Returns:
        True if the file has .md extension (case-insensitive).
    """
    return path.suffix.lower() == ".md"


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Also safe for XML text and attribute values.

    Args:
        text: The string to escape.

    Returns:
        The escaped string.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., https://example.com).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('https://example.com/', 'blog')
        'https://example.com/blog'
    """
    if not root_url:
        return path if path.startswith("/") else f"/{path}"
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"
