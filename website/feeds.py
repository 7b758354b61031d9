"""RSS feed generation.

The feed is rendered once at startup from the loaded posts and the same bytes
are served for the lifetime of the process.

Classes:
    RSSGenerator: Generates an RSS 2.0 document from posts.

Functions:
    feed_handler: Route handler serving a pre-rendered feed.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from email.utils import format_datetime

from .config import SiteMetadata
from .posts import Post
from .routes import Handler, Request, Response
from .utils import escape_html, join_root_url

RSS_CONTENT_TYPE = "application/rss+xml"


def _rfc822(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value)


class RSSGenerator:
    """Generates an RSS 2.0 feed for the blog.

    Items keep the order of the posts they are built from; the post loader
    already sorts newest first.

    Attributes:
        site: Site and author metadata for the channel.
    """

    def __init__(self, site: SiteMetadata):
        self.site = site

    def post_link(self, post: Post) -> str:
        """Absolute URL of a post: ``<site url>/blog/<slug>``."""
        return join_root_url(self.site.url, f"/blog/{post.slug}")

    def generate(self, posts: Iterable[Post], built_at: datetime | None = None) -> str:
        """Generate RSS feed content.

        Args:
            posts: Posts to include, one item each.
            built_at: Channel publication time; defaults to now.

        Returns:
            RSS XML content.
        """
        site = self.site
        built_at = built_at or datetime.now(timezone.utc)
        editor = escape_html(f"{site.email} ({site.author})")

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0">',
            "<channel>",
            f"<title>{escape_html(site.feed_title)}</title>",
            f"<link>{escape_html(join_root_url(site.url, '/blog'))}</link>",
            f"<description>{escape_html(site.description)}</description>",
            f"<managingEditor>{editor}</managingEditor>",
            f"<pubDate>{_rfc822(built_at)}</pubDate>",
        ]
        for post in posts:
            link = escape_html(self.post_link(post))
            rss.append(
                f"<item><title>{escape_html(post.title)}</title>"
                f"<link>{link}</link>"
                f'<guid isPermaLink="true">{link}</guid>'
                f"<author>{editor}</author>"
                f"<pubDate>{_rfc822(post.published_at)}</pubDate></item>"
            )
        rss.append("</channel>")
        rss.append("</rss>")
        return "\n".join(rss)


def feed_handler(document: str) -> Handler:
    """Handler serving ``document`` verbatim as RSS."""
    body = document.encode("utf-8")

    def handler(request: Request) -> Response:
        return Response(body=body, headers={"Content-Type": RSS_CONTENT_TYPE})

    return handler
