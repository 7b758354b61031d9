"""Site assembly.

This module loads templates and posts, builds the slug index and the RSS feed,
and wires every route into a Router. Everything is built once, before the
server accepts connections, and is read-only afterwards.

Key functions:
- build_site: Assemble a Site from a Config.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Config
from .errors import BuildError
from .feeds import RSSGenerator, feed_handler
from .posts import Post, build_slug_index, load_posts, recent
from .routes import (
    BlogPage,
    IndexPage,
    NotFound,
    Request,
    Router,
    TemplateData,
    UsesPage,
    register_public_dir,
)
from .templates import TemplateSet, site_globals

logger = logging.getLogger(__name__)

RECENT_POSTS = 3


@dataclass
class Site:
    """Everything the server needs to answer requests.

    Attributes:
        posts: Loaded posts, newest first.
        slug_index: Slug to position in ``posts``.
        templates: Compiled page templates.
        router: Router with every route registered.
        feed: Rendered RSS document.
    """

    posts: list[Post]
    slug_index: dict[str, int]
    templates: TemplateSet
    router: Router
    feed: str

    def find_post(self, slug: str) -> Post:
        """Return the post for ``slug``.

        Raises:
            NotFound: If there is no such post.
        """
        idx = self.slug_index.get(slug)
        if idx is None:
            raise NotFound(slug)
        return self.posts[idx]


def build_site(config: Config) -> Site:
    """Load content and register routes.

    Args:
        config: Process configuration.

    Returns:
        The assembled Site.

    Raises:
        BuildError: If any stage fails; the stage is named in the message.
    """
    try:
        templates = TemplateSet.load(
            config.templates_dir, extra_globals=site_globals(config.site)
        )
    except Exception as exc:
        raise BuildError("loading templates", exc) from exc

    try:
        posts = load_posts(config.posts_dir)
        slug_index = build_slug_index(posts)
    except Exception as exc:
        raise BuildError("loading posts", exc) from exc

    feed = RSSGenerator(config.site).generate(posts)
    router = Router()
    site = Site(
        posts=posts,
        slug_index=slug_index,
        templates=templates,
        router=router,
        feed=feed,
    )

    try:
        public_count = register_public_dir(router, config.public_dir)
    except Exception as exc:
        raise BuildError("registering public files", exc) from exc

    def index_data(request: Request) -> TemplateData[IndexPage]:
        return TemplateData(IndexPage(recent_posts=recent(posts, RECENT_POSTS)))

    def blog_data(request: Request) -> TemplateData[BlogPage]:
        return TemplateData(BlogPage(posts=posts), subtitle="Blog")

    def post_data(request: Request) -> TemplateData[Post]:
        post = site.find_post(request.params["slug"])
        return TemplateData(post, subtitle=post.title)

    def uses_data(request: Request) -> TemplateData[UsesPage]:
        return TemplateData(UsesPage(), subtitle="Uses")

    pages = [
        ("/", "index", index_data),
        ("/blog", "blog", blog_data),
        ("/blog/{slug}", "blog_post", post_data),
        ("/uses", "uses", uses_data),
    ]
    for pattern, template_id, data_fn in pages:
        try:
            router.register_template(pattern, template_id, data_fn, templates)
        except Exception as exc:
            raise BuildError(f"registering {template_id} handler", exc) from exc

    router.register("/feed.xml", feed_handler(feed))

    logger.info(
        "site loaded",
        extra={
            "posts": len(posts),
            "templates": len(templates.ids()),
            "public_files": public_count,
        },
    )
    return site
