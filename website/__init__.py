"""Personal website and blog server.

This package serves a small personal site: markdown posts and Jinja2 templates
ship inside the package, are rendered once at startup, and are exposed through
a handful of routes plus an RSS feed.

The main entry point is the CLI module, which provides commands for serving the
site, printing the feed, listing posts and scaffolding new posts.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
