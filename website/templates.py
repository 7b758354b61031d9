"""Template set for the website.

This module uses Jinja2 to compile every page template in a directory against a
shared base layout and renders them by id.

Templates end in ``.tmpl.html``. The base layout is ``base.tmpl.html``; page
templates extend it with ``{% extends "base.tmpl.html" %}``. A template's id is
its path relative to the directory, without the suffix (``blog_post``,
``sub/page``).

Key class:
- TemplateSet: Loads, compiles and renders templates by id.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
    select_autoescape,
)
from markupsafe import Markup
from pygments.formatters import HtmlFormatter

from .errors import MissingTemplateError, TemplateLoadError
from .utils import join_root_url

TEMPLATE_EXT = ".tmpl.html"
BASE_TEMPLATE = "base" + TEMPLATE_EXT

__all__ = ["BASE_TEMPLATE", "TEMPLATE_EXT", "TemplateSet", "TextSink", "site_globals"]


class TextSink(Protocol):
    """Anything rendered output can be written into."""

    def write(self, text: str, /) -> Any: ...


def pygments_css() -> Markup:
    """Return Pygments CSS styles for highlighted code blocks.

    Returns:
        CSS string for the .highlight class.
    """
    return Markup(HtmlFormatter().get_style_defs(".highlight"))


class TemplateSet:
    """Compiled page templates keyed by id.

    Attributes:
        directory: Directory the templates were loaded from.
        env: Jinja2 environment shared by every template.
    """

    def __init__(
        self,
        directory: Path,
        env: Environment,
        templates: dict[str, Template],
    ):
        self.directory = directory
        self.env = env
        self._templates = templates

    @classmethod
    def load(
        cls,
        directory: Path,
        extra_globals: dict[str, Any] | None = None,
    ) -> TemplateSet:
        """Discover and compile every template in ``directory``.

        Args:
            directory: Directory holding ``base.tmpl.html`` and page templates.
            extra_globals: Extra variables available to every template.

        Returns:
            The loaded TemplateSet.

        Raises:
            TemplateLoadError: If the base layout is missing or any template
                fails to compile.
        """
        if not (directory / BASE_TEMPLATE).is_file():
            raise TemplateLoadError(f"missing base template {BASE_TEMPLATE}")

        env = Environment(
            loader=FileSystemLoader(str(directory)),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        env.globals["pygments_css"] = pygments_css
        if extra_globals:
            env.globals.update(extra_globals)

        try:
            env.get_template(BASE_TEMPLATE)
        except TemplateError as exc:
            raise TemplateLoadError(f"creating template at {BASE_TEMPLATE}: {exc}") from exc

        templates: dict[str, Template] = {}
        for path in sorted(directory.rglob(f"*{TEMPLATE_EXT}")):
            if not path.is_file():
                continue
            rel = path.relative_to(directory).as_posix()
            if rel == BASE_TEMPLATE:
                continue
            template_id = rel[: -len(TEMPLATE_EXT)]
            try:
                templates[template_id] = env.get_template(rel)
            except TemplateError as exc:
                raise TemplateLoadError(f"creating template at {rel}: {exc}") from exc
        return cls(directory, env, templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def ids(self) -> list[str]:
        """Return the ids of every loaded template, sorted."""
        return sorted(self._templates)

    def render(self, template_id: str, data: Any, sink: TextSink) -> None:
        """Render a template with ``data`` into ``sink``.

        The template is exposed to Jinja as ``data``; the base layout wraps it.

        Raises:
            MissingTemplateError: If no template has this id.
        """
        template = self._templates.get(template_id)
        if template is None:
            raise MissingTemplateError(template_id)
        for chunk in template.generate(data=data):
            sink.write(chunk)


def site_globals(site: Any) -> dict[str, Any]:
    """Template globals describing the site.

    Args:
        site: SiteMetadata for the running site.

    Returns:
        Mapping with ``site`` and a ``url_for`` helper bound to its url.
    """

    def url_for(path: str) -> str:
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(site.url, path)

    return {"site": site, "url_for": url_for}
