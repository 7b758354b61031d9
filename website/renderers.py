"""Markdown rendering and HTML sanitization for posts.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with syntax highlighting.
- HTMLSanitizer: Strips markup outside an allow-list from rendered HTML.
"""

from __future__ import annotations

import re

import mistune
import nh3
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .utils import escape_html


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _HighlightRenderer(mistune.HTMLRenderer):
    """Markdown renderer with heading anchors and Pygments code blocks.

    Raw HTML in the source is passed through; the sanitizer runs afterwards.
    """

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with a unique auto-generated ID.

        Args:
            text: Heading text content.
            level: Heading level (1-6).
            **attrs: Additional attributes.

        Returns:
            HTML heading tag with id attribute.
        """
        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        if not heading_id:
            return f"<h{level}>{text}</h{level}>\n"
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Args:
            code: The code content.
            info: Language identifier (e.g., 'python', 'go').

        Returns:
            HTML string with highlighted code.
        """
        lang = info.split()[0] if info and info.strip() else None
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    A fresh mistune renderer is built per call so heading ids never leak
    between documents.
    """

    plugins = ["strikethrough", "footnotes", "table", "url"]

    def render(self, content: str) -> str:
        """Render Markdown content to HTML.

        Args:
            content: Markdown source content.

        Returns:
            Rendered (unsanitized) HTML.
        """
        markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(), plugins=self.plugins
        )
        return markdown(content)


def _user_content_attributes() -> dict[str, set[str]]:
    attributes = {tag: set(attrs) for tag, attrs in nh3.ALLOWED_ATTRIBUTES.items()}
    for level in range(1, 7):
        attributes.setdefault(f"h{level}", set()).add("id")
    # Pygments output and fenced code language hints.
    for tag in ("div", "pre", "code", "span"):
        attributes.setdefault(tag, set()).add("class")
    for tag in ("sup", "li"):
        attributes.setdefault(tag, set()).add("id")
    return attributes


class HTMLSanitizer:
    """Allow-list HTML sanitizer for user generated content.

    Scripts, styles, event handler attributes, inline styles and dangerous
    URL schemes are removed. Links get ``rel="noopener noreferrer"``.
    """

    def __init__(self, attributes: dict[str, set[str]] | None = None):
        self.tags = set(nh3.ALLOWED_TAGS)
        self.attributes = attributes or _user_content_attributes()

    def sanitize(self, html: str) -> str:
        """Return ``html`` with everything outside the allow-list stripped."""
        return nh3.clean(html, tags=self.tags, attributes=self.attributes)


default_markdown_renderer = MarkdownRenderer()
default_sanitizer = HTMLSanitizer()
