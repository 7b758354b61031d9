"""Routing for the website.

A Router maps URL patterns to handlers. Most pages are registered through
``register_template``, which binds a pattern to a template id and a function
producing the template data; the router turns a ``NotFound`` raised by that
function into a 404 and any other error into a 500.

Key classes:
- Request / Response: Minimal request and response values.
- TemplateData: Generic wrapper handed to every page template.
- Router: Pattern matching and dispatch.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from typing import Any, Generic, TypeVar
from urllib.parse import unquote, urlsplit

from .errors import MissingTemplateError
from .posts import Post
from .templates import TemplateSet

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PARAM_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class NotFound(Exception):
    """Raised by data functions when the requested resource does not exist."""


@dataclass
class Request:
    """An incoming request.

    Attributes:
        method: HTTP method, upper-case.
        path: URL path without query string.
        params: Values captured from ``{name}`` pattern segments.
        headers: Request headers.
    """

    method: str
    path: str
    params: dict[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_target(
        cls, method: str, target: str, headers: Mapping[str, str] | None = None
    ) -> Request:
        """Build a request from a raw request target like ``/blog?x=1``."""
        if target.startswith("/"):
            path = re.split(r"[?#]", target, maxsplit=1)[0]
        else:
            path = urlsplit(target).path or "/"
        return cls(method=method.upper(), path=path, headers=headers or {})


@dataclass
class Response:
    """A response ready to be written to the client."""

    status: int = HTTPStatus.OK
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def text(cls, status: int, message: str) -> Response:
        """Plain-text response; used for error pages."""
        return cls(
            status=status,
            body=(message + "\n").encode("utf-8"),
            headers={
                "Content-Type": TEXT_CONTENT_TYPE,
                "X-Content-Type-Options": "nosniff",
            },
        )

    @classmethod
    def not_found(cls) -> Response:
        return cls.text(HTTPStatus.NOT_FOUND, "404 page not found")


@dataclass(frozen=True)
class TemplateData(Generic[T]):
    """Data handed to a page template.

    Attributes:
        inner: Page-specific payload.
        subtitle: Suffix for the page title; empty on the home page.
    """

    inner: T
    subtitle: str = ""


@dataclass(frozen=True)
class IndexPage:
    recent_posts: list[Post]


@dataclass(frozen=True)
class BlogPage:
    posts: list[Post]


@dataclass(frozen=True)
class UsesPage:
    pass


Handler = Callable[[Request], Response]
DataFunc = Callable[[Request], Any]


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a path pattern like ``/blog/{slug}`` into a regex.

    Each ``{name}`` matches exactly one non-empty path segment.
    """
    if not pattern.startswith("/"):
        raise ValueError(f"pattern must start with '/': {pattern}")
    parts = []
    pos = 0
    for match in _PARAM_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos : match.start()]))
        parts.append(f"(?P<{match.group(1)}>[^/]+)")
        pos = match.end()
    parts.append(re.escape(pattern[pos:]))
    return re.compile("^" + "".join(parts) + "$")


@dataclass
class Route:
    pattern: str
    regex: re.Pattern[str]
    handler: Handler

    def match(self, path: str) -> dict[str, str] | None:
        found = self.regex.match(path)
        if found is None:
            return None
        return {name: unquote(value) for name, value in found.groupdict().items()}


class Router:
    """Dispatches requests to the first route whose pattern matches.

    Only GET is routed; HEAD is answered like GET and the server drops the
    body.
    """

    allowed_methods = ("GET", "HEAD")

    def __init__(self) -> None:
        self._routes: list[Route] = []

    @property
    def patterns(self) -> list[str]:
        return [route.pattern for route in self._routes]

    def register(self, pattern: str, handler: Handler) -> None:
        """Register a raw handler for ``pattern``.

        Raises:
            ValueError: If the pattern is already registered.
        """
        if pattern in self.patterns:
            raise ValueError(f"pattern {pattern} already registered")
        self._routes.append(Route(pattern, compile_pattern(pattern), handler))

    def register_template(
        self,
        pattern: str,
        template_id: str,
        data_fn: DataFunc | None,
        templates: TemplateSet,
    ) -> None:
        """Serve ``template_id`` at ``pattern`` with data from ``data_fn``.

        Raises:
            MissingTemplateError: If the template set has no such template.
        """
        if template_id not in templates:
            raise MissingTemplateError(template_id)

        def handler(request: Request) -> Response:
            data = None
            if data_fn is not None:
                try:
                    data = data_fn(request)
                except NotFound:
                    return Response.not_found()
                except Exception as exc:
                    logger.error(
                        "data function failed",
                        extra={"path": request.path, "error": str(exc)},
                    )
                    return Response.text(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
            buf = io.StringIO()
            try:
                templates.render(template_id, data, buf)
            except Exception as exc:
                logger.error(
                    "rendering template failed",
                    extra={"template": template_id, "error": str(exc)},
                )
                return Response.text(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
            return Response(
                body=buf.getvalue().encode("utf-8"),
                headers={"Content-Type": HTML_CONTENT_TYPE},
            )

        self.register(pattern, handler)

    def dispatch(self, request: Request) -> Response:
        """Route ``request`` and return the handler's response."""
        for route in self._routes:
            params = route.match(request.path)
            if params is None:
                continue
            if request.method not in self.allowed_methods:
                response = Response.text(
                    HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed"
                )
                response.headers["Allow"] = ", ".join(self.allowed_methods)
                return response
            request.params = params
            return route.handler(request)
        return Response.not_found()


def file_handler(path: Path) -> Handler:
    """Handler serving the bytes of ``path`` with a guessed content type."""
    content_type, _ = mimetypes.guess_type(path.name)
    if content_type is None:
        content_type = "application/octet-stream"
    elif content_type.startswith("text/") or content_type in (
        "application/javascript",
        "application/json",
        "image/svg+xml",
    ):
        content_type += "; charset=utf-8"

    def handler(request: Request) -> Response:
        try:
            body = path.read_bytes()
        except OSError as exc:
            return Response.text(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
        return Response(body=body, headers={"Content-Type": content_type})

    return handler


def register_public_dir(router: Router, directory: Path) -> int:
    """Register one route per file under ``directory``.

    A file at ``<directory>/css/site.css`` is served at ``/css/site.css``.

    Returns:
        Number of routes registered.

    Raises:
        FileNotFoundError: If the directory does not exist.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"public directory {directory} does not exist")
    count = 0
    for path in sorted(directory.rglob("*")):
        if path.is_dir():
            continue
        rel = path.relative_to(directory).as_posix()
        router.register(f"/{rel}", file_handler(path))
        count += 1
    return count
