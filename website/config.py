"""Runtime configuration for the website.

Configuration is read once from the process environment (optionally seeded
from a ``.env`` file by the CLI) into an immutable Config value, which is
passed explicitly to everything that needs it.

Environment variables:
- PORT: TCP port to listen on (default 8080).
- LOG_LEVEL: One of DEBUG, INFO, WARN, ERROR (default INFO).
- PRODUCTION: Force production (1/true) or development (0/false) mode.
- SITE_URL: Public base URL used in the feed and absolute links.
"""

from __future__ import annotations

import logging
import os
import platform
import socket
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

# Directory holding the packaged templates, posts and public files.
STATIC_DIR = Path(__file__).parent / "static"

DEFAULT_PORT = 8080

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

# Hostname of the development laptop; it never runs in production mode.
DEV_HOSTNAME = "mbp"


@dataclass(frozen=True)
class SiteMetadata:
    """Fixed site and author details used by templates and the feed."""

    url: str = "https://morgangallant.com"
    title: str = "Morgan Gallant"
    feed_title: str = "Morgan Gallant's blog"
    description: str = (
        "Ramblings about technology, software... and probably some other stuff too"
    )
    author: str = "Morgan Gallant"
    email: str = "morgan@morgangallant.com"


@dataclass(frozen=True)
class Config:
    """Process configuration.

    Attributes:
        port: Port the HTTP server binds to on all interfaces.
        log_level: Minimum level for log records in production.
        production: Whether the process runs in production mode.
        static_dir: Directory with ``templates/``, ``posts/`` and ``public/``.
        site: Site metadata.
        read_timeout: Seconds allowed for reading a request.
        write_timeout: Seconds allowed for writing a response.
        shutdown_timeout: Seconds in-flight requests get to finish on shutdown.
    """

    port: int = DEFAULT_PORT
    log_level: int = logging.INFO
    production: bool = False
    static_dir: Path = STATIC_DIR
    site: SiteMetadata = field(default_factory=SiteMetadata)
    read_timeout: float = 1.0
    write_timeout: float = 10.0
    shutdown_timeout: float = 3.0

    @property
    def templates_dir(self) -> Path:
        return self.static_dir / "templates"

    @property
    def posts_dir(self) -> Path:
        return self.static_dir / "posts"

    @property
    def public_dir(self) -> Path:
        return self.static_dir / "public"

    @property
    def address(self) -> tuple[str, int]:
        return ("0.0.0.0", self.port)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Build a Config from environment variables.

        Args:
            environ: Mapping to read from; defaults to ``os.environ``.

        Returns:
            The resulting Config.

        Raises:
            ConfigError: If PORT or PRODUCTION hold invalid values.
        """
        env = os.environ if environ is None else environ
        site = SiteMetadata()
        if env.get("SITE_URL"):
            site = SiteMetadata(url=env["SITE_URL"].rstrip("/"))
        return cls(
            port=parse_port(env.get("PORT")),
            log_level=parse_log_level(env.get("LOG_LEVEL")),
            production=parse_production(env.get("PRODUCTION")),
            site=site,
        )


def parse_port(value: str | None) -> int:
    """Parse the PORT variable; empty or unset means the default.

    Examples:
        >>> parse_port("9999")
        9999

        >>> parse_port("")
        8080
    """
    if value is None or value.strip() == "":
        return DEFAULT_PORT
    digits = value.strip()
    if not (digits.isascii() and digits.isdigit()):
        raise ConfigError(f"parsing port string {value}: not a number")
    port = int(digits, 10)
    if not 0 <= port <= 65535:
        raise ConfigError(f"parsing port string {value}: out of range")
    return port


def parse_log_level(value: str | None) -> int:
    """Map LOG_LEVEL to a logging level, falling back to INFO."""
    if not value:
        return logging.INFO
    return LOG_LEVELS.get(value.strip().upper(), logging.INFO)


def parse_production(value: str | None) -> bool:
    """Resolve production mode from PRODUCTION or the host."""
    if value is None or value.strip() == "":
        return detect_production()
    normalized = value.strip().lower()
    if normalized in ("1", "true", "yes"):
        return True
    if normalized in ("0", "false", "no"):
        return False
    raise ConfigError(f"parsing PRODUCTION value {value}: expected true or false")


def detect_production(
    system: str | None = None, hostname: str | None = None
) -> bool:
    """Guess whether this is a production host.

    Anything that is not macOS and not the development laptop counts as
    production.
    """
    system = platform.system() if system is None else system
    hostname = socket.gethostname() if hostname is None else hostname
    return system != "Darwin" and hostname != DEV_HOSTNAME
