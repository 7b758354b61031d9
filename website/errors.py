"""Exception types raised while assembling and serving the site."""

from __future__ import annotations

from pathlib import Path


class WebsiteError(Exception):
    """Base class for all startup errors."""


class ConfigError(WebsiteError):
    """Invalid configuration value in the environment."""


class PostError(WebsiteError):
    """A post could not be loaded, or the post set is inconsistent.

    Attributes:
        source_path: Path to the offending file, when there is one.
        message: Human-readable error message.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.source_path = source_path
        self.message = message
        if source_path is not None:
            super().__init__(f"{source_path.name}: {message}")
        else:
            super().__init__(message)


class TemplateLoadError(WebsiteError):
    """The template directory could not be compiled."""


class MissingTemplateError(WebsiteError):
    """A template id was requested that the template set does not hold."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"missing template {template_id}")


class BuildError(WebsiteError):
    """Error while assembling the site, tagged with the failing stage.

    Attributes:
        stage: Short description of what was being done.
        original_error: The original exception that was caught.
    """

    def __init__(self, stage: str, original_error: Exception):
        self.stage = stage
        self.original_error = original_error
        super().__init__(f"{stage}: {original_error}")
