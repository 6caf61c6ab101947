from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class ExtractError(RuntimeError):
    """Base class for failures surfaced by the extraction entry points."""


class NotRecognizedError(ExtractError):
    """Raised when a URL is not an Instagram post, reel or TV link."""


class MalformedReferenceError(ExtractError):
    """Raised when a shortcode or media id cannot be converted."""


class ParseFailureError(ExtractError):
    """Raised when an input document cannot be read or parsed."""


class PostNotFoundError(ExtractError):
    """Raised when no known payload shape yields a post root node."""


class NoResolvableMediaError(ExtractError):
    """Raised when a post root node exists but no media URL resolves."""
