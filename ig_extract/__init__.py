from __future__ import annotations

from .assemble import (
    ROOT_NODE_PATHS,
    ExtractionSettings,
    extract_post,
    extract_post_from_html,
    find_shortcode_media,
    require_post,
)
from .errors import (
    ConfigError,
    ExtractError,
    MalformedReferenceError,
    NoResolvableMediaError,
    NotRecognizedError,
    ParseFailureError,
    PostNotFoundError,
)
from .post import CanonicalPost, MediaItem, PostUrl
from .shortcode import decode_shortcode, encode_media_id
from .urls import canonicalize_post_url, extract_post_urls, parse_post_url

__all__ = [
    "CanonicalPost",
    "ConfigError",
    "ExtractError",
    "ExtractionSettings",
    "MalformedReferenceError",
    "MediaItem",
    "NoResolvableMediaError",
    "NotRecognizedError",
    "ParseFailureError",
    "PostNotFoundError",
    "PostUrl",
    "ROOT_NODE_PATHS",
    "canonicalize_post_url",
    "decode_shortcode",
    "encode_media_id",
    "extract_post",
    "extract_post_from_html",
    "extract_post_urls",
    "find_shortcode_media",
    "parse_post_url",
    "require_post",
]
