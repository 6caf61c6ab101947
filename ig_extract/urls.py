from __future__ import annotations

import re
from urllib.parse import urlsplit

from .post import PostUrl

INSTAGRAM_HOSTS = frozenset({"instagram.com", "instagr.am"})
INSTAGRAM_PATH_TYPES = frozenset({"p", "reel", "reels", "tv"})

_CANONICAL_HOST = "www.instagram.com"
_PATH_TYPE_ALIASES = {"reels": "reel"}

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_HTTP_URL_RE = re.compile(r"https?://\S+")
_BARE_URL_RE = re.compile(r"(?:www\.)?(?:instagram\.com|instagr\.am)/\S+", re.IGNORECASE)
_TRAILING_PUNCT_RE = re.compile(r"""[)\]}>,.;'"]+$""")


def parse_post_url(raw: str) -> PostUrl | None:
    """
    Recognize a post/reel/TV link and rewrite it to the canonical form.

    Accepts scheme-less input, the instagr.am alias and /share/<type>/<code>/
    wrappers. Profiles, stories and anything off-site yield None.
    """
    value = (raw or "").strip()
    if not value:
        return None
    if not _SCHEME_RE.match(value):
        value = f"https://{value}"

    try:
        parts = urlsplit(value)
        hostname = parts.hostname or ""
    except ValueError:
        return None

    if hostname.startswith("www."):
        hostname = hostname[4:]
    if hostname not in INSTAGRAM_HOSTS:
        return None

    segments = [seg for seg in (parts.path or "").split("/") if seg]
    if len(segments) < 2:
        return None

    path_type, short_code = segments[0], segments[1]
    if path_type == "share":
        if len(segments) < 3:
            return None
        path_type, short_code = segments[1], segments[2]

    path_type = _PATH_TYPE_ALIASES.get(path_type, path_type)
    if path_type not in INSTAGRAM_PATH_TYPES:
        return None

    return PostUrl(
        short_code=short_code,
        url=f"https://{_CANONICAL_HOST}/{path_type}/{short_code}/",
    )


def canonicalize_post_url(raw: str) -> str | None:
    parsed = parse_post_url(raw)
    return parsed.url if parsed is not None else None


def extract_post_urls(text: str) -> list[str]:
    """
    Find every post link in free text, canonicalized and deduplicated in order.
    """
    source = text or ""
    matches = _HTTP_URL_RE.findall(source) or _BARE_URL_RE.findall(source)

    out: list[str] = []
    seen: set[str] = set()
    for match in matches:
        cleaned = _TRAILING_PUNCT_RE.sub("", match)
        url = canonicalize_post_url(cleaned)
        if url is None or url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out
