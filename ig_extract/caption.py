from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

from .entities import decode_html_entities
from .navigator import collect_json_objects, find_value_by_key, pick_string_field

INSTAGRAM_HANDLE_RE = re.compile(r"^[A-Za-z0-9._]{1,30}$")

JSON_LD_CAPTION_TYPES = frozenset(
    {"ImageObject", "VideoObject", "SocialMediaPosting", "Article", "NewsArticle"}
)
JSON_LD_CAPTION_KEYS: tuple[str, ...] = ("caption", "articleBody", "description")
JSON_LD_NAME_KEYS: tuple[str, ...] = ("name", "alternateName")

_BYLINE_RE = re.compile(r"(?:^|-)\s*([A-Za-z0-9._]{1,30})\s+on\s+Instagram", re.IGNORECASE)
_MENTION_RE = re.compile(r"@([A-Za-z0-9._]{1,30})")
_NON_HANDLE_CHARS_RE = re.compile(r"[^A-Za-z0-9._]")

# "1,234 likes, 56 comments - someone: ..." as rendered in og:description.
_LIKES_PREAMBLE_RE = re.compile(
    r"^\d[\d,.Kk]*\s+likes?,\s+\d[\d,.Kk]*\s+comments?\s+-\s+", re.IGNORECASE
)
_QUOTED_TAIL_RE = re.compile(r":\s*[\"“]([\s\S]*)[\"”]\.?$")
_UP_TO_COLON_RE = re.compile(r"^[^:]*:\s*")
_EDGE_QUOTES_RE = re.compile(r"^[\"“]|[\"”]$")
_ON_INSTAGRAM_RE = re.compile(r"on Instagram", re.IGNORECASE)

_META_TITLE_USER_RE = re.compile(r"^([^:]+?) on Instagram")
_META_DESC_USER_RE = re.compile(r"- (\S+) on Instagram")


def extract_caption_from_json_ld(payloads: Sequence[Any]) -> str:
    """
    First caption-like field of a post-like JSON-LD object, entity-decoded.

    Objects typed outside the whitelist are ignored; untyped objects are
    considered. Falls back to a bounded key search over all payloads.
    """
    for obj in collect_json_objects(list(payloads)):
        type_value = obj.get("@type")
        if isinstance(type_value, str) and type_value not in JSON_LD_CAPTION_TYPES:
            continue
        caption = pick_string_field(obj, JSON_LD_CAPTION_KEYS)
        if caption:
            return decode_html_entities(caption)

    fallback = find_value_by_key(list(payloads), JSON_LD_CAPTION_KEYS)
    if isinstance(fallback, str):
        return decode_html_entities(fallback)
    return ""


def _strip_at(value: str) -> str:
    s = value.strip()
    return s[1:] if s.startswith("@") else s


def _author_name(author: Any) -> str | None:
    if isinstance(author, str):
        return _strip_at(author) if author.strip() else None
    if isinstance(author, Mapping):
        name = pick_string_field(author, JSON_LD_NAME_KEYS)
        return _strip_at(name) if name else None
    return None


def extract_author_from_json_ld(payloads: Sequence[Any]) -> str:
    for obj in collect_json_objects(list(payloads)):
        author = obj.get("author")
        if not author:
            continue

        if isinstance(author, list):
            for entry in author:
                name = _author_name(entry)
                if name:
                    return name
            continue

        name = _author_name(author)
        if name:
            return name
    return ""


def extract_handle_from_text(text: str | None) -> str | None:
    """
    Best-effort Instagram handle from free text (titles, bylines, author names).
    """
    if not text:
        return None
    cleaned = decode_html_entities(text).strip()
    if not cleaned:
        return None

    if INSTAGRAM_HANDLE_RE.fullmatch(cleaned):
        return cleaned

    byline = _BYLINE_RE.search(cleaned)
    if byline:
        return byline.group(1)

    mention = _MENTION_RE.search(cleaned)
    if mention:
        return mention.group(1)

    for token in cleaned.split():
        normalized = _NON_HANDLE_CHARS_RE.sub("", token)
        if INSTAGRAM_HANDLE_RE.fullmatch(normalized):
            return normalized
    return None


def _quoted_tail(text: str) -> str | None:
    match = _QUOTED_TAIL_RE.search(text)
    if match and match.group(1):
        return match.group(1).strip() or None
    return None


def clean_caption(text: str | None) -> str:
    """
    Strip the "N likes, M comments - user:" wrapper Instagram puts in meta descriptions.
    """
    trimmed = decode_html_entities(text or "").strip()
    if not trimmed:
        return ""

    if _LIKES_PREAMBLE_RE.match(trimmed):
        quoted = _quoted_tail(trimmed)
        if quoted:
            return quoted

        remainder = _LIKES_PREAMBLE_RE.sub("", trimmed, count=1)
        tail = _UP_TO_COLON_RE.sub("", remainder, count=1)
        return _EDGE_QUOTES_RE.sub("", tail).strip()

    if _ON_INSTAGRAM_RE.search(trimmed):
        quoted = _quoted_tail(trimmed)
        if quoted:
            return quoted

    return trimmed


def extract_caption(media: Any) -> str:
    """Caption text carried by a post root node, entity-decoded ("" when absent)."""
    if not isinstance(media, Mapping):
        return ""

    edge = media.get("edge_media_to_caption")
    edges = edge.get("edges") if isinstance(edge, Mapping) else None
    if isinstance(edges, list) and edges:
        first = edges[0]
        node = first.get("node") if isinstance(first, Mapping) else None
        text = node.get("text") if isinstance(node, Mapping) else None
        if isinstance(text, str) and text:
            return decode_html_entities(text)

    caption = media.get("caption")
    if isinstance(caption, str):
        return decode_html_entities(caption)
    if isinstance(caption, Mapping) and isinstance(caption.get("text"), str):
        return decode_html_entities(caption["text"])
    return ""


def extract_username_from_meta(title: str, description: str) -> str:
    """Display name from "<name> on Instagram" titles or "- <name> on Instagram" descriptions."""
    match = _META_TITLE_USER_RE.match(title or "")
    if match:
        return match.group(1).strip()
    match = _META_DESC_USER_RE.search(description or "")
    if match:
        return match.group(1).strip()
    return ""
