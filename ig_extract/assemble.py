from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol, Sequence

from .caption import (
    clean_caption,
    extract_author_from_json_ld,
    extract_caption,
    extract_caption_from_json_ld,
    extract_handle_from_text,
    extract_username_from_meta,
)
from .config_schema import AppConfig
from .entities import decode_html_entities
from .errors import NoResolvableMediaError, PostNotFoundError
from .markup import (
    DEFAULT_PAYLOAD_SOURCES,
    PayloadSource,
    build_payload_sources,
    collect_embedded_payloads,
    extract_json_ld_payloads,
    extract_meta_content,
    extract_meta_name,
)
from .media import collect_media_items, normalize_typename
from .navigator import DEFAULT_MAX_DEPTH, PathStep, find_value_by_key, get_value_at_path
from .post import GRAPH_IMAGE, CanonicalPost, MediaItem
from .run_log import ExtractLogger
from .urls import parse_post_url

# Where a post's root media node has been observed, oldest layout first.
ROOT_NODE_PATHS: tuple[tuple[PathStep, ...], ...] = (
    ("entry_data", "PostPage", 0, "graphql", "shortcode_media"),
    ("graphql", "shortcode_media"),
    ("data", "shortcode_media"),
    ("data", "xdt_shortcode_media"),
    ("data", "xdt_api__v1__media__shortcode__web_info", "items", 0),
    ("props", "pageProps", "graphql", "shortcode_media"),
    ("props", "pageProps", "data", "shortcode_media"),
    ("props", "pageProps", "data", "xdt_shortcode_media"),
)
ROOT_NODE_KEYS: tuple[str, ...] = ("shortcode_media", "xdt_shortcode_media")

# The private API answers with {"items": [...]} instead.
_ITEMS_KEY = "items"
_XSSI_PREFIX = "for (;;);"


class RootLocator(Protocol):
    @property
    def name(self) -> str: ...

    def locate(self, payload: Any, *, max_depth: int) -> Mapping[str, Any] | None: ...


@dataclass(frozen=True)
class PathLocator:
    path: tuple[PathStep, ...]

    @property
    def name(self) -> str:
        return "path:" + ".".join(str(step) for step in self.path)

    def locate(self, payload: Any, *, max_depth: int) -> Mapping[str, Any] | None:
        found = get_value_at_path(payload, self.path)
        return found if isinstance(found, Mapping) else None


@dataclass(frozen=True)
class KeySearchLocator:
    keys: tuple[str, ...]

    @property
    def name(self) -> str:
        return "search:" + ",".join(self.keys)

    def locate(self, payload: Any, *, max_depth: int) -> Mapping[str, Any] | None:
        found = find_value_by_key(payload, self.keys, max_depth=max_depth)
        return found if isinstance(found, Mapping) else None


@dataclass(frozen=True)
class FirstItemLocator:
    key: str = _ITEMS_KEY

    @property
    def name(self) -> str:
        return f"first-item:{self.key}"

    def locate(self, payload: Any, *, max_depth: int) -> Mapping[str, Any] | None:
        items = find_value_by_key(payload, (self.key,), max_depth=max_depth)
        if isinstance(items, list) and items and isinstance(items[0], Mapping):
            return items[0]
        return None


def build_root_locators(
    root_paths: Iterable[Sequence[PathStep]] = ROOT_NODE_PATHS,
) -> tuple[RootLocator, ...]:
    locators: list[RootLocator] = [PathLocator(tuple(path)) for path in root_paths]
    locators.append(KeySearchLocator(ROOT_NODE_KEYS))
    locators.append(FirstItemLocator())
    return tuple(locators)


DEFAULT_ROOT_LOCATORS = build_root_locators()


@dataclass(frozen=True)
class ExtractionSettings:
    """Immutable strategy lists and limits used by one or many extractions."""

    root_locators: tuple[RootLocator, ...] = DEFAULT_ROOT_LOCATORS
    payload_sources: tuple[PayloadSource, ...] = DEFAULT_PAYLOAD_SOURCES
    max_depth: int = DEFAULT_MAX_DEPTH
    meta_fallback: bool = True

    @classmethod
    def from_config(cls, config: AppConfig) -> "ExtractionSettings":
        ex = config.extraction
        paths = list(ROOT_NODE_PATHS) + [tuple(p) for p in ex.extra_root_paths]
        return cls(
            root_locators=build_root_locators(paths),
            payload_sources=build_payload_sources(ex.markers, ex.script_ids),
            max_depth=ex.max_search_depth,
            meta_fallback=ex.meta_fallback,
        )


DEFAULT_SETTINGS = ExtractionSettings()


@dataclass(frozen=True)
class PageHints:
    """Page-level metadata used to fill gaps left by the root media node."""

    meta_image: str = ""
    meta_title: str = ""
    meta_description: str = ""
    json_ld_caption: str = ""
    json_ld_author: str = ""

    @property
    def meta_username(self) -> str:
        return extract_username_from_meta(self.meta_title, self.meta_description)

    @property
    def is_empty(self) -> bool:
        return not (self.meta_image or self.meta_title or self.meta_description)


def _first_present(*values: str | None) -> str:
    for value in values:
        if value:
            return value
    return ""


def page_hints_from_html(html: str, *, logger: ExtractLogger | None = None) -> PageHints:
    image = _first_present(
        extract_meta_content(html, "og:image:secure_url"),
        extract_meta_content(html, "og:image"),
        extract_meta_content(html, "twitter:image"),
        extract_meta_name(html, "twitter:image"),
    )
    title = _first_present(
        extract_meta_content(html, "og:title"),
        extract_meta_content(html, "twitter:title"),
        extract_meta_name(html, "twitter:title"),
    )
    description = _first_present(
        extract_meta_content(html, "og:description"),
        extract_meta_content(html, "twitter:description"),
        extract_meta_name(html, "twitter:description"),
        extract_meta_name(html, "description"),
    )
    json_ld = extract_json_ld_payloads(html, logger=logger)

    return PageHints(
        meta_image=decode_html_entities(image),
        meta_title=decode_html_entities(title),
        meta_description=decode_html_entities(description),
        json_ld_caption=extract_caption_from_json_ld(json_ld),
        json_ld_author=extract_author_from_json_ld(json_ld),
    )


def find_shortcode_media(
    payload: Any,
    *,
    settings: ExtractionSettings = DEFAULT_SETTINGS,
    logger: ExtractLogger | None = None,
) -> Mapping[str, Any] | None:
    """
    Locate a post's root media node, trying each known layout in order.
    """
    if payload is None:
        return None

    for locator in settings.root_locators:
        found = locator.locate(payload, max_depth=settings.max_depth)
        if found is not None:
            if logger is not None:
                logger.debug("root_node_found", locator=locator.name)
            return found
    return None


def _owner_field(root: Mapping[str, Any], field: str) -> str | None:
    for key in ("owner", "user"):
        owner = root.get(key)
        if isinstance(owner, Mapping):
            value = owner.get(field)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _timestamp(root: Mapping[str, Any]) -> int | None:
    for key in ("taken_at_timestamp", "taken_at"):
        value = root.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, float) and math.isfinite(value):
            return int(value)
    return None


def _root_short_code(root: Mapping[str, Any]) -> str | None:
    for key in ("shortcode", "code"):
        value = root.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _author_handle(hints: PageHints, *preferred: str | None) -> str:
    return _first_present(
        *preferred,
        extract_handle_from_text(hints.json_ld_author),
        extract_handle_from_text(hints.meta_description),
        extract_handle_from_text(hints.meta_title),
        hints.json_ld_author or hints.meta_username,
    )


def build_post(
    root: Mapping[str, Any],
    *,
    short_code: str | None = None,
    hints: PageHints = PageHints(),
) -> CanonicalPost | None:
    """
    Assemble a CanonicalPost from a root media node and optional page hints.

    Returns None when no media URL resolves, from the node or the meta image.
    """
    typename = normalize_typename(root)
    items = collect_media_items(root)

    primary = items[0] if items else None
    display_url = primary.display_url if primary is not None else hints.meta_image
    video_url = primary.video_url if primary is not None else None
    if not display_url:
        return None

    media: tuple[MediaItem, ...] = tuple(items) or (
        MediaItem(display_url=display_url, video_url=video_url, typename=typename),
    )

    caption = clean_caption(
        _first_present(
            extract_caption(root),
            hints.json_ld_caption,
            hints.meta_description,
            hints.meta_title,
        )
    )
    display_name = _first_present(
        hints.json_ld_author, hints.meta_username, _owner_field(root, "full_name")
    )

    return CanonicalPost(
        short_code=_first_present(_root_short_code(root), short_code),
        display_url=display_url,
        video_url=video_url,
        caption=caption,
        author_handle=_author_handle(hints, _owner_field(root, "username")),
        author_display_name=display_name or None,
        author_avatar_url=_owner_field(root, "profile_pic_url"),
        timestamp=_timestamp(root),
        typename=typename,
        media=media,
    )


def build_post_from_hints(hints: PageHints, *, short_code: str | None = None) -> CanonicalPost | None:
    """Meta-tag-only record: a single image, no carousel or video."""
    if not hints.meta_image:
        return None

    display_name = hints.json_ld_author or hints.meta_username
    return CanonicalPost(
        short_code=short_code or "",
        display_url=hints.meta_image,
        caption=clean_caption(
            _first_present(hints.json_ld_caption, hints.meta_description, hints.meta_title)
        ),
        author_handle=_author_handle(hints),
        author_display_name=display_name or None,
        typename=GRAPH_IMAGE,
        media=(MediaItem(display_url=hints.meta_image, typename=GRAPH_IMAGE),),
    )


@dataclass(frozen=True)
class _Outcome:
    post: CanonicalPost | None
    root_found: bool


def _url_short_code(url: str | None, logger: ExtractLogger | None) -> str | None:
    if not url:
        return None
    parsed = parse_post_url(url)
    if parsed is None:
        if logger is not None:
            logger.warning("url_not_recognized", input_url=url)
        return None
    return parsed.short_code


def _from_json(
    payload: Any,
    *,
    short_code: str | None,
    hints: PageHints,
    settings: ExtractionSettings,
    logger: ExtractLogger | None,
) -> _Outcome:
    root = find_shortcode_media(payload, settings=settings, logger=logger)
    if root is None:
        return _Outcome(post=None, root_found=False)

    post = build_post(root, short_code=short_code, hints=hints)
    if post is None and logger is not None:
        logger.warning("media_unresolvable", root_keys=sorted(str(k) for k in root.keys()))
    return _Outcome(post=post, root_found=True)


def _run_html(
    html: str,
    *,
    short_code: str | None,
    extra_payloads: Sequence[Any],
    settings: ExtractionSettings,
    logger: ExtractLogger | None,
) -> _Outcome:
    hints = page_hints_from_html(html, logger=logger)

    payloads: list[tuple[str, Any]] = [
        (f"extra:{i}", p) for i, p in enumerate(extra_payloads) if p is not None
    ]
    payloads.extend(collect_embedded_payloads(html, settings.payload_sources, logger=logger))

    root_found = False
    for source, payload in payloads:
        outcome = _from_json(
            payload, short_code=short_code, hints=hints, settings=settings, logger=logger
        )
        root_found = root_found or outcome.root_found
        if outcome.post is not None:
            if logger is not None:
                logger.info("post_assembled", source=source, media_count=len(outcome.post.media))
            return outcome

    if settings.meta_fallback and not hints.is_empty:
        post = build_post_from_hints(hints, short_code=short_code)
        if post is not None:
            if logger is not None:
                logger.warning("meta_fallback_used", has_caption=bool(post.caption))
            return _Outcome(post=post, root_found=root_found)

    return _Outcome(post=None, root_found=root_found)


def _parse_json_text(text: str) -> tuple[bool, Any]:
    body = text[len(_XSSI_PREFIX) :] if text.startswith(_XSSI_PREFIX) else text
    body = body.lstrip()
    if not body.startswith(("{", "[")):
        return False, None
    try:
        return True, json.loads(body)
    except (ValueError, RecursionError):
        return False, None


def _run(
    payload: Any,
    *,
    url: str | None,
    extra_payloads: Sequence[Any],
    settings: ExtractionSettings | None,
    logger: ExtractLogger | None,
) -> _Outcome:
    cfg = settings or DEFAULT_SETTINGS
    short_code = _url_short_code(url, logger)

    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode("utf-8", errors="replace")

    if isinstance(payload, str):
        text = payload.strip()
        is_json, parsed = _parse_json_text(text)
        if not is_json:
            outcome = _run_html(
                text,
                short_code=short_code,
                extra_payloads=extra_payloads,
                settings=cfg,
                logger=logger,
            )
            if outcome.post is None and logger is not None:
                logger.warning("post_not_found", input_kind="html", root_found=outcome.root_found)
            return outcome
        payload = parsed

    root_found = False
    for candidate in [*extra_payloads, payload]:
        if candidate is None:
            continue
        outcome = _from_json(
            candidate, short_code=short_code, hints=PageHints(), settings=cfg, logger=logger
        )
        root_found = root_found or outcome.root_found
        if outcome.post is not None:
            if logger is not None:
                logger.info("post_assembled", source="json", media_count=len(outcome.post.media))
            return outcome

    if logger is not None:
        logger.warning("post_not_found", input_kind="json", root_found=root_found)
    return _Outcome(post=None, root_found=root_found)


def extract_post(
    payload: Any,
    *,
    url: str | None = None,
    extra_payloads: Sequence[Any] = (),
    settings: ExtractionSettings | None = None,
    logger: ExtractLogger | None = None,
) -> CanonicalPost | None:
    """
    Extract a CanonicalPost from a page payload.

    `payload` may be raw HTML, JSON text (optionally behind the "for (;;);"
    guard), bytes, or an already-parsed JSON value. `url` supplies the
    shortcode when the payload lacks one. `extra_payloads` are JSON documents
    fetched separately for the same post; they are searched before anything
    embedded in the page. Returns None when no strategy yields a post.
    """
    return _run(
        payload, url=url, extra_payloads=extra_payloads, settings=settings, logger=logger
    ).post


def extract_post_from_html(
    html: str,
    *,
    url: str | None = None,
    extra_payloads: Sequence[Any] = (),
    settings: ExtractionSettings | None = None,
    logger: ExtractLogger | None = None,
) -> CanonicalPost | None:
    cfg = settings or DEFAULT_SETTINGS
    return _run_html(
        html or "",
        short_code=_url_short_code(url, logger),
        extra_payloads=extra_payloads,
        settings=cfg,
        logger=logger,
    ).post


def require_post(
    payload: Any,
    *,
    url: str | None = None,
    extra_payloads: Sequence[Any] = (),
    settings: ExtractionSettings | None = None,
    logger: ExtractLogger | None = None,
) -> CanonicalPost:
    """Like extract_post, but raises PostNotFoundError / NoResolvableMediaError."""
    outcome = _run(
        payload, url=url, extra_payloads=extra_payloads, settings=settings, logger=logger
    )
    if outcome.post is not None:
        return outcome.post
    if outcome.root_found:
        raise NoResolvableMediaError("Post root node found but no media URL could be resolved")
    raise PostNotFoundError("No known payload shape contained a post")
