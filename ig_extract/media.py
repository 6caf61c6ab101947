from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .post import GRAPH_IMAGE, GRAPH_SIDECAR, GRAPH_VIDEO, MediaItem

MEDIA_TYPE_TYPENAMES: Mapping[int, str] = {
    2: GRAPH_VIDEO,
    8: GRAPH_SIDECAR,
}


@dataclass(frozen=True)
class MediaCandidate:
    url: str
    width: int | None = None
    height: int | None = None

    @property
    def area(self) -> int:
        w, h = self.width, self.height
        if w is None or h is None or w <= 0 or h <= 0:
            return 0
        return w * h


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_dimension(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def media_candidates(raw: Any, *, url_keys: Sequence[str] = ("src", "url")) -> list[MediaCandidate]:
    """Turn a raw candidate list into MediaCandidates, skipping entries without a URL."""
    if not isinstance(raw, list):
        return []

    out: list[MediaCandidate] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        url = None
        for key in url_keys:
            url = _coerce_str(entry.get(key))
            if url:
                break
        if not url:
            continue
        out.append(
            MediaCandidate(
                url=url,
                width=_coerce_dimension(entry.get("width")),
                height=_coerce_dimension(entry.get("height")),
            )
        )
    return out


def pick_best_candidate(candidates: Sequence[MediaCandidate]) -> MediaCandidate | None:
    """Largest area wins; on a tie (including all-unknown) the earliest candidate wins."""
    best: MediaCandidate | None = None
    for candidate in candidates:
        if best is None or candidate.area > best.area:
            best = candidate
    return best


def pick_best_image_url(raw: Any) -> str | None:
    best = pick_best_candidate(media_candidates(raw, url_keys=("src", "url")))
    return best.url if best is not None else None


def pick_best_video_url(raw: Any) -> str | None:
    best = pick_best_candidate(media_candidates(raw, url_keys=("url",)))
    return best.url if best is not None else None


def normalize_typename(node: Mapping[str, Any] | None) -> str:
    if not isinstance(node, Mapping):
        return GRAPH_IMAGE

    typename = _coerce_str(node.get("__typename"))
    if typename:
        return typename

    media_type = node.get("media_type")
    if isinstance(media_type, int) and not isinstance(media_type, bool):
        mapped = MEDIA_TYPE_TYPENAMES.get(media_type)
        if mapped:
            return mapped

    if node.get("is_video"):
        return GRAPH_VIDEO
    return GRAPH_IMAGE


def resolve_display_url(node: Mapping[str, Any]) -> str | None:
    image_versions = node.get("image_versions2")
    return (
        _coerce_str(node.get("display_url"))
        or _coerce_str(node.get("displayUrl"))
        or pick_best_image_url(node.get("display_resources"))
        or pick_best_image_url(
            image_versions.get("candidates") if isinstance(image_versions, Mapping) else None
        )
        or pick_best_image_url(node.get("candidates"))
        or _coerce_str(node.get("thumbnail_src"))
    )


def resolve_video_url(node: Mapping[str, Any]) -> str | None:
    return (
        _coerce_str(node.get("video_url"))
        or _coerce_str(node.get("videoUrl"))
        or pick_best_video_url(node.get("video_versions"))
    )


def normalize_media_node(node: Any) -> MediaItem | None:
    """
    Resolve one media node to a MediaItem.

    Nodes with no resolvable image URL are dropped (None), never emitted empty.
    """
    if not isinstance(node, Mapping):
        return None

    display_url = resolve_display_url(node)
    if not display_url:
        return None

    return MediaItem(
        display_url=display_url,
        video_url=resolve_video_url(node),
        typename=normalize_typename(node),
    )


def _child_nodes(media: Mapping[str, Any]) -> list[Any] | None:
    sidecar = media.get("edge_sidecar_to_children")
    if isinstance(sidecar, Mapping):
        edges = sidecar.get("edges")
        if isinstance(edges, list) and edges:
            return [edge.get("node") if isinstance(edge, Mapping) else None for edge in edges]

    carousel = media.get("carousel_media")
    if isinstance(carousel, list) and carousel:
        return carousel

    children = media.get("children")
    if isinstance(children, Mapping):
        data = children.get("data")
        if isinstance(data, list) and data:
            return data

    return None


def collect_media_items(media: Any) -> list[MediaItem]:
    """
    All media items of a post root node, in source order.

    Carousel children that cannot be resolved are dropped; the rest are kept.
    """
    if not isinstance(media, Mapping):
        return []

    children = _child_nodes(media)
    if children is None:
        single = normalize_media_node(media)
        return [single] if single is not None else []

    items: list[MediaItem] = []
    for child in children:
        item = normalize_media_node(child)
        if item is not None:
            items.append(item)
    return items
