from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

GRAPH_IMAGE = "GraphImage"
GRAPH_VIDEO = "GraphVideo"
GRAPH_SIDECAR = "GraphSidecar"


@dataclass(frozen=True)
class PostUrl:
    short_code: str
    url: str


@dataclass(frozen=True)
class MediaItem:
    """One resolved image or video; display_url is never empty."""

    display_url: str
    video_url: str | None = None
    typename: str = GRAPH_IMAGE

    def to_dict(self) -> dict[str, Any]:
        return {
            "displayUrl": self.display_url,
            "videoUrl": self.video_url,
            "typename": self.typename,
        }


@dataclass(frozen=True)
class CanonicalPost:
    """A single post, normalized from whichever payload shape was found."""

    short_code: str
    display_url: str
    caption: str = ""
    author_handle: str = ""
    video_url: str | None = None
    author_display_name: str | None = None
    author_avatar_url: str | None = None
    timestamp: int | None = None
    typename: str = GRAPH_IMAGE
    media: Sequence[MediaItem] = ()

    @property
    def is_video(self) -> bool:
        return self.typename == GRAPH_VIDEO or bool(self.video_url)

    def to_dict(self) -> dict[str, Any]:
        return {
            "shortcode": self.short_code,
            "displayUrl": self.display_url,
            "videoUrl": self.video_url,
            "caption": self.caption,
            "username": self.author_handle,
            "displayName": self.author_display_name,
            "profilePicUrl": self.author_avatar_url,
            "timestamp": self.timestamp,
            "typename": self.typename,
            "media": [item.to_dict() for item in self.media],
        }
