from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence

from .run_log import ExtractLogger

_JSON_LD_RE = re.compile(
    r"""<script[^>]+type=["']application/ld\+json["'][^>]*>([\s\S]*?)</script>""",
    re.IGNORECASE,
)
# Characters that matter to the brace scanner; everything else is skipped.
_SCAN_TOKEN_RE = re.compile(r'[{}"\\]')


def _loads(text: str) -> Any | None:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def _meta_patterns(attr: str, key: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    k = re.escape(key)
    return (
        re.compile(
            rf"""<meta[^>]+{attr}=["']{k}["'][^>]+content=["']([^"']+)["']""",
            re.IGNORECASE,
        ),
        re.compile(
            rf"""<meta[^>]+content=["']([^"']+)["'][^>]+{attr}=["']{k}["']""",
            re.IGNORECASE,
        ),
    )


def _meta_lookup(html: str, attr: str, key: str) -> str | None:
    if not html or not key:
        return None
    for pattern in _meta_patterns(attr, key):
        match = pattern.search(html)
        if match and match.group(1):
            return match.group(1)
    return None


def extract_meta_content(html: str, prop: str) -> str | None:
    """Raw content of <meta property="..."> (either attribute order)."""
    return _meta_lookup(html, "property", prop)


def extract_meta_name(html: str, name: str) -> str | None:
    """Raw content of <meta name="..."> (either attribute order)."""
    return _meta_lookup(html, "name", name)


def extract_json_ld_payloads(html: str, *, logger: ExtractLogger | None = None) -> list[Any]:
    """
    Parse every application/ld+json block; top-level arrays are flattened.

    Blocks that fail to parse are skipped.
    """
    payloads: list[Any] = []
    for index, match in enumerate(_JSON_LD_RE.finditer(html or "")):
        raw = (match.group(1) or "").strip()
        if not raw:
            continue
        parsed = _loads(raw)
        if parsed is None:
            if logger is not None:
                logger.warning("json_ld_block_skipped", block_index=index, chars=len(raw))
            continue
        if isinstance(parsed, list):
            payloads.extend(parsed)
        else:
            payloads.append(parsed)
    return payloads


def _balanced_object_end(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    skip_until = -1

    for match in _SCAN_TOKEN_RE.finditer(text, start):
        i = match.start()
        if i < skip_until:
            continue
        char = match.group(0)

        if in_string:
            if char == "\\":
                skip_until = i + 2
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def extract_json_after_marker(html: str, marker: str) -> Any | None:
    """
    Parse the first balanced {...} object that follows `marker`.

    Braces inside double-quoted strings (with backslash escapes) are ignored.
    """
    if not html or not marker:
        return None

    marker_index = html.find(marker)
    if marker_index == -1:
        return None

    start = html.find("{", marker_index)
    if start == -1:
        return None

    end = _balanced_object_end(html, start)
    if end is None:
        return None
    return _loads(html[start : end + 1])


def extract_json_from_script(html: str, script_id: str) -> Any | None:
    if not html or not script_id:
        return None

    pattern = re.compile(
        rf"""<script[^>]+id=["']{re.escape(script_id)}["'][^>]*>([\s\S]*?)</script>""",
        re.IGNORECASE,
    )
    match = pattern.search(html)
    if not match or not match.group(1):
        return None
    return _loads(match.group(1))


class PayloadSource(Protocol):
    @property
    def name(self) -> str: ...

    def extract(self, html: str) -> Any | None: ...


@dataclass(frozen=True)
class MarkerPayload:
    """JSON state assigned after a literal marker (e.g. window._sharedData = {...})."""

    marker: str

    @property
    def name(self) -> str:
        return f"marker:{self.marker}"

    def extract(self, html: str) -> Any | None:
        return extract_json_after_marker(html, self.marker)


@dataclass(frozen=True)
class ScriptPayload:
    """JSON body of a <script id="..."> tag (e.g. __NEXT_DATA__)."""

    script_id: str

    @property
    def name(self) -> str:
        return f"script:{self.script_id}"

    def extract(self, html: str) -> Any | None:
        return extract_json_from_script(html, self.script_id)


DEFAULT_PAYLOAD_SOURCES: tuple[PayloadSource, ...] = (
    MarkerPayload("window._sharedData"),
    MarkerPayload("__additionalDataLoaded"),
    ScriptPayload("__NEXT_DATA__"),
)


def build_payload_sources(
    markers: Iterable[str], script_ids: Iterable[str]
) -> tuple[PayloadSource, ...]:
    sources: list[PayloadSource] = [MarkerPayload(m) for m in markers]
    sources.extend(ScriptPayload(s) for s in script_ids)
    return tuple(sources)


def collect_embedded_payloads(
    html: str,
    sources: Sequence[PayloadSource] = DEFAULT_PAYLOAD_SOURCES,
    *,
    logger: ExtractLogger | None = None,
) -> list[tuple[str, Any]]:
    """Run each source in order; return (source name, payload) for every hit."""
    found: list[tuple[str, Any]] = []
    for source in sources:
        payload = source.extract(html)
        if payload is None:
            continue
        if logger is not None:
            logger.debug("embedded_payload_found", source=source.name)
        found.append((source.name, payload))
    return found
