from __future__ import annotations

import re

_HEX_REF_RE = re.compile(r"&#x([0-9a-fA-F]+);")
_DEC_REF_RE = re.compile(r"&#(\d+);")
_NAMED_REF_RE = re.compile(r"&(amp|quot|#39|lt|gt);")

_NAMED_REFS = {
    "amp": "&",
    "quot": '"',
    "#39": "'",
    "lt": "<",
    "gt": ">",
}


def _code_point_replacer(base: int):
    def _replace(match: re.Match[str]) -> str:
        try:
            return chr(int(match.group(1), base))
        except (ValueError, OverflowError):
            return match.group(0)

    return _replace


def decode_html_entities(value: str) -> str:
    """
    Decode numeric character references and a small set of named entities.

    Numeric references are resolved first. Named references are replaced in a
    single pass, so "&amp;lt;" becomes "&lt;" rather than "<". Out-of-range
    numeric references are kept verbatim.
    """
    if not value:
        return ""

    text = _HEX_REF_RE.sub(_code_point_replacer(16), value)
    text = _DEC_REF_RE.sub(_code_point_replacer(10), text)
    return _NAMED_REF_RE.sub(lambda m: _NAMED_REFS[m.group(1)], text)
